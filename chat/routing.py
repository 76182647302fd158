# chat/routing.py
from django.urls import re_path

from .consumers import PresenceConsumer


def build_websocket_urlpatterns(registry):
    """URL patterns for the chat socket, bound to one presence registry."""
    return [
        re_path(r'ws/chat/$', PresenceConsumer.as_asgi(registry=registry)),
    ]
