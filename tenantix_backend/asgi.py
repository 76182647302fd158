# asgi.py
import os

# Set environment variable FIRST
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "tenantix_backend.settings")

# Now import Django components
from django.apps import apps
from django.core.asgi import get_asgi_application
from channels.routing import ProtocolTypeRouter, URLRouter
from channels.auth import AuthMiddlewareStack
from channels.security.websocket import AllowedHostsOriginValidator

# Initialize Django ASGI application early
django_asgi_app = get_asgi_application()

# Import routing components AFTER Django setup
import chat.routing

presence_registry = apps.get_app_config("chat").registry

application = ProtocolTypeRouter({
    "http": django_asgi_app,
    "websocket": AllowedHostsOriginValidator(
        AuthMiddlewareStack(
            URLRouter(
                chat.routing.build_websocket_urlpatterns(presence_registry)
            )
        )
    ),
})
