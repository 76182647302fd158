from django.apps import AppConfig


class ChatConfig(AppConfig):
    """
    Real-time presence and message relay.

    The app owns the process-wide :class:`~chat.presence.PresenceRegistry`;
    it is created once when Django starts and handed to every chat consumer
    by ``tenantix_backend.asgi``.
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'chat'
    verbose_name = 'Chat'

    registry = None

    def ready(self):
        from .presence import PresenceRegistry

        if self.registry is None:
            self.registry = PresenceRegistry()
