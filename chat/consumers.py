# chat/consumers.py
import json
import logging

from channels.exceptions import ChannelFull
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings

from .presence import PresenceRegistry

logger = logging.getLogger(__name__)


# ────────────────────────────────────────────────────────────────────────────────
# wire protocol
# ────────────────────────────────────────────────────────────────────────────────
ADD_USER = "addUser"
SEND_MSG = "sendMsg"
RECEIVE_MSG = "receiveMsg"
USER_ADDED = "userAdded"


def _ack_registration() -> bool:
    return getattr(settings, "PRESENCE", {}).get("ACK_REGISTRATION", True)


# ────────────────────────────────────────────────────────────────────────────────
# Presence consumer
# ────────────────────────────────────────────────────────────────────────────────
class PresenceConsumer(AsyncWebsocketConsumer):
    """
    One instance per browser socket.

    A client announces who it is with ``addUser`` and talks to other users
    with ``sendMsg``.  Messages are pushed straight to the recipient's channel
    through the channel layer, never to a group, so only the addressed socket
    ever sees them.  Unknown recipients are dropped without telling anyone.
    """

    registry = None

    def __init__(self, *args, registry: PresenceRegistry = None, **kwargs):
        super().__init__(*args, **kwargs)
        if registry is not None:
            self.registry = registry
        if self.registry is None:
            from django.apps import apps
            self.registry = apps.get_app_config("chat").registry

    # --------------------------------------------------------------------- life-cycle
    async def connect(self):
        await self.accept()
        logger.debug("socket %s connected", self.channel_name)

    async def disconnect(self, close_code):
        removed = self.registry.discard(self.channel_name)
        logger.debug(
            "socket %s disconnected (code=%s), dropped %s",
            self.channel_name, close_code, removed,
        )

    # ------------------------------------------------------------------ main receive
    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data if text_data is not None else bytes_data)
        except (TypeError, ValueError):
            logger.warning("socket %s sent an undecodable frame", self.channel_name)
            return await self._send_error("Invalid JSON")

        if not isinstance(data, dict):
            return await self._send_error("Frame must be a JSON object")

        # simple heartbeat
        if data.get("type") == "ping":
            return await self.send(text_data=json.dumps({"type": "pong"}))

        act = data.get("action")

        if act == ADD_USER:
            return await self.add_user(data.get("data"))

        if act == SEND_MSG:
            return await self.send_msg(data.get("data"))

        logger.warning("socket %s sent unknown action %r", self.channel_name, act)
        await self._send_error("Invalid action")

    # ------------------------------------------------------------------ handlers
    async def add_user(self, user_id):
        if isinstance(user_id, bool) or not isinstance(user_id, (str, int)):
            return await self._send_error("addUser expects a user id")

        self.registry.register(user_id, self.channel_name)

        if _ack_registration():
            await self.send(text_data=json.dumps({
                "status": "success", "action": USER_ADDED, "userId": user_id,
            }))

    async def send_msg(self, data):
        target = self.registry.resolve_recipient(data)
        if target is None:
            to = data.get("to") if isinstance(data, dict) else None
            logger.info("no live socket for %r, message dropped", to)
            return

        # the sending socket never hears its own message back
        if target == self.channel_name:
            logger.info("%r is registered on the sending socket, message dropped", data.get("to"))
            return

        try:
            await self.channel_layer.send(
                target, {"type": "receive.msg", "message": data.get("message")}
            )
        except ChannelFull:
            logger.warning("channel %s for %r is full, message dropped", target, data.get("to"))

    async def receive_msg(self, event):
        """Relay message coming from channel layer → browser."""
        await self.send(text_data=json.dumps({
            "action": RECEIVE_MSG, "data": event["message"],
        }))

    # ------------------------------------------------------------------ helpers
    async def _send_error(self, message):
        await self.send(text_data=json.dumps({
            "status": "error", "message": message,
        }))
