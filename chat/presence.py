# chat/presence.py
import logging
import threading
from typing import Any, Optional

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """
    Keeps a live view of "which user is currently reachable on which socket".

    Shape:  {"alice": "specific.inmemory!abc123", "bob": "specific.inmemory!def456"}

    The value is the Channels ``channel_name`` of the consumer that announced
    the user.  One user maps to one channel at a time; a newer ``register``
    for the same user simply replaces the old entry.
    """

    def __init__(self):
        self._users: dict[str | int, str] = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._users)

    def __contains__(self, user_id):
        with self._lock:
            return user_id in self._users

    # --------------------------------------------------------------------- writes
    def register(self, user_id: str | int, channel_name: str) -> None:
        """Upsert ``user_id -> channel_name``. Last writer wins."""
        with self._lock:
            previous = self._users.get(user_id)
            self._users[user_id] = channel_name
        if previous and previous != channel_name:
            logger.info("user %r moved from %s to %s", user_id, previous, channel_name)
        else:
            logger.info("user %r registered on %s", user_id, channel_name)

    def discard(self, channel_name: str) -> list[str | int]:
        """
        Drop every user still pointing at *channel_name*.

        Users that re-registered on another channel in the meantime are left
        alone.  Returns the user ids that were removed.
        """
        with self._lock:
            gone = [uid for uid, ch in self._users.items() if ch == channel_name]
            for uid in gone:
                del self._users[uid]
        if gone:
            logger.info("channel %s closed, removed users %s", channel_name, gone)
        return gone

    # --------------------------------------------------------------------- reads
    def lookup(self, user_id: Any) -> Optional[str]:
        """Current channel for *user_id*, or None if nobody is registered."""
        if user_id is None:
            return None
        with self._lock:
            try:
                return self._users.get(user_id)
            except TypeError:  # unhashable ids from a sloppy client
                return None

    def online_users(self) -> list[str | int]:
        with self._lock:
            return sorted(self._users, key=str)

    def resolve_recipient(self, data: Any) -> Optional[str]:
        """
        Pick the target channel for a ``sendMsg`` payload.

        Anything that isn't ``{"to": ..., ...}`` counts as a lookup miss.
        """
        if not isinstance(data, dict):
            return None
        return self.lookup(data.get("to"))
