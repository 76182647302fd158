"""
Tests for the chat presence registry and the socket consumer that relays
messages between registered users.
"""

from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.apps import apps
from django.test import SimpleTestCase, TransactionTestCase

from .consumers import PresenceConsumer
from .presence import PresenceRegistry
from .routing import build_websocket_urlpatterns


# =============================================================================
# REGISTRY TESTS
# =============================================================================

class PresenceRegistryTest(SimpleTestCase):
    """In-memory user -> channel bookkeeping"""

    def setUp(self):
        self.registry = PresenceRegistry()

    def test_register_then_lookup(self):
        self.registry.register("alice", "conn1")
        self.assertEqual(self.registry.lookup("alice"), "conn1")

    def test_latest_registration_wins(self):
        self.registry.register("alice", "conn1")
        self.registry.register("bob", "conn2")
        self.registry.register("alice", "conn3")

        self.assertEqual(self.registry.lookup("alice"), "conn3")
        self.assertEqual(self.registry.lookup("bob"), "conn2")
        self.assertEqual(len(self.registry), 2)

    def test_lookup_unknown_user(self):
        self.assertIsNone(self.registry.lookup("carol"))
        self.assertIsNone(self.registry.lookup(None))
        self.assertIsNone(self.registry.lookup(["not", "hashable"]))

    def test_one_channel_can_hold_several_users(self):
        self.registry.register("alice", "conn1")
        self.registry.register("alice-work", "conn1")

        self.assertEqual(self.registry.lookup("alice"), "conn1")
        self.assertEqual(self.registry.lookup("alice-work"), "conn1")

    def test_resolve_recipient(self):
        self.registry.register("bob", "conn2")

        self.assertEqual(self.registry.resolve_recipient({"to": "bob", "message": "hi"}), "conn2")
        self.assertIsNone(self.registry.resolve_recipient({"to": "carol", "message": "hi"}))
        self.assertIsNone(self.registry.resolve_recipient({"message": "hi"}))
        self.assertIsNone(self.registry.resolve_recipient("bob"))
        self.assertIsNone(self.registry.resolve_recipient(None))

    def test_discard_removes_every_user_of_the_channel(self):
        self.registry.register("alice", "conn1")
        self.registry.register("alice-work", "conn1")
        self.registry.register("bob", "conn2")

        removed = self.registry.discard("conn1")

        self.assertCountEqual(removed, ["alice", "alice-work"])
        self.assertNotIn("alice", self.registry)
        self.assertIn("bob", self.registry)

    def test_discard_keeps_users_that_moved_on(self):
        self.registry.register("alice", "conn1")
        self.registry.register("alice", "conn3")

        self.assertEqual(self.registry.discard("conn1"), [])
        self.assertEqual(self.registry.lookup("alice"), "conn3")

    def test_discard_unknown_channel(self):
        self.assertEqual(self.registry.discard("nope"), [])

    def test_online_users(self):
        self.registry.register("bob", "conn2")
        self.registry.register("alice", "conn1")
        self.assertEqual(self.registry.online_users(), ["alice", "bob"])

    def test_integer_user_ids(self):
        self.registry.register(12, "conn1")
        self.registry.register("bob", "conn2")

        self.assertEqual(self.registry.lookup(12), "conn1")
        self.assertEqual(self.registry.resolve_recipient({"to": 12, "message": "hi"}), "conn1")
        self.assertIsNone(self.registry.lookup("12"))
        self.assertEqual(self.registry.online_users(), [12, "bob"])
        self.assertEqual(self.registry.discard("conn1"), [12])

    def test_app_config_owns_a_registry(self):
        registry = apps.get_app_config("chat").registry
        self.assertIsInstance(registry, PresenceRegistry)
        self.assertIs(apps.get_app_config("chat").registry, registry)


# =============================================================================
# CONSUMER TESTS
# =============================================================================

class PresenceConsumerTest(TransactionTestCase):
    """
    End-to-end relay through the in-memory channel layer.

    TransactionTestCase because Channels closes old DB connections around
    every dispatched message.
    """

    def setUp(self):
        self.registry = PresenceRegistry()
        self.app = PresenceConsumer.as_asgi(registry=self.registry)

    async def _connect(self, app=None, path="/ws/chat/"):
        comm = WebsocketCommunicator(app or self.app, path)
        connected, _ = await comm.connect()
        self.assertTrue(connected)
        return comm

    async def _add_user(self, comm, user_id):
        await comm.send_json_to({"action": "addUser", "data": user_id})
        ack = await comm.receive_json_from()
        self.assertEqual(ack, {"status": "success", "action": "userAdded", "userId": user_id})

    async def test_message_reaches_registered_recipient(self):
        conn1 = await self._connect()
        conn2 = await self._connect()
        await self._add_user(conn1, "alice")
        await self._add_user(conn2, "bob")

        await conn1.send_json_to({"action": "sendMsg", "data": {"to": "bob", "message": "hi"}})

        self.assertEqual(await conn2.receive_json_from(), {"action": "receiveMsg", "data": "hi"})
        self.assertTrue(await conn1.receive_nothing())

        await conn1.disconnect()
        await conn2.disconnect()

    async def test_payload_is_forwarded_unchanged(self):
        conn1 = await self._connect()
        conn2 = await self._connect()
        await self._add_user(conn1, "alice")
        await self._add_user(conn2, "bob")

        payload = {"text": "Is the flat still free?", "propertyId": 42, "tags": ["rent", None]}
        await conn1.send_json_to({"action": "sendMsg", "data": {"to": "bob", "message": payload}})

        received = await conn2.receive_json_from()
        self.assertEqual(received["data"], payload)

        await conn1.disconnect()
        await conn2.disconnect()

    async def test_unregistered_recipient_is_dropped(self):
        conn1 = await self._connect()
        await self._add_user(conn1, "alice")

        await conn1.send_json_to({"action": "sendMsg", "data": {"to": "carol", "message": "hi"}})

        # no delivery, no error frame
        self.assertTrue(await conn1.receive_nothing())

        await conn1.disconnect()

    async def test_full_recipient_channel_is_dropped(self):
        dead_channel = "specific.inmemory!dead-bob"
        conn1 = await self._connect()
        await self._add_user(conn1, "alice")
        self.registry.register("bob", dead_channel)

        # one more than the in-memory layer's default capacity
        for n in range(101):
            await conn1.send_json_to({"action": "sendMsg", "data": {"to": "bob", "message": n}})

        await conn1.send_json_to({"type": "ping"})
        self.assertEqual(await conn1.receive_json_from(timeout=5), {"type": "pong"})
        self.assertTrue(await conn1.receive_nothing())

        await conn1.disconnect()
        await get_channel_layer().flush()

    async def test_message_to_own_socket_is_not_echoed(self):
        conn1 = await self._connect()
        conn2 = await self._connect()
        await self._add_user(conn1, "alice")
        await self._add_user(conn1, "alice-work")
        await self._add_user(conn2, "bob")

        await conn1.send_json_to({"action": "sendMsg", "data": {"to": "alice-work", "message": "note to self"}})

        self.assertTrue(await conn1.receive_nothing())
        self.assertTrue(await conn2.receive_nothing())

        await conn1.disconnect()
        await conn2.disconnect()

    async def test_malformed_send_is_a_silent_miss(self):
        conn1 = await self._connect()
        conn2 = await self._connect()
        await self._add_user(conn1, "alice")
        await self._add_user(conn2, "bob")

        await conn1.send_json_to({"action": "sendMsg", "data": {"message": "hi"}})
        await conn1.send_json_to({"action": "sendMsg", "data": "bob"})
        await conn1.send_json_to({"action": "sendMsg"})

        self.assertTrue(await conn1.receive_nothing())
        self.assertTrue(await conn2.receive_nothing())

        await conn1.disconnect()
        await conn2.disconnect()

    async def test_reregistration_moves_delivery_to_newest_socket(self):
        conn1 = await self._connect()
        conn2 = await self._connect()
        conn3 = await self._connect()
        await self._add_user(conn1, "alice")
        await self._add_user(conn3, "alice")
        await self._add_user(conn2, "bob")

        await conn2.send_json_to({"action": "sendMsg", "data": {"to": "alice", "message": "x"}})

        self.assertEqual(await conn3.receive_json_from(), {"action": "receiveMsg", "data": "x"})
        self.assertTrue(await conn1.receive_nothing())

        for comm in (conn1, conn2, conn3):
            await comm.disconnect()

    async def test_users_do_not_see_each_others_messages(self):
        conn1 = await self._connect()
        conn2 = await self._connect()
        conn3 = await self._connect()
        await self._add_user(conn1, "alice")
        await self._add_user(conn2, "bob")
        await self._add_user(conn3, "dave")

        await conn3.send_json_to({"action": "sendMsg", "data": {"to": "alice", "message": "for alice"}})
        await conn3.send_json_to({"action": "sendMsg", "data": {"to": "bob", "message": "for bob"}})

        self.assertEqual((await conn1.receive_json_from())["data"], "for alice")
        self.assertEqual((await conn2.receive_json_from())["data"], "for bob")
        self.assertTrue(await conn1.receive_nothing())
        self.assertTrue(await conn2.receive_nothing())
        self.assertTrue(await conn3.receive_nothing())

        for comm in (conn1, conn2, conn3):
            await comm.disconnect()

    async def test_messages_from_one_sender_keep_their_order(self):
        conn1 = await self._connect()
        conn2 = await self._connect()
        await self._add_user(conn1, "alice")
        await self._add_user(conn2, "bob")

        for n in range(5):
            await conn1.send_json_to({"action": "sendMsg", "data": {"to": "bob", "message": n}})

        received = [(await conn2.receive_json_from())["data"] for _ in range(5)]
        self.assertEqual(received, [0, 1, 2, 3, 4])

        await conn1.disconnect()
        await conn2.disconnect()

    async def test_disconnect_removes_registration(self):
        conn1 = await self._connect()
        conn2 = await self._connect()
        await self._add_user(conn1, "alice")
        await self._add_user(conn2, "bob")
        self.assertIn("alice", self.registry)

        await conn1.disconnect()

        self.assertNotIn("alice", self.registry)
        await conn2.send_json_to({"action": "sendMsg", "data": {"to": "alice", "message": "gone?"}})
        self.assertTrue(await conn2.receive_nothing())

        await conn2.disconnect()

    async def test_disconnect_of_old_socket_keeps_newer_registration(self):
        conn1 = await self._connect()
        conn2 = await self._connect()
        conn3 = await self._connect()
        await self._add_user(conn1, "alice")
        await self._add_user(conn3, "alice")
        await self._add_user(conn2, "bob")

        await conn1.disconnect()

        self.assertIn("alice", self.registry)
        await conn2.send_json_to({"action": "sendMsg", "data": {"to": "alice", "message": "still here"}})
        self.assertEqual((await conn3.receive_json_from())["data"], "still here")

        await conn2.disconnect()
        await conn3.disconnect()

    async def test_registration_without_ack(self):
        with self.settings(PRESENCE={"ACK_REGISTRATION": False}):
            conn1 = await self._connect()
            await conn1.send_json_to({"action": "addUser", "data": "alice"})
            self.assertTrue(await conn1.receive_nothing())
            self.assertIn("alice", self.registry)
            await conn1.disconnect()

    async def test_ping_pong(self):
        conn1 = await self._connect()
        await conn1.send_json_to({"type": "ping"})
        self.assertEqual(await conn1.receive_json_from(), {"type": "pong"})
        await conn1.disconnect()

    async def test_protocol_errors_keep_socket_open(self):
        conn1 = await self._connect()

        await conn1.send_to(text_data="{not json")
        self.assertEqual(await conn1.receive_json_from(), {"status": "error", "message": "Invalid JSON"})

        await conn1.send_json_to(["addUser", "alice"])
        self.assertEqual((await conn1.receive_json_from())["status"], "error")

        await conn1.send_json_to({"action": "joinRoom", "data": "lobby"})
        self.assertEqual(await conn1.receive_json_from(), {"status": "error", "message": "Invalid action"})

        await conn1.send_json_to({"action": "addUser", "data": {"id": 1}})
        self.assertEqual((await conn1.receive_json_from())["status"], "error")
        self.assertEqual(len(self.registry), 0)

        # still usable afterwards
        await self._add_user(conn1, "alice")
        await conn1.disconnect()

    async def test_url_routing(self):
        app = URLRouter(build_websocket_urlpatterns(self.registry))
        conn1 = await self._connect(app=app, path="/ws/chat/")
        await self._add_user(conn1, "alice")
        self.assertIn("alice", self.registry)
        await conn1.disconnect()
