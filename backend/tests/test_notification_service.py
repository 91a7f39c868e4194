"""
UniHelp Backend — Notification Broadcaster Tests
==================================================

What we test:
    ✅ Connections are grouped per user; missing user id stays ungrouped
    ✅ Every connection of a user receives each message
    ✅ Other users' connections receive nothing
    ✅ Empty groups drop the message (0 delivered) and are removed
    ✅ A failing connection is evicted; the rest still receive
"""

import pytest

from conftest import FakeConnection
from unihelp.services.notification_service import (
    NotificationBroadcaster,
    group_name,
)


class TestGrouping:

    def setup_method(self):
        self.broadcaster = NotificationBroadcaster()

    def test_group_name(self):
        assert group_name(42) == "user_42"

    def test_connect_joins_user_group(self):
        conn = FakeConnection()
        assert self.broadcaster.connect(conn, 5) == "user_5"
        assert self.broadcaster.connection_count(5) == 1

    def test_connect_without_user_id_is_ungrouped(self):
        assert self.broadcaster.connect(FakeConnection(), None) is None
        assert self.broadcaster.connection_count() == 0

    def test_disconnect_drops_empty_group(self):
        conn = FakeConnection()
        self.broadcaster.connect(conn, 5)
        self.broadcaster.disconnect(conn)

        assert self.broadcaster.connection_count(5) == 0
        assert "user_5" not in self.broadcaster._groups

    def test_disconnect_unknown_connection_is_noop(self):
        self.broadcaster.disconnect(FakeConnection())
        assert self.broadcaster.connection_count() == 0


class TestPublish:

    def setup_method(self):
        self.broadcaster = NotificationBroadcaster()

    @pytest.mark.asyncio
    async def test_all_connections_of_user_receive(self):
        tab_a, tab_b = FakeConnection(), FakeConnection()
        self.broadcaster.connect(tab_a, 1)
        self.broadcaster.connect(tab_b, 1)

        delivered = await self.broadcaster.publish(1, "hello")

        assert delivered == 2
        expected = {"target": "ReceiveNotification", "arguments": ["hello"]}
        assert tab_a.sent == [expected]
        assert tab_b.sent == [expected]

    @pytest.mark.asyncio
    async def test_other_users_receive_nothing(self):
        mine, theirs = FakeConnection(), FakeConnection()
        self.broadcaster.connect(mine, 1)
        self.broadcaster.connect(theirs, 2)

        await self.broadcaster.publish(1, "only for 1")

        assert theirs.sent == []

    @pytest.mark.asyncio
    async def test_empty_group_drops_message(self):
        assert await self.broadcaster.publish(99, "nobody home") == 0

    @pytest.mark.asyncio
    async def test_failing_connection_is_evicted(self):
        broken, healthy = FakeConnection(fail=True), FakeConnection()
        self.broadcaster.connect(broken, 1)
        self.broadcaster.connect(healthy, 1)

        delivered = await self.broadcaster.publish(1, "still arrives")

        assert delivered == 1
        assert healthy.messages == ["still arrives"]
        assert self.broadcaster.connection_count(1) == 1

        # Evicted connection is gone for good
        await self.broadcaster.publish(1, "second")
        assert healthy.messages == ["still arrives", "second"]
