"""
Tests for ConnectionRegistry bookkeeping.
"""

import fakeredis
import pytest

from core.exceptions import PermissionDeniedError
from chat.constants import REGISTRY_CONFIG
from chat.registry import ConnectionRegistry


class TestAuthenticate:
    def test_first_authentication_binds_user(self, registry):
        assert registry.authenticate("chan-1", 7) is True

        assert registry.user_for("chan-1") == 7
        assert registry.is_connected(7) is True

    def test_second_authentication_keeps_first_binding(self, registry):
        registry.authenticate("chan-1", 7)

        assert registry.authenticate("chan-1", 8) is False
        assert registry.user_for("chan-1") == 7
        assert registry.is_connected(8) is False

    def test_user_may_have_several_connections(self, registry):
        registry.authenticate("phone", 7)
        registry.authenticate("laptop", 7)

        assert registry.connections_for(7) == {"phone", "laptop"}


class TestRooms:
    def test_join_requires_authentication(self, registry):
        with pytest.raises(PermissionDeniedError):
            registry.join_room("anonymous", 3)

    def test_join_is_idempotent(self, registry):
        registry.authenticate("chan-1", 7)

        assert registry.join_room("chan-1", 3) is True
        assert registry.join_room("chan-1", 3) is False
        assert registry.rooms_for("chan-1") == {3}

    def test_leave_is_idempotent(self, registry):
        registry.authenticate("chan-1", 7)
        registry.join_room("chan-1", 3)

        assert registry.leave_room("chan-1", 3) is True
        assert registry.leave_room("chan-1", 3) is False
        assert registry.rooms_for("chan-1") == set()

    def test_connections_in_room(self, registry):
        registry.authenticate("a", 1)
        registry.authenticate("b", 2)
        registry.join_room("a", 3)
        registry.join_room("b", 3)
        registry.join_room("b", 4)

        assert registry.connections_in_room(3) == {"a", "b"}
        assert registry.connections_in_room(4) == {"b"}


class TestDisconnect:
    def test_returns_joined_rooms(self, registry):
        registry.authenticate("chan-1", 7)
        registry.join_room("chan-1", 3)
        registry.join_room("chan-1", 4)

        assert registry.disconnect("chan-1") == {3, 4}
        assert registry.user_for("chan-1") is None
        assert registry.connections_in_room(3) == set()

    def test_other_connections_of_user_survive(self, registry):
        """
        Why it matters: closing the laptop must not drop the phone out of
        its rooms.
        """
        registry.authenticate("phone", 7)
        registry.authenticate("laptop", 7)
        registry.join_room("phone", 3)
        registry.join_room("laptop", 3)

        registry.disconnect("laptop")

        assert registry.connections_for(7) == {"phone"}
        assert registry.rooms_for("phone") == {3}
        assert registry.is_connected(7) is True

    def test_last_connection_marks_user_offline(self, registry):
        registry.authenticate("chan-1", 7)

        registry.disconnect("chan-1")

        assert registry.is_connected(7) is False

    def test_unknown_connection_is_noop(self, registry):
        assert registry.disconnect("never-seen") == set()


class TestSharedAcrossProcesses:
    """Registries over the same Redis behave as one registry."""

    @pytest.fixture
    def server(self):
        return fakeredis.FakeServer()

    def _registry(self, server):
        return ConnectionRegistry(redis_client=fakeredis.FakeRedis(server=server))

    def test_connections_visible_from_other_worker(self, server):
        """
        Why it matters: with several ASGI workers, a user's sockets are
        spread over processes and each must see all of them.
        """
        worker_a = self._registry(server)
        worker_b = self._registry(server)

        worker_a.authenticate("phone", 7)
        worker_b.authenticate("laptop", 7)
        worker_a.join_room("phone", 3)
        worker_b.join_room("laptop", 3)

        assert worker_a.connections_for(7) == {"phone", "laptop"}
        assert worker_b.connections_in_room(3) == {"phone", "laptop"}

    def test_channel_binds_once_across_workers(self, server):
        worker_a = self._registry(server)
        worker_b = self._registry(server)

        assert worker_a.authenticate("chan-1", 7) is True
        assert worker_b.authenticate("chan-1", 8) is False
        assert worker_b.user_for("chan-1") == 7

    def test_disconnect_on_one_worker_clears_shared_state(self, server):
        worker_a = self._registry(server)
        worker_b = self._registry(server)
        worker_a.authenticate("chan-1", 7)
        worker_a.join_room("chan-1", 3)

        worker_a.disconnect("chan-1")

        assert worker_b.is_connected(7) is False
        assert worker_b.connections_in_room(3) == set()


class TestExpiry:
    def test_connection_keys_expire(self, registry):
        registry.authenticate("chan-1", 7)
        registry.join_room("chan-1", 3)

        ttl = REGISTRY_CONFIG.CONNECTION_TTL_SECONDS
        assert 0 < registry.redis.ttl(registry._channel_user_key("chan-1")) <= ttl
        assert 0 < registry.redis.ttl(registry._channel_rooms_key("chan-1")) <= ttl
        assert 0 < registry.redis.ttl(registry._user_channels_key(7)) <= ttl
        assert 0 < registry.redis.ttl(registry._room_channels_key(3)) <= ttl
