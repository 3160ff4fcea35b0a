"""
Registry of live socket connections, shared by every server process.

Tracks:
    channel name -> authenticated user id
    channel name -> joined chat ids
    user id      -> channel names (a user may be connected from several devices)
    chat id      -> channel names that joined the room

State lives in Redis (the django-redis "default" connection) so that every
ASGI worker behind the channels-redis layer sees the same connections.
Channel-layer groups do the actual fan-out; the registry is the bookkeeping
the consumer consults for its state machine (authenticated or not, which
rooms to leave on disconnect) and that the rest of the system can query
(is this user connected, from how many devices).

Design Decisions:
    - Redis sets for every multimap, updated in MULTI/EXEC pipelines
    - SET NX binds a channel to a user exactly once
    - Keys expire after CONNECTION_TTL_SECONDS so a crashed worker's
      connections do not linger forever; activity refreshes the TTL

Usage:
    from chat.registry import connection_registry

    connection_registry.authenticate(channel_name, user.id)
    connection_registry.join_room(channel_name, chat.id)
    rooms = connection_registry.disconnect(channel_name)
"""

from __future__ import annotations

import logging

from core.exceptions import PermissionDeniedError

from chat.constants import REGISTRY_CONFIG

logger = logging.getLogger(__name__)


def _text(value) -> str:
    return value.decode() if isinstance(value, bytes) else str(value)


class ConnectionRegistry:
    """
    Redis-backed multimap of users to connections and connections to rooms.

    Methods block on Redis; call them through sync_to_async from the
    event loop.

    Args:
        redis_client: Client to use. Defaults to the django-redis
            "default" connection, resolved on first use.
    """

    def __init__(self, redis_client=None, key_prefix: str = REGISTRY_CONFIG.KEY_PREFIX):
        self._redis = redis_client
        self.key_prefix = key_prefix

    @property
    def redis(self):
        if self._redis is None:
            from django_redis import get_redis_connection

            self._redis = get_redis_connection("default")
        return self._redis

    # Keys

    def _channel_user_key(self, channel_name: str) -> str:
        return f"{self.key_prefix}:channel:{channel_name}:user"

    def _channel_rooms_key(self, channel_name: str) -> str:
        return f"{self.key_prefix}:channel:{channel_name}:rooms"

    def _user_channels_key(self, user_id) -> str:
        return f"{self.key_prefix}:user:{user_id}:channels"

    def _room_channels_key(self, chat_id) -> str:
        return f"{self.key_prefix}:room:{chat_id}:channels"

    def authenticate(self, channel_name: str, user_id: int) -> bool:
        """
        Bind a connection to a user.

        Returns:
            True on the first call for this connection, False if it was
            already authenticated (the existing binding is kept)
        """
        ttl = REGISTRY_CONFIG.CONNECTION_TTL_SECONDS
        if not self.redis.set(self._channel_user_key(channel_name), user_id, nx=True, ex=ttl):
            return False

        user_key = self._user_channels_key(user_id)
        pipe = self.redis.pipeline()
        pipe.sadd(user_key, channel_name)
        pipe.expire(user_key, ttl)
        pipe.execute()

        logger.debug(f"Connection {channel_name} authenticated as user {user_id}")
        return True

    def join_room(self, channel_name: str, chat_id: int) -> bool:
        """
        Add chat_id to the connection's rooms. Idempotent.

        Returns:
            True if the room was newly joined

        Raises:
            PermissionDeniedError: The connection is not authenticated
        """
        user_key = self._channel_user_key(channel_name)
        if self.redis.get(user_key) is None:
            raise PermissionDeniedError("Connection is not authenticated")

        ttl = REGISTRY_CONFIG.CONNECTION_TTL_SECONDS
        rooms_key = self._channel_rooms_key(channel_name)
        room_key = self._room_channels_key(chat_id)
        pipe = self.redis.pipeline()
        pipe.sadd(rooms_key, chat_id)
        pipe.sadd(room_key, channel_name)
        pipe.expire(rooms_key, ttl)
        pipe.expire(room_key, ttl)
        pipe.expire(user_key, ttl)
        added, *_ = pipe.execute()
        return bool(added)

    def leave_room(self, channel_name: str, chat_id: int) -> bool:
        """Remove chat_id from the connection's rooms. Idempotent."""
        pipe = self.redis.pipeline()
        pipe.srem(self._channel_rooms_key(channel_name), chat_id)
        pipe.srem(self._room_channels_key(chat_id), channel_name)
        removed, _ = pipe.execute()
        return bool(removed)

    def disconnect(self, channel_name: str) -> set[int]:
        """
        Forget a connection.

        Other connections of the same user are untouched.

        Returns:
            The chat ids the connection had joined
        """
        user_key = self._channel_user_key(channel_name)
        rooms_key = self._channel_rooms_key(channel_name)

        pipe = self.redis.pipeline()
        pipe.get(user_key)
        pipe.smembers(rooms_key)
        pipe.delete(user_key, rooms_key)
        user_id, raw_rooms, _ = pipe.execute()

        rooms = {int(room) for room in raw_rooms}
        if user_id is None and not rooms:
            return rooms

        pipe = self.redis.pipeline()
        if user_id is not None:
            pipe.srem(self._user_channels_key(_text(user_id)), channel_name)
        for chat_id in rooms:
            pipe.srem(self._room_channels_key(chat_id), channel_name)
        pipe.execute()

        if user_id is not None:
            logger.debug(
                f"Connection {channel_name} of user {_text(user_id)} disconnected "
                f"from {len(rooms)} rooms"
            )
        return rooms

    def user_for(self, channel_name: str) -> int | None:
        user_id = self.redis.get(self._channel_user_key(channel_name))
        return int(user_id) if user_id is not None else None

    def rooms_for(self, channel_name: str) -> set[int]:
        return {int(room) for room in self.redis.smembers(self._channel_rooms_key(channel_name))}

    def connections_for(self, user_id: int) -> set[str]:
        return {_text(name) for name in self.redis.smembers(self._user_channels_key(user_id))}

    def is_connected(self, user_id: int) -> bool:
        return self.redis.scard(self._user_channels_key(user_id)) > 0

    def connections_in_room(self, chat_id: int) -> set[str]:
        """Connections, across all processes, that joined chat_id."""
        return {_text(name) for name in self.redis.smembers(self._room_channels_key(chat_id))}


# Consumers reference it through ChatConsumer.registry so tests can swap in
# a registry over a private Redis.
connection_registry = ConnectionRegistry()
