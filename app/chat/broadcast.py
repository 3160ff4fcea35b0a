"""
Fan-out of chat events to connected clients.

ChatEventBroadcaster publishes ChatEvents to the chat's channel-layer group.
It is created explicitly and handed to whoever needs to broadcast
(ChatCommands, built per request by the views and per connection by the
consumer); nothing imports a shared broadcaster.

Publishing is best effort. The database is the source of truth; a client
that misses an event reconciles by fetching the message page again. Channel
layer failures are logged and swallowed, never raised to the caller of the
chat operation.

Usage:
    broadcaster = ChatEventBroadcaster()
    broadcaster.publish_sync(message_deleted(chat.id, message.id))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from chat.events import chat_group_name

if TYPE_CHECKING:
    from channels.layers import BaseChannelLayer

    from chat.events import ChatEvent

logger = logging.getLogger(__name__)


class ChatEventBroadcaster:
    """
    Publishes chat events to room groups.

    Args:
        channel_layer: Layer to publish on; defaults to the configured
            default layer
    """

    def __init__(self, channel_layer: BaseChannelLayer | None = None):
        self.channel_layer = channel_layer if channel_layer is not None else get_channel_layer()

    async def publish(self, event: ChatEvent) -> bool:
        """
        Send event to its chat's group.

        Returns:
            True if the layer accepted the event, False otherwise
        """
        if self.channel_layer is None:
            logger.warning(f"No channel layer configured, dropping {event.event}")
            return False

        group = chat_group_name(event.chat_id)
        try:
            await self.channel_layer.group_send(group, event.to_group_message())
        except Exception:
            logger.exception(f"Failed to publish {event.event} to {group}")
            return False

        logger.debug(f"Published {event.event} to {group}")
        return True

    def publish_sync(self, event: ChatEvent) -> bool:
        """publish() for synchronous callers (views, database_sync_to_async code)."""
        return async_to_sync(self.publish)(event)


def get_broadcaster() -> ChatEventBroadcaster:
    """Broadcaster bound to the default channel layer."""
    return ChatEventBroadcaster()
