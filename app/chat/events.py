"""
Real-time event vocabulary.

Every frame on the chat socket, in both directions, is a JSON object:

    {"event": "<name>", "data": {...}}

Outbound chat events are delivered to a chat's room (channel-layer group
"chat_<chatId>"). A ChatEvent may name an exclude_channel: the connection
that caused it, which then does not receive its own echo.

Outbound events:
    message-received         whole room         chatId, message
    message-reaction-update  room minus origin  chatId, messageId, userId, emoji,
                                                type (add/remove), reactions, counts
    message-deleted          whole room         chatId, messageId
    user-typing              room minus origin  chatId, userId, userName (start), type

Usage:
    event = message_received(chat.id, serialized_message)
    broadcaster.publish_sync(event)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ChatEventType:
    """Event names used on the wire."""

    # Server -> client, addressed to a room
    MESSAGE_RECEIVED = "message-received"
    MESSAGE_REACTION_UPDATE = "message-reaction-update"
    MESSAGE_DELETED = "message-deleted"
    USER_TYPING = "user-typing"

    # Server -> client, addressed to one connection
    AUTHENTICATED = "authenticated"
    JOINED_CHAT = "joined-chat"
    LEFT_CHAT = "left-chat"
    ERROR = "error"

    # Client -> server
    AUTHENTICATE = "authenticate"
    JOIN_CHAT = "join-chat"
    LEAVE_CHAT = "leave-chat"
    TYPING_START = "typing-start"
    TYPING_STOP = "typing-stop"
    MESSAGE_REACTION = "message-reaction"
    NEW_MESSAGE = "new-message"
    DELETE_MESSAGE = "message-deleted"


class ReactionOperation:
    ADD = "add"
    REMOVE = "remove"


class TypingOperation:
    START = "start"
    STOP = "stop"


# Channel-layer handler method on ChatConsumer ("chat.event" -> chat_event)
CHAT_EVENT_HANDLER = "chat.event"


def chat_group_name(chat_id: int) -> str:
    """Channel-layer group of a chat's room."""
    return f"chat_{chat_id}"


def user_group_name(user_id: int) -> str:
    """
    Channel-layer group of all connections of one user.

    Every authenticated socket joins it. No chat event is addressed to it
    yet; it is the delivery target for per-user events (the personal
    room clients subscribe to), independent of which chats are open.
    """
    return f"user_{user_id}"


@dataclass(frozen=True)
class ChatEvent:
    """
    One outbound event for a chat room.

    Attributes:
        chat_id: Room to deliver to
        event: Wire event name (ChatEventType)
        data: Event payload (JSON-serializable)
        exclude_channel: Channel name that must not receive the event
    """

    chat_id: int
    event: str
    data: dict[str, Any] = field(default_factory=dict)
    exclude_channel: str | None = None

    def to_group_message(self) -> dict[str, Any]:
        """Channel-layer message delivered to every consumer in the room."""
        return {
            "type": CHAT_EVENT_HANDLER,
            "event": self.event,
            "data": self.data,
            "exclude_channel": self.exclude_channel,
        }


def frame(event: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """A single wire frame."""
    return {"event": event, "data": data or {}}


# =============================================================================
# Event builders
# =============================================================================


def message_received(chat_id: int, serialized_message: dict) -> ChatEvent:
    """New message, delivered to the whole room including the sender's devices."""
    return ChatEvent(
        chat_id=chat_id,
        event=ChatEventType.MESSAGE_RECEIVED,
        data={"chatId": chat_id, "message": serialized_message},
    )


def message_reaction_update(
    chat_id: int,
    message_id: int,
    user_id: int,
    emoji: str,
    operation: str,
    reactions: list[dict],
    counts: dict[str, int],
    exclude_channel: str | None = None,
) -> ChatEvent:
    """Reaction change with the message's full current reaction set."""
    return ChatEvent(
        chat_id=chat_id,
        event=ChatEventType.MESSAGE_REACTION_UPDATE,
        data={
            "chatId": chat_id,
            "messageId": message_id,
            "userId": user_id,
            "emoji": emoji,
            "type": operation,
            "reactions": reactions,
            "counts": counts,
        },
        exclude_channel=exclude_channel,
    )


def message_deleted(chat_id: int, message_id: int) -> ChatEvent:
    return ChatEvent(
        chat_id=chat_id,
        event=ChatEventType.MESSAGE_DELETED,
        data={"chatId": chat_id, "messageId": message_id},
    )


def user_typing(
    chat_id: int,
    user_id: int,
    operation: str,
    user_name: str | None = None,
    exclude_channel: str | None = None,
) -> ChatEvent:
    """Typing start/stop. userName is only sent with start."""
    data: dict[str, Any] = {"chatId": chat_id, "userId": user_id, "type": operation}
    if operation == TypingOperation.START:
        data["userName"] = user_name or ""
    return ChatEvent(
        chat_id=chat_id,
        event=ChatEventType.USER_TYPING,
        data=data,
        exclude_channel=exclude_channel,
    )
