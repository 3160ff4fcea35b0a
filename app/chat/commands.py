"""
Chat commands: service call, then fan-out, then notifications.

Views and the socket consumer both go through ChatCommands for every
operation that other participants must hear about. A command:

    1. runs the chat.services operation (the state change)
    2. publishes the resulting event to the chat's room
    3. enqueues notification tasks once the transaction commits

Steps 2 and 3 are best effort. Their failures are logged and never turn a
successful state change into an error.

Usage:
    commands = ChatCommands(get_broadcaster())
    result = commands.send_message(chat, request.user, content="hi")

    # From a socket: events the connection caused skip that connection
    commands = ChatCommands(self.broadcaster, origin_channel=self.channel_name)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import transaction

from core.exceptions import ErrorCode
from core.services import ServiceResult

from chat.events import (
    ReactionOperation,
    TypingOperation,
    message_deleted,
    message_reaction_update,
    message_received,
    user_typing,
)
from chat.serializers import MessageSerializer, ReactionSerializer
from chat.services import MessageService, ReactionService, TypingService, UnreadService

if TYPE_CHECKING:
    from authentication.models import User

    from chat.broadcast import ChatEventBroadcaster
    from chat.models import Chat, Message

logger = logging.getLogger(__name__)


def _enqueue(task, *args) -> None:
    """Schedule task.delay(*args) after the current transaction commits."""

    def send():
        try:
            task.delay(*args)
        except Exception:
            logger.exception(f"Failed to enqueue {task.name}")

    transaction.on_commit(send)


class ChatCommands:
    """
    Chat operations with their side effects.

    Args:
        broadcaster: Publishes events to chat rooms
        origin_channel: Channel name of the socket issuing the commands.
            Typing and reaction events skip it; message and deletion
            events reach it too so every device of the sender sees them.
    """

    def __init__(
        self,
        broadcaster: ChatEventBroadcaster,
        origin_channel: str | None = None,
    ):
        self.broadcaster = broadcaster
        self.origin_channel = origin_channel

    # =========================================================================
    # Messages
    # =========================================================================

    def send_message(
        self,
        chat: Chat,
        sender: User,
        content: str | None = "",
        message_type: str | None = None,
        metadata: dict | None = None,
        reply_to_id: int | None = None,
    ) -> ServiceResult[Message]:
        """
        Send a message, bump the other members' unread counters, announce it.

        Every other active participant gets a new-message notification.
        """
        from notifications.tasks import notify_new_message

        result = MessageService.send_message(
            chat,
            sender,
            content=content,
            message_type=message_type,
            metadata=metadata,
            reply_to_id=reply_to_id,
        )
        if not result:
            return result
        message = result.data

        UnreadService.increment_unread(chat, except_user=sender)

        serialized = MessageSerializer(message).data
        self.broadcaster.publish_sync(message_received(chat.id, serialized))

        recipient_ids = [uid for uid in chat.participant_ids if uid != sender.pk]
        if recipient_ids:
            _enqueue(notify_new_message, chat.id, message.id, sender.pk, recipient_ids)

        return result

    def delete_message(self, chat: Chat, message_id, requester: User) -> ServiceResult[Message]:
        result = MessageService.soft_delete_message(chat, message_id, requester)
        if result:
            self.broadcaster.publish_sync(message_deleted(chat.id, result.data.id))
        return result

    # =========================================================================
    # Reactions
    # =========================================================================

    def react(
        self,
        chat: Chat,
        message_id,
        user: User,
        emoji: str,
        operation: str = ReactionOperation.ADD,
    ) -> ServiceResult[dict]:
        """
        Set or clear user's reaction on a message of chat.

        Returns:
            ServiceResult with {"reactions": [...], "counts": {...}}

        Error codes:
            PERMISSION_DENIED: User is not a participant
            NOT_FOUND: Message missing or deleted
            INVALID_ARGUMENT: Bad emoji or unknown operation
        """
        from notifications.tasks import notify_reaction

        if operation not in (ReactionOperation.ADD, ReactionOperation.REMOVE):
            return ServiceResult.failure(
                f"Unknown reaction operation: {operation}",
                error_code=ErrorCode.INVALID_ARGUMENT,
                errors={"type": ["Must be add or remove."]},
            )

        if not chat.is_participant(user):
            return ServiceResult.failure(
                "You do not have access to this chat",
                error_code=ErrorCode.PERMISSION_DENIED,
            )

        message_result = MessageService.get_message(chat, message_id)
        if not message_result:
            return message_result
        message = message_result.data

        if operation == ReactionOperation.ADD:
            result = ReactionService.set_reaction(message, user, emoji)
        else:
            result = ReactionService.clear_reaction(message, user, emoji)
        if not result:
            return result
        emoji = emoji.strip() if isinstance(emoji, str) else ""

        state = {
            "reactions": ReactionSerializer(result.data, many=True).data,
            "counts": ReactionService.count_by_emoji(message),
        }

        self.broadcaster.publish_sync(
            message_reaction_update(
                chat.id,
                message.id,
                user.pk,
                emoji,
                operation,
                reactions=state["reactions"],
                counts=state["counts"],
                exclude_channel=self.origin_channel,
            )
        )

        if operation == ReactionOperation.ADD and message.sender_id != user.pk:
            _enqueue(notify_reaction, message.id, user.pk, message.sender_id, emoji)

        return ServiceResult.success(state)

    # =========================================================================
    # Typing and read state
    # =========================================================================

    def start_typing(self, chat: Chat, user: User) -> ServiceResult:
        result = TypingService.start_typing(chat, user)
        if result:
            self.broadcaster.publish_sync(
                user_typing(
                    chat.id,
                    user.pk,
                    TypingOperation.START,
                    user_name=user.get_full_name(),
                    exclude_channel=self.origin_channel,
                )
            )
        return result

    def stop_typing(self, chat: Chat, user: User) -> ServiceResult:
        result = TypingService.stop_typing(chat, user)
        if result:
            self.broadcaster.publish_sync(
                user_typing(
                    chat.id,
                    user.pk,
                    TypingOperation.STOP,
                    exclude_channel=self.origin_channel,
                )
            )
        return result

    def mark_read(self, chat: Chat, user: User) -> ServiceResult[int]:
        """Reset user's unread counter. Nothing is broadcast."""
        return UnreadService.mark_read(chat, user)
