"""
Notification service layer.

Creates notification records for chat activity. The chat core never calls
this module directly; it enqueues notifications.tasks on commit and the
tasks call in here.

Services:
    NotificationService: Message and reaction notifications

Rules:
    - New message: one notification per recipient, never the sender,
      priority high
    - Reaction: only when the reactor is not the message author,
      priority normal

Usage:
    from notifications.services import NotificationService

    result = NotificationService.notify_new_message(
        chat_id=chat.id,
        message_id=message.id,
        sender_id=sender.id,
        recipient_ids=[2, 3],
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model

from core.exceptions import ErrorCode
from core.services import BaseService, ServiceResult

from notifications.models import Notification, NotificationKind, NotificationPriority

if TYPE_CHECKING:
    from authentication.models import User


class NotificationService(BaseService):
    """
    Service for notification operations.

    Methods:
        notify_new_message: Notify the other participants of a new message
        notify_reaction: Notify a message's author of a reaction
    """

    @classmethod
    def notify_new_message(
        cls,
        chat_id: int,
        message_id: int,
        sender_id: int,
        recipient_ids: list[int],
    ) -> ServiceResult[list[Notification]]:
        """
        Create one notification per recipient for a new message.

        The sender is dropped from recipient_ids if present, as are
        inactive users. A message deleted before the task ran produces
        no notifications.

        Returns:
            ServiceResult with the created notifications

        Error codes:
            NOT_FOUND: Message or sender does not exist
        """
        from chat.models import Message

        User = get_user_model()

        message = (
            Message.objects.select_related("sender__profile")
            .filter(pk=message_id, chat_id=chat_id)
            .first()
        )
        if message is None or message.sender_id != sender_id:
            cls.get_logger().warning(
                f"Message {message_id} in chat {chat_id} not found for notification"
            )
            return ServiceResult.failure(
                "Message not found",
                error_code=ErrorCode.NOT_FOUND,
            )
        if message.is_deleted:
            cls.get_logger().debug(f"Message {message_id} deleted, skipping notifications")
            return ServiceResult.success([])

        sender = message.sender
        recipients = User.objects.filter(
            pk__in=set(recipient_ids) - {sender_id},
            is_active=True,
        ).order_by("pk")

        title = f"New message from {sender.get_full_name()}"
        body = message.get_preview()
        data = {"chat_id": chat_id, "message_id": message_id}

        notifications = Notification.objects.bulk_create(
            [
                Notification(
                    recipient=recipient,
                    actor=sender,
                    notification_type=NotificationKind.MESSAGE,
                    priority=NotificationPriority.HIGH,
                    title=title,
                    body=body,
                    data=data,
                )
                for recipient in recipients
            ]
        )

        cls.get_logger().info(
            f"Created {len(notifications)} message notifications for message {message_id}"
        )
        return ServiceResult.success(notifications)

    @classmethod
    def notify_reaction(
        cls,
        message_id: int,
        sender_id: int,
        recipient_id: int,
        emoji: str,
    ) -> ServiceResult[Notification | None]:
        """
        Notify a message's author that someone reacted to it.

        Args:
            message_id: The reacted-to message
            sender_id: The reacting user
            recipient_id: The message author
            emoji: The reaction

        Returns:
            ServiceResult with the notification, or None when the author
            reacted to their own message

        Error codes:
            NOT_FOUND: Message or reacting user does not exist
        """
        from chat.models import Message

        if sender_id == recipient_id:
            return ServiceResult.success(None)

        User = get_user_model()

        message = Message.objects.filter(pk=message_id, sender_id=recipient_id).first()
        reactor: User | None = (
            User.objects.select_related("profile").filter(pk=sender_id).first()
        )
        if message is None or reactor is None:
            cls.get_logger().warning(
                f"Reaction notification target missing: message={message_id}, "
                f"reactor={sender_id}"
            )
            return ServiceResult.failure(
                "Message or user not found",
                error_code=ErrorCode.NOT_FOUND,
            )

        notification = Notification.objects.create(
            recipient_id=recipient_id,
            actor=reactor,
            notification_type=NotificationKind.REACTION,
            priority=NotificationPriority.NORMAL,
            title=f"{reactor.get_short_name()} reacted to your message",
            body=f"Reacted with {emoji}",
            data={
                "chat_id": message.chat_id,
                "message_id": message_id,
                "emoji": emoji,
            },
        )

        cls.get_logger().info(
            f"Created reaction notification {notification.id} for user {recipient_id}"
        )
        return ServiceResult.success(notification)

