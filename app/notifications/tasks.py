"""
Celery tasks for chat notifications.

Tasks:
    notify_new_message: Notify the other participants of a new message
    notify_reaction: Notify a message's author of a reaction

Design:
    - Enqueued by chat.commands via transaction.on_commit, so a task never
      sees an uncommitted message
    - Unexpected errors are retried with backoff; expected failures
      (message gone, user gone) are logged and not retried
    - Nothing is reported back to the chat operation that enqueued them

Usage:
    from notifications.tasks import notify_new_message

    notify_new_message.delay(chat.id, message.id, sender.id, [2, 3])
"""

from __future__ import annotations

import logging

from celery import shared_task

from notifications.services import NotificationService

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def notify_new_message(
    self,
    chat_id: int,
    message_id: int,
    sender_id: int,
    recipient_ids: list[int],
) -> int:
    """
    Create new-message notifications.

    Returns:
        Number of notifications created
    """
    result = NotificationService.notify_new_message(
        chat_id=chat_id,
        message_id=message_id,
        sender_id=sender_id,
        recipient_ids=recipient_ids,
    )
    if not result.success:
        logger.warning(
            f"New-message notification skipped for message {message_id}: {result.error}"
        )
        return 0
    return len(result.data)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def notify_reaction(
    self,
    message_id: int,
    sender_id: int,
    recipient_id: int,
    emoji: str,
) -> bool:
    """
    Create a reaction notification.

    Returns:
        True if a notification was created
    """
    result = NotificationService.notify_reaction(
        message_id=message_id,
        sender_id=sender_id,
        recipient_id=recipient_id,
        emoji=emoji,
    )
    if not result.success:
        logger.warning(
            f"Reaction notification skipped for message {message_id}: {result.error}"
        )
        return False
    return result.data is not None
