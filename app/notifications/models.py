"""
Notification models.

A Notification is the persisted record of something a user should be told
about while they were not looking at the chat: a new message, or a
reaction to one of their messages. Delivery beyond the database (push,
email) is out of scope; clients poll or read them over REST.

Design Decisions:
    - Notification inherits from BaseModel (timestamps, ordering)
    - Actor uses SET_NULL (preserve notification when actor deleted)
    - Title and body are rendered once at creation and never re-rendered

Usage:
    from notifications.models import Notification, NotificationKind

    Notification.objects.create(
        recipient=user,
        actor=sender,
        notification_type=NotificationKind.MESSAGE,
        title="New message from Ada Lovelace",
        body="hello",
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class NotificationKind(models.TextChoices):
    """What triggered the notification."""

    MESSAGE = "message", "New Message"
    REACTION = "reaction", "Reaction"


class NotificationPriority(models.TextChoices):
    LOW = "low", "Low"
    NORMAL = "normal", "Normal"
    HIGH = "high", "High"


class Notification(BaseModel):
    """
    Individual notification record for a user.

    Fields:
        recipient: User receiving the notification (scopes all queries)
        actor: User who triggered the notification
        notification_type: NotificationKind
        priority: NotificationPriority
        title: Fully rendered title string
        body: Fully rendered body string
        data: Deep-link context (chat_id, message_id, emoji)
        is_read: Whether recipient has read this notification

    Note:
        - recipient CASCADE: Notifications deleted when user deleted
        - actor SET_NULL: Notification preserved when actor deleted
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="triggered_notifications",
        help_text="User who triggered this notification",
    )

    notification_type = models.CharField(
        max_length=20,
        choices=NotificationKind.choices,
        help_text="What triggered this notification",
    )

    priority = models.CharField(
        max_length=10,
        choices=NotificationPriority.choices,
        default=NotificationPriority.NORMAL,
    )

    title = models.CharField(
        max_length=500,
        help_text="Fully rendered notification title",
    )

    body = models.TextField(
        blank=True,
        default="",
        help_text="Fully rendered notification body",
    )

    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Deep-link context (chat_id, message_id, emoji)",
    )

    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether recipient has read this notification",
    )

    class Meta:
        db_table = "notifications_notification"
        ordering = ["-created_at"]  # Newest first
        indexes = [
            models.Index(
                fields=["recipient", "is_read", "-created_at"],
                name="notif_recipient_unread_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.notification_type} for {self.recipient_id}: {self.title[:50]}"
