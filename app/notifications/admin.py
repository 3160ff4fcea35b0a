"""Django admin configuration for notifications."""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """
    Admin configuration for Notification.

    Provides read-only view of notifications for debugging and support.
    """

    list_display = [
        "id",
        "notification_type",
        "priority",
        "recipient",
        "title",
        "is_read",
        "created_at",
    ]
    list_filter = ["is_read", "notification_type", "priority", "created_at"]
    search_fields = ["title", "recipient__email"]
    ordering = ["-created_at"]
    readonly_fields = [
        "notification_type",
        "priority",
        "recipient",
        "actor",
        "title",
        "body",
        "data",
        "created_at",
        "updated_at",
    ]
    raw_id_fields = ["recipient", "actor"]
