"""
Notifications app for chat activity.

This app provides:
- Notification model for storing user notifications
- NotificationService for message and reaction notifications
- Celery tasks the chat core enqueues after a commit

Usage:
    from notifications.tasks import notify_reaction

    notify_reaction.delay(message.id, reactor.id, message.sender_id, "👍")
"""
