"""
Chat application configuration.

This app provides the chat system with:
- Direct (1:1) and group chats
- Role-based permissions (owner, admin, member)
- Replies, reactions and soft deletion
- Read receipts, unread counts and typing presence
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
