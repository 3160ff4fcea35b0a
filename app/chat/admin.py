"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Chat management with member inline
- Direct chat pair inspection
- Message moderation with reactions inline
"""

from django.contrib import admin

from chat.models import Chat, ChatMember, DirectChatPair, Message, MessageReaction


class ChatMemberInline(admin.TabularInline):
    """Inline display of members in chat admin."""

    model = ChatMember
    extra = 0
    readonly_fields = ["joined_at", "last_seen", "unread_count"]
    raw_id_fields = ["user"]


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    """Admin interface for Chat model."""

    list_display = [
        "id",
        "chat_type",
        "name",
        "member_count",
        "is_active",
        "created_at",
        "last_message_at",
    ]
    list_filter = ["chat_type", "is_active", "created_at"]
    search_fields = ["name", "id"]
    readonly_fields = ["created_at", "updated_at", "last_message", "last_message_at"]
    raw_id_fields = ["owner", "created_by"]
    inlines = [ChatMemberInline]
    ordering = ["-created_at"]


@admin.register(DirectChatPair)
class DirectChatPairAdmin(admin.ModelAdmin):
    list_display = ["chat", "user_lower", "user_higher"]
    raw_id_fields = ["chat", "user_lower", "user_higher"]


class MessageReactionInline(admin.TabularInline):
    model = MessageReaction
    extra = 0
    readonly_fields = ["created_at"]
    raw_id_fields = ["user"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "chat",
        "sender",
        "message_type",
        "content_preview",
        "is_deleted",
        "created_at",
    ]
    list_filter = ["message_type", "is_deleted", "created_at"]
    search_fields = ["content", "sender__email"]
    readonly_fields = ["created_at", "updated_at", "deleted_at"]
    raw_id_fields = ["chat", "sender", "reply_to"]
    inlines = [MessageReactionInline]
    ordering = ["-created_at"]

    @admin.display(description="Content Preview")
    def content_preview(self, obj: Message) -> str:
        """Return truncated content for list display."""
        max_length = 50
        preview = obj.get_preview()
        if len(preview) > max_length:
            return preview[:max_length] + "..."
        return preview
