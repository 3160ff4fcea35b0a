"""
Serializers for chat API and real-time payloads.

The same read serializers shape REST responses and the "message" object
inside socket events, so a client sees one message representation
everywhere.

Serializer Hierarchy:
    MessageSerializer: Full message with read receipts and reactions
    MessagePreviewSerializer: Minimal message for chat list preview
    ReactionSerializer / ReadReceiptSerializer: Nested message state

    ChatListSerializer: Chat list item decorated for the requesting user
    ChatDetailSerializer: Full chat including members and settings
    ChatMemberSerializer: Membership with user info

    DirectChatCreateSerializer, GroupChatCreateSerializer,
    MessageCreateSerializer, ReactionInputSerializer, MemberAddSerializer:
        Write-side input validation (shape only; business rules live in
        chat.services)

Design Decisions:
    - Read and write serializers are separate for clarity
    - Per-user fields (unread_count, is_admin, display_name) read the
      requesting user from context["user"] or context["request"].user
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSerializer
from chat.constants import GROUP_CONFIG, MESSAGE_CONFIG
from chat.models import Chat, ChatMember, MemberRole, Message, MessageReaction, MessageType, ReadReceipt


def _context_user(context: dict):
    user = context.get("user")
    if user is None and context.get("request") is not None:
        user = context["request"].user
    return user


# =============================================================================
# Message Serializers
# =============================================================================


class ReactionSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    user_name = serializers.SerializerMethodField()

    class Meta:
        model = MessageReaction
        fields = ["user_id", "user_name", "emoji", "created_at"]
        read_only_fields = fields

    def get_user_name(self, obj: MessageReaction) -> str:
        return obj.user.get_full_name()


class ReadReceiptSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = ReadReceipt
        fields = ["user_id", "read_at"]
        read_only_fields = fields


class MessagePreviewSerializer(serializers.ModelSerializer):
    """Minimal message serializer for chat list preview."""

    sender_id = serializers.IntegerField(read_only=True)
    sender_name = serializers.SerializerMethodField()
    content = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = [
            "id",
            "sender_id",
            "sender_name",
            "content",
            "message_type",
            "is_deleted",
            "created_at",
        ]
        read_only_fields = fields

    def get_sender_name(self, obj: Message) -> str:
        return obj.sender.get_full_name()

    def get_content(self, obj: Message) -> str:
        if obj.is_deleted:
            return "[Message deleted]"
        return obj.get_preview()


class MessageSerializer(serializers.ModelSerializer):
    """
    Full message representation.

    Used for message listings, the send response and the message-received
    event. read_by and reactions reflect the state at serialization time.
    """

    chat_id = serializers.IntegerField(read_only=True)
    sender = UserSerializer(read_only=True)
    reply_to_id = serializers.IntegerField(read_only=True, allow_null=True)
    read_by = ReadReceiptSerializer(source="read_receipts", many=True, read_only=True)
    reactions = ReactionSerializer(many=True, read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "chat_id",
            "sender",
            "content",
            "message_type",
            "metadata",
            "reply_to_id",
            "read_by",
            "reactions",
            "edited",
            "edited_at",
            "is_deleted",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# =============================================================================
# Chat Serializers
# =============================================================================


class ChatMemberSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = ChatMember
        fields = ["user", "role", "joined_at", "is_active", "last_seen"]
        read_only_fields = fields


class ChatListSerializer(serializers.ModelSerializer):
    """
    Chat list item, decorated for the requesting user.

    unread_count comes from the `user_unread_count` annotation added by
    ConversationService.list_chats when present.
    """

    display_name = serializers.SerializerMethodField()
    last_message = MessagePreviewSerializer(read_only=True, allow_null=True)
    unread_count = serializers.SerializerMethodField()
    member_count = serializers.SerializerMethodField()
    is_admin = serializers.SerializerMethodField()
    is_owner = serializers.SerializerMethodField()

    class Meta:
        model = Chat
        fields = [
            "id",
            "chat_type",
            "name",
            "display_name",
            "avatar",
            "last_message",
            "last_message_at",
            "unread_count",
            "member_count",
            "is_admin",
            "is_owner",
            "created_at",
        ]
        read_only_fields = fields

    def get_display_name(self, obj: Chat) -> str:
        return obj.get_display_name(_context_user(self.context))

    def get_unread_count(self, obj: Chat) -> int:
        annotated = getattr(obj, "user_unread_count", None)
        if annotated is not None:
            return annotated
        from chat.services import UnreadService

        return UnreadService.get_unread(obj, _context_user(self.context))

    def get_member_count(self, obj: Chat) -> int:
        return obj.member_count

    def get_is_admin(self, obj: Chat) -> bool:
        return obj.is_admin(_context_user(self.context))

    def get_is_owner(self, obj: Chat) -> bool:
        return obj.is_owner(_context_user(self.context))


class ChatDetailSerializer(ChatListSerializer):
    """Full chat details including members and group settings."""

    members = serializers.SerializerMethodField()
    participant_ids = serializers.SerializerMethodField()
    admin_ids = serializers.SerializerMethodField()
    settings = serializers.SerializerMethodField()

    class Meta(ChatListSerializer.Meta):
        fields = ChatListSerializer.Meta.fields + [
            "description",
            "owner_id",
            "members",
            "participant_ids",
            "admin_ids",
            "settings",
            "is_active",
        ]
        read_only_fields = fields

    def get_members(self, obj: Chat) -> list[dict]:
        return ChatMemberSerializer(obj.get_active_members(), many=True).data

    def get_participant_ids(self, obj: Chat) -> list[int]:
        return obj.participant_ids

    def get_admin_ids(self, obj: Chat) -> list[int]:
        return obj.admin_ids

    def get_settings(self, obj: Chat) -> dict | None:
        if obj.is_direct:
            return None
        return {
            "is_private": obj.is_private,
            "allow_member_invites": obj.allow_member_invites,
            "require_admin_approval": obj.require_admin_approval,
            "max_members": obj.max_members,
        }


# =============================================================================
# Input Serializers
# =============================================================================


class DirectChatCreateSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(help_text="The other participant")


class GroupSettingsSerializer(serializers.Serializer):
    is_private = serializers.BooleanField(required=False)
    allow_member_invites = serializers.BooleanField(required=False)
    require_admin_approval = serializers.BooleanField(required=False)
    max_members = serializers.IntegerField(required=False, min_value=1)


class GroupChatCreateSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True, trim_whitespace=True)
    description = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=GROUP_CONFIG.MAX_DESCRIPTION_LENGTH,
    )
    avatar = serializers.URLField(required=False, allow_blank=True, max_length=500)
    participant_ids = serializers.ListField(
        child=serializers.IntegerField(),
        help_text="User ids to add (at least 2 besides the creator)",
    )
    settings = GroupSettingsSerializer(required=False)


class MessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(
        required=False,
        allow_blank=True,
        trim_whitespace=False,
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
    )
    message_type = serializers.ChoiceField(
        choices=MessageType.choices,
        default=MessageType.TEXT,
    )
    metadata = serializers.DictField(required=False, default=dict)
    reply_to = serializers.IntegerField(required=False, allow_null=True)


class ReactionInputSerializer(serializers.Serializer):
    emoji = serializers.CharField(allow_blank=True, trim_whitespace=False)


class MemberAddSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    role = serializers.ChoiceField(
        choices=[MemberRole.ADMIN, MemberRole.MEMBER],
        default=MemberRole.MEMBER,
    )
