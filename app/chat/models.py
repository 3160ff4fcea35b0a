"""
Chat system models.

This module defines the data models for the chat core supporting:
- Direct (1:1) chats between exactly two users
- Group chats with role-based membership and settings

Models:
    Chat: Container for messages between participants
    DirectChatPair: Helper for enforcing uniqueness of direct chats
    ChatMember: User membership in a chat with role, unread counter and last_seen
    Message: Individual message within a chat
    ReadReceipt: A user having read a message (at most one per user and message)
    MessageReaction: A user's single emoji reaction to a message
    TypingIndicator: Ephemeral "user is typing" marker, expired by TTL on read

Design Decisions:
    - Participants, members and admins are all derived from ChatMember rows,
      so they cannot drift apart
    - Leaving deactivates the membership; re-adding reactivates the same row
    - Unread counters are only ever changed with F() expressions
    - Message metadata is a JSON blob whose shape is owned by the message type
      (see chat.payloads)
    - Soft delete keeps messages, their reactions and their read receipts
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import SoftDeleteMixin
from chat.constants import GROUP_CONFIG, MESSAGE_CONFIG, REACTION_CONFIG

if TYPE_CHECKING:
    from authentication.models import User
    from chat.payloads import MessagePayload


class ChatType(models.TextChoices):
    """
    Type of chat.

    DIRECT: Exactly two participants, no roles, no group fields
    GROUP: Named chat with owner/admin/member roles and settings
    """

    DIRECT = "direct", "Direct Message"
    GROUP = "group", "Group"


class MemberRole(models.TextChoices):
    """
    Role within a group chat.

    Hierarchy: OWNER > ADMIN > MEMBER

    Note: Direct chats do not use roles (role is NULL for direct members)
    """

    OWNER = "owner", "Owner"
    ADMIN = "admin", "Admin"
    MEMBER = "member", "Member"


class MessageType(models.TextChoices):
    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    FILE = "file", "File"
    AUDIO = "audio", "Audio"
    VIDEO = "video", "Video"
    LOCATION = "location", "Location"
    CONTACT = "contact", "Contact"


class Chat(BaseModel):
    """
    A conversation between two or more users.

    Chat Types:
        DIRECT: Exactly 2 participants, no name, no roles.
                Unique per user pair (enforced via DirectChatPair).

        GROUP: Named, with settings. Creator becomes owner.

    Fields:
        chat_type: direct or group (immutable after creation)
        name, description, avatar: Group display fields
        is_private, allow_member_invites, require_admin_approval, max_members:
            Group settings
        owner: Group owner (null for direct chats)
        created_by: User who created the chat
        last_message: Most recent message (weak reference)
        last_message_at: Timestamp of most recent activity, never moves backwards
        is_active: Soft-deactivation flag

    Relationships:
        members: All ChatMember rows (active and inactive)
        messages: All Message rows
        typing_indicators: Current TypingIndicator rows
        direct_pair: DirectChatPair if type is DIRECT
    """

    chat_type = models.CharField(
        max_length=10,
        choices=ChatType.choices,
        db_index=True,
        help_text="Type of chat (direct or group)",
    )

    name = models.CharField(
        max_length=GROUP_CONFIG.MAX_NAME_LENGTH,
        blank=True,
        default="",
        help_text="Group name (empty for direct chats)",
    )
    description = models.CharField(
        max_length=GROUP_CONFIG.MAX_DESCRIPTION_LENGTH,
        blank=True,
        default="",
        help_text="Group description",
    )
    avatar = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Group avatar URL",
    )

    is_private = models.BooleanField(default=False)
    allow_member_invites = models.BooleanField(
        default=True,
        help_text="Whether plain members may add other users",
    )
    require_admin_approval = models.BooleanField(default=False)
    max_members = models.PositiveIntegerField(
        default=GROUP_CONFIG.DEFAULT_MAX_MEMBERS,
        help_text="Maximum number of active members",
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="owned_chats",
        help_text="Group owner (null for direct chats)",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_chats",
    )

    last_message = models.ForeignKey(
        "chat.Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message in this chat",
    )
    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of most recent message (for sorting chat lists)",
    )

    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Deactivated chats are hidden and refuse new activity",
    )

    class Meta:
        db_table = "chat_chat"
        ordering = ["-last_message_at", "-id"]
        indexes = [
            models.Index(
                fields=["-last_message_at"],
                name="chat_chat_last_msg_idx",
                condition=Q(is_active=True),
            ),
        ]

    def __str__(self) -> str:
        if self.chat_type == ChatType.DIRECT:
            return f"Direct({self.pk})"
        return f"Group: {self.name}" if self.name else f"Group({self.pk})"

    @property
    def is_direct(self) -> bool:
        return self.chat_type == ChatType.DIRECT

    @property
    def is_group(self) -> bool:
        return self.chat_type == ChatType.GROUP

    def get_active_members(self):
        """Active membership rows, ordered by join time."""
        return self.members.filter(is_active=True).select_related("user__profile")

    def get_member(self, user: User) -> ChatMember | None:
        """Return the active membership for user, or None."""
        return self.members.filter(user=user, is_active=True).first()

    @property
    def participant_ids(self) -> list[int]:
        return list(
            self.members.filter(is_active=True).values_list("user_id", flat=True)
        )

    @property
    def admin_ids(self) -> list[int]:
        return list(
            self.members.filter(
                is_active=True,
                role__in=[MemberRole.OWNER, MemberRole.ADMIN],
            ).values_list("user_id", flat=True)
        )

    @property
    def member_count(self) -> int:
        return self.members.filter(is_active=True).count()

    def is_participant(self, user: User) -> bool:
        return self.members.filter(user=user, is_active=True).exists()

    def is_owner(self, user: User) -> bool:
        return self.owner_id is not None and self.owner_id == user.pk

    def is_admin(self, user: User) -> bool:
        """Owner or an active member with the admin role."""
        if self.is_owner(user):
            return True
        return self.members.filter(
            user=user,
            is_active=True,
            role__in=[MemberRole.OWNER, MemberRole.ADMIN],
        ).exists()

    def get_display_name(self, for_user: User | None = None) -> str:
        """
        Name shown in a chat list.

        Groups show their name; direct chats show the other participant's
        full name as seen by for_user.
        """
        if self.is_group:
            return self.name
        others = self.get_active_members()
        if for_user is not None:
            others = others.exclude(user=for_user)
        other = others.first()
        return other.user.get_full_name() if other else ""


class DirectChatPair(models.Model):
    """
    Enforces uniqueness of direct chats between two users.

    Stores user pairs in canonical order (lower user id first) so that
    regardless of who initiates the chat there is only one per pair.

    Constraints:
        - UniqueConstraint(user_lower, user_higher): One chat per pair
        - CheckConstraint(user_lower_id < user_higher_id): Canonical order
    """

    chat = models.OneToOneField(
        Chat,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="direct_pair",
    )
    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )

    class Meta:
        db_table = "chat_direct_chat_pair"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_direct_chat_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="direct_pair_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"DirectPair({self.user_lower_id}, {self.user_higher_id})"

    @staticmethod
    def canonical(user_a_id: int, user_b_id: int) -> tuple[int, int]:
        """Return the pair ordered (lower, higher)."""
        return (user_a_id, user_b_id) if user_a_id < user_b_id else (user_b_id, user_a_id)


class ChatMember(BaseModel):
    """
    A user's membership in a chat.

    Membership Lifecycle:
        1. User joins: row created with is_active=True
        2. User leaves or is removed: is_active=False
        3. User is re-added: same row reactivated, joined_at reset

    Fields:
        chat: Chat this membership belongs to
        user: Member
        role: owner/admin/member for groups, NULL for direct chats
        joined_at: When the user (re)joined
        is_active: Whether the user is currently a participant
        last_seen: Last time the user read the chat
        unread_count: Messages received since last_seen (F()-updated only)
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="members",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_memberships",
    )
    role = models.CharField(
        max_length=10,
        choices=MemberRole.choices,
        null=True,
        blank=True,
        help_text="Role in group chat (null for direct chats)",
    )
    joined_at = models.DateTimeField(default=timezone.now)
    is_active = models.BooleanField(default=True, db_index=True)
    last_seen = models.DateTimeField(null=True, blank=True)
    unread_count = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "chat_chat_member"
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "user"],
                name="unique_chat_membership",
            ),
        ]
        indexes = [
            models.Index(
                fields=["user", "is_active"],
                name="chat_member_user_active_idx",
            ),
        ]

    def __str__(self) -> str:
        status = "active" if self.is_active else "inactive"
        role_str = f" ({self.role})" if self.role else ""
        return f"Member: {self.user_id} in {self.chat_id}{role_str} [{status}]"

    @property
    def is_admin_or_owner(self) -> bool:
        return self.role in (MemberRole.OWNER, MemberRole.ADMIN)


class Message(SoftDeleteMixin, BaseModel):
    """
    A message within a chat.

    Message Types:
        text: content required
        image, file, audio, video: media_url in metadata, content is a caption
        location: latitude/longitude in metadata
        contact: name in metadata

    Soft Delete Behavior:
        Deleted messages are excluded from listings; reactions and read
        receipts are kept.

    Fields:
        chat: Chat this message belongs to (immutable)
        sender: Author (immutable)
        content: Text or caption
        message_type: One of MessageType
        metadata: Type-specific fields (see chat.payloads)
        reply_to: Message in the same chat this one replies to
        edited, edited_at: Edit marker (not changed by the chat core)
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="messages",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    content = models.TextField(
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
        blank=True,
        default="",
    )
    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Type-specific fields (media, location, contact)",
    )
    reply_to = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="replies",
    )
    edited = models.BooleanField(default=False)
    edited_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["chat", "-created_at", "-id"],
                name="chat_msg_chat_created_idx",
            ),
            models.Index(
                fields=["sender", "-created_at"],
                name="chat_msg_sender_idx",
            ),
        ]

    def __str__(self) -> str:
        preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        deleted_str = " [deleted]" if self.is_deleted else ""
        return f"User {self.sender_id}: {preview or self.message_type}{deleted_str}"

    @property
    def payload(self) -> MessagePayload:
        """Rebuild the typed payload variant from the stored columns."""
        from chat.payloads import payload_from_message

        return payload_from_message(self)

    def get_preview(self) -> str:
        """Short text for chat lists and notifications."""
        if self.content:
            return self.content
        return f"Sent a {self.message_type}"


class ReadReceipt(models.Model):
    """A user having read a message. At most one per (message, user)."""

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="read_receipts",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="read_receipts",
    )
    read_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_read_receipt"
        ordering = ["read_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_read_receipt",
            ),
        ]

    def __str__(self) -> str:
        return f"Read({self.message_id} by {self.user_id})"


class MessageReaction(models.Model):
    """
    A user's emoji reaction to a message.

    A user holds at most one reaction per message; reacting again replaces
    the emoji (see ReactionService.set_reaction).
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="reactions",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="message_reactions",
    )
    emoji = models.CharField(max_length=REACTION_CONFIG.MAX_EMOJI_LENGTH)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_message_reaction"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_reaction_per_user",
            ),
        ]
        indexes = [
            models.Index(
                fields=["message", "emoji"],
                name="chat_reaction_msg_emoji_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.emoji} by {self.user_id} on {self.message_id}"


class TypingIndicator(models.Model):
    """
    A user currently typing in a chat.

    Rows older than the typing TTL are logically expired and are purged
    whenever the chat's typing users are read.
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="typing_indicators",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    started_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_typing_indicator"
        ordering = ["started_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "user"],
                name="unique_typing_indicator",
            ),
        ]

    def __str__(self) -> str:
        return f"Typing({self.user_id} in {self.chat_id})"
