"""
Chat system service layer.

This module provides the business logic for the chat core, encapsulating
all state changes to chats, memberships, messages, read state, typing
presence and reactions. Nothing here broadcasts; see chat.commands for the
layer that combines service calls with real-time fan-out and notifications.

Services:
    ConversationService: Chat lifecycle and membership (direct, group, add/remove)
    MessageService: Message operations (send, soft delete, listing)
    UnreadService: Per-member unread counters and read receipts
    TypingService: Ephemeral typing presence with TTL purge on read
    ReactionService: One emoji reaction per user per message

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure() with an ErrorCode
    - Participants-only resources fail with PERMISSION_DENIED whether or not
      the chat exists
    - Counters change through F() expressions, never read-modify-write

Usage:
    from chat.services import ConversationService, MessageService

    result = ConversationService.get_or_create_direct(user, other_user)
    if result.success:
        chat, created = result.data

    result = MessageService.send_message(chat, user, content="hi")
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Count, F, OuterRef, Q, Subquery
from django.utils import timezone

from core.exceptions import ConflictError, ErrorCode, InvalidArgumentError
from core.services import BaseService, ServiceResult

from chat.constants import (
    DIRECT_CHAT_CONFIG,
    GROUP_CONFIG,
    REACTION_CONFIG,
    TYPING_CONFIG,
)
from chat.models import (
    Chat,
    ChatMember,
    ChatType,
    DirectChatPair,
    MemberRole,
    Message,
    MessageReaction,
    ReadReceipt,
    TypingIndicator,
)
from chat.payloads import parse_payload

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User


GROUP_SETTING_FLAGS = ("is_private", "allow_member_invites", "require_admin_approval")


def _access_denied() -> ServiceResult:
    return ServiceResult.failure(
        "You do not have access to this chat",
        error_code=ErrorCode.PERMISSION_DENIED,
    )


def _active_membership(chat: Chat, user: User) -> ChatMember | None:
    """Membership of user in an active chat, or None."""
    if not chat.is_active:
        return None
    return chat.get_member(user)


class ConversationService(BaseService):
    """
    Service for chat lifecycle and membership.

    Methods:
        get_accessible_chat: Resolve a chat id for a participant
        list_chats: A user's active chats, most recent first
        get_or_create_direct: Idempotent direct chat between two users
        create_group: Create a group chat
        add_member: Add or reactivate a group member
        remove_member: Remove a member or leave a group
    """

    @classmethod
    def get_accessible_chat(cls, chat_id, user: User) -> ServiceResult[Chat]:
        """
        Resolve chat_id to an active chat the user participates in.

        Missing, deactivated and foreign chats fail identically with
        PERMISSION_DENIED.
        """
        try:
            chat = Chat.objects.filter(pk=int(chat_id), is_active=True).first()
        except (TypeError, ValueError):
            chat = None
        if chat is None or not chat.is_participant(user):
            return _access_denied()
        return ServiceResult.success(chat)

    @classmethod
    def list_chats(cls, user: User) -> QuerySet[Chat]:
        """
        Active chats where user is an active member.

        Ordered by last activity. Each chat carries the user's counter as
        `user_unread_count`.
        """
        own_membership = ChatMember.objects.filter(chat=OuterRef("pk"), user=user)
        return (
            Chat.objects.filter(
                is_active=True,
                members__user=user,
                members__is_active=True,
            )
            .annotate(
                user_unread_count=Subquery(own_membership.values("unread_count")[:1])
            )
            .select_related("last_message__sender__profile")
            .order_by(F("last_message_at").desc(nulls_last=True), "-id")
        )

    @classmethod
    def get_or_create_direct(
        cls,
        user: User,
        other_user: User,
    ) -> ServiceResult[tuple[Chat, bool]]:
        """
        Create or retrieve the direct chat between two users.

        There is at most one direct chat per unordered user pair, enforced by
        the unique DirectChatPair row. When two requests race to create the
        same pair, the loser's insert fails inside a savepoint and it returns
        the winner's chat instead.

        Implementation:
            1. Validate users are different and the other user is active
            2. Canonicalize order (lower user id first)
            3. Look up existing DirectChatPair; reactivate its chat if needed
            4. If not found, create chat, pair and memberships in one savepoint
            5. On IntegrityError, go back to 3

        Returns:
            ServiceResult with (chat, created)

        Error codes:
            INVALID_ARGUMENT: Cannot chat with yourself
            NOT_FOUND: Other user is inactive

        Raises:
            ConflictError: The pair row could not be created or read back
        """
        if user.pk == other_user.pk:
            return ServiceResult.failure(
                "Cannot create a direct chat with yourself",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )
        if not other_user.is_active:
            return ServiceResult.failure(
                "User not found",
                error_code=ErrorCode.NOT_FOUND,
            )

        lower_id, higher_id = DirectChatPair.canonical(user.pk, other_user.pk)

        for attempt in range(1, DIRECT_CHAT_CONFIG.CREATE_MAX_ATTEMPTS + 1):
            existing_pair = (
                DirectChatPair.objects.select_related("chat")
                .filter(user_lower_id=lower_id, user_higher_id=higher_id)
                .first()
            )
            if existing_pair is not None:
                chat = existing_pair.chat
                if not chat.is_active:
                    chat.is_active = True
                    chat.save(update_fields=["is_active", "updated_at"])
                    cls.get_logger().info(f"Reactivated direct chat {chat.id}")
                cls.get_logger().debug(
                    f"Found existing direct chat {chat.id} "
                    f"between users {lower_id} and {higher_id}"
                )
                return ServiceResult.success((chat, False))

            try:
                with transaction.atomic():
                    chat = Chat.objects.create(
                        chat_type=ChatType.DIRECT,
                        created_by=user,
                        last_message_at=timezone.now(),
                    )
                    DirectChatPair.objects.create(
                        chat=chat,
                        user_lower_id=lower_id,
                        user_higher_id=higher_id,
                    )
                    ChatMember.objects.bulk_create(
                        [
                            ChatMember(chat=chat, user_id=lower_id, role=None),
                            ChatMember(chat=chat, user_id=higher_id, role=None),
                        ]
                    )
            except IntegrityError:
                cls.get_logger().debug(
                    f"Direct chat for users {lower_id} and {higher_id} was created "
                    f"concurrently (attempt {attempt}), reading it back"
                )
                continue

            cls.get_logger().info(
                f"Created direct chat {chat.id} between users {lower_id} and {higher_id}"
            )
            return ServiceResult.success((chat, True))

        raise ConflictError(
            "Could not create direct chat",
            details={"user_ids": [lower_id, higher_id]},
        )

    @classmethod
    def create_group(
        cls,
        creator: User,
        name: str,
        participant_ids: list,
        description: str = "",
        avatar: str = "",
        settings: dict | None = None,
    ) -> ServiceResult[Chat]:
        """
        Create a new group chat.

        The creator becomes owner (and the only initial admin); everyone in
        participant_ids joins as a member. The creator may appear in
        participant_ids; duplicates are ignored.

        Args:
            creator: User creating the group
            name: Required group name (1-50 characters after stripping)
            participant_ids: User ids to add, at least 2 besides the creator
            description: Optional description (up to 200 characters)
            avatar: Optional avatar URL
            settings: Optional is_private, allow_member_invites,
                require_admin_approval, max_members

        Error codes:
            INVALID_ARGUMENT: Bad name/description/settings, too few or too
                many participants
            NOT_FOUND: A participant id is not an active user
        """
        name = name.strip() if name else ""
        if not name:
            return ServiceResult.failure(
                "Group name is required",
                error_code=ErrorCode.INVALID_ARGUMENT,
                errors={"name": ["This field is required."]},
            )
        if len(name) > GROUP_CONFIG.MAX_NAME_LENGTH:
            return ServiceResult.failure(
                f"Chat name cannot exceed {GROUP_CONFIG.MAX_NAME_LENGTH} characters",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )
        description = description.strip() if description else ""
        if len(description) > GROUP_CONFIG.MAX_DESCRIPTION_LENGTH:
            return ServiceResult.failure(
                f"Chat description cannot exceed {GROUP_CONFIG.MAX_DESCRIPTION_LENGTH} characters",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )

        try:
            other_ids = list(
                dict.fromkeys(int(pk) for pk in participant_ids or [] if int(pk) != creator.pk)
            )
        except (TypeError, ValueError):
            return ServiceResult.failure(
                "Participant ids must be integers",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )
        if len(other_ids) < GROUP_CONFIG.MIN_OTHER_MEMBERS:
            return ServiceResult.failure(
                f"A group needs at least {GROUP_CONFIG.MIN_OTHER_MEMBERS} other participants",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )

        settings = settings or {}
        max_members = settings.get("max_members", GROUP_CONFIG.DEFAULT_MAX_MEMBERS)
        if isinstance(max_members, bool) or not isinstance(max_members, int) or max_members < 1:
            return ServiceResult.failure(
                "max_members must be a positive integer",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )
        if len(other_ids) + 1 > max_members:
            return ServiceResult.failure(
                f"A group cannot have more than {max_members} members",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )

        User = get_user_model()
        found_ids = set(
            User.objects.filter(pk__in=other_ids, is_active=True).values_list("pk", flat=True)
        )
        missing = [pk for pk in other_ids if pk not in found_ids]
        if missing:
            return ServiceResult.failure(
                "One or more participants were not found",
                error_code=ErrorCode.NOT_FOUND,
                errors={"participant_ids": [str(pk) for pk in missing]},
            )

        with transaction.atomic():
            chat = Chat.objects.create(
                chat_type=ChatType.GROUP,
                name=name,
                description=description,
                avatar=avatar or "",
                owner=creator,
                created_by=creator,
                max_members=max_members,
                last_message_at=timezone.now(),
                **{flag: bool(settings[flag]) for flag in GROUP_SETTING_FLAGS if flag in settings},
            )
            ChatMember.objects.bulk_create(
                [ChatMember(chat=chat, user=creator, role=MemberRole.OWNER)]
                + [
                    ChatMember(chat=chat, user_id=pk, role=MemberRole.MEMBER)
                    for pk in other_ids
                ]
            )

        cls.get_logger().info(
            f"Created group chat {chat.id} named '{name}' "
            f"with {1 + len(other_ids)} members"
        )
        return ServiceResult.success(chat)

    @classmethod
    def add_member(
        cls,
        chat: Chat,
        user: User,
        role: str = MemberRole.MEMBER,
        added_by: User | None = None,
    ) -> ServiceResult[ChatMember]:
        """
        Add user to a group chat, or reactivate their old membership.

        Re-adding an active member is a successful no-op.

        Permission rules (when added_by is given):
            - added_by must be an active member
            - plain members may add only when allow_member_invites is on
            - only the owner may add admins

        Error codes:
            INVALID_ARGUMENT: Direct chat, invalid role, group full
            PERMISSION_DENIED: added_by may not add (this role)
            NOT_FOUND: user is inactive
        """
        if chat.is_direct:
            return ServiceResult.failure(
                "Cannot add members to a direct chat",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )
        if role not in (MemberRole.ADMIN, MemberRole.MEMBER):
            return ServiceResult.failure(
                "Role must be 'admin' or 'member'",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )

        if added_by is not None:
            actor = _active_membership(chat, added_by)
            if actor is None:
                return _access_denied()
            if not actor.is_admin_or_owner and not chat.allow_member_invites:
                return ServiceResult.failure(
                    "Only admins can add members to this group",
                    error_code=ErrorCode.PERMISSION_DENIED,
                )
            if role == MemberRole.ADMIN and not chat.is_owner(added_by):
                return ServiceResult.failure(
                    "Only the owner can add admins",
                    error_code=ErrorCode.PERMISSION_DENIED,
                )

        if not user.is_active:
            return ServiceResult.failure("User not found", error_code=ErrorCode.NOT_FOUND)

        with transaction.atomic():
            # Serialize membership changes of this chat
            locked_chat = Chat.objects.select_for_update().get(pk=chat.pk)
            member = ChatMember.objects.filter(chat=locked_chat, user=user).first()
            if member is not None and member.is_active:
                return ServiceResult.success(member)

            if locked_chat.member_count >= locked_chat.max_members:
                return ServiceResult.failure(
                    "This group is full",
                    error_code=ErrorCode.INVALID_ARGUMENT,
                )

            if member is None:
                member = ChatMember.objects.create(chat=locked_chat, user=user, role=role)
            else:
                member.role = role
                member.is_active = True
                member.joined_at = timezone.now()
                member.unread_count = 0
                member.last_seen = None
                member.save(
                    update_fields=[
                        "role",
                        "is_active",
                        "joined_at",
                        "unread_count",
                        "last_seen",
                        "updated_at",
                    ]
                )

        cls.get_logger().info(
            f"User {user.id} added to chat {chat.id} as {role}"
            + (f" by {added_by.id}" if added_by is not None else "")
        )
        return ServiceResult.success(member)

    @classmethod
    def remove_member(
        cls,
        chat: Chat,
        user: User,
        removed_by: User | None = None,
    ) -> ServiceResult[ChatMember]:
        """
        Deactivate user's membership in a group chat.

        removed_by == user (or None) means leaving. The owner can neither
        leave nor be removed. Only admins/owner remove others, and only
        the owner removes admins. The user's typing indicator is cleared.

        Error codes:
            INVALID_ARGUMENT: Direct chat
            PERMISSION_DENIED: Not allowed to remove this member
            NOT_FOUND: user is not an active member
        """
        if chat.is_direct:
            return ServiceResult.failure(
                "Cannot remove members from a direct chat",
                error_code=ErrorCode.INVALID_ARGUMENT,
            )

        is_leaving = removed_by is None or removed_by.pk == user.pk
        if not is_leaving:
            actor = _active_membership(chat, removed_by)
            if actor is None:
                return _access_denied()
            if not actor.is_admin_or_owner:
                return ServiceResult.failure(
                    "Only admins can remove members",
                    error_code=ErrorCode.PERMISSION_DENIED,
                )

        member = chat.get_member(user)
        if member is None:
            return ServiceResult.failure(
                "User is not a member of this chat",
                error_code=ErrorCode.NOT_FOUND,
            )
        if member.role == MemberRole.OWNER or chat.is_owner(user):
            return ServiceResult.failure(
                "The group owner cannot be removed",
                error_code=ErrorCode.PERMISSION_DENIED,
            )
        if (
            not is_leaving
            and member.role == MemberRole.ADMIN
            and not chat.is_owner(removed_by)
        ):
            return ServiceResult.failure(
                "Only the owner can remove admins",
                error_code=ErrorCode.PERMISSION_DENIED,
            )

        with transaction.atomic():
            member.is_active = False
            member.save(update_fields=["is_active", "updated_at"])
            TypingIndicator.objects.filter(chat=chat, user=user).delete()

        cls.get_logger().info(
            f"User {user.id} {'left' if is_leaving else 'was removed from'} chat {chat.id}"
        )
        return ServiceResult.success(member)


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        send_message: Validate and store a message, advancing the chat's last message
        soft_delete_message: Hide a message from listings
        get_message: Resolve a non-deleted message in a chat
        get_messages: Newest-first queryset of a chat's visible messages
    """

    @classmethod
    def send_message(
        cls,
        chat: Chat,
        sender: User,
        content: str | None = "",
        message_type: str | None = None,
        metadata: dict | None = None,
        reply_to_id: int | None = None,
    ) -> ServiceResult[Message]:
        """
        Send a message to a chat.

        The message row and the chat's last_message/last_message_at advance
        are written in one transaction. The advance is a conditional UPDATE
        that only applies when the chat's last_message_at is not newer than
        this message, so concurrent senders never move it backwards.

        Args:
            chat: Chat to send to
            sender: Author (must be an active participant)
            content: Text, or caption for media types
            message_type: text (default), image, file, audio, video, location, contact
            metadata: Type-specific fields (see chat.payloads)
            reply_to_id: Optional id of a message in the same chat

        Error codes:
            PERMISSION_DENIED: Sender is not an active participant
            INVALID_ARGUMENT: Empty text, too long, bad type/metadata, bad reply target
        """
        if _active_membership(chat, sender) is None:
            return _access_denied()

        try:
            payload = parse_payload(message_type, content, metadata)
        except InvalidArgumentError as e:
            return ServiceResult.from_exception(e)

        reply_to = None
        if reply_to_id is not None:
            reply_to = cls.get_message(chat, reply_to_id).data
            if reply_to is None:
                return ServiceResult.failure(
                    "Reply target must be a message in this chat",
                    error_code=ErrorCode.INVALID_ARGUMENT,
                    errors={"reply_to": ["Invalid message."]},
                )

        with transaction.atomic():
            message = Message.objects.create(
                chat=chat,
                sender=sender,
                content=payload.content,
                message_type=payload.message_type,
                metadata=payload.to_metadata(),
                reply_to=reply_to,
            )
            Chat.objects.filter(pk=chat.pk).filter(
                Q(last_message_at__isnull=True)
                | Q(last_message_at__lte=message.created_at)
            ).update(
                last_message=message,
                last_message_at=message.created_at,
                updated_at=timezone.now(),
            )

        chat.refresh_from_db(fields=["last_message", "last_message_at"])

        cls.get_logger().debug(
            f"User {sender.id} sent {message.message_type} message {message.id} "
            f"to chat {chat.id}"
        )
        return ServiceResult.success(message)

    @classmethod
    def get_message(cls, chat: Chat, message_id) -> ServiceResult[Message]:
        """Resolve a non-deleted message of chat. Access must already be checked."""
        try:
            message = (
                Message.objects.filter(pk=int(message_id), chat=chat, is_deleted=False)
                .select_related("sender__profile")
                .first()
            )
        except (TypeError, ValueError):
            message = None
        if message is None:
            return ServiceResult.failure(
                "Message not found",
                error_code=ErrorCode.NOT_FOUND,
            )
        return ServiceResult.success(message)

    @classmethod
    def soft_delete_message(
        cls,
        chat: Chat,
        message_id,
        requester: User,
    ) -> ServiceResult[Message]:
        """
        Soft delete a message.

        Only the sender or a chat admin/owner may delete. Reactions and read
        receipts are left in place.

        Error codes:
            PERMISSION_DENIED: Not a participant, or not sender/admin
            NOT_FOUND: Message missing or already deleted
        """
        if _active_membership(chat, requester) is None:
            return _access_denied()

        result = cls.get_message(chat, message_id)
        if not result:
            return result
        message = result.data

        if message.sender_id != requester.pk and not chat.is_admin(requester):
            return ServiceResult.failure(
                "You can only delete your own messages",
                error_code=ErrorCode.PERMISSION_DENIED,
            )

        message.soft_delete()

        cls.get_logger().info(
            f"Message {message.id} in chat {chat.id} deleted by user {requester.id}"
        )
        return ServiceResult.success(message)

    @classmethod
    def get_messages(cls, chat: Chat, requester: User) -> ServiceResult[QuerySet[Message]]:
        """
        Visible messages of a chat, newest first.

        Callers paginate this queryset and reverse each page so that a page
        reads oldest-first (see chat.pagination.MessagePagination).
        """
        if _active_membership(chat, requester) is None:
            return _access_denied()

        queryset = (
            chat.messages.filter(is_deleted=False)
            .select_related("sender__profile", "reply_to")
            .prefetch_related("reactions", "read_receipts")
            .order_by("-created_at", "-id")
        )
        return ServiceResult.success(queryset)


class UnreadService(BaseService):
    """
    Service for unread counters and read receipts.

    Methods:
        mark_read: Reset a member's counter and receipt every message
        increment_unread: Bump every other member's counter by one
        get_unread: Read a member's counter
    """

    @classmethod
    def mark_read(cls, chat: Chat, user: User) -> ServiceResult[int]:
        """
        Mark everything in chat as read by user.

        Sets the counter to 0 and creates a ReadReceipt for every message not
        sent by user and not yet receipted. Receipts are inserted with
        ignore_conflicts on the (message, user) constraint, so repeated or
        concurrent calls never duplicate them.

        Returns:
            ServiceResult with the number of messages newly marked read
        """
        member = _active_membership(chat, user)
        if member is None:
            return _access_denied()

        now = timezone.now()
        with transaction.atomic():
            ChatMember.objects.filter(pk=member.pk).update(
                unread_count=0,
                last_seen=now,
                updated_at=now,
            )
            unread_message_ids = (
                chat.messages.exclude(sender=user)
                .exclude(read_receipts__user=user)
                .values_list("id", flat=True)
            )
            receipts = ReadReceipt.objects.bulk_create(
                [
                    ReadReceipt(message_id=message_id, user=user, read_at=now)
                    for message_id in unread_message_ids
                ],
                ignore_conflicts=True,
            )

        cls.get_logger().debug(
            f"User {user.id} marked chat {chat.id} as read ({len(receipts)} new receipts)"
        )
        return ServiceResult.success(len(receipts))

    @classmethod
    def increment_unread(cls, chat: Chat, except_user: User) -> ServiceResult[int]:
        """
        Add one unread message for every active member except except_user.

        A single UPDATE ... SET unread_count = unread_count + 1, so
        concurrent sends never lose increments.

        Returns:
            ServiceResult with the number of counters incremented
        """
        updated = (
            ChatMember.objects.filter(chat=chat, is_active=True)
            .exclude(user=except_user)
            .update(unread_count=F("unread_count") + 1)
        )
        return ServiceResult.success(updated)

    @classmethod
    def get_unread(cls, chat: Chat, user: User) -> int:
        """Unread counter of user in chat (0 when user has no membership)."""
        counter = (
            ChatMember.objects.filter(chat=chat, user=user)
            .values_list("unread_count", flat=True)
            .first()
        )
        return counter or 0


class TypingService(BaseService):
    """
    Service for typing presence.

    Indicators have no background expiry. Every read of a chat's typing users
    first deletes the indicators older than TYPING_CONFIG.TTL_SECONDS.
    """

    @classmethod
    def start_typing(cls, chat: Chat, user: User) -> ServiceResult[TypingIndicator]:
        """Mark user as typing, restarting the TTL if already typing."""
        if _active_membership(chat, user) is None:
            return _access_denied()

        indicator, _ = TypingIndicator.objects.update_or_create(
            chat=chat,
            user=user,
            defaults={"started_at": timezone.now()},
        )
        cls.get_logger().debug(f"User {user.id} started typing in chat {chat.id}")
        return ServiceResult.success(indicator)

    @classmethod
    def stop_typing(cls, chat: Chat, user: User) -> ServiceResult[None]:
        if _active_membership(chat, user) is None:
            return _access_denied()

        TypingIndicator.objects.filter(chat=chat, user=user).delete()
        cls.get_logger().debug(f"User {user.id} stopped typing in chat {chat.id}")
        return ServiceResult.success(None)

    @classmethod
    def list_typing(
        cls,
        chat: Chat,
        requester: User | None = None,
    ) -> ServiceResult[list[int]]:
        """
        Ids of users currently typing, in the order they started.

        Expired indicators are purged before reading.
        """
        if requester is not None and _active_membership(chat, requester) is None:
            return _access_denied()

        cutoff = timezone.now() - timedelta(seconds=TYPING_CONFIG.TTL_SECONDS)
        TypingIndicator.objects.filter(chat=chat, started_at__lt=cutoff).delete()

        user_ids = list(
            TypingIndicator.objects.filter(chat=chat)
            .order_by("started_at", "id")
            .values_list("user_id", flat=True)
        )
        return ServiceResult.success(user_ids)


class ReactionService(BaseService):
    """
    Service for message reactions.

    A user holds at most one reaction per message. Setting a reaction
    replaces the previous one; reacting twice with the same emoji leaves a
    single reaction (there is no server-side toggle).
    """

    @classmethod
    def _validate_emoji(cls, emoji) -> str | None:
        """Return the stripped emoji, or None when empty or too long."""
        if not isinstance(emoji, str):
            return None
        emoji = emoji.strip()
        if not emoji or len(emoji) > REACTION_CONFIG.MAX_EMOJI_LENGTH:
            return None
        return emoji

    @classmethod
    def _check_message(cls, message: Message, user: User) -> ServiceResult | None:
        if _active_membership(message.chat, user) is None:
            return _access_denied()
        if message.is_deleted:
            return ServiceResult.failure(
                "Message not found",
                error_code=ErrorCode.NOT_FOUND,
            )
        return None

    @classmethod
    def set_reaction(
        cls,
        message: Message,
        user: User,
        emoji: str,
    ) -> ServiceResult[list[MessageReaction]]:
        """
        Set user's reaction on message, replacing any previous one.

        Returns:
            ServiceResult with the message's full reaction list

        Error codes:
            PERMISSION_DENIED: User is not a participant of the chat
            NOT_FOUND: Message is deleted
            INVALID_ARGUMENT: Emoji empty or longer than 10 characters
        """
        failure = cls._check_message(message, user)
        if failure is not None:
            return failure

        cleaned = cls._validate_emoji(emoji)
        if cleaned is None:
            return ServiceResult.failure(
                f"Emoji must be 1-{REACTION_CONFIG.MAX_EMOJI_LENGTH} characters",
                error_code=ErrorCode.INVALID_ARGUMENT,
                errors={"emoji": ["Invalid emoji."]},
            )

        MessageReaction.objects.update_or_create(
            message=message,
            user=user,
            defaults={"emoji": cleaned, "created_at": timezone.now()},
        )

        cls.get_logger().debug(
            f"User {user.id} reacted {cleaned} to message {message.id}"
        )
        return ServiceResult.success(cls.list_reactions(message))

    @classmethod
    def clear_reaction(
        cls,
        message: Message,
        user: User,
        emoji: str,
    ) -> ServiceResult[list[MessageReaction]]:
        """
        Remove user's reaction if it is emoji. No-op otherwise.

        Returns:
            ServiceResult with the message's full reaction list

        Error codes:
            PERMISSION_DENIED: User is not a participant of the chat
            NOT_FOUND: Message is deleted
        """
        failure = cls._check_message(message, user)
        if failure is not None:
            return failure

        cleaned = cls._validate_emoji(emoji)
        if cleaned is None:
            # An emoji that can never be stored can never match
            return ServiceResult.success(cls.list_reactions(message))

        deleted, _ = MessageReaction.objects.filter(
            message=message, user=user, emoji=cleaned
        ).delete()
        if deleted:
            cls.get_logger().debug(
                f"User {user.id} removed {cleaned} from message {message.id}"
            )
        return ServiceResult.success(cls.list_reactions(message))

    @classmethod
    def list_reactions(cls, message: Message) -> list[MessageReaction]:
        return list(
            MessageReaction.objects.filter(message=message)
            .select_related("user__profile")
            .order_by("created_at", "id")
        )

    @classmethod
    def count_by_emoji(cls, message: Message) -> dict[str, int]:
        """Derived {emoji: count} view of a message's reactions."""
        rows = (
            MessageReaction.objects.filter(message=message)
            .values("emoji")
            .annotate(count=Count("id"))
            .order_by("-count", "emoji")
        )
        return {row["emoji"]: row["count"] for row in rows}
