"""
Tests for chat models.

Covers the derived views on Chat (participants, admins, display name),
the canonical ordering of DirectChatPair, the database constraints that
back the service rules, and message previews/payloads.
"""

import pytest
from django.db import IntegrityError

from authentication.tests.factories import UserFactory
from chat.models import (
    ChatMember,
    ChatType,
    DirectChatPair,
    MemberRole,
    MessageReaction,
    MessageType,
    ReadReceipt,
    TypingIndicator,
)
from chat.payloads import LocationPayload, MediaPayload, TextPayload
from chat.tests.factories import (
    GroupChatFactory,
    MemberFactory,
    MessageFactory,
    ReactionFactory,
)


class TestChatDerivedViews:
    """
    Participants, members and admins all come from ChatMember rows.

    Why it matters: there is a single source of truth, so the three
    views can never disagree with each other.
    """

    def test_participant_ids_only_include_active_members(self, db):
        chat = GroupChatFactory()
        active = MemberFactory(chat=chat)
        MemberFactory(chat=chat, is_active=False)

        assert set(chat.participant_ids) == {chat.owner_id, active.user_id}
        assert chat.member_count == 2

    def test_admin_ids_include_owner_and_admins(self, db):
        chat = GroupChatFactory()
        admin = MemberFactory(chat=chat, role=MemberRole.ADMIN)
        MemberFactory(chat=chat, role=MemberRole.MEMBER)

        assert set(chat.admin_ids) == {chat.owner_id, admin.user_id}

    def test_admin_ids_are_subset_of_participants(self, db):
        chat = GroupChatFactory()
        MemberFactory(chat=chat, role=MemberRole.ADMIN)
        MemberFactory(chat=chat, role=MemberRole.ADMIN, is_active=False)

        assert set(chat.admin_ids) <= set(chat.participant_ids)

    def test_is_admin_true_for_owner(self, db):
        chat = GroupChatFactory()

        assert chat.is_admin(chat.owner) is True
        assert chat.is_owner(chat.owner) is True

    def test_inactive_admin_is_not_admin(self, db):
        chat = GroupChatFactory()
        former = MemberFactory(chat=chat, role=MemberRole.ADMIN, is_active=False)

        assert chat.is_admin(former.user) is False
        assert chat.is_participant(former.user) is False

    def test_group_display_name_is_its_name(self, db):
        chat = GroupChatFactory(name="Book Club")

        assert chat.get_display_name(chat.owner) == "Book Club"
        assert str(chat) == "Group: Book Club"

    def test_direct_display_name_is_other_participant(self, db):
        me = UserFactory(first_name="Ada", last_name="Lovelace")
        them = UserFactory(first_name="Alan", last_name="Turing")
        chat = GroupChatFactory(chat_type=ChatType.DIRECT, owner=None, name="")
        ChatMember.objects.create(chat=chat, user=me)
        ChatMember.objects.create(chat=chat, user=them)

        assert chat.get_display_name(me) == "Alan Turing"
        assert chat.get_display_name(them) == "Ada Lovelace"


class TestDirectChatPair:
    """
    DirectChatPair stores each unordered pair once.

    Why it matters: the unique pair row is what makes concurrent direct
    chat creation converge on one chat.
    """

    def test_canonical_orders_ids(self):
        assert DirectChatPair.canonical(9, 3) == (3, 9)
        assert DirectChatPair.canonical(3, 9) == (3, 9)

    def test_duplicate_pair_rejected(self, db):
        low, high = sorted([UserFactory(), UserFactory()], key=lambda u: u.pk)
        first = GroupChatFactory(chat_type=ChatType.DIRECT, owner=None, name="")
        second = GroupChatFactory(chat_type=ChatType.DIRECT, owner=None, name="")
        DirectChatPair.objects.create(chat=first, user_lower=low, user_higher=high)

        with pytest.raises(IntegrityError):
            DirectChatPair.objects.create(chat=second, user_lower=low, user_higher=high)

    def test_non_canonical_order_rejected(self, db):
        low, high = sorted([UserFactory(), UserFactory()], key=lambda u: u.pk)
        chat = GroupChatFactory(chat_type=ChatType.DIRECT, owner=None, name="")

        with pytest.raises(IntegrityError):
            DirectChatPair.objects.create(chat=chat, user_lower=high, user_higher=low)


class TestUniquenessConstraints:
    """
    Why it matters: one membership, one receipt, one reaction and one
    typing row per user are enforced by the database, not only by code.
    """

    def test_one_membership_per_user(self, db):
        member = MemberFactory()

        with pytest.raises(IntegrityError):
            ChatMember.objects.create(chat=member.chat, user=member.user)

    def test_one_receipt_per_user_and_message(self, db):
        message = MessageFactory()
        reader = UserFactory()
        ReadReceipt.objects.create(message=message, user=reader)

        with pytest.raises(IntegrityError):
            ReadReceipt.objects.create(message=message, user=reader)

    def test_one_reaction_per_user_and_message(self, db):
        reaction = ReactionFactory()

        with pytest.raises(IntegrityError):
            MessageReaction.objects.create(
                message=reaction.message, user=reaction.user, emoji="🎉"
            )

    def test_one_typing_indicator_per_user_and_chat(self, db):
        chat = GroupChatFactory()
        TypingIndicator.objects.create(chat=chat, user=chat.owner)

        with pytest.raises(IntegrityError):
            TypingIndicator.objects.create(chat=chat, user=chat.owner)


class TestMessage:
    def test_preview_uses_content(self, db):
        message = MessageFactory(content="Lunch at noon?")

        assert message.get_preview() == "Lunch at noon?"

    def test_preview_for_captionless_media(self, db):
        message = MessageFactory(
            content="",
            message_type=MessageType.IMAGE,
            metadata={"media_url": "https://cdn.example.com/a.png"},
        )

        assert message.get_preview() == "Sent a image"

    def test_payload_rebuilds_variant(self, db):
        text = MessageFactory(content="hi")
        image = MessageFactory(
            content="look",
            message_type=MessageType.IMAGE,
            metadata={"media_url": "https://cdn.example.com/a.png", "width": 640},
        )
        location = MessageFactory(
            content="",
            message_type=MessageType.LOCATION,
            metadata={"latitude": 52.52, "longitude": 13.405, "address": "Berlin"},
        )

        assert text.payload == TextPayload(content="hi")
        assert isinstance(image.payload, MediaPayload)
        assert image.payload.width == 640
        assert image.payload.content == "look"
        assert location.payload == LocationPayload(
            latitude=52.52, longitude=13.405, address="Berlin"
        )

    def test_soft_delete_keeps_row_and_reactions(self, db):
        reaction = ReactionFactory()
        message = reaction.message

        message.soft_delete()
        message.refresh_from_db()

        assert message.is_deleted is True
        assert message.deleted_at is not None
        assert message.reactions.count() == 1
        assert "[deleted]" in str(message)
