"""
Tests for chat REST API endpoints.

Broadcasting goes to the in-memory channel layer configured for tests;
these tests check HTTP status codes, response bodies and stored state.

Error bodies:
    service failures   {"error", "error_code", "errors"?}
    raised app errors  {"error", "error_code", "details"?}
"""

from datetime import timedelta

from django.utils import timezone
from freezegun import freeze_time

from authentication.tests.factories import UserFactory
from chat.models import Chat, ChatMember, ChatType, MemberRole, MessageReaction, ReadReceipt
from chat.services import MessageService, ReactionService, TypingService

BASE = "/api/v1/chat/chats/"


def _messages_url(chat):
    return f"{BASE}{chat.id}/messages/"


class TestAuthentication:
    def test_requires_token(self, api_client, db):
        response = api_client.get(BASE)

        assert response.status_code == 401


# =============================================================================
# Chats
# =============================================================================


class TestChatList:
    def test_lists_own_chats_with_unread(self, owner_client, group_chat, direct_chat, member_user):
        MessageService.send_message(group_chat, member_user, content="ping")
        ChatMember.objects.filter(chat=group_chat, user=group_chat.owner).update(unread_count=1)

        response = owner_client.get(BASE)

        assert response.status_code == 200
        results = response.data["results"]
        assert [item["id"] for item in results] == [group_chat.id, direct_chat.id]
        assert results[0]["unread_count"] == 1
        assert results[0]["last_message"]["content"] == "ping"
        assert results[1]["display_name"] == "Max Member"

    def test_outsider_sees_nothing(self, outsider_client, group_chat):
        response = outsider_client.get(BASE)

        assert response.data["results"] == []


class TestChatRetrieve:
    def test_participant_gets_detail(self, member_client, group_chat, owner_user):
        response = member_client.get(f"{BASE}{group_chat.id}/")

        assert response.status_code == 200
        assert response.data["owner_id"] == owner_user.pk
        assert response.data["admin_ids"] == [owner_user.pk]
        assert len(response.data["members"]) == 3
        assert response.data["settings"]["max_members"] == 100
        assert response.data["is_admin"] is False

    def test_outsider_and_missing_both_forbidden(self, outsider_client, group_chat):
        """
        Why it matters: a 404 for missing chats would let anyone probe
        which chat ids exist.
        """
        foreign = outsider_client.get(f"{BASE}{group_chat.id}/")
        missing = outsider_client.get(f"{BASE}999999/")

        assert foreign.status_code == missing.status_code == 403
        assert foreign.data == missing.data
        assert foreign.data["error_code"] == "PERMISSION_DENIED"


class TestDirectChat:
    def test_creates_then_returns_existing(self, owner_client, owner_user, member_user):
        first = owner_client.post(f"{BASE}direct/", {"user_id": member_user.pk}, format="json")
        second = owner_client.post(f"{BASE}direct/", {"user_id": member_user.pk}, format="json")

        assert first.status_code == 201
        assert second.status_code == 200
        assert first.data["id"] == second.data["id"]
        assert first.data["chat_type"] == ChatType.DIRECT
        assert first.data["settings"] is None
        assert set(first.data["participant_ids"]) == {owner_user.pk, member_user.pk}

    def test_self_chat_rejected(self, owner_client, owner_user):
        response = owner_client.post(f"{BASE}direct/", {"user_id": owner_user.pk}, format="json")

        assert response.status_code == 400
        assert response.data["error_code"] == "INVALID_ARGUMENT"

    def test_unknown_user_not_found(self, owner_client, db):
        response = owner_client.post(f"{BASE}direct/", {"user_id": 999999}, format="json")

        assert response.status_code == 404
        assert response.data["error_code"] == "NOT_FOUND"

    def test_missing_user_id_invalid(self, owner_client, db):
        response = owner_client.post(f"{BASE}direct/", {}, format="json")

        assert response.status_code == 400
        assert "user_id" in response.data["details"]


class TestGroupChat:
    def test_creates_group(self, owner_client, owner_user, member_user, other_member):
        response = owner_client.post(
            f"{BASE}group/",
            {
                "name": "Climbers",
                "description": "Weekend trips",
                "participant_ids": [member_user.pk, other_member.pk],
                "settings": {"allow_member_invites": False},
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.data["name"] == "Climbers"
        assert response.data["is_owner"] is True
        assert response.data["settings"]["allow_member_invites"] is False
        assert Chat.objects.get(pk=response.data["id"]).member_count == 3

    def test_too_few_participants(self, owner_client, member_user):
        response = owner_client.post(
            f"{BASE}group/",
            {"name": "Pair", "participant_ids": [member_user.pk]},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["error_code"] == "INVALID_ARGUMENT"

    def test_blank_name_rejected(self, owner_client, member_user, other_member):
        response = owner_client.post(
            f"{BASE}group/",
            {"name": "  ", "participant_ids": [member_user.pk, other_member.pk]},
            format="json",
        )

        assert response.status_code == 400
        assert "name" in response.data["errors"]


# =============================================================================
# Read state and typing
# =============================================================================


class TestReadState:
    def test_mark_read_resets_counter(self, owner_client, group_chat, owner_user, message):
        ChatMember.objects.filter(chat=group_chat, user=owner_user).update(unread_count=3)

        response = owner_client.post(f"{BASE}{group_chat.id}/read/")

        assert response.status_code == 200
        assert response.data == {"status": "read", "marked": 1}
        unread = owner_client.get(f"{BASE}{group_chat.id}/unread/")
        assert unread.data == {"chat_id": group_chat.id, "unread_count": 0}

    def test_outsider_forbidden(self, outsider_client, group_chat):
        response = outsider_client.post(f"{BASE}{group_chat.id}/read/")

        assert response.status_code == 403


class TestTyping:
    def test_start_list_stop(self, member_client, owner_client, group_chat, member_user):
        start = member_client.post(f"{BASE}{group_chat.id}/typing/start/")
        listed = owner_client.get(f"{BASE}{group_chat.id}/typing/")
        stop = member_client.post(f"{BASE}{group_chat.id}/typing/stop/")
        after = owner_client.get(f"{BASE}{group_chat.id}/typing/")

        assert start.data == {"status": "typing"}
        assert listed.data == {"chat_id": group_chat.id, "user_ids": [member_user.pk]}
        assert stop.data == {"status": "stopped"}
        assert after.data["user_ids"] == []

    def test_expired_indicator_not_listed(self, owner_client, group_chat, member_user):
        TypingService.start_typing(group_chat, member_user)

        with freeze_time(timezone.now() + timedelta(seconds=6)):
            response = owner_client.get(f"{BASE}{group_chat.id}/typing/")

        assert response.data["user_ids"] == []


# =============================================================================
# Members
# =============================================================================


class TestMembers:
    def test_owner_adds_member(self, owner_client, group_chat, outsider):
        response = owner_client.post(
            f"{BASE}{group_chat.id}/members/", {"user_id": outsider.pk}, format="json"
        )

        assert response.status_code == 201
        assert response.data["user"]["id"] == outsider.pk
        assert response.data["role"] == MemberRole.MEMBER

    def test_member_cannot_add_admin(self, member_client, group_chat, outsider):
        response = member_client.post(
            f"{BASE}{group_chat.id}/members/",
            {"user_id": outsider.pk, "role": "admin"},
            format="json",
        )

        assert response.status_code == 403

    def test_add_unknown_user_not_found(self, owner_client, group_chat):
        response = owner_client.post(
            f"{BASE}{group_chat.id}/members/", {"user_id": 999999}, format="json"
        )

        assert response.status_code == 404

    def test_member_leaves(self, member_client, group_chat, member_user):
        response = member_client.delete(f"{BASE}{group_chat.id}/members/{member_user.pk}/")

        assert response.status_code == 204
        assert not group_chat.is_participant(member_user)
        # A former member loses access
        assert member_client.get(f"{BASE}{group_chat.id}/").status_code == 403

    def test_member_cannot_remove_other(self, member_client, group_chat, other_member):
        response = member_client.delete(f"{BASE}{group_chat.id}/members/{other_member.pk}/")

        assert response.status_code == 403

    def test_owner_cannot_leave(self, owner_client, group_chat, owner_user):
        response = owner_client.delete(f"{BASE}{group_chat.id}/members/{owner_user.pk}/")

        assert response.status_code == 403


# =============================================================================
# Messages
# =============================================================================


class TestMessageList:
    def test_pages_read_oldest_first_newest_page_first(self, owner_client, group_chat, member_user):
        """
        Why it matters: page 1 must hold the latest history, but a client
        renders each page top to bottom in chronological order.
        """
        sent = [
            MessageService.send_message(group_chat, member_user, content=f"m{i}").data
            for i in range(5)
        ]

        page1 = owner_client.get(_messages_url(group_chat), {"page_size": 2})
        page2 = owner_client.get(_messages_url(group_chat), {"page_size": 2, "page": 2})

        assert [m["id"] for m in page1.data["results"]] == [sent[3].id, sent[4].id]
        assert [m["id"] for m in page2.data["results"]] == [sent[1].id, sent[2].id]
        assert page1.data["count"] == 5

    def test_listing_marks_read(self, owner_client, group_chat, owner_user, message):
        ChatMember.objects.filter(chat=group_chat, user=owner_user).update(unread_count=1)

        owner_client.get(_messages_url(group_chat))

        assert ChatMember.objects.get(chat=group_chat, user=owner_user).unread_count == 0
        assert ReadReceipt.objects.filter(message=message, user=owner_user).exists()

    def test_deleted_messages_hidden(self, owner_client, group_chat, member_user, message):
        MessageService.soft_delete_message(group_chat, message.id, member_user)

        response = owner_client.get(_messages_url(group_chat))

        assert response.data["results"] == []

    def test_outsider_forbidden(self, outsider_client, group_chat):
        response = outsider_client.get(_messages_url(group_chat))

        assert response.status_code == 403


class TestMessageCreate:
    def test_sends_text(self, member_client, group_chat, owner_user, member_user):
        response = member_client.post(
            _messages_url(group_chat), {"content": "Hello"}, format="json"
        )

        assert response.status_code == 201
        assert response.data["content"] == "Hello"
        assert response.data["sender"]["id"] == member_user.pk
        assert response.data["chat_id"] == group_chat.id
        assert ChatMember.objects.get(chat=group_chat, user=owner_user).unread_count == 1

    def test_sends_location(self, member_client, group_chat):
        response = member_client.post(
            _messages_url(group_chat),
            {
                "message_type": "location",
                "metadata": {"latitude": 48.85, "longitude": 2.35, "address": "Paris"},
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.data["metadata"]["address"] == "Paris"

    def test_empty_text_rejected(self, member_client, group_chat):
        response = member_client.post(_messages_url(group_chat), {"content": ""}, format="json")

        assert response.status_code == 400
        assert response.data["error_code"] == "INVALID_ARGUMENT"

    def test_too_long_rejected(self, member_client, group_chat):
        response = member_client.post(
            _messages_url(group_chat), {"content": "x" * 1001}, format="json"
        )

        assert response.status_code == 400

    def test_outsider_forbidden(self, outsider_client, group_chat):
        response = outsider_client.post(_messages_url(group_chat), {"content": "hi"}, format="json")

        assert response.status_code == 403


class TestMessageDelete:
    def test_sender_deletes(self, member_client, group_chat, message):
        response = member_client.delete(f"{_messages_url(group_chat)}{message.id}/")

        assert response.status_code == 204
        message.refresh_from_db()
        assert message.is_deleted is True

    def test_other_member_forbidden(self, client_for, group_chat, other_member, message):
        response = client_for(other_member).delete(f"{_messages_url(group_chat)}{message.id}/")

        assert response.status_code == 403

    def test_unknown_message_not_found(self, member_client, group_chat):
        response = member_client.delete(f"{_messages_url(group_chat)}999999/")

        assert response.status_code == 404


# =============================================================================
# Reactions
# =============================================================================


class TestReactions:
    def test_react_replaces_and_counts(self, owner_client, group_chat, owner_user, message):
        url = f"{_messages_url(group_chat)}{message.id}/react/"

        owner_client.post(url, {"emoji": "👍"}, format="json")
        response = owner_client.post(url, {"emoji": "🔥"}, format="json")

        assert response.status_code == 200
        assert response.data["message_id"] == message.id
        assert response.data["counts"] == {"🔥": 1}
        assert MessageReaction.objects.get(message=message, user=owner_user).emoji == "🔥"

    def test_delete_clears(self, owner_client, group_chat, owner_user, message):
        ReactionService.set_reaction(message, owner_user, "👍")

        response = owner_client.delete(
            f"{_messages_url(group_chat)}{message.id}/react/", {"emoji": "👍"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["reactions"] == []

    def test_long_emoji_rejected(self, owner_client, group_chat, message):
        response = owner_client.post(
            f"{_messages_url(group_chat)}{message.id}/react/",
            {"emoji": "x" * 11},
            format="json",
        )

        assert response.status_code == 400

    def test_list_reactions(self, owner_client, group_chat, member_user, other_member, message):
        ReactionService.set_reaction(message, member_user, "👍")
        ReactionService.set_reaction(message, other_member, "👍")

        response = owner_client.get(f"{_messages_url(group_chat)}{message.id}/reactions/")

        assert response.status_code == 200
        assert response.data["counts"] == {"👍": 2}
        assert [r["user_id"] for r in response.data["reactions"]] == [
            member_user.pk,
            other_member.pk,
        ]

    def test_outsider_forbidden(self, outsider_client, group_chat, message):
        response = outsider_client.post(
            f"{_messages_url(group_chat)}{message.id}/react/", {"emoji": "👍"}, format="json"
        )

        assert response.status_code == 403


class TestInactiveUser:
    def test_deactivated_user_token_rejected(self, client_for, db):
        user = UserFactory()
        client = client_for(user)
        user.is_active = False
        user.save(update_fields=["is_active"])

        assert client.get(BASE).status_code == 401
