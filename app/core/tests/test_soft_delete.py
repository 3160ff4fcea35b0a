"""
Tests for SoftDeleteMixin in core/model_mixins.py.

Exercised through chat messages, the model that uses it.
"""

from chat.models import Message
from chat.services import ConversationService, MessageService
from authentication.tests.factories import UserFactory


def _message():
    owner, first, second = UserFactory(), UserFactory(), UserFactory()
    chat = ConversationService.create_group(owner, "Soft", [first.pk, second.pk]).data
    return MessageService.send_message(chat, owner, content="keep me").data


class TestSoftDeleteMixin:
    def test_soft_delete_sets_flag_and_timestamp(self, db):
        message = _message()

        message.soft_delete()
        message.refresh_from_db()

        assert message.is_deleted is True
        assert message.deleted_at is not None

    def test_row_is_kept(self, db):
        message = _message()

        message.soft_delete()

        assert Message.objects.filter(pk=message.pk).exists()

    def test_restore_clears_flag(self, db):
        message = _message()
        message.soft_delete()

        message.restore()
        message.refresh_from_db()

        assert message.is_deleted is False
        assert message.deleted_at is None
