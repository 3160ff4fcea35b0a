"""
Test configuration and fixtures for notification tests.

This module provides:
- Users in a shared group chat (sender, recipients)
- A message to notify about

Usage:
    def test_example(chat, sender, message):
        NotificationService.notify_new_message(chat.id, message.id, sender.id, [...])
"""

import pytest

from authentication.tests.factories import UserFactory
from chat.services import ConversationService, MessageService


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def sender(db):
    """User who sends the message."""
    return UserFactory(first_name="Sam", last_name="Sender")


@pytest.fixture
def recipient(db):
    return UserFactory(first_name="Rita", last_name="Recipient")


@pytest.fixture
def other_recipient(db):
    return UserFactory(first_name="Rob", last_name="Recipient")


# =============================================================================
# Chat Fixtures
# =============================================================================


@pytest.fixture
def chat(sender, recipient, other_recipient):
    result = ConversationService.create_group(
        sender, "Notify", [recipient.pk, other_recipient.pk]
    )
    return result.data


@pytest.fixture
def message(chat, sender):
    return MessageService.send_message(chat, sender, content="Dinner at eight?").data
