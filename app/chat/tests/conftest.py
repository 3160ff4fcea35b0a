"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures with different chat roles
- Chat fixtures (direct and group), created through the services
- Message fixtures
- API client helpers for authenticated requests
- A recording broadcaster and a connection registry over fakeredis

Usage:
    def test_example(group_chat, owner_client):
        response = owner_client.get(f"/api/v1/chat/chats/{group_chat.id}/")
        assert response.status_code == 200
"""

import fakeredis
import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.registry import ConnectionRegistry
from chat.services import MessageService
from chat.tests.factories import make_direct_chat, make_group_chat


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def owner_user(db):
    """User who owns the test group."""
    return UserFactory(first_name="Olive", last_name="Owner")


@pytest.fixture
def member_user(db):
    return UserFactory(first_name="Max", last_name="Member")


@pytest.fixture
def other_member(db):
    return UserFactory(first_name="Nora", last_name="Other")


@pytest.fixture
def outsider(db):
    """User who is not a participant in any test chat."""
    return UserFactory(first_name="Otto", last_name="Outsider")


# =============================================================================
# Chat Fixtures
# =============================================================================


@pytest.fixture
def group_chat(owner_user, member_user, other_member):
    """Group of three: owner_user (owner), member_user and other_member."""
    return make_group_chat(owner_user, [member_user, other_member], name="Team")


@pytest.fixture
def direct_chat(owner_user, member_user):
    return make_direct_chat(owner_user, member_user)


@pytest.fixture
def message(group_chat, member_user):
    """Text message from member_user in group_chat."""
    return MessageService.send_message(group_chat, member_user, content="Hello team").data


# =============================================================================
# API Client Fixtures
# =============================================================================


def _client_for(user) -> APIClient:
    client = APIClient()
    token = RefreshToken.for_user(user).access_token
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def owner_client(owner_user):
    return _client_for(owner_user)


@pytest.fixture
def member_client(member_user):
    return _client_for(member_user)


@pytest.fixture
def outsider_client(outsider):
    return _client_for(outsider)


@pytest.fixture
def client_for():
    """Return a function producing an authenticated client for any user."""
    return _client_for


@pytest.fixture
def access_token_for():
    """Return a function producing an access token string for a user."""

    def _token(user) -> str:
        return str(RefreshToken.for_user(user).access_token)

    return _token


# =============================================================================
# Real-time Fixtures
# =============================================================================


class RecordingBroadcaster:
    """Broadcaster double that records published events in order."""

    def __init__(self):
        self.events = []

    def publish_sync(self, event):
        self.events.append(event)
        return True

    def names(self):
        return [event.event for event in self.events]


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def registry():
    """Registry over a private in-memory Redis server."""
    return ConnectionRegistry(redis_client=fakeredis.FakeRedis(server=fakeredis.FakeServer()))
