"""
Tests for the identity models the chat core reads display names from.

Test Organization:
    - TestUserModel: creation and display-name helpers
    - TestProfileModel: auto-creation and full_name
"""

import pytest
from django.db import IntegrityError

from authentication.models import Profile, User
from authentication.tests.factories import UserFactory


@pytest.mark.django_db
class TestUserModel:
    """Tests for the email-based User model."""

    def test_user_email_is_required(self):
        """
        Email is the primary identifier and must be provided.

        Why it matters: Users cannot authenticate without an email address.
        """
        with pytest.raises(ValueError):
            User.objects.create_user(email=None, password="TestPass123!")

    def test_user_email_must_be_unique(self, user):
        """
        Why it matters: Email is the USERNAME_FIELD, so duplicates would
        create login ambiguity.
        """
        with pytest.raises(IntegrityError):
            User.objects.create_user(email=user.email, password="Other123!")

    def test_full_name_comes_from_profile(self, user):
        """
        Why it matters: Typing events and notification titles show this name.
        """
        assert user.get_full_name() == "Ada Lovelace"
        assert user.get_short_name() == "Ada"

    def test_full_name_falls_back_to_email(self):
        """
        A user without a name still has something displayable.

        Why it matters: Notification titles must never read "New message from ".
        """
        user = UserFactory(email="nameless@example.com", first_name="", last_name="")

        assert user.get_full_name() == "nameless@example.com"
        assert user.get_short_name() == "nameless"

    def test_create_superuser_sets_flags(self):
        admin = User.objects.create_superuser(
            email="admin@example.com", password="AdminPass123!"
        )

        assert admin.is_staff is True
        assert admin.is_superuser is True


@pytest.mark.django_db
class TestProfileModel:
    """Tests for the Profile model."""

    def test_profile_auto_created_with_user(self):
        """
        Why it matters: Display-name lookups assume every user has a profile.
        """
        user = User.objects.create_user(email="new@example.com", password="x12345678!")

        assert Profile.objects.filter(user=user).exists()

    def test_full_name_strips_missing_parts(self, user):
        user.profile.last_name = ""
        user.profile.save()

        assert user.profile.full_name == "Ada"
