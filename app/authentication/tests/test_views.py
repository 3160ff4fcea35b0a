"""
Tests for the JWT token endpoints.

The access token issued here is what REST clients send as a Bearer header
and what socket clients send in the "authenticate" event.
"""

import pytest
from rest_framework import status


@pytest.mark.django_db
class TestTokenObtain:
    """Tests for POST /api/v1/auth/token/."""

    def test_valid_credentials_return_token_pair(self, api_client, user):
        response = api_client.post(
            "/api/v1/auth/token/",
            {"email": user.email, "password": "TestPass123!"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data
        assert "refresh" in response.data

    def test_wrong_password_is_rejected(self, api_client, user):
        response = api_client.post(
            "/api/v1/auth/token/",
            {"email": user.email, "password": "wrong"},
            format="json",
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_returns_new_access_token(self, api_client, user):
        pair = api_client.post(
            "/api/v1/auth/token/",
            {"email": user.email, "password": "TestPass123!"},
            format="json",
        ).data

        response = api_client.post(
            "/api/v1/auth/token/refresh/",
            {"refresh": pair["refresh"]},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert "access" in response.data
