"""
Token authentication for chat sockets.

Sockets authenticate in-band with an "authenticate" frame carrying a
simplejwt access token, the same token the REST API accepts as a Bearer
token. There is no handshake middleware; an unauthenticated socket can
connect but can do nothing except authenticate.

Usage:
    user = await database_sync_to_async(get_user_from_token)(token)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from core.exceptions import InvalidArgumentError, PermissionDeniedError

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)


def get_user_from_token(token, claimed_user_id=None) -> User:
    """
    Validate a JWT access token and return its active user.

    Args:
        token: Encoded access token
        claimed_user_id: User id the client says it is; must match the token

    Raises:
        InvalidArgumentError: Token missing or not a string
        PermissionDeniedError: Token invalid/expired, user missing/inactive,
            or claimed_user_id does not match
    """
    if not token or not isinstance(token, str):
        raise InvalidArgumentError("token is required", details={"field": "token"})

    try:
        access_token = AccessToken(token)
    except TokenError as e:
        logger.warning(f"Invalid JWT token on socket: {e}")
        raise PermissionDeniedError("Invalid or expired token") from e

    user_id = access_token.get(api_settings.USER_ID_CLAIM)

    User = get_user_model()
    user = User.objects.filter(pk=user_id).first()
    if user is None or not user.is_active:
        logger.warning(f"Socket token for missing or inactive user {user_id}")
        raise PermissionDeniedError("Invalid or expired token")

    if claimed_user_id is not None and str(claimed_user_id) != str(user.pk):
        logger.warning(
            f"Socket token for user {user.pk} presented with userId {claimed_user_id}"
        )
        raise PermissionDeniedError("userId does not match token")

    return user
