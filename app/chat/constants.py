"""
Constants and configuration for the chat core.

This module centralizes configuration values for:
- Message content limits
- Reaction limits
- Typing presence TTL
- Group chat limits
- Pagination page sizes
- Connection registry keys

Tunables come from the CHAT settings dict (see config/settings.py).
Import example:
    from chat.constants import MESSAGE_CONFIG, TYPING_CONFIG
"""

from typing import Final

from django.conf import settings

_CHAT_SETTINGS = getattr(settings, "CHAT", {})


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_CONTENT_LENGTH: Final[int] = 1000  # Characters


# =============================================================================
# Reaction Configuration
# =============================================================================


class REACTION_CONFIG:
    """Configuration for message reactions."""

    # Compound emojis (skin tones, ZWJ sequences) span several code points
    MAX_EMOJI_LENGTH: Final[int] = 10


# =============================================================================
# Typing Configuration
# =============================================================================


class TYPING_CONFIG:
    """Configuration for typing presence."""

    # Indicators older than this are purged when typing users are read
    TTL_SECONDS: Final[int] = _CHAT_SETTINGS.get("TYPING_TTL_SECONDS", 5)


# =============================================================================
# Group Configuration
# =============================================================================


class GROUP_CONFIG:
    """Configuration for group chats."""

    MAX_NAME_LENGTH: Final[int] = 50
    MAX_DESCRIPTION_LENGTH: Final[int] = 200
    # Other members required besides the creator
    MIN_OTHER_MEMBERS: Final[int] = 2
    DEFAULT_MAX_MEMBERS: Final[int] = _CHAT_SETTINGS.get("GROUP_MAX_MEMBERS", 100)


# =============================================================================
# Pagination Configuration
# =============================================================================


class PAGINATION_CONFIG:
    MESSAGES_PAGE_SIZE: Final[int] = _CHAT_SETTINGS.get("MESSAGES_PAGE_SIZE", 50)
    CHATS_PAGE_SIZE: Final[int] = _CHAT_SETTINGS.get("CHATS_PAGE_SIZE", 20)
    MAX_PAGE_SIZE: Final[int] = 100


# =============================================================================
# Direct Chat Configuration
# =============================================================================


class DIRECT_CHAT_CONFIG:
    # Retries when a concurrent request created the same pair first
    CREATE_MAX_ATTEMPTS: Final[int] = 3


# =============================================================================
# Connection Registry Configuration
# =============================================================================


class REGISTRY_CONFIG:
    """Configuration for the Redis-backed connection registry."""

    KEY_PREFIX: Final[str] = "chat:connections"
    # Refreshed on authenticate and join; bounds leftovers of crashed workers
    CONNECTION_TTL_SECONDS: Final[int] = _CHAT_SETTINGS.get("CONNECTION_TTL_SECONDS", 24 * 60 * 60)
