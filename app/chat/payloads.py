"""
Typed message payloads.

Each message type family owns only the fields relevant to it:

    TextPayload       text
    MediaPayload      image, file, audio, video
    LocationPayload   location
    ContactPayload    contact

Incoming data (REST body or socket frame) is turned into a payload with
parse_payload(), which raises InvalidArgumentError on bad input. Stored
messages are turned back into payloads with payload_from_message().

Usage:
    payload = parse_payload("image", "look", {"media_url": "https://..."})
    Message.objects.create(
        chat=chat,
        sender=user,
        content=payload.content,
        message_type=payload.message_type,
        metadata=payload.to_metadata(),
    )
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import TYPE_CHECKING, Any, Union

from core.exceptions import InvalidArgumentError
from chat.constants import MESSAGE_CONFIG

if TYPE_CHECKING:
    from chat.models import Message


MEDIA_TYPES = ("image", "file", "audio", "video")


@dataclass(frozen=True)
class TextPayload:
    content: str
    message_type: str = "text"

    def to_metadata(self) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class MediaPayload:
    """Image, file, audio or video. content is an optional caption."""

    message_type: str
    media_url: str
    content: str = ""
    file_name: str = ""
    file_size: int = 0
    file_type: str = ""
    thumbnail: str = ""
    duration: float = 0
    width: int = 0
    height: int = 0

    def to_metadata(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("message_type")
        data.pop("content")
        return data


@dataclass(frozen=True)
class LocationPayload:
    latitude: float
    longitude: float
    address: str = ""
    content: str = ""
    message_type: str = "location"

    def to_metadata(self) -> dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "address": self.address,
        }


@dataclass(frozen=True)
class ContactPayload:
    name: str
    phone: str = ""
    email: str = ""
    content: str = ""
    message_type: str = "contact"

    def to_metadata(self) -> dict[str, Any]:
        return {"name": self.name, "phone": self.phone, "email": self.email}


MessagePayload = Union[TextPayload, MediaPayload, LocationPayload, ContactPayload]


# =============================================================================
# Field validation helpers
# =============================================================================


def _string(metadata: dict, key: str, *, required: bool = False) -> str:
    value = metadata.get(key, "")
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise InvalidArgumentError(
            f"'{key}' must be a string", details={"field": key}
        )
    value = value.strip()
    if required and not value:
        raise InvalidArgumentError(f"'{key}' is required", details={"field": key})
    return value


def _non_negative(metadata: dict, key: str, cast=int):
    value = metadata.get(key, 0)
    if value is None:
        return cast(0)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(
            f"'{key}' must be a number", details={"field": key}
        )
    if value < 0:
        raise InvalidArgumentError(
            f"'{key}' cannot be negative", details={"field": key}
        )
    return cast(value)


def _coordinate(metadata: dict, key: str, limit: float) -> float:
    value = metadata.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(
            f"'{key}' is required and must be a number", details={"field": key}
        )
    if not -limit <= value <= limit:
        raise InvalidArgumentError(
            f"'{key}' must be between {-limit} and {limit}", details={"field": key}
        )
    return float(value)


# =============================================================================
# Parsing
# =============================================================================


def parse_payload(
    message_type: str | None,
    content: str | None,
    metadata: dict | None = None,
) -> MessagePayload:
    """
    Validate raw message input and build the matching payload variant.

    Args:
        message_type: One of the MessageType values (defaults to "text")
        content: Message text or caption
        metadata: Type-specific fields

    Raises:
        InvalidArgumentError: Unknown type, empty text, content too long,
            or metadata that does not fit the type
    """
    message_type = message_type or "text"
    if content is None:
        content = ""
    if not isinstance(content, str):
        raise InvalidArgumentError("Content must be a string", details={"field": "content"})
    content = content.strip()
    if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
        raise InvalidArgumentError(
            f"Message cannot exceed {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
            details={"field": "content"},
        )

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise InvalidArgumentError("Metadata must be an object", details={"field": "metadata"})

    if message_type == "text":
        if not content:
            raise InvalidArgumentError(
                "Message content cannot be empty", details={"field": "content"}
            )
        return TextPayload(content=content)

    if message_type in MEDIA_TYPES:
        return MediaPayload(
            message_type=message_type,
            media_url=_string(metadata, "media_url", required=True),
            content=content,
            file_name=_string(metadata, "file_name"),
            file_size=_non_negative(metadata, "file_size"),
            file_type=_string(metadata, "file_type"),
            thumbnail=_string(metadata, "thumbnail"),
            duration=_non_negative(metadata, "duration", cast=float),
            width=_non_negative(metadata, "width"),
            height=_non_negative(metadata, "height"),
        )

    if message_type == "location":
        return LocationPayload(
            latitude=_coordinate(metadata, "latitude", 90),
            longitude=_coordinate(metadata, "longitude", 180),
            address=_string(metadata, "address"),
            content=content,
        )

    if message_type == "contact":
        return ContactPayload(
            name=_string(metadata, "name", required=True),
            phone=_string(metadata, "phone"),
            email=_string(metadata, "email"),
            content=content,
        )

    raise InvalidArgumentError(
        f"Unknown message type: {message_type}", details={"field": "message_type"}
    )


def payload_from_message(message: Message) -> MessagePayload:
    """Rebuild the payload variant of a stored message without re-validating."""
    metadata = message.metadata or {}

    if message.message_type in MEDIA_TYPES:
        known = {f.name for f in fields(MediaPayload)} - {"message_type", "content"}
        stored = {key: value for key, value in metadata.items() if key in known}
        stored.setdefault("media_url", "")
        return MediaPayload(
            message_type=message.message_type,
            content=message.content,
            **stored,
        )
    if message.message_type == "location":
        return LocationPayload(
            latitude=metadata.get("latitude", 0.0),
            longitude=metadata.get("longitude", 0.0),
            address=metadata.get("address", ""),
            content=message.content,
        )
    if message.message_type == "contact":
        return ContactPayload(
            name=metadata.get("name", ""),
            phone=metadata.get("phone", ""),
            email=metadata.get("email", ""),
            content=message.content,
        )
    return TextPayload(content=message.content)
