"""
WebSocket consumer for the chat application.

One endpoint (ws/chat/) serves every chat of a user. Frames are JSON
objects in both directions:

    {"event": "<name>", "data": {...}}

Connection lifecycle:
    connect       accepted, unauthenticated
    authenticate  {token, userId?} binds the socket to a user, once
    join-chat     {chatId} subscribes to a chat's room (participants only)
    leave-chat    {chatId} unsubscribes
    disconnect    leaves every room; other sockets of the user stay

Chat operations (typing-start, typing-stop, message-reaction, new-message,
message-deleted) run through ChatCommands exactly like the REST views, so
both transports produce the same state changes and room events.

Errors never close the socket. They are answered with:

    {"event": "error", "data": {"error", "error_code", "event", "errors"?}}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from asgiref.sync import sync_to_async
from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from core.exceptions import (
    BaseApplicationError,
    ErrorCode,
    InvalidArgumentError,
    PermissionDeniedError,
)

from chat.auth import get_user_from_token
from chat.broadcast import ChatEventBroadcaster
from chat.commands import ChatCommands
from chat.events import (
    ChatEventType,
    ReactionOperation,
    chat_group_name,
    frame,
    user_group_name,
)
from chat.registry import connection_registry
from chat.services import ConversationService

if TYPE_CHECKING:
    from core.services import ServiceResult

logger = logging.getLogger(__name__)


def _require_id(data: dict, field: str) -> int:
    """Read a positive integer id from an inbound payload."""
    value = data.get(field)
    if isinstance(value, bool):
        value = None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{field} is required", details={"field": field}) from None
    if parsed < 1:
        raise InvalidArgumentError(f"{field} is required", details={"field": field})
    return parsed


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat.

    Attributes:
        registry: Redis-backed ConnectionRegistry shared by all processes
            (class attribute so tests can substitute their own)
        user: Authenticated user, None until "authenticate" succeeds
        broadcaster: Publishes room events on this consumer's channel layer
    """

    registry = connection_registry

    handlers = {
        ChatEventType.AUTHENTICATE: "_handle_authenticate",
        ChatEventType.JOIN_CHAT: "_handle_join_chat",
        ChatEventType.LEAVE_CHAT: "_handle_leave_chat",
        ChatEventType.TYPING_START: "_handle_typing_start",
        ChatEventType.TYPING_STOP: "_handle_typing_stop",
        ChatEventType.MESSAGE_REACTION: "_handle_message_reaction",
        ChatEventType.NEW_MESSAGE: "_handle_new_message",
        ChatEventType.DELETE_MESSAGE: "_handle_delete_message",
    }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = None
        self.broadcaster: ChatEventBroadcaster | None = None

    async def connect(self):
        self.broadcaster = ChatEventBroadcaster(self.channel_layer)
        await self.accept()
        logger.debug(f"Socket {self.channel_name} connected")

    async def disconnect(self, close_code):
        rooms = await sync_to_async(self.registry.disconnect)(self.channel_name)
        for chat_id in rooms:
            await self.channel_layer.group_discard(chat_group_name(chat_id), self.channel_name)
        if self.user is not None:
            await self.channel_layer.group_discard(
                user_group_name(self.user.pk), self.channel_name
            )
            logger.info(
                f"User {self.user.pk} disconnected socket {self.channel_name} "
                f"(code {close_code}, left {len(rooms)} rooms)"
            )

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        try:
            content = await self.decode_json(text_data)
        except (TypeError, ValueError):
            await self._send_error("Frames must be JSON objects", ErrorCode.INVALID_ARGUMENT)
            return
        await self.receive_json(content, **kwargs)

    async def receive_json(self, content, **kwargs):
        """
        Dispatch an inbound frame to its handler.

        Expected format:
            {"event": "join-chat", "data": {"chatId": 12}}
        """
        if not isinstance(content, dict):
            await self._send_error("Frames must be JSON objects", ErrorCode.INVALID_ARGUMENT)
            return

        event = content.get("event")
        data = content.get("data")
        if data is None:
            data = {}

        handler_name = self.handlers.get(event)
        if handler_name is None:
            await self._send_error(
                f"Unknown event: {event}", ErrorCode.INVALID_ARGUMENT, event=event
            )
            return
        if not isinstance(data, dict):
            await self._send_error(
                "data must be an object", ErrorCode.INVALID_ARGUMENT, event=event
            )
            return
        if self.user is None and event != ChatEventType.AUTHENTICATE:
            await self._send_error(
                "Authenticate first", ErrorCode.PERMISSION_DENIED, event=event
            )
            return

        try:
            await getattr(self, handler_name)(data)
        except BaseApplicationError as e:
            await self._send_error(
                e.message, e.error_code, event=event, errors=e.details or None
            )

    # =========================================================================
    # Connection state
    # =========================================================================

    async def _handle_authenticate(self, data: dict) -> None:
        if self.user is not None:
            raise InvalidArgumentError("Already authenticated")

        user = await database_sync_to_async(get_user_from_token)(
            data.get("token"), data.get("userId")
        )
        if not await sync_to_async(self.registry.authenticate)(self.channel_name, user.pk):
            raise InvalidArgumentError("Already authenticated")

        self.user = user
        # Personal room: every socket of the user, whichever chats are open
        await self.channel_layer.group_add(user_group_name(user.pk), self.channel_name)
        await self.send_json(frame(ChatEventType.AUTHENTICATED, {"userId": user.pk}))
        logger.info(f"User {user.pk} authenticated socket {self.channel_name}")

    async def _handle_join_chat(self, data: dict) -> None:
        chat_id = _require_id(data, "chatId")
        result = await database_sync_to_async(ConversationService.get_accessible_chat)(
            chat_id, self.user
        )
        if not result:
            raise PermissionDeniedError(result.error)

        if await sync_to_async(self.registry.join_room)(self.channel_name, chat_id):
            await self.channel_layer.group_add(chat_group_name(chat_id), self.channel_name)
            logger.debug(f"User {self.user.pk} joined room {chat_id}")
        await self.send_json(frame(ChatEventType.JOINED_CHAT, {"chatId": chat_id}))

    async def _handle_leave_chat(self, data: dict) -> None:
        chat_id = _require_id(data, "chatId")
        if await sync_to_async(self.registry.leave_room)(self.channel_name, chat_id):
            await self.channel_layer.group_discard(chat_group_name(chat_id), self.channel_name)
            logger.debug(f"User {self.user.pk} left room {chat_id}")
        await self.send_json(frame(ChatEventType.LEFT_CHAT, {"chatId": chat_id}))

    # =========================================================================
    # Chat operations
    # =========================================================================

    async def _handle_typing_start(self, data: dict) -> None:
        await self._run_command(
            ChatEventType.TYPING_START, data, "start_typing", self.user
        )

    async def _handle_typing_stop(self, data: dict) -> None:
        await self._run_command(
            ChatEventType.TYPING_STOP, data, "stop_typing", self.user
        )

    async def _handle_message_reaction(self, data: dict) -> None:
        message_id = _require_id(data, "messageId")
        operation = data.get("type") or ReactionOperation.ADD
        await self._run_command(
            ChatEventType.MESSAGE_REACTION,
            data,
            "react",
            message_id,
            self.user,
            data.get("emoji"),
            operation,
        )

    async def _handle_new_message(self, data: dict) -> None:
        message = data.get("message")
        if isinstance(message, str):
            message = {"content": message}
        if not isinstance(message, dict):
            raise InvalidArgumentError("message is required", details={"field": "message"})

        reply_to = message.get("reply_to", message.get("replyTo"))
        await self._run_command(
            ChatEventType.NEW_MESSAGE,
            data,
            "send_message",
            self.user,
            content=message.get("content", ""),
            message_type=message.get("message_type", message.get("messageType")),
            metadata=message.get("metadata"),
            reply_to_id=reply_to,
        )

    async def _handle_delete_message(self, data: dict) -> None:
        message_id = _require_id(data, "messageId")
        await self._run_command(
            ChatEventType.DELETE_MESSAGE, data, "delete_message", message_id, self.user
        )

    async def _run_command(
        self, event: str, data: dict, operation: str, *args, **kwargs
    ) -> None:
        chat_id = _require_id(data, "chatId")
        result = await self._execute(operation, chat_id, *args, **kwargs)
        if not result:
            await self._send_error(
                result.error,
                result.error_code,
                event=event,
                errors=result.errors,
            )

    @database_sync_to_async
    def _execute(self, operation: str, chat_id: int, *args, **kwargs) -> ServiceResult:
        """Resolve the chat and run one ChatCommands method in a worker thread."""
        result = ConversationService.get_accessible_chat(chat_id, self.user)
        if not result:
            return result
        commands = ChatCommands(self.broadcaster, origin_channel=self.channel_name)
        return getattr(commands, operation)(result.data, *args, **kwargs)

    # =========================================================================
    # Outbound
    # =========================================================================

    async def chat_event(self, event):
        """
        Handle chat.event messages from the channel layer.

        Forwards the event to the client unless this socket caused it and
        the event excludes its origin.
        """
        if event.get("exclude_channel") == self.channel_name:
            return
        await self.send_json(frame(event["event"], event["data"]))

    async def _send_error(
        self,
        message: str,
        error_code: str,
        event: str | None = None,
        errors: dict | None = None,
    ) -> None:
        data = {"error": message, "error_code": error_code, "event": event}
        if errors:
            data["errors"] = errors
        await self.send_json(frame(ChatEventType.ERROR, data))
