"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ChatViewSet: Chat lists, creation, read state, typing and membership
- MessageViewSet: Message history, sending, deletion and reactions

URL Structure (prefixed with /api/v1/chat/):
    chats/                                   GET
    chats/direct/                            POST
    chats/group/                             POST
    chats/{id}/                              GET
    chats/{id}/read/                         POST
    chats/{id}/unread/                       GET
    chats/{id}/typing/                       GET
    chats/{id}/typing/start/                 POST
    chats/{id}/typing/stop/                  POST
    chats/{id}/members/                      POST
    chats/{id}/members/{user_id}/            DELETE
    chats/{id}/messages/                     GET, POST
    chats/{id}/messages/{mid}/               DELETE
    chats/{id}/messages/{mid}/react/         POST, DELETE
    chats/{id}/messages/{mid}/reactions/     GET

Design Decisions:
    - Chat access goes through ConversationService.get_accessible_chat, so
      missing and foreign chats both answer 403
    - Operations other participants must hear about go through
      ChatCommands, built per request with a fresh broadcaster
    - Service failures render as {"error", "error_code", "errors"?} with
      the status of their error code
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    status_for_error_code,
)

from chat.broadcast import get_broadcaster
from chat.commands import ChatCommands
from chat.events import ReactionOperation
from chat.models import Chat
from chat.pagination import ChatPagination, MessagePagination
from chat.serializers import (
    ChatDetailSerializer,
    ChatListSerializer,
    ChatMemberSerializer,
    DirectChatCreateSerializer,
    GroupChatCreateSerializer,
    MemberAddSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    ReactionInputSerializer,
    ReactionSerializer,
)
from chat.services import (
    ConversationService,
    MessageService,
    ReactionService,
    TypingService,
    UnreadService,
)

User = get_user_model()


def _error_response(result) -> Response:
    return Response(result.to_response(), status=status_for_error_code(result.error_code))


def _validated(serializer_class, data) -> dict:
    """Validate request data, raising InvalidArgumentError with field errors."""
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise InvalidArgumentError("Invalid request data", details=serializer.errors)
    return serializer.validated_data


def _get_active_user(user_id) -> User:
    user = User.objects.filter(pk=user_id, is_active=True).first()
    if user is None:
        raise NotFoundError("User not found", details={"user_id": user_id})
    return user


class ChatAccessMixin:
    """Resolves the chat in the URL for the requesting participant."""

    chat_lookup_kwarg = "pk"

    def get_chat(self):
        result = ConversationService.get_accessible_chat(
            self.kwargs.get(self.chat_lookup_kwarg), self.request.user
        )
        if not result:
            raise PermissionDeniedError(result.error)
        return result.data

    def get_commands(self) -> ChatCommands:
        return ChatCommands(get_broadcaster())


@extend_schema_view(
    list=extend_schema(
        operation_id="list_chats",
        summary="List chats",
        responses={200: ChatListSerializer(many=True)},
        tags=["Chat - Chats"],
    ),
    retrieve=extend_schema(
        operation_id="get_chat",
        summary="Get chat",
        responses={200: ChatDetailSerializer},
        tags=["Chat - Chats"],
    ),
)
class ChatViewSet(ChatAccessMixin, viewsets.GenericViewSet):
    """
    ViewSet for chat operations.

    list:
        The user's active chats, most recent activity first, with unread
        counts and last message preview.

    retrieve:
        Chat details including members and group settings.

    direct:
        Create or get the direct chat with another user. 201 when created,
        200 when it already existed.

    group:
        Create a group chat. The creator becomes owner.

    read / unread:
        Mark the chat read for the user / read the user's unread count.

    typing / typing_start / typing_stop:
        Typing presence. Indicators expire after a few seconds.

    members / remove_member:
        Group membership. A user removing themselves leaves the group.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = ChatPagination
    serializer_class = ChatListSerializer

    def get_queryset(self):
        if not self.request.user.is_authenticated:
            return Chat.objects.none()
        return ConversationService.list_chats(self.request.user)

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        serializer = ChatListSerializer(page, many=True, context={"request": request})
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request, pk=None):
        chat = self.get_chat()
        return Response(ChatDetailSerializer(chat, context={"request": request}).data)

    @extend_schema(
        operation_id="create_direct_chat",
        summary="Create or get direct chat",
        request=DirectChatCreateSerializer,
        responses={
            200: ChatDetailSerializer,
            201: ChatDetailSerializer,
            400: OpenApiResponse(description="Cannot chat with yourself"),
            404: OpenApiResponse(description="User not found"),
        },
        tags=["Chat - Chats"],
    )
    @action(detail=False, methods=["post"])
    def direct(self, request):
        data = _validated(DirectChatCreateSerializer, request.data)
        other_user = _get_active_user(data["user_id"])

        result = ConversationService.get_or_create_direct(request.user, other_user)
        if not result:
            return _error_response(result)

        chat, created = result.data
        return Response(
            ChatDetailSerializer(chat, context={"request": request}).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="create_group_chat",
        summary="Create group chat",
        request=GroupChatCreateSerializer,
        responses={201: ChatDetailSerializer},
        tags=["Chat - Chats"],
    )
    @action(detail=False, methods=["post"])
    def group(self, request):
        data = _validated(GroupChatCreateSerializer, request.data)

        result = ConversationService.create_group(
            creator=request.user,
            name=data["name"],
            participant_ids=data["participant_ids"],
            description=data.get("description", ""),
            avatar=data.get("avatar", ""),
            settings=data.get("settings"),
        )
        if not result:
            return _error_response(result)

        return Response(
            ChatDetailSerializer(result.data, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="mark_chat_read",
        summary="Mark chat as read",
        request=None,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Read State"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        chat = self.get_chat()
        result = self.get_commands().mark_read(chat, request.user)
        if not result:
            return _error_response(result)
        return Response({"status": "read", "marked": result.data})

    @extend_schema(
        operation_id="get_chat_unread",
        summary="Get unread count",
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Read State"],
    )
    @action(detail=True, methods=["get"])
    def unread(self, request, pk=None):
        chat = self.get_chat()
        return Response(
            {"chat_id": chat.id, "unread_count": UnreadService.get_unread(chat, request.user)}
        )

    @extend_schema(
        operation_id="list_typing_users",
        summary="List typing users",
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Typing"],
    )
    @action(detail=True, methods=["get"])
    def typing(self, request, pk=None):
        chat = self.get_chat()
        result = TypingService.list_typing(chat, requester=request.user)
        if not result:
            return _error_response(result)
        return Response({"chat_id": chat.id, "user_ids": result.data})

    @extend_schema(
        operation_id="start_typing",
        summary="Start typing",
        request=None,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Typing"],
    )
    @action(detail=True, methods=["post"], url_path="typing/start")
    def typing_start(self, request, pk=None):
        chat = self.get_chat()
        result = self.get_commands().start_typing(chat, request.user)
        if not result:
            return _error_response(result)
        return Response({"status": "typing"})

    @extend_schema(
        operation_id="stop_typing",
        summary="Stop typing",
        request=None,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Typing"],
    )
    @action(detail=True, methods=["post"], url_path="typing/stop")
    def typing_stop(self, request, pk=None):
        chat = self.get_chat()
        result = self.get_commands().stop_typing(chat, request.user)
        if not result:
            return _error_response(result)
        return Response({"status": "stopped"})

    @extend_schema(
        operation_id="add_chat_member",
        summary="Add member",
        request=MemberAddSerializer,
        responses={201: ChatMemberSerializer},
        tags=["Chat - Members"],
    )
    @action(detail=True, methods=["post"])
    def members(self, request, pk=None):
        chat = self.get_chat()
        data = _validated(MemberAddSerializer, request.data)
        user = _get_active_user(data["user_id"])

        result = ConversationService.add_member(
            chat, user, role=data["role"], added_by=request.user
        )
        if not result:
            return _error_response(result)
        return Response(ChatMemberSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="remove_chat_member",
        summary="Remove member or leave",
        responses={204: None},
        tags=["Chat - Members"],
    )
    def remove_member(self, request, pk=None, user_pk=None):
        chat = self.get_chat()
        user = User.objects.filter(pk=user_pk).first()
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_pk})

        result = ConversationService.remove_member(chat, user, removed_by=request.user)
        if not result:
            return _error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_messages",
        summary="List messages",
        description="Page 1 is the newest messages. Listing marks the chat read.",
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    ),
    create=extend_schema(
        operation_id="send_message",
        summary="Send message",
        request=MessageCreateSerializer,
        responses={201: MessageSerializer},
        tags=["Chat - Messages"],
    ),
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        responses={204: None},
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(ChatAccessMixin, viewsets.GenericViewSet):
    """
    ViewSet for message operations within a chat.

    list:
        Message history. Reading it marks the chat read for the user.

    create:
        Send a message. Everyone in the chat's room receives
        message-received.

    destroy:
        Soft delete a message (sender or admin). The room receives
        message-deleted.

    react:
        POST sets the user's reaction (replacing any previous one),
        DELETE clears it.

    reactions:
        Current reactions and per-emoji counts.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = MessagePagination
    serializer_class = MessageSerializer
    chat_lookup_kwarg = "chat_pk"

    def list(self, request, chat_pk=None):
        chat = self.get_chat()
        result = MessageService.get_messages(chat, request.user)
        if not result:
            return _error_response(result)

        page = self.paginate_queryset(result.data)
        serializer = MessageSerializer(page, many=True)
        response = self.get_paginated_response(serializer.data)

        self.get_commands().mark_read(chat, request.user)
        return response

    def create(self, request, chat_pk=None):
        chat = self.get_chat()
        data = _validated(MessageCreateSerializer, request.data)

        result = self.get_commands().send_message(
            chat,
            request.user,
            content=data.get("content", ""),
            message_type=data["message_type"],
            metadata=data.get("metadata"),
            reply_to_id=data.get("reply_to"),
        )
        if not result:
            return _error_response(result)
        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, chat_pk=None, pk=None):
        chat = self.get_chat()
        result = self.get_commands().delete_message(chat, pk, request.user)
        if not result:
            return _error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="react_to_message",
        summary="Set or clear reaction",
        request=ReactionInputSerializer,
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Reactions"],
    )
    @action(detail=True, methods=["post", "delete"])
    def react(self, request, chat_pk=None, pk=None):
        chat = self.get_chat()
        data = _validated(ReactionInputSerializer, request.data)
        operation = (
            ReactionOperation.ADD if request.method == "POST" else ReactionOperation.REMOVE
        )

        result = self.get_commands().react(chat, pk, request.user, data["emoji"], operation)
        if not result:
            return _error_response(result)
        return Response({"message_id": int(pk), **result.data})

    @extend_schema(
        operation_id="list_message_reactions",
        summary="List reactions",
        responses={200: OpenApiTypes.OBJECT},
        tags=["Chat - Reactions"],
    )
    @action(detail=True, methods=["get"])
    def reactions(self, request, chat_pk=None, pk=None):
        chat = self.get_chat()
        result = MessageService.get_message(chat, pk)
        if not result:
            return _error_response(result)

        message = result.data
        return Response(
            {
                "message_id": message.id,
                "reactions": ReactionSerializer(
                    ReactionService.list_reactions(message), many=True
                ).data,
                "counts": ReactionService.count_by_emoji(message),
            }
        )
