"""
URL configuration for chat API.

URL Structure:
    Chats:
        /chats/                                  GET
        /chats/direct/                           POST
        /chats/group/                            POST
        /chats/{id}/                             GET
        /chats/{id}/read/                        POST
        /chats/{id}/unread/                      GET
        /chats/{id}/typing/                      GET
        /chats/{id}/typing/start/                POST
        /chats/{id}/typing/stop/                 POST

    Members:
        /chats/{id}/members/                     POST
        /chats/{id}/members/{user_id}/           DELETE

    Messages:
        /chats/{id}/messages/                    GET, POST
        /chats/{id}/messages/{pk}/               DELETE

    Reactions:
        /chats/{id}/messages/{pk}/react/         POST, DELETE
        /chats/{id}/messages/{pk}/reactions/     GET

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import ChatViewSet, MessageViewSet

router = DefaultRouter()
router.register(r"chats", ChatViewSet, basename="chat")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    path(
        "chats/<int:pk>/members/<int:user_pk>/",
        ChatViewSet.as_view({"delete": "remove_member"}),
        name="chat-member-detail",
    ),
    # Nested routes for messages
    path(
        "chats/<int:chat_pk>/messages/",
        MessageViewSet.as_view({"get": "list", "post": "create"}),
        name="chat-message-list",
    ),
    path(
        "chats/<int:chat_pk>/messages/<int:pk>/",
        MessageViewSet.as_view({"delete": "destroy"}),
        name="chat-message-detail",
    ),
    path(
        "chats/<int:chat_pk>/messages/<int:pk>/react/",
        MessageViewSet.as_view({"post": "react", "delete": "react"}),
        name="chat-message-react",
    ),
    path(
        "chats/<int:chat_pk>/messages/<int:pk>/reactions/",
        MessageViewSet.as_view({"get": "reactions"}),
        name="chat-message-reactions",
    ),
]
