"""
URL configuration for the chat backend.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - Authentication endpoints (simplejwt)
        token/                     - Obtain access/refresh pair
        token/refresh/             - Refresh access token
    /api/v1/chat/                  - Chat endpoints
        chats/                     - Chat list
        chats/direct/              - Create or get a direct chat
        chats/group/               - Create a group chat
        chats/{id}/                - Chat detail
        chats/{id}/read/           - Mark chat as read
        chats/{id}/unread/         - Unread count
        chats/{id}/typing/         - Typing users (start/, stop/)
        chats/{id}/members/        - Add member
        chats/{id}/members/{user}/ - Remove member / leave
        chats/{id}/messages/       - Message list/send
        chats/{id}/messages/{pk}/  - Message delete
        chats/{id}/messages/{pk}/react/     - Set/clear reaction
        chats/{id}/messages/{pk}/reactions/ - Reaction list and counts
    ws/chat/                       - WebSocket endpoint (see chat.routing)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Chat Admin"
admin.site.site_title = "Chat Admin Portal"
admin.site.index_title = "Conversations, messages and notifications"
