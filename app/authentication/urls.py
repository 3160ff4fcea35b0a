"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/token/          - Obtain access/refresh pair (email + password)
    /api/v1/auth/token/refresh/  - Exchange a refresh token for a new access token

The access token authenticates REST calls (Bearer header) and the WebSocket
"authenticate" event.
"""

from django.urls import path
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

app_name = "authentication"

TaggedTokenObtainPairView = extend_schema_view(
    post=extend_schema(tags=["Authentication"], summary="Obtain JWT pair")
)(TokenObtainPairView)

TaggedTokenRefreshView = extend_schema_view(
    post=extend_schema(tags=["Authentication"], summary="Refresh access token")
)(TokenRefreshView)

urlpatterns = [
    path("token/", TaggedTokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TaggedTokenRefreshView.as_view(), name="token_refresh"),
]
