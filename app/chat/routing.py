"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - The single chat socket; a client joins chat rooms over it

Authentication:
    In-band. The first frame must be
    {"event": "authenticate", "data": {"token": "<jwt_access_token>"}}
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
