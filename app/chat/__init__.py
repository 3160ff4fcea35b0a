"""
Chat app for real-time messaging.

This app handles:
- Direct (1:1) and group chats with role-based membership
- Messages with typed payloads, replies and soft deletion
- Unread counters and read receipts
- Typing presence and emoji reactions
- WebSocket fan-out of chat events to joined rooms

Related apps:
    - authentication: User model for participants
    - notifications: Message and reaction notifications

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the socket protocol and routing.py for its URL.

Usage:
    from chat.broadcast import get_broadcaster
    from chat.commands import ChatCommands
    from chat.services import ConversationService

    chat, created = ConversationService.get_or_create_direct(user, other_user).data
    ChatCommands(get_broadcaster()).send_message(chat, user, content="Hello!")
"""
