"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Chat, membership and message model tests
- test_payloads.py: Typed message payload parsing
- test_services.py: ConversationService and MessageService tests
- test_unread.py, test_typing.py, test_reactions.py: Read state, presence, reactions
- test_registry.py: Connection registry bookkeeping
- test_events.py: Event builders and the broadcaster
- test_commands.py: Fan-out and notification scheduling
- test_views.py: REST API endpoint tests
- test_consumers.py: WebSocket consumer tests

Usage:
    pytest app/chat/tests/
    pytest app/chat/tests/test_consumers.py
"""
