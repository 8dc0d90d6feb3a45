"""
Tests for chat app.

This package contains test modules for:
- test_models.py: Conversation, Participant, Message model tests
- test_services.py: ConversationService, MembershipService, MessageService tests
- test_serializers.py: Payload validation and wire shapes
- test_registry.py: SessionRegistry tests
- test_rooms.py: RoomMembershipManager tests
- test_signals.py: Participation signal tests
- test_consumers.py: WebSocket consumer tests

Usage:
    pytest chat/tests/
    pytest chat/tests/test_consumers.py
"""
