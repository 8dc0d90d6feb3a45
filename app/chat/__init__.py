"""
Chat app for real-time messaging.

This app handles:
- Conversations (private and group) and their participants
- Message sending over a persistent WebSocket
- Read receipts, typing indicators and presence

Related apps:
    - authentication: User model (identity) and token verification

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the socket handler.
    See routing.py for WebSocket URL patterns.

Usage:
    from chat.models import MessageContent
    from chat.services import ConversationService, MessageService

    # Create conversation
    conversation = ConversationService.get_or_create_private(user, other_user).data

    # Send message (live sockets receive it through chat.fanout)
    result = MessageService.send_message(
        conversation_id=conversation.id,
        sender=user,
        content=MessageContent(text="Hello!"),
    )
"""
