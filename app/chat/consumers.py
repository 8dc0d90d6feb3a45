"""
WebSocket consumer for the real-time messaging core.

One ChatConsumer instance serves one socket. It owns no chat logic itself:
inbound frames are dispatched to the session registry and the four
real-time components, and group events from the channel layer are relayed
to the client.

Frames (both directions):
    {"type": <event>, "data": <payload>}

Client events:
    - authenticate: token string (or {"token": ...})
    - send_message: {conversationId, text?, image?, video?, audio?, file?, replyTo?}
    - mark_as_read: {messageId}
    - typing / stop_typing: {conversationId}
    - join_conversation: {conversationId}

Server events:
    - authenticated: {userId, user}
    - new_message: populated message
    - message_read: {messageId, userId}
    - user_typing / user_stop_typing: {userId, conversationId}
    - user_status_change: {userId, status, lastSeen}
    - error / auth_error: {message, code}

Channel Groups:
    chat_<conversation_id>: one per conversation the identity participates in
    user_<identity_id>: every connection of the identity
    presence: every authenticated connection

Failures are reported to the originating connection only and never close
the socket.
"""

from __future__ import annotations

import logging

from django.apps import apps
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from core.services import ServiceResult

from chat.constants import (
    CLIENT_EVENTS,
    ERROR_CATEGORIES,
    ERROR_CODES,
    SERVER_EVENTS,
)
from chat.fanout import MessageFanoutEngine
from chat.presence import TypingPresenceBroadcaster
from chat.receipts import ReadReceiptTracker
from chat.registry import Connection
from chat.rooms import RoomMembershipManager
from chat.serializers import ConversationRefSerializer, IdentitySerializer, validate_payload

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat.

    Handles:
        - Token authentication over the open socket
        - Room membership for every conversation of the identity
        - Message send, read receipts and typing indicators
        - Global presence notifications

    Attributes:
        connection: Registry entry for this socket
        registry: Process-wide SessionRegistry
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.connection: Connection | None = None
        self.registry = None
        self.handlers = {
            CLIENT_EVENTS.AUTHENTICATE: self.handle_authenticate,
            CLIENT_EVENTS.SEND_MESSAGE: self.handle_send_message,
            CLIENT_EVENTS.MARK_AS_READ: self.handle_mark_as_read,
            CLIENT_EVENTS.TYPING: self.handle_typing,
            CLIENT_EVENTS.STOP_TYPING: self.handle_stop_typing,
            CLIENT_EVENTS.JOIN_CONVERSATION: self.handle_join_conversation,
        }

    async def connect(self):
        """Accept the socket as an unauthenticated connection."""
        self.registry = apps.get_app_config("chat").session_registry
        self.rooms = RoomMembershipManager(self.channel_layer)
        self.fanout = MessageFanoutEngine(self.channel_layer)
        self.receipts = ReadReceiptTracker(self.channel_layer)
        self.presence = TypingPresenceBroadcaster(self.channel_layer)

        self.connection = self.registry.open(self.channel_name)
        await self.accept()
        logger.info(f"Connection opened: {self.channel_name}")

    async def disconnect(self, close_code):
        """
        Close the connection.

        Leaves every group, and when this was the identity's last live
        connection, broadcasts exactly one offline status change.
        """
        connection = self.connection
        if connection is None or connection.is_closed:
            return

        went_offline = await self.registry.on_disconnect(connection)

        await self.rooms.leave_all(connection)
        await self.presence.unsubscribe(connection)

        if went_offline is not None:
            await self.presence.broadcast_presence(went_offline)

        logger.info(
            f"Connection closed: {self.channel_name} "
            f"(user {connection.identity_id or 'anonymous'}, code {close_code})"
        )

    # =========================================================================
    # Inbound frames
    # =========================================================================

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        """Decode a text frame, reporting undecodable frames instead of closing."""
        if text_data is None:
            await self.send_failure(
                ServiceResult.failure(
                    "Frames must be JSON text",
                    error_code=ERROR_CODES.MALFORMED_FRAME,
                )
            )
            return

        try:
            content = await self.decode_json(text_data)
        except ValueError:
            await self.send_failure(
                ServiceResult.failure(
                    "Frame is not valid JSON",
                    error_code=ERROR_CODES.MALFORMED_FRAME,
                )
            )
            return

        await self.receive_json(content, **kwargs)

    async def receive_json(self, content, **kwargs):
        """
        Dispatch one client frame.

        Expected frame format:
            {"type": "send_message", "data": {"conversationId": "...", "text": "hi"}}
        """
        if not isinstance(content, dict) or not isinstance(content.get("type"), str):
            await self.send_failure(
                ServiceResult.failure(
                    "Frame must be an object with a type",
                    error_code=ERROR_CODES.MALFORMED_FRAME,
                )
            )
            return

        event = content["type"]
        handler = self.handlers.get(event)
        if handler is None:
            await self.send_failure(
                ServiceResult.failure(
                    f"Unknown event type: {event}",
                    error_code=ERROR_CODES.UNKNOWN_EVENT,
                )
            )
            return

        try:
            result = await handler(content.get("data"))
        except Exception as exc:
            result = self.registry.handle_exception(
                exc,
                context=f"{event} event",
                error_code=ERROR_CODES.STORE_ERROR,
            )

        if result is not None and not result.success:
            await self.send_failure(result)

    async def handle_authenticate(self, data) -> ServiceResult:
        token = data.get("token") if isinstance(data, dict) else data
        result = await self.registry.authenticate(self.connection, token)
        if not result:
            logger.info(
                f"Authentication failed on {self.channel_name}: {result.error_code}"
            )
            return result

        user = result.data
        try:
            await self.rooms.join_all_conversations(self.connection)
            await self.presence.subscribe(self.connection)
        except Exception:
            # Leave nothing half-joined so the client can authenticate again
            await self.rooms.leave_all(self.connection)
            await self.presence.unsubscribe(self.connection)
            await self.registry.release(self.connection)
            raise

        await self.send_event(
            SERVER_EVENTS.AUTHENTICATED,
            {
                "userId": str(user.id),
                "user": IdentitySerializer(user).data,
            },
        )
        await self.presence.broadcast_presence(user, origin=self.channel_name)
        return result

    async def handle_send_message(self, data) -> ServiceResult:
        return await self.fanout.send(self.connection, data)

    async def handle_mark_as_read(self, data) -> ServiceResult:
        return await self.receipts.mark_read(self.connection, data)

    async def handle_typing(self, data) -> ServiceResult | None:
        return await self.presence.start_typing(self.connection, data)

    async def handle_stop_typing(self, data) -> ServiceResult | None:
        return await self.presence.stop_typing(self.connection, data)

    async def handle_join_conversation(self, data) -> ServiceResult:
        if not self.connection.is_authenticated:
            return ServiceResult.failure(
                "Authentication required",
                error_code=ERROR_CODES.UNAUTHENTICATED,
            )
        validated = validate_payload(ConversationRefSerializer, data)
        if not validated:
            return validated
        return await self.rooms.join(self.connection, validated.data["conversation_id"])

    # =========================================================================
    # Channel layer events
    # =========================================================================

    async def chat_new_message(self, event):
        """Relay chat.new_message to the client."""
        await self.send_event(SERVER_EVENTS.NEW_MESSAGE, event["message"])

    async def chat_message_read(self, event):
        """Relay chat.message_read to the client."""
        await self.send_event(SERVER_EVENTS.MESSAGE_READ, event["receipt"])

    async def chat_typing(self, event):
        """Relay chat.typing to every connection except the one typing."""
        if event.get("origin") == self.channel_name:
            return

        await self.send_event(
            event["event"],
            {
                "userId": event["user_id"],
                "conversationId": event["conversation_id"],
            },
        )

    async def presence_status_change(self, event):
        """Relay presence.status_change to every authenticated peer."""
        if event.get("origin") == self.channel_name:
            return
        if self.connection is None or not self.connection.is_authenticated:
            return

        await self.send_event(
            SERVER_EVENTS.USER_STATUS_CHANGE,
            {
                "userId": event["user_id"],
                "status": event["status"],
                "lastSeen": event["last_seen"],
            },
        )

    async def room_join(self, event):
        """A participation of this identity became active."""
        if self.connection is None or not self.connection.is_authenticated:
            return
        result = await self.rooms.join(self.connection, event["conversation_id"])
        if not result:
            logger.debug(
                f"Skipped room join for {event['conversation_id']}: {result.error_code}"
            )

    async def room_leave(self, event):
        """A participation of this identity ended."""
        if self.connection is None or self.connection.is_closed:
            return
        await self.rooms.leave(self.connection, event["conversation_id"])

    # =========================================================================
    # Outbound frames
    # =========================================================================

    async def send_event(self, event_type: str, data) -> None:
        """Send one frame. A no-op once the connection is closed."""
        if self.connection is None or self.connection.is_closed:
            return
        await self.send_json({"type": event_type, "data": data})

    async def send_failure(self, result: ServiceResult) -> None:
        """Report a failed result to this connection only."""
        if ERROR_CATEGORIES.of(result.error_code) == ERROR_CATEGORIES.AUTH:
            event_type = SERVER_EVENTS.AUTH_ERROR
        else:
            event_type = SERVER_EVENTS.ERROR

        await self.send_event(
            event_type,
            {
                "message": result.error,
                "code": result.error_code,
            },
        )
