"""
Typing and presence signals.

Both are ephemeral: nothing is persisted, nothing is retried, and a signal
lost with a dropped connection is gone. Typing is room-scoped, presence is
global (every authenticated connection subscribes to the presence group).
Neither echoes back to the connection that caused it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult

from chat.constants import ERROR_CODES, REALTIME_CONFIG, SERVER_EVENTS
from chat.rooms import room_group_name
from chat.serializers import ConversationRefSerializer, validate_payload

if TYPE_CHECKING:
    from core.protocols import ChannelLayer
    from authentication.models import User
    from chat.registry import Connection

logger = logging.getLogger(__name__)


class TypingPresenceBroadcaster(BaseService):
    """
    Fire-and-forget typing and presence broadcasts.

    Typing checks use the connection's joined rooms (already membership
    checked at join time), so they never touch the database.

    Methods:
        start_typing / stop_typing: Room-scoped typing indicators
        subscribe / unsubscribe: Presence group membership
        broadcast_presence: Global online/offline notification
    """

    def __init__(self, channel_layer: ChannelLayer):
        self.channel_layer = channel_layer

    async def start_typing(self, connection: Connection, payload) -> ServiceResult | None:
        return await self._typing(connection, payload, SERVER_EVENTS.USER_TYPING)

    async def stop_typing(self, connection: Connection, payload) -> ServiceResult | None:
        return await self._typing(connection, payload, SERVER_EVENTS.USER_STOP_TYPING)

    async def _typing(self, connection: Connection, payload, event: str) -> ServiceResult | None:
        """
        Forward a typing signal to the rest of the room.

        Returns:
            None when ignored (unauthenticated), otherwise a ServiceResult

        Error codes:
            VALIDATION_ERROR: Payload does not name a conversation
            NOT_A_MEMBER: Connection has not joined that conversation's room
        """
        if not connection.is_authenticated:
            return None

        validated = validate_payload(ConversationRefSerializer, payload)
        if not validated:
            return validated
        conversation_id = validated.data["conversation_id"]

        group = room_group_name(conversation_id)
        if group not in connection.rooms:
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code=ERROR_CODES.NOT_A_MEMBER,
            )

        await self.channel_layer.group_send(
            group,
            {
                "type": "chat.typing",
                "event": event,
                "user_id": str(connection.identity_id),
                "conversation_id": str(conversation_id),
                "origin": connection.channel_name,
            },
        )
        return ServiceResult.success(None)

    async def subscribe(self, connection: Connection) -> None:
        await self.channel_layer.group_add(
            REALTIME_CONFIG.PRESENCE_GROUP,
            connection.channel_name,
        )

    async def unsubscribe(self, connection: Connection) -> None:
        await self.channel_layer.group_discard(
            REALTIME_CONFIG.PRESENCE_GROUP,
            connection.channel_name,
        )

    async def broadcast_presence(self, user: User, origin: str | None = None) -> None:
        """
        Tell every other connected peer about a presence change.

        Args:
            user: Identity with status/last_seen already updated
            origin: Channel name to exclude (the connection that caused it)
        """
        await self.channel_layer.group_send(
            REALTIME_CONFIG.PRESENCE_GROUP,
            {
                "type": "presence.status_change",
                "user_id": str(user.id),
                "status": str(user.status),
                "last_seen": user.last_seen.isoformat() if user.last_seen else None,
                "origin": origin,
            },
        )
        self.get_logger().debug(f"Broadcast presence {user.status} for {user.id}")
