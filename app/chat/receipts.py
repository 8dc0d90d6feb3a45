"""
Read-receipt tracking.

Adds the reading identity to a message's read-set and tells the room. The
read-set only grows; a repeated mark is a no-op with no broadcast.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async

from core.services import BaseService, ServiceResult

from chat.constants import ERROR_CODES
from chat.rooms import room_group_name
from chat.serializers import MarkReadSerializer, validate_payload
from chat.services import MessageService

if TYPE_CHECKING:
    from core.protocols import ChannelLayer
    from chat.registry import Connection

logger = logging.getLogger(__name__)


class ReadReceiptTracker(BaseService):
    """mark_as_read handling."""

    def __init__(self, channel_layer: ChannelLayer):
        self.channel_layer = channel_layer

    async def mark_read(self, connection: Connection, payload) -> ServiceResult[dict]:
        """
        Mark a message read by the connection's identity.

        Args:
            connection: Originating connection
            payload: {messageId}

        Returns:
            ServiceResult with {"messageId", "userId", "created"}

        Error codes:
            UNAUTHENTICATED, VALIDATION_ERROR, MESSAGE_NOT_FOUND, NOT_A_MEMBER
        """
        if not connection.is_authenticated:
            return ServiceResult.failure(
                "Authentication required",
                error_code=ERROR_CODES.UNAUTHENTICATED,
            )

        validated = validate_payload(MarkReadSerializer, payload)
        if not validated:
            return validated
        message_id = validated.data["message_id"]

        result = await database_sync_to_async(MessageService.mark_as_read)(
            message_id, connection.identity
        )
        if not result:
            if result.error_code == ERROR_CODES.NOT_A_MEMBER:
                logger.warning(
                    f"User {connection.identity_id} tried to read message "
                    f"{message_id} without being a participant"
                )
            return result

        outcome = result.data
        receipt = {
            "messageId": str(outcome.message.id),
            "userId": str(connection.identity_id),
        }
        if outcome.created:
            await self.channel_layer.group_send(
                room_group_name(outcome.message.conversation_id),
                {
                    "type": "chat.message_read",
                    "receipt": receipt,
                },
            )

        return ServiceResult.success({**receipt, "created": outcome.created})
