"""
Message fan-out.

Persists an outbound message and broadcasts the populated message to the
conversation's room. The sender's own connections receive it through the
same broadcast as everyone else; the send itself has no direct reply on
success.

Ordering:
    A consumer handles one inbound frame at a time, and the broadcast is
    awaited before the next frame is read, so messages from one connection
    reach the room in the order they were sent.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async

from core.services import BaseService, ServiceResult

from chat.constants import ERROR_CODES
from chat.rooms import room_group_name
from chat.serializers import MessageSerializer, SendMessageSerializer, validate_payload
from chat.services import MessageService

if TYPE_CHECKING:
    from core.protocols import ChannelLayer
    from chat.registry import Connection

logger = logging.getLogger(__name__)


@database_sync_to_async
def _populated_payload(message_id) -> dict:
    """Load a message with its display fields and serialize it."""
    message = MessageService.get_populated(message_id)
    return MessageSerializer(message).data


class MessageFanoutEngine(BaseService):
    """
    send_message handling.

    Methods:
        send: Validate, persist and broadcast one message
    """

    def __init__(self, channel_layer: ChannelLayer):
        self.channel_layer = channel_layer

    async def send(self, connection: Connection, payload) -> ServiceResult[dict]:
        """
        Send a message on behalf of a connection's identity.

        Args:
            connection: Originating connection
            payload: {conversationId, text?, image?, video?, audio?, file?, replyTo?}

        Returns:
            ServiceResult with the broadcast message payload

        Error codes:
            UNAUTHENTICATED, VALIDATION_ERROR, EMPTY_MESSAGE,
            CONVERSATION_NOT_FOUND, NOT_A_MEMBER, REPLY_TARGET_NOT_FOUND
        """
        if not connection.is_authenticated:
            return ServiceResult.failure(
                "Authentication required",
                error_code=ERROR_CODES.UNAUTHENTICATED,
            )

        validated = validate_payload(SendMessageSerializer, payload)
        if not validated:
            return validated
        data = validated.data

        result = await database_sync_to_async(MessageService.send_message)(
            conversation_id=data["conversation_id"],
            sender=connection.identity,
            content=data["content"],
            reply_to_id=data["reply_to_id"],
        )
        if not result:
            if result.error_code == ERROR_CODES.NOT_A_MEMBER:
                logger.warning(
                    f"User {connection.identity_id} tried to send to "
                    f"conversation {data['conversation_id']} without being a participant"
                )
            return result

        message = result.data
        message_data = await _populated_payload(message.id)

        await self.channel_layer.group_send(
            room_group_name(message.conversation_id),
            {
                "type": "chat.new_message",
                "message": message_data,
            },
        )
        return ServiceResult.success(message_data)
