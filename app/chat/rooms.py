"""
Room membership for live connections.

A room is the channel-layer group bound to a conversation id. Room
membership is connection-scoped: it is rebuilt from the participant table
on every authenticate and is never carried across reconnects.

Group names:
    chat_<conversation_id>   one per conversation (room)
    user_<identity_id>       every connection of one identity, used to push
                             room.join / room.leave when participation changes
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from django.db import DatabaseError

from core.services import BaseService, ServiceResult

from chat.constants import ERROR_CODES, REALTIME_CONFIG
from chat.services import MembershipService

if TYPE_CHECKING:
    from core.protocols import ChannelLayer
    from chat.registry import Connection

logger = logging.getLogger(__name__)


def room_group_name(conversation_id) -> str:
    """Channel-layer group of a conversation."""
    return f"{REALTIME_CONFIG.ROOM_GROUP_PREFIX}_{conversation_id}"


def identity_group_name(identity_id) -> str:
    """Channel-layer group holding every connection of one identity."""
    return f"{REALTIME_CONFIG.IDENTITY_GROUP_PREFIX}_{identity_id}"


class RoomMembershipManager(BaseService):
    """
    Joins connections to the rooms of the conversations their identity
    participates in.

    Methods:
        join_all_conversations: Rebuild room membership after authenticate
        join: Join one room after a membership check
        leave: Leave one room
        leave_all: Leave every room and the identity group
        is_member: Fail-closed participant check
    """

    def __init__(self, channel_layer: ChannelLayer):
        self.channel_layer = channel_layer

    async def join_all_conversations(self, connection: Connection) -> list:
        """
        Join the connection to a room per conversation of its identity.

        The identity group is joined before the participant query, so a
        participation committed while the query runs still reaches this
        connection as a room.join push.

        Returns:
            Conversation ids whose rooms were joined
        """
        identity_id = connection.identity_id
        identity_group = identity_group_name(identity_id)
        await self.channel_layer.group_add(identity_group, connection.channel_name)

        conversation_ids = await database_sync_to_async(
            MembershipService.conversation_ids_for
        )(identity_id)

        if connection.is_closed:
            await self.channel_layer.group_discard(identity_group, connection.channel_name)
            return []

        for conversation_id in conversation_ids:
            await self._add(connection, conversation_id)

        self.get_logger().info(
            f"User {identity_id} joined {len(conversation_ids)} rooms "
            f"on {connection.channel_name}"
        )
        return conversation_ids

    async def join(self, connection: Connection, conversation_id) -> ServiceResult:
        """
        Join one room.

        Error codes:
            UNAUTHENTICATED: Connection has no identity
            NOT_A_MEMBER: Identity is not a participant (or lookup failed)
        """
        if not connection.is_authenticated:
            return ServiceResult.failure(
                "Authentication required",
                error_code=ERROR_CODES.UNAUTHENTICATED,
            )

        if not await self.is_member(connection.identity_id, conversation_id):
            logger.warning(
                f"User {connection.identity_id} tried to join "
                f"conversation {conversation_id} without being a participant"
            )
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code=ERROR_CODES.NOT_A_MEMBER,
            )

        if connection.is_closed:
            return ServiceResult.success(None)

        await self._add(connection, conversation_id)
        return ServiceResult.success(room_group_name(conversation_id))

    async def leave(self, connection: Connection, conversation_id) -> None:
        group = room_group_name(conversation_id)
        connection.rooms.discard(group)
        await self.channel_layer.group_discard(group, connection.channel_name)

    async def leave_all(self, connection: Connection) -> None:
        """Discard every group the connection holds. Safe on closed connections."""
        for group in sorted(connection.rooms):
            await self.channel_layer.group_discard(group, connection.channel_name)
        connection.rooms.clear()

        if connection.identity_id is not None:
            await self.channel_layer.group_discard(
                identity_group_name(connection.identity_id),
                connection.channel_name,
            )

    async def is_member(self, identity_id, conversation_id) -> bool:
        """
        Check participation, treating a store failure as "not a member".
        """
        try:
            return await database_sync_to_async(MembershipService.is_member)(
                identity_id, conversation_id
            )
        except DatabaseError:
            logger.exception(
                f"Membership lookup failed for user {identity_id} "
                f"in conversation {conversation_id}"
            )
            return False

    async def _add(self, connection: Connection, conversation_id) -> None:
        group = room_group_name(conversation_id)
        await self.channel_layer.group_add(group, connection.channel_name)
        connection.rooms.add(group)
