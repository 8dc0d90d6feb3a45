"""
Protocol definitions for infrastructure the real-time components talk to.

Available Protocols:
    ChannelLayer: The subset of the Channels layer API used for group fan-out

Usage:
    from core.protocols import ChannelLayer

    class RoomMembershipManager:
        def __init__(self, channel_layer: ChannelLayer):
            self.channel_layer = channel_layer

    # channels.layers.InMemoryChannelLayer and channels_redis'
    # RedisChannelLayer both satisfy it without inheritance.

Note:
    - Protocols are for type checking only; layers satisfy them structurally
"""

from __future__ import annotations

from typing import Protocol


class ChannelLayer(Protocol):
    """
    Protocol for channel-layer group operations.

    Group names may contain only ASCII letters, digits, hyphens, underscores
    and periods, and must be shorter than 100 characters.
    """

    async def group_add(self, group: str, channel: str) -> None:
        """Subscribe a channel to a group."""
        ...

    async def group_discard(self, group: str, channel: str) -> None:
        """Unsubscribe a channel from a group. No-op if not subscribed."""
        ...

    async def group_send(self, group: str, message: dict) -> None:
        """
        Deliver a message to every channel in a group.

        The message "type" names the consumer method that handles it,
        with dots replaced by underscores.
        """
        ...
