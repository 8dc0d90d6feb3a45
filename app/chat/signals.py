"""
Signal handlers for the chat app.

Pushes participation changes to the live connections of the affected
identity, so room membership follows conversations created or left after
the socket authenticated.

Signals handled:
    - post_save on Participant: room.join when a participation becomes
      active, room.leave when it ends

Events are sent after the surrounding transaction commits, so a receiving
consumer's membership re-check sees the new row.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import receiver

from chat.models import Participant
from chat.rooms import identity_group_name

logger = logging.getLogger(__name__)


def notify_participation_change(user_id, conversation_id, event_type: str) -> None:
    """Send room.join / room.leave to every connection of an identity."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    try:
        async_to_sync(channel_layer.group_send)(
            identity_group_name(user_id),
            {
                "type": event_type,
                "conversation_id": str(conversation_id),
            },
        )
    except Exception:
        # Live sockets catch up on their next authenticate
        logger.exception(
            f"Failed to push {event_type} for user {user_id} "
            f"in conversation {conversation_id}"
        )


@receiver(post_save, sender=Participant)
def participant_saved(sender, instance, created, **kwargs):
    """
    Handle participation changes.

    New active rows join the room; rows whose left_at is set leave it.
    """
    if instance.left_at is None:
        if not created:
            return
        event_type = "room.join"
    else:
        event_type = "room.leave"

    user_id = instance.user_id
    conversation_id = instance.conversation_id
    transaction.on_commit(
        lambda: notify_participation_change(user_id, conversation_id, event_type)
    )
