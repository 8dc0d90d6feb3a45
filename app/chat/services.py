"""
Chat system service layer.

This module provides the store-side business logic behind the messaging core.
Everything here is synchronous ORM code; the async real-time components
(chat.rooms, chat.fanout, chat.receipts) call it through
channels.db.database_sync_to_async.

Services:
    ConversationService: Conversation creation and participant changes
    MembershipService: Participant-set queries used for authorization
    MessageService: Message creation, read receipts, message loading

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Unexpected failures raise exceptions
    - Message creation, its sender receipt and the conversation's
      last_message update share one transaction

Usage:
    from chat.services import MessageService
    from chat.models import MessageContent

    result = MessageService.send_message(
        conversation_id=conversation.id,
        sender=user,
        content=MessageContent(text="Hello everyone!"),
    )
    if result.success:
        message = result.data
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService, ServiceResult

from chat.constants import ERROR_CODES
from chat.models import (
    Conversation,
    ConversationType,
    Message,
    MessageContent,
    MessageReadReceipt,
    Participant,
    ParticipantRole,
)

if TYPE_CHECKING:
    from authentication.models import User


# =============================================================================
# ConversationService
# =============================================================================


class ConversationService(BaseService):
    """
    Service for conversation creation and membership changes.

    Conversation management is owned by the account/CRUD side of the product;
    these methods exist so that side (and tests) create conversations that
    satisfy the invariants the real-time core trusts. Participant changes
    made here are pushed to live connections by chat.signals.

    Methods:
        get_or_create_private: Find or create the private chat of two users
        create_group: Create a group conversation
        add_participant: Add a user to a group
        remove_participant: End a user's participation
    """

    @classmethod
    def get_or_create_private(
        cls,
        user: User,
        other: User,
    ) -> ServiceResult[Conversation]:
        """
        Get the private conversation between two users, creating it if needed.

        Private conversations are unique per user pair and always have
        exactly two participants.

        Args:
            user: Requesting user
            other: The other participant

        Returns:
            ServiceResult with Conversation (existing or new)

        Error codes:
            VALIDATION_ERROR: Cannot create a private conversation with yourself
        """
        if user.id == other.id:
            return ServiceResult.failure(
                "Cannot create a private conversation with yourself",
                error_code=ERROR_CODES.VALIDATION_ERROR,
            )

        existing = (
            Conversation.objects.filter(
                conversation_type=ConversationType.PRIVATE,
                participants__user=user,
                participants__left_at__isnull=True,
            )
            .filter(
                participants__user=other,
                participants__left_at__isnull=True,
            )
            .first()
        )
        if existing:
            return ServiceResult.success(existing)

        with cls.atomic():
            conversation = Conversation.objects.create(
                conversation_type=ConversationType.PRIVATE,
                created_by=user,
            )
            Participant.objects.create(conversation=conversation, user=user)
            Participant.objects.create(conversation=conversation, user=other)

        cls.get_logger().info(
            f"Created private conversation {conversation.id} "
            f"between users {user.id} and {other.id}"
        )
        return ServiceResult.success(conversation)

    @classmethod
    def create_group(
        cls,
        creator: User,
        name: str,
        participants: list[User],
        avatar: str = "",
    ) -> ServiceResult[Conversation]:
        """
        Create a group conversation.

        The creator is always a participant and becomes admin. Duplicate
        participants are collapsed.

        Args:
            creator: User creating the group (becomes admin)
            name: Required group name
            participants: Other users to add as members
            avatar: Optional group avatar reference

        Returns:
            ServiceResult with new Conversation

        Error codes:
            VALIDATION_ERROR: Empty name or no other participants
        """
        name = name.strip() if name else ""
        if not name:
            return ServiceResult.failure(
                "Group name is required",
                error_code=ERROR_CODES.VALIDATION_ERROR,
            )

        members = {}
        for member in participants or []:
            if member.id != creator.id:
                members[member.id] = member
        if not members:
            return ServiceResult.failure(
                "A group needs at least one other participant",
                error_code=ERROR_CODES.VALIDATION_ERROR,
            )

        with cls.atomic():
            conversation = Conversation.objects.create(
                conversation_type=ConversationType.GROUP,
                name=name,
                avatar=avatar or "",
                created_by=creator,
            )
            Participant.objects.create(
                conversation=conversation,
                user=creator,
                role=ParticipantRole.ADMIN,
            )
            for member in members.values():
                Participant.objects.create(
                    conversation=conversation,
                    user=member,
                    role=ParticipantRole.MEMBER,
                )

        cls.get_logger().info(
            f"Created group conversation {conversation.id} "
            f"'{name}' with {1 + len(members)} participants"
        )
        return ServiceResult.success(conversation)

    @classmethod
    def add_participant(
        cls,
        conversation: Conversation,
        user: User,
        role: str = ParticipantRole.MEMBER,
    ) -> ServiceResult[Participant]:
        """
        Add a user to a group conversation.

        Error codes:
            VALIDATION_ERROR: Private conversation or user already active
        """
        if conversation.is_private:
            return ServiceResult.failure(
                "Private conversations have a fixed participant set",
                error_code=ERROR_CODES.VALIDATION_ERROR,
            )
        if conversation.has_participant(user.id):
            return ServiceResult.failure(
                "User is already a participant",
                error_code=ERROR_CODES.VALIDATION_ERROR,
            )

        participant = Participant.objects.create(
            conversation=conversation,
            user=user,
            role=role,
        )
        cls.get_logger().info(
            f"Added user {user.id} to conversation {conversation.id}"
        )
        return ServiceResult.success(participant)

    @classmethod
    def remove_participant(
        cls,
        conversation: Conversation,
        user: User,
    ) -> ServiceResult[Participant]:
        """
        End a user's active participation.

        Error codes:
            NOT_A_MEMBER: User is not an active participant
        """
        participant = conversation.get_active_participants().filter(user=user).first()
        if participant is None:
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code=ERROR_CODES.NOT_A_MEMBER,
            )

        participant.left_at = timezone.now()
        participant.save(update_fields=["left_at", "updated_at"])

        cls.get_logger().info(
            f"Removed user {user.id} from conversation {conversation.id}"
        )
        return ServiceResult.success(participant)


# =============================================================================
# MembershipService
# =============================================================================


class MembershipService(BaseService):
    """
    Participant-set queries.

    These raise on store failure; callers that must fail closed
    (chat.rooms.RoomMembershipManager.is_member) catch and deny.
    """

    @staticmethod
    def conversation_ids_for(user_id) -> list:
        """Ids of every conversation the user currently participates in."""
        return list(
            Participant.objects.filter(
                user_id=user_id,
                left_at__isnull=True,
            )
            .order_by("joined_at")
            .values_list("conversation_id", flat=True)
        )

    @staticmethod
    def is_member(user_id, conversation_id) -> bool:
        """Check if the user is an active participant of the conversation."""
        return Participant.objects.filter(
            conversation_id=conversation_id,
            user_id=user_id,
            left_at__isnull=True,
        ).exists()


# =============================================================================
# MessageService
# =============================================================================


@dataclass
class ReadReceiptOutcome:
    """Result of marking a message read."""

    message: Message
    created: bool


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        send_message: Persist a message and its sender receipt
        mark_as_read: Add a user to a message's read-set
        get_populated: Load a message with sender, reply target and read-set
    """

    @classmethod
    def send_message(
        cls,
        conversation_id,
        sender: User,
        content: MessageContent,
        reply_to_id=None,
    ) -> ServiceResult[Message]:
        """
        Send a message to a conversation.

        The new message starts with a read-set of exactly {sender} and
        becomes the conversation's last_message.

        Args:
            conversation_id: Target conversation id
            sender: User sending the message
            content: Validated message content
            reply_to_id: Optional id of a message in the same conversation

        Returns:
            ServiceResult with new Message

        Error codes:
            CONVERSATION_NOT_FOUND: No conversation with this id
            NOT_A_MEMBER: Sender is not an active participant
            EMPTY_MESSAGE: No content kind present
            REPLY_TARGET_NOT_FOUND: reply_to is not a message of this conversation
        """
        conversation = Conversation.objects.filter(id=conversation_id).first()
        if conversation is None:
            return ServiceResult.failure(
                "Conversation does not exist",
                error_code=ERROR_CODES.CONVERSATION_NOT_FOUND,
            )

        if not MembershipService.is_member(sender.id, conversation.id):
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code=ERROR_CODES.NOT_A_MEMBER,
            )

        if content.is_empty:
            return ServiceResult.failure(
                "Message must contain text, image, video, audio or file",
                error_code=ERROR_CODES.EMPTY_MESSAGE,
            )

        reply_to = None
        if reply_to_id:
            reply_to = Message.objects.filter(
                id=reply_to_id,
                conversation=conversation,
            ).first()
            if reply_to is None:
                return ServiceResult.failure(
                    "Reply target not found in this conversation",
                    error_code=ERROR_CODES.REPLY_TARGET_NOT_FOUND,
                )

        with cls.atomic():
            message = Message.objects.create(
                conversation=conversation,
                sender=sender,
                reply_to=reply_to,
                **content.as_fields(),
            )
            MessageReadReceipt.objects.create(message=message, user=sender)

            conversation.last_message = message
            conversation.save(update_fields=["last_message", "updated_at"])

        cls.get_logger().debug(
            f"User {sender.id} sent message {message.id} "
            f"({','.join(content.kinds)}) to conversation {conversation.id}"
        )
        return ServiceResult.success(message)

    @classmethod
    def mark_as_read(
        cls,
        message_id,
        user: User,
    ) -> ServiceResult[ReadReceiptOutcome]:
        """
        Add a user to a message's read-set.

        Idempotent: when the user is already in the read-set nothing is
        written and the outcome reports created=False.

        Args:
            message_id: Message to mark read
            user: User who read it

        Returns:
            ServiceResult with ReadReceiptOutcome

        Error codes:
            MESSAGE_NOT_FOUND: No message with this id
            NOT_A_MEMBER: User is not an active participant of its conversation
        """
        message = Message.objects.filter(id=message_id).first()
        if message is None:
            return ServiceResult.failure(
                "Message does not exist",
                error_code=ERROR_CODES.MESSAGE_NOT_FOUND,
            )

        if not MembershipService.is_member(user.id, message.conversation_id):
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code=ERROR_CODES.NOT_A_MEMBER,
            )

        _, created = MessageReadReceipt.objects.get_or_create(
            message=message,
            user=user,
        )

        if created:
            cls.get_logger().debug(f"User {user.id} read message {message.id}")
        return ServiceResult.success(ReadReceiptOutcome(message=message, created=created))

    @staticmethod
    def get_populated(message_id) -> Message:
        """
        Load a message with everything its broadcast form needs.

        Raises:
            Message.DoesNotExist: If the message is gone
        """
        return (
            Message.objects.select_related(
                "sender",
                "reply_to",
                "reply_to__sender",
            )
            .prefetch_related("read_receipts")
            .get(id=message_id)
        )
