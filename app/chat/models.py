"""
Chat system models.

This module defines the durable side of the messaging core:
- Private conversations between exactly two users
- Group conversations with an admin subset

Models:
    Conversation: Container for messages between participants
    Participant: User participation in a conversation (the membership authority)
    Message: Individual message within a conversation
    MessageReadReceipt: One entry of a message's read-set

Design Decisions:
    - Participant records are the membership authority consulted by the
      real-time core before every room-scoped action
    - Leaving stamps left_at; rejoining creates a new Participant record
    - Messages are immutable once created; only the read-set grows
    - The read-set is a table of receipts so "add if absent" is a single
      unique-constrained insert and never removes entries
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

if TYPE_CHECKING:
    from authentication.models import User


class ConversationType(models.TextChoices):
    """
    Type of conversation.

    PRIVATE: Exactly two participants, no name, no admins
    GROUP: Any number of participants, optional name/avatar, admin subset
    """

    PRIVATE = "private", "Private"
    GROUP = "group", "Group"


class ParticipantRole(models.TextChoices):
    """
    Role within a group conversation.

    ADMIN: Member of the conversation's admin subset
    MEMBER: Regular participant

    Note: Private conversations do not use roles (role is NULL)
    """

    ADMIN = "admin", "Admin"
    MEMBER = "member", "Member"


class ContentKind(models.TextChoices):
    """Kinds of content a message can carry. At least one is always present."""

    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    VIDEO = "video", "Video"
    AUDIO = "audio", "Audio"
    FILE = "file", "File"


@dataclass(frozen=True)
class MessageContent:
    """
    Validated content of an outbound message.

    Built at the payload boundary (chat.serializers.SendMessageSerializer)
    so the core only ever sees well-formed content. Empty strings and None
    mean "kind absent".

    Usage:
        content = MessageContent(text="hi")
        content.kinds  # ("text",)
    """

    text: str = ""
    image: str = ""
    video: str = ""
    audio: str = ""
    file: dict | None = field(default=None)

    @property
    def kinds(self) -> tuple[str, ...]:
        """Content kinds present, in ContentKind order."""
        return tuple(kind for kind in ContentKind.values if getattr(self, kind))

    @property
    def is_empty(self) -> bool:
        """True when no content kind is present."""
        return not self.kinds

    def as_fields(self) -> dict:
        """Model field values for Message.objects.create()."""
        return {
            "text": self.text,
            "image": self.image,
            "video": self.video,
            "audio": self.audio,
            "file": self.file or None,
        }


class Conversation(UUIDPrimaryKeyMixin, BaseModel):
    """
    A conversation between two or more users.

    Conversation Types:
        PRIVATE: Exactly 2 participants. Creation logic guarantees the
                 count; the real-time core trusts it.
        GROUP: Participants with an optional admin subset. Creator is admin.

    Fields:
        conversation_type: Type of conversation (private or group)
        name: Group name (empty for private)
        avatar: Group avatar reference (empty for private)
        created_by: User who created the conversation
        last_message: Most recent message (for conversation lists)

    Relationships:
        participants: All Participant records for this conversation
        messages: All Message records for this conversation
    """

    conversation_type = models.CharField(
        max_length=10,
        choices=ConversationType.choices,
        default=ConversationType.PRIVATE,
        db_index=True,
        help_text="Type of conversation (private or group)",
    )

    name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Name for group conversations (empty for private)",
    )

    avatar = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Avatar reference for group conversations",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_conversations",
        help_text="User who created this conversation",
    )

    last_message = models.ForeignKey(
        "Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message in this conversation",
    )

    class Meta:
        db_table = "chat_conversation"
        ordering = ["-updated_at"]

    def __str__(self) -> str:
        """Return human-readable representation."""
        if self.conversation_type == ConversationType.PRIVATE:
            return f"Private({self.pk})"
        if self.name:
            return f"Group: {self.name}"
        return f"Group({self.pk})"

    @property
    def is_private(self) -> bool:
        """Check if this is a private (1:1) conversation."""
        return self.conversation_type == ConversationType.PRIVATE

    @property
    def is_group(self) -> bool:
        """Check if this is a group conversation."""
        return self.conversation_type == ConversationType.GROUP

    def get_active_participants(self):
        """Get queryset of participants whose left_at is NULL."""
        return self.participants.filter(left_at__isnull=True)

    def has_participant(self, user_id) -> bool:
        """Check if a user is currently a participant."""
        return self.participants.filter(user_id=user_id, left_at__isnull=True).exists()


class Participant(BaseModel):
    """
    Tracks user participation in conversations.

    Each join creates a NEW Participant record; leaving stamps left_at.
    The active records (left_at IS NULL) form the conversation's
    participant set, and role=ADMIN marks the admin subset.

    Fields:
        conversation: Conversation this participation belongs to
        user: User participating in the conversation
        role: Role in group conversation (NULL for private)
        joined_at: When the user joined
        left_at: When the user left (NULL if still active)

    Constraints:
        - UniqueConstraint(conversation, user) WHERE left_at IS NULL:
          Only one active participation per user per conversation
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="participants",
        help_text="Conversation this participation belongs to",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="conversation_participations",
        help_text="User participating in the conversation",
    )

    role = models.CharField(
        max_length=10,
        choices=ParticipantRole.choices,
        null=True,
        blank=True,
        help_text="Role in group conversation (null for private conversations)",
    )

    joined_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user joined this conversation",
    )

    left_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="When the user left (null if still active)",
    )

    class Meta:
        db_table = "chat_participant"
        ordering = ["joined_at"]
        indexes = [
            # Active participants in a conversation
            models.Index(
                fields=["conversation", "left_at"],
                name="chat_part_conv_active_idx",
            ),
            # User's active conversations (room join on authenticate)
            models.Index(
                fields=["user", "left_at"],
                name="chat_part_user_active_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["conversation", "user"],
                condition=Q(left_at__isnull=True),
                name="unique_active_participation",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        status = "active" if self.is_active else "left"
        role_str = f" ({self.role})" if self.role else ""
        return f"Participant: {self.user_id} in {self.conversation_id}{role_str} [{status}]"

    @property
    def is_active(self) -> bool:
        """Check if this participation is currently active."""
        return self.left_at is None

    @property
    def is_admin(self) -> bool:
        """Check if participant is in the admin subset."""
        return self.role == ParticipantRole.ADMIN


class Message(UUIDPrimaryKeyMixin, BaseModel):
    """
    A message within a conversation.

    Content:
        Any combination of text, image, video, audio and file. At least one
        is set; the service layer rejects empty messages before insert.
        image/video/audio hold media references, file holds
        {"url", "name", "size", "type"}.

    Threading:
        reply_to references another message of the same conversation.

    Fields:
        conversation: Conversation this message belongs to
        sender: User who sent the message
        text, image, video, audio, file: Content kinds
        reply_to: Message this one replies to (optional)

    Relationships:
        read_receipts: The read-set (always includes the sender)
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Conversation this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="User who sent this message",
    )

    text = models.TextField(
        blank=True,
        default="",
        help_text="Text content",
    )

    image = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Image reference",
    )

    video = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Video reference",
    )

    audio = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Audio reference",
    )

    file = models.JSONField(
        null=True,
        blank=True,
        help_text="File attachment: {url, name, size, type}",
    )

    reply_to = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="replies",
        help_text="Message this one replies to",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            # Messages in a conversation (history pagination)
            models.Index(
                fields=["conversation", "created_at"],
                name="chat_msg_conv_created_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        preview = self.text[:50] + "..." if len(self.text) > 50 else self.text
        kinds = ",".join(self.content_kinds)
        return f"User {self.sender_id}: {preview or kinds}"

    @property
    def content_kinds(self) -> list[str]:
        """Content kinds present on this message, in ContentKind order."""
        return [kind for kind in ContentKind.values if getattr(self, kind)]

    @property
    def is_reply(self) -> bool:
        """Check if this message replies to another message."""
        return self.reply_to_id is not None

    def is_read_by(self, user: User) -> bool:
        """Check if a user is in this message's read-set."""
        return self.read_receipts.filter(user=user).exists()


class MessageReadReceipt(models.Model):
    """
    One entry of a message's read-set.

    Entries are only ever inserted. The unique constraint makes marking a
    message read idempotent: a second insert for the same (message, user)
    is a no-op.

    Fields:
        message: Message that was read
        user: User who read it
        read_at: When the receipt was recorded
    """

    message = models.ForeignKey(
        Message,
        on_delete=models.CASCADE,
        related_name="read_receipts",
        help_text="Message that was read",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="read_receipts",
        help_text="User who read the message",
    )

    read_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user read the message",
    )

    class Meta:
        db_table = "chat_message_read_receipt"
        ordering = ["read_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_message_read_receipt",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        return f"Read({self.message_id} by {self.user_id})"
