"""
Serializers for the real-time chat protocol.

This module validates inbound event payloads at the socket boundary and
renders outbound payloads. Wire keys are camelCase; model attributes stay
snake_case through `source=`.

Serializer Hierarchy:
    Inbound:
        SendMessageSerializer: send_message payload, produces MessageContent
        MarkReadSerializer: mark_as_read payload
        ConversationRefSerializer: typing, stop_typing, join_conversation

    Outbound:
        UserSummarySerializer: Sender / reply author display fields
        IdentitySerializer: Authenticated identity (adds presence)
        ReplyPreviewSerializer: Resolved reply target
        MessageSerializer: Fully populated message for new_message

Design Decisions:
    - Read and write serializers are separate for clarity
    - Whitespace-only content is trimmed to empty, then rejected as empty
    - Failures are converted to ServiceResult so consumers report every
      failure the same way
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import serializers
from rest_framework.settings import api_settings

from core.services import ServiceResult

from chat.constants import ERROR_CODES, REALTIME_CONFIG
from chat.models import MessageContent

if TYPE_CHECKING:
    from chat.models import Message


# =============================================================================
# Helper Functions
# =============================================================================


def _first_error(errors) -> str:
    """Pull the first human-readable message out of a nested errors structure."""
    if isinstance(errors, dict):
        for field_name, value in errors.items():
            message = _first_error(value)
            if field_name == api_settings.NON_FIELD_ERRORS_KEY:
                return message
            return f"{field_name}: {message}"
    if isinstance(errors, list) and errors:
        return _first_error(errors[0])
    return str(errors)


def validation_failure(serializer: serializers.Serializer) -> ServiceResult:
    """
    Convert a failed serializer into a ServiceResult.

    Empty content maps to EMPTY_MESSAGE, everything else to VALIDATION_ERROR.

    Args:
        serializer: Serializer whose is_valid() returned False

    Returns:
        ServiceResult failure with field-level errors attached
    """
    errors = serializer.errors
    non_field = errors.get(api_settings.NON_FIELD_ERRORS_KEY, [])
    if any(getattr(detail, "code", None) == "empty_message" for detail in non_field):
        error_code = ERROR_CODES.EMPTY_MESSAGE
    else:
        error_code = ERROR_CODES.VALIDATION_ERROR

    return ServiceResult.failure(
        _first_error(errors),
        error_code=error_code,
        errors=errors,
    )


def validate_payload(serializer_class, data) -> ServiceResult[dict]:
    """
    Run a payload through an inbound serializer.

    Non-object payloads are rejected before field validation.

    Returns:
        ServiceResult with validated_data (model-side keys)
    """
    if not isinstance(data, dict):
        return ServiceResult.failure(
            "Payload must be an object",
            error_code=ERROR_CODES.VALIDATION_ERROR,
        )

    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        return validation_failure(serializer)
    return ServiceResult.success(serializer.validated_data)


# =============================================================================
# Inbound Serializers
# =============================================================================


class FileAttachmentSerializer(serializers.Serializer):
    """File content kind: {url, name, size, type}."""

    url = serializers.CharField(max_length=REALTIME_CONFIG.MAX_REFERENCE_LENGTH)
    name = serializers.CharField(max_length=255)
    size = serializers.IntegerField(min_value=0, required=False)
    type = serializers.CharField(max_length=100, required=False, allow_blank=True)


class SendMessageSerializer(serializers.Serializer):
    """
    send_message payload.

    Every content kind is optional, but at least one must be present after
    trimming. On success validated_data carries:
        conversation_id: UUID
        content: MessageContent
        reply_to_id: UUID or None
    """

    conversationId = serializers.UUIDField(source="conversation_id")
    text = serializers.CharField(
        max_length=REALTIME_CONFIG.MAX_TEXT_LENGTH,
        required=False,
        allow_blank=True,
        default="",
        help_text="Message text (max 10,000 characters)",
    )
    image = serializers.CharField(
        max_length=REALTIME_CONFIG.MAX_REFERENCE_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    video = serializers.CharField(
        max_length=REALTIME_CONFIG.MAX_REFERENCE_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    audio = serializers.CharField(
        max_length=REALTIME_CONFIG.MAX_REFERENCE_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    file = FileAttachmentSerializer(required=False, allow_null=True, default=None)
    replyTo = serializers.UUIDField(
        source="reply_to_id",
        required=False,
        allow_null=True,
        default=None,
        help_text="Message this one replies to (optional)",
    )

    def validate(self, attrs):
        content = MessageContent(
            text=attrs.pop("text", ""),
            image=attrs.pop("image", ""),
            video=attrs.pop("video", ""),
            audio=attrs.pop("audio", ""),
            file=dict(attrs.pop("file", None) or {}) or None,
        )
        if content.is_empty:
            raise serializers.ValidationError(
                "Message must contain text, image, video, audio or file",
                code="empty_message",
            )
        attrs["content"] = content
        return attrs


class MarkReadSerializer(serializers.Serializer):
    """mark_as_read payload."""

    messageId = serializers.UUIDField(source="message_id")


class ConversationRefSerializer(serializers.Serializer):
    """Payload naming a single conversation."""

    conversationId = serializers.UUIDField(source="conversation_id")


# =============================================================================
# Outbound Serializers
# =============================================================================


class UserSummarySerializer(serializers.Serializer):
    """Display fields of a user."""

    id = serializers.UUIDField(read_only=True)
    displayName = serializers.SerializerMethodField()
    avatar = serializers.CharField(read_only=True)

    def get_displayName(self, obj) -> str:
        """Display name, falling back to the email's local part."""
        return obj.display_name or obj.email.split("@")[0]


class IdentitySerializer(UserSummarySerializer):
    """Authenticated identity with presence fields."""

    status = serializers.CharField(read_only=True)
    lastSeen = serializers.DateTimeField(source="last_seen", read_only=True)


class ReplyPreviewSerializer(serializers.Serializer):
    """Reply target resolved to the fields a client renders inline."""

    id = serializers.UUIDField(read_only=True)
    sender = UserSummarySerializer(read_only=True)
    text = serializers.CharField(read_only=True)
    kinds = serializers.ListField(
        source="content_kinds",
        child=serializers.CharField(),
        read_only=True,
    )


class MessageSerializer(serializers.Serializer):
    """
    Fully populated message, the new_message payload.

    Expects a message loaded by MessageService.get_populated() so the sender,
    reply target and read-set do not trigger extra queries.
    """

    id = serializers.UUIDField(read_only=True)
    conversationId = serializers.UUIDField(source="conversation_id", read_only=True)
    sender = UserSummarySerializer(read_only=True)
    text = serializers.CharField(read_only=True)
    image = serializers.CharField(read_only=True)
    video = serializers.CharField(read_only=True)
    audio = serializers.CharField(read_only=True)
    file = serializers.JSONField(read_only=True)
    replyTo = ReplyPreviewSerializer(source="reply_to", read_only=True, allow_null=True)
    readBy = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    def get_readBy(self, obj: Message) -> list[str]:
        """Ids of users in the read-set, in the order they read it."""
        receipts = sorted(obj.read_receipts.all(), key=lambda r: (r.read_at, r.pk))
        return [str(receipt.user_id) for receipt in receipts]
