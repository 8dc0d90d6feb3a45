"""
Constants and configuration for the real-time messaging core.

This module centralizes:
- Channel-layer group naming (rooms, per-identity groups, global presence)
- Wire event names (client-initiated and server-initiated)
- Content limits enforced at the payload boundary
- Error codes and the category each belongs to

Import example:
    from chat.constants import CLIENT_EVENTS, SERVER_EVENTS, ERROR_CODES
"""

from typing import Final


# =============================================================================
# Channel Layer Configuration
# =============================================================================


class REALTIME_CONFIG:
    """Configuration for channel-layer groups and payload limits."""

    # Group names: "<prefix>_<id>" (channel layers accept [a-zA-Z0-9_.-])
    ROOM_GROUP_PREFIX: Final[str] = "chat"
    IDENTITY_GROUP_PREFIX: Final[str] = "user"

    # Every authenticated connection joins this group (presence is global)
    PRESENCE_GROUP: Final[str] = "presence"

    # Content limits
    MAX_TEXT_LENGTH: Final[int] = 10000  # Characters
    MAX_REFERENCE_LENGTH: Final[int] = 500  # Media URL / storage key


# =============================================================================
# Wire Events
# =============================================================================


class CLIENT_EVENTS:
    """Events a client may send. Frames are {"type": <event>, "data": <payload>}."""

    AUTHENTICATE: Final[str] = "authenticate"
    SEND_MESSAGE: Final[str] = "send_message"
    MARK_AS_READ: Final[str] = "mark_as_read"
    TYPING: Final[str] = "typing"
    STOP_TYPING: Final[str] = "stop_typing"
    JOIN_CONVERSATION: Final[str] = "join_conversation"


class SERVER_EVENTS:
    """Events the server emits."""

    AUTHENTICATED: Final[str] = "authenticated"
    AUTH_ERROR: Final[str] = "auth_error"
    NEW_MESSAGE: Final[str] = "new_message"
    MESSAGE_READ: Final[str] = "message_read"
    USER_TYPING: Final[str] = "user_typing"
    USER_STOP_TYPING: Final[str] = "user_stop_typing"
    USER_STATUS_CHANGE: Final[str] = "user_status_change"
    ERROR: Final[str] = "error"


# =============================================================================
# Error Codes
# =============================================================================


class ERROR_CODES:
    """Machine-readable codes carried by error and auth_error events."""

    # AuthError
    INVALID_TOKEN: Final[str] = "INVALID_TOKEN"
    IDENTITY_NOT_FOUND: Final[str] = "IDENTITY_NOT_FOUND"
    ALREADY_AUTHENTICATED: Final[str] = "ALREADY_AUTHENTICATED"
    UNAUTHENTICATED: Final[str] = "UNAUTHENTICATED"

    # AuthorizationError
    NOT_A_MEMBER: Final[str] = "NOT_A_MEMBER"

    # NotFoundError
    CONVERSATION_NOT_FOUND: Final[str] = "CONVERSATION_NOT_FOUND"
    MESSAGE_NOT_FOUND: Final[str] = "MESSAGE_NOT_FOUND"
    REPLY_TARGET_NOT_FOUND: Final[str] = "REPLY_TARGET_NOT_FOUND"

    # ValidationError
    EMPTY_MESSAGE: Final[str] = "EMPTY_MESSAGE"
    VALIDATION_ERROR: Final[str] = "VALIDATION_ERROR"
    UNKNOWN_EVENT: Final[str] = "UNKNOWN_EVENT"
    MALFORMED_FRAME: Final[str] = "MALFORMED_FRAME"

    # Store failures (transient unavailability, bugs)
    STORE_ERROR: Final[str] = "STORE_ERROR"


class ERROR_CATEGORIES:
    """Category of each error code."""

    AUTH: Final[str] = "AuthError"
    AUTHORIZATION: Final[str] = "AuthorizationError"
    NOT_FOUND: Final[str] = "NotFoundError"
    VALIDATION: Final[str] = "ValidationError"
    STORE: Final[str] = "StoreError"

    BY_CODE: Final[dict] = {
        ERROR_CODES.INVALID_TOKEN: AUTH,
        ERROR_CODES.IDENTITY_NOT_FOUND: AUTH,
        ERROR_CODES.ALREADY_AUTHENTICATED: AUTH,
        ERROR_CODES.UNAUTHENTICATED: AUTHORIZATION,
        ERROR_CODES.NOT_A_MEMBER: AUTHORIZATION,
        ERROR_CODES.CONVERSATION_NOT_FOUND: NOT_FOUND,
        ERROR_CODES.MESSAGE_NOT_FOUND: NOT_FOUND,
        ERROR_CODES.REPLY_TARGET_NOT_FOUND: NOT_FOUND,
        ERROR_CODES.EMPTY_MESSAGE: VALIDATION,
        ERROR_CODES.VALIDATION_ERROR: VALIDATION,
        ERROR_CODES.UNKNOWN_EVENT: VALIDATION,
        ERROR_CODES.MALFORMED_FRAME: VALIDATION,
        ERROR_CODES.STORE_ERROR: STORE,
    }

    @classmethod
    def of(cls, error_code: str | None) -> str:
        """Return the category for an error code (StoreError if unknown)."""
        return cls.BY_CODE.get(error_code, cls.STORE)
