"""
Authentication service layer.

This module provides the identity operations the real-time core depends on:

Services:
    TokenService: Verify (and, for the account service and tests, issue)
        JWT access tokens
    IdentityService: Resolve an identity and record presence transitions

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - All methods are synchronous ORM code; async callers wrap them with
      channels.db.database_sync_to_async

Usage:
    from authentication.services import IdentityService, TokenService

    result = TokenService.verify(token)
    if result.success:
        identity = IdentityService.resolve(result.data)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from django.utils import timezone
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

from core.services import BaseService, ServiceResult

from authentication.models import PresenceStatus, User

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)


class TokenService(BaseService):
    """
    JWT verification for the socket handshake.

    Tokens are HS256 access tokens carrying the user id in the
    SIMPLE_JWT["USER_ID_CLAIM"] claim.

    Methods:
        verify: Validate a token and return the identity id it names
        issue_access_token: Mint an access token for a user
    """

    @classmethod
    def verify(cls, token) -> ServiceResult[UUID]:
        """
        Validate a credential token.

        Args:
            token: Raw token string as sent by the client

        Returns:
            ServiceResult with the identity id (UUID)

        Error codes:
            INVALID_TOKEN: Token missing, malformed, expired or bad signature
        """
        if not isinstance(token, str) or not token.strip():
            return ServiceResult.failure(
                "Authentication token is required",
                error_code="INVALID_TOKEN",
            )

        try:
            access_token = AccessToken(token.strip())
        except TokenError as e:
            cls.get_logger().info(f"Rejected token: {e}")
            return ServiceResult.failure(
                "Invalid or expired token",
                error_code="INVALID_TOKEN",
            )

        claim = access_token.get(api_settings.USER_ID_CLAIM)
        try:
            identity_id = UUID(str(claim))
        except (TypeError, ValueError):
            return ServiceResult.failure(
                "Invalid or expired token",
                error_code="INVALID_TOKEN",
            )

        return ServiceResult.success(identity_id)

    @classmethod
    def issue_access_token(cls, user: User) -> str:
        """Mint a signed access token for a user."""
        return str(AccessToken.for_user(user))


class IdentityService(BaseService):
    """
    Identity lookup and presence transitions.

    Methods:
        resolve: Load an active identity by id
        set_presence: Record online/offline and bump last_seen
    """

    @classmethod
    def resolve(cls, identity_id) -> ServiceResult[User]:
        """
        Load an active identity.

        Inactive accounts are treated as absent.

        Error codes:
            IDENTITY_NOT_FOUND: No active user with this id
        """
        user = User.objects.filter(id=identity_id, is_active=True).first()
        if user is None:
            return ServiceResult.failure(
                "User does not exist",
                error_code="IDENTITY_NOT_FOUND",
            )
        return ServiceResult.success(user)

    @classmethod
    def set_presence(
        cls,
        identity_id,
        status: str,
        seen_at: datetime | None = None,
    ) -> ServiceResult[datetime]:
        """
        Record a presence transition.

        Args:
            identity_id: User's UUID
            status: PresenceStatus value
            seen_at: Timestamp for last_seen (defaults to now)

        Returns:
            ServiceResult with the last_seen timestamp written

        Error codes:
            INVALID_STATUS: Status is not a PresenceStatus value
            IDENTITY_NOT_FOUND: No user with this id
        """
        if status not in PresenceStatus.values:
            return ServiceResult.failure(
                f"Invalid status: {status}",
                error_code="INVALID_STATUS",
            )

        seen_at = seen_at or timezone.now()
        updated = User.objects.filter(id=identity_id).update(
            status=status,
            last_seen=seen_at,
            updated_at=seen_at,
        )
        if not updated:
            return ServiceResult.failure(
                "User does not exist",
                error_code="IDENTITY_NOT_FOUND",
            )

        cls.get_logger().debug(f"User {identity_id} is now {status}")
        return ServiceResult.success(seen_at)
