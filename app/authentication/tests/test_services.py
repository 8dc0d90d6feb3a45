"""
Tests for the authentication service layer.

This module tests:
- TokenService: Access token verification for the socket handshake
- IdentityService: Identity lookup and presence transitions

Test Organization:
    - Each service method has its own test class
    - Tests use descriptive names following: test_<scenario>_<expected_outcome>
"""

import uuid
from datetime import timedelta

from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from authentication.models import PresenceStatus
from authentication.services import IdentityService, TokenService
from authentication.tests.factories import UserFactory


# =============================================================================
# TestTokenServiceVerify
# =============================================================================


class TestTokenServiceVerify:
    """
    Tests for TokenService.verify().

    Verifies:
    - Valid tokens yield the identity id
    - Malformed, tampered and expired tokens yield INVALID_TOKEN
    """

    def test_valid_token_returns_identity_id(self, user, access_token):
        """
        A token minted for a user verifies to that user's id.

        Why it matters: This is the only way a socket learns who it serves.
        """
        result = TokenService.verify(access_token)

        assert result.success is True
        assert result.data == user.id

    def test_surrounding_whitespace_is_ignored(self, user, access_token):
        """
        Tokens pasted with stray whitespace still verify.

        Why it matters: Mobile clients often read tokens from storage with
        trailing newlines.
        """
        result = TokenService.verify(f"  {access_token}\n")

        assert result.success is True
        assert result.data == user.id

    def test_garbage_token_is_rejected(self):
        """
        A string that is not a JWT fails with INVALID_TOKEN.

        Why it matters: Malformed credentials must never bind an identity.
        """
        result = TokenService.verify("not-a-token")

        assert result.success is False
        assert result.error_code == "INVALID_TOKEN"

    def test_missing_token_is_rejected(self):
        """
        None, empty strings and non-strings fail with INVALID_TOKEN.

        Why it matters: The authenticate payload comes straight from the
        client and may have any shape.
        """
        for token in (None, "", "   ", 42, {"token": "x"}):
            result = TokenService.verify(token)
            assert result.success is False
            assert result.error_code == "INVALID_TOKEN"

    def test_tampered_token_is_rejected(self, access_token):
        """
        Changing the signature invalidates the token.

        Why it matters: Signature mismatch is one of the three listed
        rejection causes.
        """
        header, payload, signature = access_token.split(".")
        tampered = f"{header}.{payload}.{signature[::-1]}"

        result = TokenService.verify(tampered)

        assert result.success is False
        assert result.error_code == "INVALID_TOKEN"

    def test_expired_token_is_rejected(self, user):
        """
        Tokens past their expiry fail with INVALID_TOKEN.

        Why it matters: Expired sessions must re-authenticate.
        """
        token = AccessToken.for_user(user)
        token.set_exp(from_time=timezone.now() - timedelta(hours=2), lifetime=timedelta(minutes=1))

        result = TokenService.verify(str(token))

        assert result.success is False
        assert result.error_code == "INVALID_TOKEN"

    def test_token_for_unknown_user_still_verifies(self, user, access_token):
        """
        Verification does not look the user up.

        Why it matters: Unknown identities are reported separately
        (IDENTITY_NOT_FOUND), so verification must stay store-free.
        """
        user.delete()

        result = TokenService.verify(access_token)

        assert result.success is True


# =============================================================================
# TestIdentityServiceResolve
# =============================================================================


class TestIdentityServiceResolve:
    """Tests for IdentityService.resolve()."""

    def test_resolves_active_user(self, user):
        """
        An existing active user is returned.

        Why it matters: Happy path of the handshake.
        """
        result = IdentityService.resolve(user.id)

        assert result.success is True
        assert result.data == user

    def test_unknown_id_fails_with_identity_not_found(self, db):
        """
        A valid-looking id with no user fails with IDENTITY_NOT_FOUND.

        Why it matters: Tokens can outlive the account they were issued for.
        """
        result = IdentityService.resolve(uuid.uuid4())

        assert result.success is False
        assert result.error_code == "IDENTITY_NOT_FOUND"

    def test_inactive_user_is_treated_as_absent(self, db):
        """
        Deactivated accounts cannot authenticate.

        Why it matters: Deactivation must cut off real-time access too.
        """
        user = UserFactory(is_active=False)

        result = IdentityService.resolve(user.id)

        assert result.success is False
        assert result.error_code == "IDENTITY_NOT_FOUND"


# =============================================================================
# TestIdentityServiceSetPresence
# =============================================================================


class TestIdentityServiceSetPresence:
    """Tests for IdentityService.set_presence()."""

    def test_marks_user_online_and_bumps_last_seen(self, user):
        """
        Status and last_seen are written together.

        Why it matters: Peers render "last seen" from this timestamp.
        """
        before = timezone.now()

        result = IdentityService.set_presence(user.id, PresenceStatus.ONLINE)

        user.refresh_from_db()
        assert result.success is True
        assert user.status == PresenceStatus.ONLINE
        assert user.last_seen >= before
        assert result.data == user.last_seen

    def test_explicit_timestamp_is_used(self, user):
        """
        A caller-supplied timestamp is stored as-is.

        Why it matters: Disconnect handling records the moment the socket
        closed, not when the write happened.
        """
        seen_at = timezone.now() - timedelta(minutes=5)

        IdentityService.set_presence(user.id, PresenceStatus.OFFLINE, seen_at=seen_at)

        user.refresh_from_db()
        assert user.status == PresenceStatus.OFFLINE
        assert user.last_seen == seen_at

    def test_invalid_status_is_rejected(self, user):
        """
        Only online/offline are accepted.

        Why it matters: Presence is a two-state value on the wire.
        """
        result = IdentityService.set_presence(user.id, "away")

        user.refresh_from_db()
        assert result.success is False
        assert result.error_code == "INVALID_STATUS"
        assert user.status == PresenceStatus.OFFLINE

    def test_unknown_user_fails(self, db):
        """
        Presence for a missing user fails with IDENTITY_NOT_FOUND.

        Why it matters: The account may be deleted while a socket is open.
        """
        result = IdentityService.set_presence(uuid.uuid4(), PresenceStatus.ONLINE)

        assert result.success is False
        assert result.error_code == "IDENTITY_NOT_FOUND"
