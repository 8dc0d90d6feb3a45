"""
Test configuration and fixtures for authentication tests.

Usage:
    def test_example(user, access_token):
        assert TokenService.verify(access_token).data == user.id
"""

import pytest

from authentication.services import TokenService
from authentication.tests.factories import UserFactory


@pytest.fixture
def user(db):
    """Create a basic active user."""
    return UserFactory()


@pytest.fixture
def access_token(user):
    """A valid access token for `user`."""
    return TokenService.issue_access_token(user)
