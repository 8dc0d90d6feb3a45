"""
Test configuration and fixtures for chat tests.

This module provides:
- User fixtures (alice, bob, carol, outsider)
- Conversation fixtures (private and group)
- Message fixtures for read-receipt tests

Consumer tests need real commits (signals fire on commit and the consumer
runs database work in other threads), so they use
@pytest.mark.django_db(transaction=True) and build their data inside
database_sync_to_async instead of using the db-bound fixtures.

Usage:
    def test_example(private_conversation, alice):
        assert private_conversation.has_participant(alice.id)
"""

import pytest

from authentication.tests.factories import UserFactory
from chat.tests.factories import (
    GroupConversationFactory,
    MessageFactory,
    PrivateConversationFactory,
)


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    return UserFactory(display_name="Alice")


@pytest.fixture
def bob(db):
    return UserFactory(display_name="Bob")


@pytest.fixture
def carol(db):
    return UserFactory(display_name="Carol")


@pytest.fixture
def outsider(db):
    """A user who is not a participant in any test conversation."""
    return UserFactory(display_name="Mallory")


# =============================================================================
# Conversation Fixtures
# =============================================================================


@pytest.fixture
def private_conversation(alice, bob):
    """Private conversation between alice and bob."""
    return PrivateConversationFactory(user1=alice, user2=bob)


@pytest.fixture
def group_conversation(alice, bob, carol):
    """Group created by alice (admin) with bob and carol as members."""
    return GroupConversationFactory(created_by=alice, members=[bob, carol])


@pytest.fixture
def message(private_conversation, alice):
    """A text message from alice in the private conversation."""
    return MessageFactory(conversation=private_conversation, sender=alice, text="hi")

