"""
Tests for chat models.

This module tests:
- MessageContent: Content kinds and emptiness
- Conversation: Type helpers and participant queries
- Participant: Active participation constraint
- Message: Content kinds and read-set helpers
- MessageReadReceipt: One entry per (message, user)
"""

import pytest
from django.db import IntegrityError
from django.utils import timezone

from authentication.tests.factories import UserFactory
from chat.models import ContentKind, MessageContent, MessageReadReceipt, Participant
from chat.tests.factories import MessageFactory, ParticipantFactory


class TestMessageContent:
    """Tests for the MessageContent value object."""

    def test_kinds_lists_present_content_in_fixed_order(self):
        """
        kinds reports exactly the kinds present, text first.

        Why it matters: Messages carry exactly the kinds that were sent.
        """
        content = MessageContent(audio="a.m4a", text="hi", file={"url": "f", "name": "f"})

        assert content.kinds == (ContentKind.TEXT, ContentKind.AUDIO, ContentKind.FILE)

    def test_no_content_is_empty(self):
        """
        A content with nothing set is empty.

        Why it matters: Empty messages are rejected before they are stored.
        """
        assert MessageContent().is_empty is True
        assert MessageContent(image="cat.png").is_empty is False

    def test_as_fields_maps_empty_file_to_none(self):
        """
        An empty file dict is stored as NULL.

        Why it matters: File presence is checked by truthiness on read.
        """
        fields = MessageContent(text="hi", file={}).as_fields()

        assert fields["file"] is None
        assert fields["text"] == "hi"


class TestConversation:
    """Tests for Conversation helpers."""

    def test_private_conversation_has_two_active_participants(self, private_conversation, alice, bob):
        """
        Private conversations are created with exactly two participants.

        Why it matters: The real-time core trusts this count.
        """
        assert private_conversation.is_private is True
        assert private_conversation.get_active_participants().count() == 2
        assert private_conversation.has_participant(alice.id)
        assert private_conversation.has_participant(bob.id)

    def test_left_participant_is_not_a_participant(self, group_conversation, carol):
        """
        Leaving removes a user from the participant set.

        Why it matters: Membership is checked against active rows only.
        """
        participant = group_conversation.get_active_participants().get(user=carol)
        participant.left_at = timezone.now()
        participant.save()

        assert group_conversation.has_participant(carol.id) is False
        assert participant.is_active is False

    def test_creator_is_admin(self, group_conversation, alice):
        """
        The group creator is in the admin subset.

        Why it matters: Admin subset is part of the conversation model.
        """
        participant = group_conversation.participants.get(user=alice)

        assert participant.is_admin is True


class TestParticipantConstraint:
    """Tests for the one-active-participation constraint."""

    def test_second_active_participation_is_rejected(self, group_conversation, bob):
        """
        A user cannot be an active participant twice.

        Why it matters: Duplicate rows would double room joins.
        """
        with pytest.raises(IntegrityError):
            Participant.objects.create(conversation=group_conversation, user=bob)

    def test_rejoin_after_leaving_is_allowed(self, group_conversation, carol):
        """
        Rejoining creates a new row next to the ended one.

        Why it matters: Participation history is kept.
        """
        old = group_conversation.participants.get(user=carol)
        old.left_at = timezone.now()
        old.save()

        ParticipantFactory(conversation=group_conversation, user=carol)

        assert group_conversation.participants.filter(user=carol).count() == 2
        assert group_conversation.has_participant(carol.id)


class TestMessage:
    """Tests for Message helpers and the read-set."""

    def test_content_kinds(self, private_conversation, alice):
        """
        content_kinds lists the stored kinds.

        Why it matters: Used for reply previews.
        """
        message = MessageFactory(
            conversation=private_conversation,
            sender=alice,
            text="",
            image="media/cat.png",
        )

        assert message.content_kinds == ["image"]

    def test_sender_is_in_read_set(self, message, alice, bob):
        """
        The read-set starts with the sender.

        Why it matters: A sender has always seen their own message.
        """
        assert message.is_read_by(alice) is True
        assert message.is_read_by(bob) is False

    def test_duplicate_receipt_is_rejected(self, message, alice):
        """
        Each user appears in a read-set at most once.

        Why it matters: mark_as_read relies on this for idempotency.
        """
        with pytest.raises(IntegrityError):
            MessageReadReceipt.objects.create(message=message, user=alice)

    def test_reply_to(self, message, private_conversation, bob):
        """
        Replies reference their target.

        Why it matters: Threading is resolved for display on broadcast.
        """
        reply = MessageFactory(conversation=private_conversation, sender=bob, reply_to=message)

        assert reply.is_reply is True
        assert list(message.replies.all()) == [reply]

    def test_str_falls_back_to_kinds(self, db):
        """
        Media-only messages render their kinds.

        Why it matters: Admin and logs must show something useful.
        """
        user = UserFactory()
        message = MessageFactory(sender=user, conversation__created_by=user, text="", video="v.mp4")

        assert "video" in str(message)
