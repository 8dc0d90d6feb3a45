"""
Tests for participation signals.

This module tests:
- participant_saved: room.join / room.leave pushed to the identity group
- notify_participation_change: failures are logged, never raised
"""

from unittest import mock

import pytest

from chat.services import ConversationService
from chat.signals import notify_participation_change
from chat.tests.factories import ParticipantFactory


@pytest.fixture
def notify():
    with mock.patch("chat.signals.notify_participation_change") as patched:
        yield patched


@pytest.mark.django_db
class TestParticipantSaved:
    """Tests for the post_save handler on Participant."""

    def test_new_participant_joins_after_commit(
        self, notify, django_capture_on_commit_callbacks, group_conversation, outsider
    ):
        """
        Creating an active participation pushes room.join once committed.

        Why it matters: Open sockets must pick up new conversations live.
        """
        with django_capture_on_commit_callbacks(execute=True):
            ConversationService.add_participant(group_conversation, outsider)

        notify.assert_called_once_with(outsider.id, group_conversation.id, "room.join")

    def test_nothing_is_sent_before_commit(
        self, notify, django_capture_on_commit_callbacks, group_conversation, outsider
    ):
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            ParticipantFactory(conversation=group_conversation, user=outsider)

        assert len(callbacks) == 1
        notify.assert_not_called()

    def test_ended_participation_leaves(
        self, notify, django_capture_on_commit_callbacks, group_conversation, carol
    ):
        """
        Setting left_at pushes room.leave.

        Why it matters: Removed users must stop receiving the room.
        """
        with django_capture_on_commit_callbacks(execute=True):
            ConversationService.remove_participant(group_conversation, carol)

        notify.assert_called_once_with(carol.id, group_conversation.id, "room.leave")

    def test_unrelated_updates_send_nothing(
        self, notify, django_capture_on_commit_callbacks, group_conversation, bob
    ):
        participant = group_conversation.participants.get(user=bob)

        with django_capture_on_commit_callbacks(execute=True):
            participant.save()

        notify.assert_not_called()


class TestNotifyParticipationChange:
    """Tests for notify_participation_change()."""

    def test_layer_failure_is_logged(self):
        """
        A failing channel layer does not break the saving transaction.

        Why it matters: Sockets catch up on their next authenticate.
        """
        with (
            mock.patch("chat.signals.get_channel_layer") as get_layer,
            mock.patch("chat.signals.logger") as logger,
        ):
            get_layer.return_value.group_send = mock.AsyncMock(side_effect=RuntimeError("down"))
            notify_participation_change("u1", "c1", "room.join")

        logger.exception.assert_called_once()
        assert "room.join" in logger.exception.call_args.args[0]

    def test_missing_layer_is_a_no_op(self):
        with mock.patch("chat.signals.get_channel_layer", return_value=None):
            notify_participation_change("u1", "c1", "room.leave")
