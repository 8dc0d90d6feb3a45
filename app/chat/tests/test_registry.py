"""
Tests for the session registry.

This module tests:
- authenticate: token verification, identity binding and presence
- on_disconnect: closing, multi-device bookkeeping and offline presence
- Connection state machine

The registry awaits the database through database_sync_to_async, so these
tests run against committed data.
"""

import asyncio
import time
from unittest import mock

import pytest
from channels.db import database_sync_to_async
from django.db import DatabaseError

from authentication.models import PresenceStatus, User
from authentication.services import IdentityService
from authentication.tests.factories import access_token_for
from chat.constants import ERROR_CODES
from chat.registry import ConnectionState, SessionRegistry

pytestmark = pytest.mark.django_db(transaction=True)


@pytest.fixture
def registry():
    return SessionRegistry()


@database_sync_to_async
def reload(user) -> User:
    return User.objects.get(id=user.id)


class TestAuthenticate:
    """Tests for SessionRegistry.authenticate()."""

    async def test_binds_identity_and_marks_online(self, registry, alice):
        """
        A valid token binds the identity and marks it online.

        Why it matters: Every later event relies on the bound identity.
        """
        connection = registry.open("chan-1")

        result = await registry.authenticate(connection, access_token_for(alice))

        assert result.success is True
        assert result.data.id == alice.id
        assert connection.state is ConnectionState.AUTHENTICATED
        assert connection.identity_id == alice.id
        stored = await reload(alice)
        assert stored.status == PresenceStatus.ONLINE
        assert stored.last_seen is not None
        assert result.data.last_seen == stored.last_seen

    async def test_invalid_token_leaves_connection_unauthenticated(self, registry):
        """
        Bad tokens fail with INVALID_TOKEN and bind nothing.

        Why it matters: Unauthenticated connections accept only authenticate.
        """
        connection = registry.open("chan-1")

        result = await registry.authenticate(connection, "garbage")

        assert result.error_code == ERROR_CODES.INVALID_TOKEN
        assert connection.state is ConnectionState.UNAUTHENTICATED
        assert connection.identity is None

    async def test_unknown_identity_fails(self, registry, alice):
        """
        A valid token for a deleted user fails with IDENTITY_NOT_FOUND.

        Why it matters: Tokens outlive accounts.
        """
        token = access_token_for(alice)
        await database_sync_to_async(alice.delete)()
        connection = registry.open("chan-1")

        result = await registry.authenticate(connection, token)

        assert result.error_code == ERROR_CODES.IDENTITY_NOT_FOUND
        assert connection.state is ConnectionState.UNAUTHENTICATED

    async def test_second_authenticate_is_rejected(self, registry, alice, bob):
        """
        A connection binds one identity for its whole life.

        Why it matters: Switching identity mid-socket would bypass room rebuilds.
        """
        connection = registry.open("chan-1")
        await registry.authenticate(connection, access_token_for(alice))

        result = await registry.authenticate(connection, access_token_for(bob))

        assert result.error_code == ERROR_CODES.ALREADY_AUTHENTICATED
        assert connection.identity_id == alice.id

    async def test_closed_connection_cannot_authenticate(self, registry, alice):
        """
        CLOSED is terminal.

        Why it matters: No operation is valid on a closed connection.
        """
        connection = registry.open("chan-1")
        await registry.on_disconnect(connection)

        result = await registry.authenticate(connection, access_token_for(alice))

        assert result.success is False
        assert connection.state is ConnectionState.CLOSED
        assert registry.connections_for(alice.id) == []


class TestOnDisconnect:
    """Tests for SessionRegistry.on_disconnect()."""

    async def test_unauthenticated_disconnect_reports_nobody(self, registry):
        """
        Anonymous sockets produce no presence change.

        Why it matters: Only identities have presence.
        """
        connection = registry.open("chan-1")

        assert await registry.on_disconnect(connection) is None
        assert connection.is_closed
        assert registry.get("chan-1") is None

    async def test_last_connection_marks_offline(self, registry, alice):
        """
        Closing the only connection marks the identity offline.

        Why it matters: Exactly one offline broadcast follows from this.
        """
        connection = registry.open("chan-1")
        await registry.authenticate(connection, access_token_for(alice))

        went_offline = await registry.on_disconnect(connection)

        assert went_offline.id == alice.id
        assert went_offline.status == PresenceStatus.OFFLINE
        assert (await reload(alice)).status == PresenceStatus.OFFLINE
        assert registry.connections_for(alice.id) == []

    async def test_other_devices_keep_identity_online(self, registry, alice):
        """
        With several connections only the last one takes the identity offline.

        Why it matters: Closing a laptop must not show a phone user as offline.
        """
        phone = registry.open("chan-phone")
        laptop = registry.open("chan-laptop")
        await registry.authenticate(phone, access_token_for(alice))
        await registry.authenticate(laptop, access_token_for(alice))
        assert len(registry.connections_for(alice.id)) == 2

        assert await registry.on_disconnect(laptop) is None
        assert (await reload(alice)).status == PresenceStatus.ONLINE
        assert registry.connections_for(alice.id) == [phone]

        went_offline = await registry.on_disconnect(phone)
        assert went_offline.id == alice.id

    async def test_store_failure_still_reports_offline(self, registry, alice):
        """
        A failed presence write does not suppress the offline notification.

        Why it matters: Peers must learn the user left even if the store is down.
        """
        connection = registry.open("chan-1")
        await registry.authenticate(connection, access_token_for(alice))

        with mock.patch(
            "chat.registry.IdentityService.set_presence",
            side_effect=DatabaseError("down"),
        ):
            went_offline = await registry.on_disconnect(connection)

        assert went_offline.id == alice.id
        assert went_offline.status == PresenceStatus.OFFLINE

    async def test_clear_closes_everything(self, registry, alice):
        """
        clear() drops every tracked connection.

        Why it matters: Used on shutdown so nothing keeps receiving.
        """
        connection = registry.open("chan-1")
        await registry.authenticate(connection, access_token_for(alice))

        registry.clear()

        assert len(registry) == 0
        assert connection.is_closed
        assert registry.connections_for(alice.id) == []


class TestMultiDevicePresence:
    """Tests for presence when devices connect and disconnect concurrently."""

    async def test_disconnect_during_second_device_authenticate_keeps_online(
        self, registry, alice
    ):
        """
        A device closing while another is mid-authenticate does not go offline.

        Why it matters: The store must not say offline while a socket is live.
        """
        phone = registry.open("chan-phone")
        laptop = registry.open("chan-laptop")
        await registry.authenticate(phone, access_token_for(alice))

        real_set_presence = IdentityService.set_presence

        def slow_online(identity_id, status, *args, **kwargs):
            if status == PresenceStatus.ONLINE:
                time.sleep(0.5)
            return real_set_presence(identity_id, status, *args, **kwargs)

        with mock.patch(
            "chat.registry.IdentityService.set_presence",
            side_effect=slow_online,
        ):
            pending = asyncio.ensure_future(
                registry.authenticate(laptop, access_token_for(alice))
            )
            # Let the laptop reach its online write before the phone closes
            await asyncio.sleep(0.15)
            assert laptop.is_authenticated

            went_offline = await registry.on_disconnect(phone)
            result = await pending

        assert went_offline is None
        assert result.success is True
        assert registry.connections_for(alice.id) == [laptop]
        assert (await reload(alice)).status == PresenceStatus.ONLINE


class TestRelease:
    """Tests for SessionRegistry.release()."""

    async def test_release_allows_authenticate_again(self, registry, alice):
        """
        A released connection is unauthenticated and can retry.

        Why it matters: Room setup failures must not strand the socket.
        """
        connection = registry.open("chan-1")
        await registry.authenticate(connection, access_token_for(alice))

        await registry.release(connection)

        assert connection.state is ConnectionState.UNAUTHENTICATED
        assert connection.identity is None
        assert registry.connections_for(alice.id) == []
        assert (await reload(alice)).status == PresenceStatus.OFFLINE

        retried = await registry.authenticate(connection, access_token_for(alice))
        assert retried.success is True

    async def test_release_keeps_other_devices_online(self, registry, alice):
        phone = registry.open("chan-phone")
        laptop = registry.open("chan-laptop")
        await registry.authenticate(phone, access_token_for(alice))
        await registry.authenticate(laptop, access_token_for(alice))

        await registry.release(laptop)

        assert registry.connections_for(alice.id) == [phone]
        assert (await reload(alice)).status == PresenceStatus.ONLINE
