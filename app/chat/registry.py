"""
Session registry for live socket connections.

Tracks every live connection handled by this process and the identity bound
to it. A single SessionRegistry instance is created by ChatConfig.ready()
and shared by all ChatConsumer instances of the process.

Connection state machine:
    UNAUTHENTICATED -> AUTHENTICATED -> CLOSED
    UNAUTHENTICATED -> CLOSED
    AUTHENTICATED -> UNAUTHENTICATED (release, when room setup fails)

CLOSED is terminal. A connection that closes while an authenticate call is
suspended on the database ends CLOSED with no binding left behind.

Concurrency:
    All mutation happens on the event loop between awaits, so every event
    handler sees a consistent snapshot. Bindings are per process; with
    several worker processes each one tracks only its own connections.

Usage:
    registry = apps.get_app_config("chat").session_registry
    connection = registry.open(self.channel_name)
    result = await registry.authenticate(connection, token)
"""

from __future__ import annotations

import enum
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from channels.db import database_sync_to_async
from django.db import DatabaseError

from authentication.models import PresenceStatus
from authentication.services import IdentityService, TokenService
from core.services import BaseService, ServiceResult

from chat.constants import ERROR_CODES

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    """Lifecycle state of one live socket."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


@dataclass(eq=False)
class Connection:
    """
    One live socket.

    Attributes:
        channel_name: Channel-layer address of the consumer
        identity: Bound user once authenticated
        rooms: Room group names this connection has joined
        state: Current ConnectionState
    """

    channel_name: str
    identity: User | None = None
    rooms: set[str] = field(default_factory=set)
    state: ConnectionState = ConnectionState.UNAUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.state is ConnectionState.AUTHENTICATED

    @property
    def is_closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    @property
    def identity_id(self):
        return self.identity.id if self.identity is not None else None


class SessionRegistry(BaseService):
    """
    Process-wide map of live connections and their identities.

    An identity may hold several connections (multi-device). It is online
    while at least one of them is authenticated.

    Methods:
        open: Register a new unauthenticated connection
        get: Look up a connection by channel name
        authenticate: Verify a token and bind its identity to a connection
        release: Undo a bind whose room setup failed
        on_disconnect: Close a connection and record offline presence
        connections_for: Live authenticated connections of an identity
    """

    def __init__(self):
        self._connections: dict[str, Connection] = {}
        self._by_identity: dict = defaultdict(set)

    def __len__(self) -> int:
        return len(self._connections)

    def open(self, channel_name: str) -> Connection:
        """Register a freshly accepted socket."""
        connection = Connection(channel_name=channel_name)
        self._connections[channel_name] = connection
        return connection

    def get(self, channel_name: str) -> Connection | None:
        return self._connections.get(channel_name)

    def connections_for(self, identity_id) -> list[Connection]:
        """Authenticated connections currently bound to an identity."""
        return [
            self._connections[name]
            for name in sorted(self._by_identity.get(identity_id, ()))
            if name in self._connections
        ]

    async def authenticate(self, connection: Connection, token) -> ServiceResult[User]:
        """
        Bind the identity named by a token to a connection.

        Marks the identity online and bumps last_seen.

        Args:
            connection: Connection sending the authenticate event
            token: Raw credential token

        Returns:
            ServiceResult with the bound User (presence fields refreshed)

        Error codes:
            INVALID_TOKEN: Token malformed, expired or badly signed
            IDENTITY_NOT_FOUND: Token names no active user
            ALREADY_AUTHENTICATED: Connection already has an identity
            UNAUTHENTICATED: Connection closed before the bind completed
        """
        if connection.is_authenticated:
            return ServiceResult.failure(
                "Connection is already authenticated",
                error_code=ERROR_CODES.ALREADY_AUTHENTICATED,
            )
        if connection.is_closed:
            return self._closed_failure()

        verified = TokenService.verify(token)
        if not verified:
            return verified

        resolved = await database_sync_to_async(IdentityService.resolve)(verified.data)
        if not resolved:
            return resolved

        if connection.is_closed:
            # Socket went away while we were waiting on the database
            return self._closed_failure()
        if connection.is_authenticated:
            return ServiceResult.failure(
                "Connection is already authenticated",
                error_code=ERROR_CODES.ALREADY_AUTHENTICATED,
            )

        # Bound before the presence write so a concurrent disconnect of
        # another device sees this connection and keeps the identity online
        user = resolved.data
        self._bind(connection, user)

        try:
            presence = await database_sync_to_async(IdentityService.set_presence)(
                user.id, PresenceStatus.ONLINE
            )
        except Exception:
            self._unbind(connection)
            raise
        if connection.is_closed:
            return self._closed_failure()
        if not presence:
            self._unbind(connection)
            return presence

        user.status = PresenceStatus.ONLINE
        user.last_seen = presence.data

        self.get_logger().info(
            f"User {user.id} authenticated on {connection.channel_name} "
            f"({len(self._by_identity[user.id])} live connections)"
        )
        return ServiceResult.success(user)

    async def release(self, connection: Connection) -> None:
        """
        Undo a bind whose follow-up setup failed.

        The connection returns to UNAUTHENTICATED so the client can retry
        authenticate. When it was the identity's only connection, offline
        presence is recorded again.
        """
        if not connection.is_authenticated:
            return

        user = connection.identity
        if self._unbind(connection):
            await self._record_offline(user)
        self.get_logger().info(
            f"Released binding of user {user.id} on {connection.channel_name}"
        )

    async def on_disconnect(self, connection: Connection) -> User | None:
        """
        Close a connection and release its binding.

        The connection is marked CLOSED before anything is awaited, so group
        events racing with the disconnect are dropped.

        Returns:
            The identity that went offline when this was its last live
            connection, otherwise None.
        """
        was_authenticated = connection.is_authenticated
        connection.state = ConnectionState.CLOSED
        self._connections.pop(connection.channel_name, None)

        if not was_authenticated:
            return None

        user = connection.identity
        remaining = self._by_identity.get(user.id, set())
        remaining.discard(connection.channel_name)
        if remaining:
            self.get_logger().info(
                f"User {user.id} closed {connection.channel_name}, "
                f"{len(remaining)} connections still live"
            )
            return None
        self._by_identity.pop(user.id, None)

        await self._record_offline(user)
        self.get_logger().info(f"User {user.id} went offline")
        return user

    def clear(self) -> None:
        """Drop every tracked connection (process shutdown and tests)."""
        for connection in self._connections.values():
            connection.state = ConnectionState.CLOSED
        self._connections.clear()
        self._by_identity.clear()

    @staticmethod
    def _closed_failure() -> ServiceResult:
        return ServiceResult.failure(
            "Connection is closed",
            error_code=ERROR_CODES.UNAUTHENTICATED,
        )

    def _bind(self, connection: Connection, user: User) -> None:
        connection.identity = user
        connection.state = ConnectionState.AUTHENTICATED
        self._by_identity[user.id].add(connection.channel_name)

    def _unbind(self, connection: Connection) -> bool:
        """Return a connection to UNAUTHENTICATED. True if it was the identity's last."""
        user_id = connection.identity_id
        connection.identity = None
        connection.state = ConnectionState.UNAUTHENTICATED

        remaining = self._by_identity.get(user_id, set())
        remaining.discard(connection.channel_name)
        if remaining:
            return False
        self._by_identity.pop(user_id, None)
        return True

    async def _record_offline(self, user: User) -> None:
        """Store offline presence. A failed write is logged, never raised."""
        user.status = PresenceStatus.OFFLINE
        try:
            result = await database_sync_to_async(IdentityService.set_presence)(
                user.id, PresenceStatus.OFFLINE
            )
        except DatabaseError:
            logger.exception(f"Could not record offline presence for {user.id}")
            return

        if result:
            user.last_seen = result.data
        else:
            logger.warning(
                f"Could not record offline presence for {user.id}: {result.error}"
            )
