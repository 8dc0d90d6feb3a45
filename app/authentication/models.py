"""
Authentication models.

This module defines the Identity of the chat backend:
- User: Custom user model with email-based authentication, display fields and
  presence state

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: Token verification and presence transitions

Presence:
    status and last_seen are written by the session registry when a
    connection authenticates or disconnects (see chat.registry). They are the
    durable view of presence; the live view is the set of bound connections.
"""

import uuid

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class PresenceStatus(models.TextChoices):
    """Presence of an identity as broadcast to peers."""

    ONLINE = "online", "Online"
    OFFLINE = "offline", "Offline"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the login identifier.

    The primary key is a UUID so identifiers exchanged over the socket are
    opaque and do not reveal account counts.

    Fields:
        id: Opaque identifier (UUID)
        email: Login identifier, unique
        display_name: Name shown next to messages and typing indicators
        avatar: Avatar reference (URL or storage key)
        status: Presence status (online/offline)
        last_seen: Last presence transition
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email='user@example.com',
            password='securepassword',
            display_name='Ada',
        )
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Opaque identifier for this user",
    )

    # Primary identifier (replaces username)
    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (login identifier)",
    )

    display_name = models.CharField(
        max_length=50,
        blank=True,
        default="",
        help_text="Name shown to other participants",
    )

    avatar = models.CharField(
        max_length=500,
        blank=True,
        default="",
        help_text="Avatar reference (URL or storage key)",
    )

    status = models.CharField(
        max_length=10,
        choices=PresenceStatus.choices,
        default=PresenceStatus.OFFLINE,
        db_index=True,
        help_text="Presence status as last broadcast to peers",
    )

    last_seen = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the user last connected or disconnected",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        """Return the user's email as string representation."""
        return self.email

    def get_full_name(self):
        """Return the display name, or email if no name set."""
        return self.display_name or self.email

    def get_short_name(self):
        """Return the display name, or email local part if not set."""
        return self.display_name or self.email.split("@")[0]

    @property
    def is_online(self) -> bool:
        """Check if the user is currently marked online."""
        return self.status == PresenceStatus.ONLINE
