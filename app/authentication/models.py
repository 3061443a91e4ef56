"""
Authentication models.

This module defines the User model used across the chat system.

Models:
    User: Email-identified account with display name, avatar and push token

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: AuthService business logic (registration, push token, avatar)

Design Decisions:
    - Display data (name, avatar) lives on User; there is no separate profile
    - push_token holds whatever the device registered: an Expo relay token
      ("ExponentPushToken[...]") or a raw FCM registration token
    - is_admin is the application-level admin flag (may delete any group);
      is_staff only grants Django admin access
"""

from __future__ import annotations

import os
import secrets

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


def avatar_upload_path(instance: User, filename: str) -> str:
    """
    Build the storage path for an uploaded avatar.

    Format: avatars/<random32>/<original filename>
    """
    return os.path.join("avatars", secrets.token_hex(16), os.path.basename(filename))


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        name: Display name shown in conversation lists and notification titles
        avatar: Optional uploaded image
        push_token: Device push token (nullable, no push when empty)
        is_admin: Application admin flag
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email="alice@example.com",
            password="securepassword",
            name="Alice",
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Display name",
    )
    avatar = models.ImageField(
        upload_to=avatar_upload_path,
        null=True,
        blank=True,
        help_text="Avatar image",
    )
    push_token = models.CharField(
        max_length=512,
        null=True,
        blank=True,
        help_text="Device push token (Expo relay token or FCM registration token)",
    )
    is_admin = models.BooleanField(
        default=False,
        help_text="Application admin; may manage any group",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    class Meta:
        db_table = "users"
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.email

    @property
    def display_name(self) -> str:
        """Name for titles and previews, falling back to the email address."""
        return self.name or self.email

    @property
    def avatar_url(self) -> str | None:
        """Storage URL of the avatar, or None when no avatar is set."""
        if self.avatar:
            return self.avatar.url
        return None
