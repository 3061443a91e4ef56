"""
Authentication services.

This module provides the AuthService class for the account lifecycle of
chat users: registration, token issuance and revocation, profile edits,
avatar uploads and push-token registration.

Related files:
    - models.py: User
    - serializers.py: Request validation
    - views.py: HTTP endpoints

Security:
    - Passwords hashed with Django's configured hasher
    - Refresh tokens are blacklisted on logout (simplejwt token_blacklist)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.models import User
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from django.core.files.uploadedfile import UploadedFile


class AuthService(BaseService):
    """
    Account lifecycle business logic.

    Methods:
        register: Create an account
        issue_tokens: Mint an access/refresh pair for a user
        logout: Revoke a refresh token
        update_profile: Change display name and email
        update_avatar: Replace the avatar image
        register_push_token: Attach a device push token to a user
    """

    @classmethod
    def register(cls, name: str, email: str, password: str) -> ServiceResult[User]:
        """
        Create a new account.

        Error codes:
            EMAIL_EXISTS: Another account already uses this email
        """
        email = email.strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            return ServiceResult.failure(
                "A user with this email already exists.",
                error_code="EMAIL_EXISTS",
            )

        user = User.objects.create_user(email=email, password=password, name=name.strip())
        cls.get_logger().info(f"Registered user {user.id}")
        return ServiceResult.success(user)

    @staticmethod
    def issue_tokens(user: User) -> dict[str, str]:
        """Return the opaque identity token pair handed to the client."""
        refresh = RefreshToken.for_user(user)
        return {
            "token": str(refresh.access_token),
            "refresh": str(refresh),
        }

    @classmethod
    def logout(cls, user: User, refresh_token: str | None) -> ServiceResult[None]:
        """
        Revoke the client's refresh token.

        Logout always succeeds from the client's point of view: a missing,
        expired or already-revoked token leaves nothing to revoke.
        """
        if not refresh_token:
            return ServiceResult.success(None)

        try:
            RefreshToken(refresh_token).blacklist()
        except TokenError as e:
            cls.get_logger().info(f"Logout for user {user.id} with unusable token: {e}")
            return ServiceResult.success(None)

        cls.get_logger().info(f"User {user.id} logged out")
        return ServiceResult.success(None)

    @classmethod
    def update_profile(
        cls,
        user: User,
        name: str | None = None,
        email: str | None = None,
    ) -> ServiceResult[User]:
        """
        Update display name and/or email.

        Error codes:
            EMAIL_EXISTS: Another account already uses this email
        """
        update_fields = ["updated_at"]

        if email is not None:
            email = email.strip().lower()
            if User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
                return ServiceResult.failure(
                    "A user with this email already exists.",
                    error_code="EMAIL_EXISTS",
                )
            user.email = email
            update_fields.append("email")

        if name is not None:
            user.name = name.strip()
            update_fields.append("name")

        user.save(update_fields=update_fields)
        return ServiceResult.success(user)

    @classmethod
    def update_avatar(cls, user: User, avatar: UploadedFile) -> ServiceResult[User]:
        """Store a new avatar and remove the previous file from storage."""
        previous = user.avatar.name if user.avatar else None

        user.avatar = avatar
        user.save(update_fields=["avatar", "updated_at"])

        if previous and previous != user.avatar.name:
            user.avatar.storage.delete(previous)

        cls.get_logger().info(f"Updated avatar for user {user.id}")
        return ServiceResult.success(user)

    @classmethod
    def register_push_token(cls, user: User, token: str) -> ServiceResult[User]:
        """
        Attach a device push token to the user.

        A device token identifies one device, so it is detached from any
        other account that registered it before (shared device, re-login).
        """
        token = token.strip()
        if not token:
            return ServiceResult.failure(
                "Push token cannot be empty",
                error_code="VALIDATION_ERROR",
            )

        with cls.atomic():
            released = (
                User.objects.filter(push_token=token)
                .exclude(pk=user.pk)
                .update(push_token=None)
            )
            user.push_token = token
            user.save(update_fields=["push_token", "updated_at"])

        if released:
            cls.get_logger().info(
                f"Push token moved to user {user.id} from {released} other account(s)"
            )
        else:
            cls.get_logger().debug(f"Registered push token for user {user.id}")
        return ServiceResult.success(user)
