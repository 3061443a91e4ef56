"""
Serializers for authentication endpoints.

This module provides DRF serializers for:
- User model (read operations, embedded in messages and conversation lists)
- Registration and login
- Profile update, avatar upload and push-token registration

Security:
    - Password fields are write-only
    - Avatar uploads are decoded by Pillow (ImageField) before being accepted
"""

from django.contrib.auth import authenticate
from django.core.validators import FileExtensionValidator
from rest_framework import serializers

from authentication.models import User
from core.validators import validate_file_size

AVATAR_MAX_SIZE_KB = 2048
AVATAR_EXTENSIONS = ["jpeg", "png", "jpg", "gif"]


class UserSerializer(serializers.ModelSerializer):
    """
    Serializer for User model (read operations).

    avatar_url is absolute when a request is available in the context.
    """

    avatar_url = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField(source="date_joined", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "name",
            "email",
            "avatar_url",
            "is_admin",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_avatar_url(self, obj) -> str | None:
        """Return absolute URL for the avatar."""
        if not obj.avatar:
            return None
        request = self.context.get("request")
        if request:
            return request.build_absolute_uri(obj.avatar.url)
        return obj.avatar.url


class RegisterSerializer(serializers.Serializer):
    """Serializer for user registration."""

    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(max_length=255)
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Password must be at least 8 characters.",
    )
    password_confirmation = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="Confirm your password.",
    )

    def validate_email(self, value):
        """Validate that email is not already in use."""
        email = value.lower().strip()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def validate(self, attrs):
        """Validate that passwords match."""
        if attrs["password"] != attrs["password_confirmation"]:
            raise serializers.ValidationError(
                {"password_confirmation": "Passwords do not match."}
            )
        return attrs


class LoginSerializer(serializers.Serializer):
    """
    Serializer for email/password login.

    On success validated_data["user"] holds the authenticated user.
    """

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={"input_type": "password"})

    def validate(self, attrs):
        user = authenticate(
            self.context.get("request"),
            email=attrs["email"].lower().strip(),
            password=attrs["password"],
        )
        if user is None:
            raise serializers.ValidationError(
                {"email": "The provided credentials are incorrect."}
            )
        attrs["user"] = user
        return attrs


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)


class ProfileUpdateSerializer(serializers.Serializer):
    """Serializer for updating the current user's name and email."""

    name = serializers.CharField(max_length=255, required=False)
    email = serializers.EmailField(max_length=255, required=False)


class AvatarUploadSerializer(serializers.Serializer):
    """Serializer for avatar upload (image, max 2048 KB)."""

    avatar = serializers.ImageField(
        validators=[
            FileExtensionValidator(allowed_extensions=AVATAR_EXTENSIONS),
            validate_file_size(max_kb=AVATAR_MAX_SIZE_KB),
        ],
    )


class PushTokenSerializer(serializers.Serializer):
    """Serializer for registering a device push token."""

    fcm_token = serializers.CharField(max_length=512, trim_whitespace=True)
