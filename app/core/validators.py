"""
Reusable field validators for uploads.

Usage:
    from core.validators import validate_file_size

    avatar = serializers.ImageField(validators=[validate_file_size(max_kb=2048)])
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.core.exceptions import ValidationError

if TYPE_CHECKING:
    from django.core.files import File


def validate_file_size(max_kb: int):
    """
    Validator factory for upload size limits.

    Args:
        max_kb: Maximum file size in kilobytes

    Returns:
        Validator function raising django ValidationError (DRF turns it
        into a field error)
    """

    def validator(file: File):
        max_bytes = max_kb * 1024
        if file.size > max_bytes:
            raise ValidationError(
                f"File size must not exceed {max_kb} KB. "
                f"Current size: {file.size / 1024:.0f} KB"
            )

    return validator
