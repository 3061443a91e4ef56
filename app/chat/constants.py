"""
Constants and configuration for chat module features.

This module centralizes configuration values for:
- Message operations (content limits, thread pages)
- Attachment handling (count and size caps)
- Conversation list assembly (cap, voice preview format)

Import example:
    from chat.constants import MESSAGE_CONFIG, ATTACHMENT_CONFIG
"""

import re
from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_CONTENT_LENGTH: Final[int] = 10000  # Characters

    # Thread reads (latest page and "load older") return this many messages
    PAGE_SIZE: Final[int] = 10


# =============================================================================
# Attachment Configuration
# =============================================================================


class ATTACHMENT_CONFIG:
    """Configuration for message attachments."""

    MAX_ATTACHMENTS_PER_MESSAGE: Final[int] = 10

    # Nominal per-file cap; web server and proxy limits are far lower in practice
    MAX_FILE_SIZE_KB: Final[int] = 1024000

    # Some recorders report this non-standard type; the file keeps an .m4a extension
    M4A_MIME_TYPE: Final[str] = "audio/m4a"


# =============================================================================
# Conversation List Configuration
# =============================================================================


class CONVERSATION_CONFIG:
    """Configuration for the sidebar conversation list."""

    MAX_ENTRIES: Final[int] = 50


# =============================================================================
# Voice Messages
# =============================================================================


class VOICE_CONFIG:
    """
    Voice-message wire encoding.

    A voice message is an audio attachment whose body is exactly
    "[VOICE_MESSAGE:<whole seconds>]".
    """

    SENTINEL_PATTERN: Final[re.Pattern] = re.compile(r"^\[VOICE_MESSAGE:(\d+)\]$")
    PREVIEW_GLYPH: Final[str] = "\U0001f3a4"  # microphone
