"""
Display helpers for message bodies.

Voice messages travel as "[VOICE_MESSAGE:<seconds>]" in the body. Lists and
notifications show a duration label instead of the raw sentinel:

    format_preview("[VOICE_MESSAGE:75]")  -> "🎤 1:15"
    format_preview("[VOICE_MESSAGE:9]")   -> "🎤 9s"
    format_preview("hello")               -> "hello"
"""

from __future__ import annotations

from chat.constants import VOICE_CONFIG


def parse_voice_duration(body: str | None) -> int | None:
    """Return the duration in seconds of a voice sentinel body, else None."""
    if not body:
        return None
    match = VOICE_CONFIG.SENTINEL_PATTERN.match(body)
    if match is None:
        return None
    return int(match.group(1))


def format_voice_duration(seconds: int) -> str:
    """Under a minute as "Ns", otherwise "M:SS"."""
    if seconds < 60:
        return f"{seconds}s"
    minutes, rest = divmod(seconds, 60)
    return f"{minutes}:{rest:02d}"


def format_preview(body: str | None) -> str:
    """
    Sidebar preview of a message body.

    Attachment-only messages have no body and preview as an empty string.
    """
    duration = parse_voice_duration(body)
    if duration is not None:
        return f"{VOICE_CONFIG.PREVIEW_GLYPH} {format_voice_duration(duration)}"
    return body or ""
