"""
Tests for voice-message parsing and sidebar previews.
"""

import pytest

from chat.previews import format_preview, format_voice_duration, parse_voice_duration


class TestParseVoiceDuration:
    """
    Tests for parse_voice_duration().

    Verifies:
    - Exact sentinel bodies parse to seconds
    - Anything else is not a voice message
    """

    def test_parses_sentinel(self):
        assert parse_voice_duration("[VOICE_MESSAGE:75]") == 75

    @pytest.mark.parametrize(
        "body",
        [
            None,
            "",
            "hello",
            "[VOICE_MESSAGE:]",
            "[VOICE_MESSAGE:1.5]",
            "prefix [VOICE_MESSAGE:3]",
            "[VOICE_MESSAGE:3] suffix",
        ],
    )
    def test_non_sentinel_bodies(self, body):
        """
        Only the exact literal form is a voice message.

        Why it matters: Text that merely mentions the pattern stays text.
        """
        assert parse_voice_duration(body) is None


class TestFormatVoiceDuration:
    @pytest.mark.parametrize(
        "seconds, label",
        [(0, "0s"), (9, "9s"), (59, "59s"), (60, "1:00"), (75, "1:15"), (605, "10:05")],
    )
    def test_labels(self, seconds, label):
        assert format_voice_duration(seconds) == label


class TestFormatPreview:
    """
    Tests for format_preview().

    Verifies:
    - Voice sentinels render as glyph plus duration
    - Text passes through; empty bodies preview as ""
    """

    def test_voice_over_a_minute(self):
        assert format_preview("[VOICE_MESSAGE:75]") == "\U0001f3a4 1:15"

    def test_voice_under_a_minute(self):
        assert format_preview("[VOICE_MESSAGE:9]") == "\U0001f3a4 9s"

    def test_text_is_unchanged(self):
        assert format_preview("see you at 5") == "see you at 5"

    def test_attachment_only_is_empty(self):
        assert format_preview(None) == ""
