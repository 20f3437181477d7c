"""
Tests for input validation utilities.
"""

import os
import sys

import pytest
from hypothesis import given
from hypothesis import strategies as st

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from utils.exceptions import AttachmentError
from utils.validation import (
    extract_links,
    file_extension,
    parse_discord_id,
    sanitize_input,
    sanitize_optional,
    validate_attachment,
)

ALLOWED = ["png", "jpg", "jpeg", "gif", "webp"]
EIGHT_MB = 8 * 1024 * 1024


class TestSanitizeInput:
    def test_strips_markup_characters(self):
        assert sanitize_input('  <b>"Scammer"</b> \'x\'  ') == "bScammer/b x"

    def test_truncates(self):
        assert sanitize_input("a" * 300, max_length=100) == "a" * 100

    def test_none_becomes_empty(self):
        assert sanitize_input(None) == ""
        assert sanitize_optional(None) is None
        assert sanitize_optional("   ") is None

    @given(st.text(), st.integers(min_value=1, max_value=500))
    def test_never_contains_unsafe_characters(self, text, limit):
        cleaned = sanitize_input(text, limit)
        assert len(cleaned) <= limit
        assert not set(cleaned) & set("<>\"'")


class TestExtractLinks:
    def test_finds_links_in_order(self):
        text = "Sent me to https://evil.example/login then http://x.y/z?a=1 twice"
        assert extract_links(text) == ["https://evil.example/login", "http://x.y/z?a=1"]

    def test_no_links(self):
        assert extract_links("nothing here") == []
        assert extract_links(None) == []


class TestParseDiscordId:
    def test_plain_and_mention(self):
        assert parse_discord_id("123456789012345678") == 123456789012345678
        assert parse_discord_id("<@!123456789012345678>") == 123456789012345678

    def test_rejects_non_ids(self):
        assert parse_discord_id("someone#1234") is None
        assert parse_discord_id("12") is None
        assert parse_discord_id(None) is None


class TestValidateAttachment:
    def test_accepts_allowed_file(self):
        validate_attachment("proof.PNG", 1024, EIGHT_MB, ALLOWED)

    def test_rejects_oversized_file(self):
        with pytest.raises(AttachmentError) as exc_info:
            validate_attachment("proof.png", EIGHT_MB + 1, EIGHT_MB, ALLOWED)
        assert "File size exceeds maximum allowed size of 8MB" in exc_info.value.message

    def test_rejects_disallowed_type(self):
        with pytest.raises(AttachmentError) as exc_info:
            validate_attachment("payload.exe", 10, EIGHT_MB, ALLOWED)
        assert "File type .exe is not allowed" in exc_info.value.message
        assert exc_info.value.message.startswith("payload.exe: ")

    def test_file_extension(self):
        assert file_extension("a.b.JPEG") == "jpeg"
        assert file_extension("noext") == ""
