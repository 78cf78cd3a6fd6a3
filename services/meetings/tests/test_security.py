"""
Unit tests for the channel, password, link and join-token helpers.
"""

import re
from unittest.mock import patch

import jwt
import pytest

from services.meetings.services.security import (
    PASSWORD_ALPHABET,
    generate_channel_name,
    generate_join_token,
    generate_password,
    share_link,
    validate_channel_name,
    validate_password_strength,
)
from services.meetings.tests.meetings_test_base import BaseMeetingsTest


class TestChannelNames(BaseMeetingsTest):
    def test_generated_name_shape(self):
        name = generate_channel_name("Weekly Sync: Team A!")
        assert re.match(r"^weeklysyncteama_[0-9a-z]+_[0-9a-f]{8}$", name)
        assert validate_channel_name(name)

    def test_title_is_truncated_to_twenty_chars(self):
        name = generate_channel_name("A" * 60)
        assert name.split("_")[0] == "a" * 20

    def test_meeting_id_suffix(self):
        name = generate_channel_name("Standup", meeting_id=42)
        assert name.endswith("_42")

    def test_names_differ_between_calls(self):
        assert generate_channel_name("Standup") != generate_channel_name("Standup")

    @pytest.mark.parametrize(
        "name, valid",
        [
            ("team-sync_01", True),
            ("a", True),
            ("x" * 64, True),
            ("x" * 65, False),
            ("", False),
            ("has space", False),
            ("dots.not.allowed", False),
        ],
    )
    def test_validate_channel_name(self, name, valid):
        assert validate_channel_name(name) is valid


class TestMeetingPasswords(BaseMeetingsTest):
    def test_generated_password_uses_unambiguous_alphabet(self):
        password = generate_password(32)
        assert len(password) == 32
        assert set(password) <= set(PASSWORD_ALPHABET)
        for confusable in "0O1lI":
            assert confusable not in PASSWORD_ALPHABET

    def test_default_length(self):
        assert len(generate_password()) == 8

    def test_generated_password_passes_strength_check(self):
        assert validate_password_strength(generate_password()).ok

    def test_valid_password(self):
        check = validate_password_strength("Secret1!")
        assert check.ok
        assert check.errors == []

    def test_too_short(self):
        check = validate_password_strength("abc")
        assert not check.ok
        assert "Password must be at least 4 characters long" in check.errors

    def test_too_long(self):
        check = validate_password_strength("a" * 51)
        assert not check.ok
        assert "Password cannot exceed 50 characters" in check.errors

    def test_invalid_characters(self):
        check = validate_password_strength("pass word")
        assert not check.ok
        assert check.errors == ["Password contains invalid characters"]

    def test_errors_accumulate(self):
        check = validate_password_strength("é")
        assert len(check.errors) == 2


class TestShareLink(BaseMeetingsTest):
    def test_plain_link(self):
        assert share_link("https://huddle.test/", 7) == "https://huddle.test/join/7"

    def test_password_is_url_encoded(self):
        link = share_link("https://huddle.test", 7, include_password=True, password="a&b c")
        assert link == "https://huddle.test/join/7?pwd=a%26b%20c"

    def test_password_ignored_unless_requested(self):
        link = share_link("https://huddle.test", 7, include_password=False, password="abcd")
        assert "pwd" not in link


class TestJoinTokens(BaseMeetingsTest):
    def _decode(self, token, **kwargs):
        return jwt.decode(
            token, self.settings.jwt_secret, algorithms=["HS256"], **kwargs
        )

    def test_claims(self):
        payload = self._decode(generate_join_token(12, user_id=3))
        assert payload["type"] == "meeting_join"
        assert payload["meeting_id"] == 12
        assert payload["user_id"] == 3

    def test_guest_token_has_no_user(self):
        payload = self._decode(generate_join_token(12))
        assert payload["user_id"] is None

    def test_expiry_follows_expires_in(self):
        payload = self._decode(generate_join_token(12, expires_in=600))
        assert payload["exp"] - payload["iat"] == 600

    def test_expired_token_is_rejected(self):
        token = generate_join_token(12, expires_in=-10)
        with pytest.raises(jwt.ExpiredSignatureError):
            self._decode(token)

    def test_other_secret_cannot_verify(self):
        token = generate_join_token(12)
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(
                token,
                "some-other-secret-that-is-also-long-enough",
                algorithms=["HS256"],
            )

    def test_uses_configured_secret(self):
        with patch(
            "services.meetings.services.security.get_settings"
        ) as mock_get_settings:
            mock_get_settings.return_value.jwt_secret = "patched-secret-for-join-tokens-123"
            token = generate_join_token(5)
        payload = jwt.decode(
            token, "patched-secret-for-join-tokens-123", algorithms=["HS256"]
        )
        assert payload["meeting_id"] == 5
