"""
Tests for registration, credential checks and access tokens.
"""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from services.common.http_errors import (
    AuthError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from services.meetings.models import get_session
from services.meetings.schemas import UserRegister, UserUpdate
from services.meetings.services import identity
from services.meetings.tests.meetings_test_base import TEST_PASSWORD, BaseMeetingsTest


def _registration(**overrides):
    data = {
        "username": "erin",
        "email": "Erin@Example.com",
        "password": "correct-horse",
        "first_name": "Erin",
        "last_name": "Jones",
    }
    data.update(overrides)
    return UserRegister(**data)


class TestRegistration(BaseMeetingsTest):
    def test_register_hashes_password(self, mocker):
        mocker.patch.object(
            identity.bcrypt, "gensalt", return_value=identity.bcrypt.gensalt(rounds=4)
        )
        with get_session() as session:
            user = identity.register_user(session, _registration())
            assert user.email == "erin@example.com"
            assert user.password_hash != "correct-horse"
            assert identity.check_password("correct-horse", user.password_hash)

    def test_duplicate_email(self):
        self.create_user("erin2", email="erin@example.com")
        with pytest.raises(ValidationError) as exc_info:
            with get_session() as session:
                identity.register_user(session, _registration())
        assert exc_info.value.message == "Email is already registered"
        assert exc_info.value.error_code == ErrorCode.ALREADY_EXISTS

    def test_duplicate_username(self):
        self.create_user("erin", email="someone@example.com")
        with pytest.raises(ValidationError) as exc_info:
            with get_session() as session:
                identity.register_user(session, _registration())
        assert exc_info.value.message == "Username is already taken"


class TestCredentials(BaseMeetingsTest):
    def setup_method(self, method):
        super().setup_method(method)
        self.alice = self.create_user("alice")

    def test_valid_credentials_record_login(self):
        with get_session() as session:
            user = identity.verify_credential(
                session, "ALICE@example.com", TEST_PASSWORD
            )
            assert user.id == self.alice
            assert user.last_login is not None

    def test_wrong_password(self):
        with pytest.raises(AuthError) as exc_info:
            with get_session() as session:
                identity.verify_credential(session, "alice@example.com", "wrong")
        assert exc_info.value.message == "Invalid email or password"
        assert exc_info.value.status_code == 401

    def test_unknown_email_gives_same_error(self):
        with pytest.raises(AuthError) as exc_info:
            with get_session() as session:
                identity.verify_credential(session, "nobody@example.com", "x")
        assert exc_info.value.message == "Invalid email or password"

    def test_inactive_account(self):
        self.create_user("dormant", is_active=False)
        with pytest.raises(AuthError) as exc_info:
            with get_session() as session:
                identity.verify_credential(
                    session, "dormant@example.com", TEST_PASSWORD
                )
        assert exc_info.value.error_code == ErrorCode.ACCOUNT_DISABLED

    def test_deactivate(self):
        with get_session() as session:
            identity.deactivate_user(session, self.alice)
        with get_session() as session:
            assert not identity.is_active(session, self.alice)
            assert not identity.is_active(session, 404)

    def test_update_profile(self):
        with get_session() as session:
            user = identity.update_profile(
                session, self.alice, UserUpdate(first_name="Al", bio="Hi")
            )
            assert user.full_name == "Al User"
            assert user.bio == "Hi"

    def test_get_missing_user(self):
        with pytest.raises(NotFoundError):
            with get_session() as session:
                identity.get_user(session, 999)


class TestAccessTokens(BaseMeetingsTest):
    def setup_method(self, method):
        super().setup_method(method)
        self.alice = self.create_user("alice")

    def _token(self, **kwargs):
        with get_session() as session:
            return identity.create_access_token(
                identity.get_user(session, self.alice), **kwargs
            )

    def test_round_trip(self):
        assert identity.decode_access_token(self._token()) == self.alice

    def test_claims(self):
        claims = jwt.decode(
            self._token(), self.settings.jwt_secret, algorithms=["HS256"],
            issuer="huddle-meetings",
        )
        assert claims["sub"] == str(self.alice)
        assert claims["type"] == "access"
        assert claims["username"] == "alice"

    def test_expired(self):
        with pytest.raises(AuthError) as exc_info:
            identity.decode_access_token(self._token(expires_minutes=-1))
        assert exc_info.value.error_code == ErrorCode.TOKEN_EXPIRED

    def test_garbage(self):
        with pytest.raises(AuthError) as exc_info:
            identity.decode_access_token("not-a-jwt")
        assert exc_info.value.error_code == ErrorCode.TOKEN_INVALID

    def test_wrong_issuer(self):
        token = jwt.encode(
            {
                "sub": str(self.alice),
                "type": "access",
                "iss": "someone-else",
                "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            },
            self.settings.jwt_secret,
            algorithm="HS256",
        )
        with pytest.raises(AuthError):
            identity.decode_access_token(token)

    def test_join_token_is_not_an_access_token(self):
        from services.meetings.services.security import generate_join_token

        with pytest.raises(AuthError):
            identity.decode_access_token(generate_join_token(1, user_id=self.alice))
