"""
Tests for the join-time access gate.
"""

from datetime import datetime, timedelta, timezone

import pytest

from services.common.http_errors import AccessDeniedError, NotFoundError
from services.meetings.models import Meeting, MeetingStatus, get_session
from services.meetings.schemas import GuestInvitee, RegisteredInvitee
from services.meetings.services import lifecycle
from services.meetings.services.access import (
    REASON_CANCELLED,
    REASON_COMPLETED,
    REASON_GUEST_NOT_ALLOWED,
    REASON_INVALID_PASSWORD,
    REASON_NOT_FOUND,
    REASON_PASSWORD_REQUIRED,
    require_access,
    validate_access,
)
from services.meetings.tests.meetings_test_base import BaseMeetingsTest


class TestValidateAccess(BaseMeetingsTest):
    def setup_method(self, method):
        super().setup_method(method)
        self.alice = self.create_user("alice")

    def _insert_meeting(self, start: datetime, end: datetime, **fields) -> int:
        with get_session() as session:
            meeting = Meeting(
                title="Retro",
                start_time=start,
                end_time=end,
                organizer_id=self.alice,
                channel_name=fields.pop("channel_name", "retro_channel"),
                **fields,
            )
            session.add(meeting)
            session.flush()
            return meeting.id

    def test_open_meeting(self):
        meeting = self.create_meeting(self.alice)
        with get_session() as session:
            decision = validate_access(session, meeting.id)
        assert decision.can_join
        assert decision.reason is None
        assert decision.join_info == {
            "meeting_id": meeting.id,
            "channel_name": meeting.channel_name,
            "provider_app_id": "test-provider-app",
            "requires_password": False,
            "allow_guest_access": True,
        }

    def test_not_found(self):
        with get_session() as session:
            decision = validate_access(session, 9999)
        assert not decision.can_join
        assert decision.reason == REASON_NOT_FOUND
        assert decision.join_info is None

    def test_password_required(self):
        meeting = self.create_meeting(self.alice, password="Secret1")
        with get_session() as session:
            decision = validate_access(session, meeting.id)
        assert decision.reason == REASON_PASSWORD_REQUIRED
        assert decision.message == "Meeting password is required"

    def test_wrong_password(self):
        meeting = self.create_meeting(self.alice, password="Secret1")
        with get_session() as session:
            decision = validate_access(session, meeting.id, password="secret1")
        assert not decision.can_join
        assert decision.reason == REASON_INVALID_PASSWORD

    def test_right_password(self):
        meeting = self.create_meeting(self.alice, password="Secret1")
        with get_session() as session:
            decision = validate_access(session, meeting.id, password="Secret1")
        assert decision.can_join
        assert decision.join_info["requires_password"] is True
        assert "Secret1" not in decision.join_info.values()
        assert "password" not in decision.join_info

    def test_cancelled(self):
        meeting = self.create_meeting(self.alice, password="Secret1")
        with get_session() as session:
            lifecycle.cancel_meeting(session, meeting.id, self.alice)

        # Cancellation is reported before the password is even looked at
        with get_session() as session:
            decision = validate_access(session, meeting.id)
        assert decision.reason == REASON_CANCELLED
        assert decision.message == "Meeting has been cancelled"

    def test_ended_meeting_is_completed(self):
        now = datetime.now(timezone.utc)
        meeting_id = self._insert_meeting(now - timedelta(hours=2), now - timedelta(hours=1))
        with get_session() as session:
            decision = validate_access(session, meeting_id)
        assert decision.reason == REASON_COMPLETED
        assert decision.message == "Meeting has already ended"

    def test_stored_completed_status(self):
        now = datetime.now(timezone.utc)
        meeting_id = self._insert_meeting(
            now + timedelta(hours=1),
            now + timedelta(hours=2),
            status=MeetingStatus.completed,
        )
        with get_session() as session:
            assert validate_access(session, meeting_id).reason == REASON_COMPLETED

    def test_ongoing_meeting_can_be_joined(self):
        now = datetime.now(timezone.utc)
        meeting_id = self._insert_meeting(
            now - timedelta(minutes=10), now + timedelta(minutes=50)
        )
        with get_session() as session:
            assert validate_access(session, meeting_id).can_join

    def test_protected_flag_without_password_is_open(self):
        now = datetime.now(timezone.utc)
        meeting_id = self._insert_meeting(
            now + timedelta(hours=1),
            now + timedelta(hours=2),
            is_password_protected=True,
            password=None,
        )
        with get_session() as session:
            assert validate_access(session, meeting_id).can_join


class TestGuestPolicy(BaseMeetingsTest):
    def setup_method(self, method):
        super().setup_method(method)
        self.alice = self.create_user("alice")
        self.bob = self.create_user("bob")
        self.carol = self.create_user("carol")
        self.meeting = self.create_meeting(
            self.alice,
            allow_guest_access=False,
            participants=[
                RegisteredInvitee(user_id=self.bob),
                GuestInvitee(email="dave@example.com", name="Dave"),
            ],
        )

    def _reason(self, caller_id):
        with get_session() as session:
            return validate_access(session, self.meeting.id, caller_id=caller_id).reason

    def test_anonymous_caller_denied(self):
        assert self._reason(None) == REASON_GUEST_NOT_ALLOWED

    def test_non_participant_denied(self):
        assert self._reason(self.carol) == REASON_GUEST_NOT_ALLOWED

    def test_invited_participant_allowed(self):
        assert self._reason(self.bob) is None

    def test_organizer_allowed(self):
        assert self._reason(self.alice) is None

    def test_password_checked_before_guest_policy(self):
        with get_session() as session:
            lifecycle.update_meeting_password(
                session, self.meeting.id, self.alice, new_password="Secret1"
            )
        assert self._reason(None) == REASON_PASSWORD_REQUIRED


class TestRequireAccess(BaseMeetingsTest):
    def test_missing_meeting_raises_not_found(self):
        with pytest.raises(NotFoundError):
            with get_session() as session:
                require_access(session, 12345)

    def test_denial_raises_with_reason(self):
        alice = self.create_user("alice")
        meeting = self.create_meeting(alice, password="Secret1")
        with pytest.raises(AccessDeniedError) as exc_info:
            with get_session() as session:
                require_access(session, meeting.id, password="nope")
        assert exc_info.value.reason == REASON_INVALID_PASSWORD
        assert exc_info.value.status_code == 403

    def test_allowed_returns_decision(self):
        alice = self.create_user("alice")
        meeting = self.create_meeting(alice)
        with get_session() as session:
            decision = require_access(session, meeting.id)
            assert decision.meeting.id == meeting.id
