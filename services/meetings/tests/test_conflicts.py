"""
Tests for calendar conflict detection.
"""

import pytest

from services.common.http_errors import ValidationError
from services.meetings.models import MeetingStatus, ParticipantStatus, get_session
from services.meetings.schemas import RegisteredInvitee
from services.meetings.services import lifecycle
from services.meetings.services.conflicts import find_conflicts, overlaps
from services.meetings.tests.meetings_test_base import BaseMeetingsTest, at, future_day


class TestFindConflicts(BaseMeetingsTest):
    def setup_method(self, method):
        super().setup_method(method)
        self.day = future_day()
        self.alice = self.create_user("alice")
        self.meeting = self.create_meeting(
            self.alice, day=self.day, start_hour=10, title="Standup"
        )

    def test_overlapping_window_conflicts(self):
        with get_session() as session:
            conflicts = find_conflicts(
                session, self.alice, at(self.day, 10, 30), at(self.day, 11, 30)
            )
            assert [m.id for m in conflicts] == [self.meeting.id]

    def test_touching_edges_do_not_conflict(self):
        with get_session() as session:
            before = find_conflicts(
                session, self.alice, at(self.day, 9), at(self.day, 10)
            )
            after = find_conflicts(
                session, self.alice, at(self.day, 11), at(self.day, 12)
            )
        assert before == []
        assert after == []

    def test_enclosing_window_conflicts(self):
        with get_session() as session:
            conflicts = find_conflicts(
                session, self.alice, at(self.day, 8), at(self.day, 13)
            )
            assert len(conflicts) == 1

    def test_other_users_calendar_is_independent(self):
        bob = self.create_user("bob")
        with get_session() as session:
            assert find_conflicts(session, bob, at(self.day, 10), at(self.day, 11)) == []

    def test_invited_participant_has_no_conflict_until_accepting(self):
        bob = self.create_user("bob")
        with get_session() as session:
            lifecycle.add_participants(
                session, self.meeting.id, [RegisteredInvitee(user_id=bob)]
            )

        with get_session() as session:
            assert find_conflicts(session, bob, at(self.day, 10), at(self.day, 11)) == []

        with get_session() as session:
            lifecycle.update_participant_response(
                session, self.meeting.id, bob, ParticipantStatus.accepted
            )

        with get_session() as session:
            conflicts = find_conflicts(
                session, bob, at(self.day, 10), at(self.day, 11)
            )
            assert [m.id for m in conflicts] == [self.meeting.id]

    def test_cancelled_meetings_are_ignored(self):
        with get_session() as session:
            lifecycle.cancel_meeting(session, self.meeting.id, self.alice)

        with get_session() as session:
            assert (
                find_conflicts(session, self.alice, at(self.day, 10), at(self.day, 11))
                == []
            )

    def test_exclude_meeting_id(self):
        with get_session() as session:
            conflicts = find_conflicts(
                session,
                self.alice,
                at(self.day, 10),
                at(self.day, 11),
                exclude_meeting_id=self.meeting.id,
            )
        assert conflicts == []

    def test_results_ordered_by_start_time(self):
        later = self.create_meeting(self.alice, day=self.day, start_hour=14)
        earlier = self.create_meeting(self.alice, day=self.day, start_hour=8)
        with get_session() as session:
            conflicts = find_conflicts(
                session, self.alice, at(self.day, 7), at(self.day, 18)
            )
            assert [m.id for m in conflicts] == [earlier.id, self.meeting.id, later.id]

    @pytest.mark.parametrize("end_hour", [10, 9])
    def test_empty_or_inverted_range_rejected(self, end_hour):
        with pytest.raises(ValidationError) as exc_info:
            with get_session() as session:
                find_conflicts(
                    session, self.alice, at(self.day, 10), at(self.day, end_hour)
                )
        assert exc_info.value.message == "End time must be after start time"


class TestOverlaps(BaseMeetingsTest):
    def test_half_open_interval(self):
        day = future_day()
        alice = self.create_user("alice")
        meeting = self.create_meeting(alice, day=day, start_hour=10)

        assert overlaps(meeting, at(day, 10, 59), at(day, 12))
        assert not overlaps(meeting, at(day, 11), at(day, 12))
        assert not overlaps(meeting, at(day, 9), at(day, 10))
        assert meeting.status == MeetingStatus.scheduled
