"""
Conflict detection for an actor's calendar.

An actor's calendar is every non-cancelled meeting they organize plus every
meeting where they hold an ``accepted`` participant row. Overlap is half-open:
a meeting ending at 10:00 does not clash with one starting at 10:00.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from services.common.http_errors import ValidationError
from services.common.logging_config import get_logger
from services.meetings.models.meeting import (
    Meeting,
    MeetingParticipant,
    MeetingStatus,
    ParticipantStatus,
)

logger = get_logger(__name__)


def overlaps(meeting: Meeting, start: datetime, end: datetime) -> bool:
    return meeting.start_time < end and meeting.end_time > start


def candidate_meetings(
    session: Session,
    actor_id: int,
    start: datetime,
    end: datetime,
    exclude_meeting_id: Optional[int] = None,
) -> List[Meeting]:
    """Meetings on the actor's calendar that overlap ``[start, end)``."""
    accepted_ids = select(MeetingParticipant.meeting_id).where(
        MeetingParticipant.user_id == actor_id,
        MeetingParticipant.status == ParticipantStatus.accepted,
    )
    stmt = select(Meeting).where(
        or_(Meeting.organizer_id == actor_id, Meeting.id.in_(accepted_ids)),
        Meeting.status != MeetingStatus.cancelled,
        Meeting.start_time < end,
        Meeting.end_time > start,
    )
    if exclude_meeting_id is not None:
        stmt = stmt.where(Meeting.id != exclude_meeting_id)
    stmt = stmt.order_by(Meeting.start_time, Meeting.id)
    return list(session.execute(stmt).scalars().unique().all())


def find_conflicts(
    session: Session,
    actor_id: int,
    start: datetime,
    end: datetime,
    exclude_meeting_id: Optional[int] = None,
) -> List[Meeting]:
    if start >= end:
        raise ValidationError("End time must be after start time", field="end_time")

    conflicts = candidate_meetings(session, actor_id, start, end, exclude_meeting_id)
    if conflicts:
        logger.info(
            "Scheduling conflicts found",
            actor_id=actor_id,
            start=start.isoformat(),
            end=end.isoformat(),
            conflicting_meeting_ids=[m.id for m in conflicts],
        )
    return conflicts
