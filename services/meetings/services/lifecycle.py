"""
Meeting lifecycle manager.

Every operation takes the caller's SQLAlchemy ``Session`` and only flushes;
the caller's ``get_session()`` block owns the commit, so a failure anywhere
rolls the whole operation back.

Conflict checks and the inserts that depend on them run under a
per-organizer lock (``organizer_locks``). The lock is reentrant so an HTTP
handler can hold it across the whole transaction, commit included, while the
core still takes it for direct callers. It only serializes requests inside
one process.
"""

import threading
from calendar import monthrange
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Generator, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from services.common.http_errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)
from services.common.logging_config import get_logger
from services.meetings.models.base import utcnow
from services.meetings.models.meeting import (
    ROLE_ORDER,
    Meeting,
    MeetingParticipant,
    MeetingStatus,
    ParticipantRole,
    ParticipantStatus,
    RecurrenceType,
)
from services.meetings.models.user import User
from services.meetings.schemas.meetings import (
    RESPONSE_STATUSES,
    GuestInvitee,
    Invitee,
    MeetingCreate,
    MeetingFilters,
    MeetingUpdate,
    RegisteredInvitee,
)
from services.meetings.services import security
from services.meetings.services.conflicts import find_conflicts
from services.meetings.settings import get_settings

logger = get_logger(__name__)

MAX_MEETING_DURATION = timedelta(hours=8)
UPCOMING_WINDOW = timedelta(days=7)

# Columns that may not be cleared through a partial update
_NON_NULLABLE_UPDATE_FIELDS = {
    "title",
    "start_time",
    "end_time",
    "timezone",
    "meeting_type",
    "allow_guest_access",
}


@dataclass
class _OrganizerLock:
    lock: threading.RLock = field(default_factory=threading.RLock)
    holders: int = 0


class OrganizerLocks:
    """One re-entrant lock per organizer id, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: Dict[int, _OrganizerLock] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, organizer_id: int) -> Generator[None, None, None]:
        with self._guard:
            entry = self._locks.get(organizer_id)
            if entry is None:
                entry = self._locks[organizer_id] = _OrganizerLock()
            # Counted before acquiring so waiters keep the entry alive
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[organizer_id]


organizer_locks = OrganizerLocks()


@dataclass
class MeetingDetails:
    meeting: Meeting
    participants: List[MeetingParticipant]
    participation: Optional[MeetingParticipant]
    is_organizer: bool
    response_stats: Dict[str, int] = field(default_factory=dict)


def _get_meeting(session: Session, meeting_id: int) -> Meeting:
    meeting = session.get(Meeting, meeting_id)
    if meeting is None:
        raise NotFoundError("Meeting", str(meeting_id))
    return meeting


def _get_owned_meeting(
    session: Session, meeting_id: int, user_id: int, action: str
) -> Meeting:
    meeting = _get_meeting(session, meeting_id)
    if meeting.organizer_id != user_id:
        raise PermissionDeniedError(f"Only the organizer can {action}")
    return meeting


def _find_participant(
    session: Session, meeting_id: int, user_id: int
) -> Optional[MeetingParticipant]:
    stmt = select(MeetingParticipant).where(
        MeetingParticipant.meeting_id == meeting_id,
        MeetingParticipant.user_id == user_id,
    )
    return session.execute(stmt).scalars().first()


def _validate_times(
    start: datetime, end: datetime, now: Optional[datetime] = None
) -> None:
    if end <= start:
        raise ValidationError("End time must be after start time", field="end_time")
    if start <= (now or utcnow()):
        raise ValidationError(
            "Meeting start time must be in the future", field="start_time"
        )
    if end - start > MAX_MEETING_DURATION:
        raise ValidationError(
            "Meeting duration cannot exceed 8 hours", field="end_time"
        )


def _raise_on_conflicts(
    session: Session,
    actor_id: int,
    start: datetime,
    end: datetime,
    exclude_meeting_id: Optional[int] = None,
) -> None:
    conflicts = find_conflicts(session, actor_id, start, end, exclude_meeting_id)
    if conflicts:
        titles = ", ".join(m.title for m in conflicts)
        raise ConflictError(
            f"Time conflict detected with existing meetings: {titles}",
            details={"conflicting_meeting_ids": [m.id for m in conflicts]},
        )


def _validated_password(password: str) -> str:
    check = security.validate_password_strength(password)
    if not check.ok:
        # The candidate password is never echoed back
        raise ValidationError(
            "Invalid meeting password",
            field="password",
            details={"errors": check.errors},
        )
    return password


def _ensure_channel_available(
    session: Session, channel_name: str, exclude_meeting_id: Optional[int] = None
) -> None:
    if not security.validate_channel_name(channel_name):
        raise ValidationError(
            "Channel name may only contain letters, digits, underscores and "
            "hyphens (max 64 characters)",
            field="channel_name",
            value=channel_name,
        )
    stmt = select(Meeting.id).where(Meeting.channel_name == channel_name)
    if exclude_meeting_id is not None:
        stmt = stmt.where(Meeting.id != exclude_meeting_id)
    if session.execute(stmt).first() is not None:
        raise ValidationError(
            "Channel name is already in use",
            field="channel_name",
            code=ErrorCode.ALREADY_EXISTS,
        )


def _add_invitee(
    session: Session, meeting: Meeting, invitee: Invitee
) -> Optional[MeetingParticipant]:
    """Create one participant row, or return None if already present."""
    user: Optional[User] = None
    email: Optional[str] = None
    name: Optional[str] = None

    if isinstance(invitee, RegisteredInvitee):
        user = session.get(User, invitee.user_id)
        if user is None:
            raise NotFoundError("User", str(invitee.user_id))
    elif isinstance(invitee, GuestInvitee):
        email = invitee.email.lower()
        name = invitee.name
        # A guest email that belongs to an account is treated as that account
        stmt = select(User).where(func.lower(User.email) == email)
        user = session.execute(stmt).scalars().first()

    if user is not None:
        email = user.email.lower()
        name = name or user.full_name

    same_person = [func.lower(MeetingParticipant.email) == email]
    if user is not None:
        same_person.append(MeetingParticipant.user_id == user.id)
    duplicate = select(MeetingParticipant.id).where(
        MeetingParticipant.meeting_id == meeting.id, or_(*same_person)
    )
    if session.execute(duplicate).first() is not None:
        logger.debug(
            "Skipping duplicate participant",
            meeting_id=meeting.id,
            user_id=user.id if user is not None else None,
        )
        return None

    participant = MeetingParticipant(
        meeting_id=meeting.id,
        user_id=user.id if user is not None else None,
        email=email,
        name=name,
        status=ParticipantStatus.invited,
        role=invitee.role,
    )
    session.add(participant)
    # Flush per row so later invitees in the same batch see this one
    session.flush()
    return participant


def create_meeting(session: Session, organizer_id: int, data: MeetingCreate) -> Meeting:
    settings = get_settings()
    organizer = session.get(User, organizer_id)
    if organizer is None:
        raise NotFoundError("User", str(organizer_id))

    _validate_times(data.start_time, data.end_time)
    if data.is_recurring and data.recurrence_end_date is not None:
        if data.recurrence_end_date <= data.start_time:
            raise ValidationError(
                "Recurrence end date must be after the meeting start",
                field="recurrence_end_date",
            )

    if data.channel_name:
        channel_name: Optional[str] = data.channel_name
        _ensure_channel_available(session, data.channel_name)
    elif data.generate_channel:
        channel_name = security.generate_channel_name(data.title)
    else:
        channel_name = None

    if data.password:
        password: Optional[str] = _validated_password(data.password)
    elif data.generate_password:
        password = security.generate_password(settings.meeting_password_length)
    else:
        password = None

    with organizer_locks.hold(organizer_id):
        _raise_on_conflicts(session, organizer_id, data.start_time, data.end_time)

        meeting = Meeting(
            title=data.title,
            description=data.description,
            start_time=data.start_time,
            end_time=data.end_time,
            timezone=data.timezone,
            location=data.location,
            meeting_link=data.meeting_link,
            meeting_type=data.meeting_type,
            status=MeetingStatus.scheduled,
            max_participants=data.max_participants,
            is_recurring=data.is_recurring,
            recurrence_type=(
                data.recurrence_type if data.is_recurring else RecurrenceType.none
            ),
            recurrence_end_date=(
                data.recurrence_end_date if data.is_recurring else None
            ),
            organizer_id=organizer_id,
            channel_name=channel_name,
            provider_app_id=settings.provider_app_id,
            password=password,
            is_password_protected=password is not None,
            allow_guest_access=data.allow_guest_access,
        )
        session.add(meeting)
        session.flush()

        session.add(
            MeetingParticipant(
                meeting_id=meeting.id,
                user_id=organizer.id,
                email=organizer.email,
                name=organizer.full_name,
                status=ParticipantStatus.accepted,
                role=ParticipantRole.organizer,
                response_date=utcnow(),
            )
        )
        session.flush()

        invited = [
            p for p in (_add_invitee(session, meeting, i) for i in data.participants) if p
        ]

    logger.info(
        "Meeting created",
        meeting_id=meeting.id,
        organizer_id=organizer_id,
        start_time=meeting.start_time.isoformat(),
        password_protected=meeting.is_password_protected,
        invited=len(invited),
    )
    return meeting


def update_meeting(
    session: Session, meeting_id: int, user_id: int, data: MeetingUpdate
) -> Meeting:
    meeting = _get_owned_meeting(session, meeting_id, user_id, "update this meeting")
    if not meeting.can_be_modified():
        raise StateError("This meeting cannot be modified")

    changes = data.model_dump(exclude_unset=True)
    for key in _NON_NULLABLE_UPDATE_FIELDS:
        if key in changes and changes[key] is None:
            raise ValidationError(f"{key} cannot be null", field=key)

    if changes.get("channel_name"):
        _ensure_channel_available(session, changes["channel_name"], meeting.id)

    if "start_time" in changes or "end_time" in changes:
        new_start = changes.get("start_time", meeting.start_time)
        new_end = changes.get("end_time", meeting.end_time)
        _validate_times(new_start, new_end)
        with organizer_locks.hold(meeting.organizer_id):
            _raise_on_conflicts(
                session, meeting.organizer_id, new_start, new_end, meeting.id
            )
            for key, value in changes.items():
                setattr(meeting, key, value)
            session.flush()
    else:
        for key, value in changes.items():
            setattr(meeting, key, value)
        session.flush()

    logger.info("Meeting updated", meeting_id=meeting.id, fields=sorted(changes))
    return meeting


def cancel_meeting(session: Session, meeting_id: int, user_id: int) -> Meeting:
    meeting = _get_owned_meeting(session, meeting_id, user_id, "cancel this meeting")
    status = meeting.effective_status()
    if status == MeetingStatus.cancelled:
        raise StateError("Meeting is already cancelled")
    if status == MeetingStatus.completed:
        raise StateError("Meeting has already ended")

    meeting.status = MeetingStatus.cancelled
    session.flush()
    logger.info("Meeting cancelled", meeting_id=meeting.id, organizer_id=user_id)
    return meeting


def add_participants(
    session: Session,
    meeting_id: int,
    invitees: Iterable[Invitee],
    organizer_id: Optional[int] = None,
) -> List[MeetingParticipant]:
    """Invite participants, silently skipping anyone already on the meeting.

    Ownership is only enforced when ``organizer_id`` is given.
    """
    if organizer_id is not None:
        meeting = _get_owned_meeting(
            session, meeting_id, organizer_id, "add participants"
        )
    else:
        meeting = _get_meeting(session, meeting_id)
    created = []
    for invitee in invitees:
        participant = _add_invitee(session, meeting, invitee)
        if participant is not None:
            created.append(participant)
    logger.info("Participants added", meeting_id=meeting_id, added=len(created))
    return created


def update_participant_response(
    session: Session,
    meeting_id: int,
    user_id: int,
    status: ParticipantStatus,
    notes: Optional[str] = None,
) -> MeetingParticipant:
    if status not in RESPONSE_STATUSES:
        raise ValidationError(
            "Status must be one of: accepted, declined, tentative",
            field="status",
            value=status,
        )
    _get_meeting(session, meeting_id)
    participant = _find_participant(session, meeting_id, user_id)
    if participant is None:
        raise NotFoundError("Participant")

    participant.status = status
    if notes is not None:
        participant.notes = notes
    participant.response_date = utcnow()
    session.flush()
    logger.info(
        "Participant responded",
        meeting_id=meeting_id,
        user_id=user_id,
        status=status.value,
    )
    return participant


def update_meeting_password(
    session: Session,
    meeting_id: int,
    organizer_id: int,
    new_password: Optional[str] = None,
    remove_password: bool = False,
) -> Meeting:
    meeting = _get_owned_meeting(
        session, meeting_id, organizer_id, "update the meeting password"
    )

    if remove_password and new_password:
        raise ValidationError(
            "Cannot provide both new_password and remove_password",
            field="password",
        )

    if remove_password:
        meeting.password = None
        meeting.is_password_protected = False
    else:
        if new_password:
            meeting.password = _validated_password(new_password)
        else:
            meeting.password = security.generate_password(
                get_settings().meeting_password_length
            )
        meeting.is_password_protected = True
    session.flush()

    logger.info(
        "Meeting password updated",
        meeting_id=meeting.id,
        removed=remove_password,
        generated=not remove_password and not new_password,
    )
    return meeting


def get_response_stats(session: Session, meeting_id: int) -> Dict[str, int]:
    stmt = (
        select(MeetingParticipant.status, func.count(MeetingParticipant.id))
        .where(MeetingParticipant.meeting_id == meeting_id)
        .group_by(MeetingParticipant.status)
    )
    stats = {status.value: 0 for status in ParticipantStatus}
    for status, count in session.execute(stmt).all():
        stats[ParticipantStatus(status).value] = count
    stats["total"] = sum(stats.values())
    return stats


def get_meeting_details(
    session: Session, meeting_id: int, user_id: int
) -> MeetingDetails:
    meeting = _get_meeting(session, meeting_id)
    stmt = select(MeetingParticipant).where(
        MeetingParticipant.meeting_id == meeting_id
    )
    participants = sorted(
        session.execute(stmt).scalars().all(),
        key=lambda p: (ROLE_ORDER.get(p.role, len(ROLE_ORDER)), p.created_at, p.id),
    )
    participation = next((p for p in participants if p.user_id == user_id), None)
    is_organizer = meeting.organizer_id == user_id
    if not is_organizer and participation is None:
        raise PermissionDeniedError()

    return MeetingDetails(
        meeting=meeting,
        participants=participants,
        participation=participation,
        is_organizer=is_organizer,
        response_stats=get_response_stats(session, meeting_id),
    )


def list_meetings(
    session: Session, user_id: int, filters: Optional[MeetingFilters] = None
) -> List[Meeting]:
    """Meetings the user organizes or takes part in, ordered by start time."""
    filters = filters or MeetingFilters()

    if filters.participant_id is not None:
        membership = Meeting.id.in_(
            select(MeetingParticipant.meeting_id).where(
                MeetingParticipant.user_id == filters.participant_id
            )
        )
    else:
        membership = or_(
            Meeting.organizer_id == user_id,
            Meeting.id.in_(
                select(MeetingParticipant.meeting_id).where(
                    MeetingParticipant.user_id == user_id
                )
            ),
        )

    stmt = select(Meeting).where(membership)
    if filters.start_date is not None:
        stmt = stmt.where(Meeting.start_time >= filters.start_date)
    if filters.end_date is not None:
        stmt = stmt.where(Meeting.start_time <= filters.end_date)
    if filters.status is not None:
        stmt = stmt.where(Meeting.status == filters.status)
    if filters.meeting_type is not None:
        stmt = stmt.where(Meeting.meeting_type == filters.meeting_type)
    if filters.organizer_id is not None:
        stmt = stmt.where(Meeting.organizer_id == filters.organizer_id)

    stmt = stmt.order_by(Meeting.start_time, Meeting.id)
    return list(session.execute(stmt).scalars().unique().all())


def get_upcoming_meetings(
    session: Session, user_id: int, limit: int = 10
) -> Tuple[List[Meeting], int]:
    """Scheduled meetings in the next seven days, capped at ``limit``, plus the total."""
    now = utcnow()
    meetings = list_meetings(
        session,
        user_id,
        MeetingFilters(
            start_date=now,
            end_date=now + UPCOMING_WINDOW,
            status=MeetingStatus.scheduled,
        ),
    )
    return meetings[:limit], len(meetings)


def get_calendar_overview(
    session: Session, user_id: int, year: int, month: int
) -> Dict[str, List[Meeting]]:
    """Meetings starting in the given month (UTC), keyed by ISO date."""
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", field="month", value=month)

    last_day = monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    meetings = list_meetings(
        session, user_id, MeetingFilters(start_date=start, end_date=end)
    )

    by_date: Dict[str, List[Meeting]] = defaultdict(list)
    for meeting in meetings:
        by_date[meeting.start_time.date().isoformat()].append(meeting)
    return dict(by_date)


def get_share_link(
    session: Session, meeting_id: int, user_id: int, include_password: bool = False
) -> Dict[str, object]:
    meeting = _get_meeting(session, meeting_id)
    if (
        meeting.organizer_id != user_id
        and _find_participant(session, meeting_id, user_id) is None
    ):
        raise PermissionDeniedError()

    link = security.share_link(
        get_settings().frontend_url, meeting.id, include_password, meeting.password
    )
    return {
        "share_link": link,
        "meeting_id": meeting.id,
        "title": meeting.title,
        "requires_password": meeting.requires_password(),
        "password": meeting.password if include_password else None,
    }


def generate_invitation(
    session: Session, meeting_id: int, organizer_id: int
) -> Dict[str, object]:
    meeting = _get_owned_meeting(
        session, meeting_id, organizer_id, "generate invitations"
    )
    # The password is never put in the link itself
    join_link = security.share_link(get_settings().frontend_url, meeting.id)

    steps = [
        f"Click the join link: {join_link}",
        "Enter your name to join the meeting",
    ]
    if meeting.requires_password():
        steps.append(f"Enter the meeting password: {meeting.password}")
    steps.append("Allow camera and microphone access when prompted")
    steps.append('Click "Join Meeting" to enter the video call')

    return {
        "meeting_id": meeting.id,
        "title": meeting.title,
        "start_time": meeting.start_time,
        "end_time": meeting.end_time,
        "timezone": meeting.timezone,
        "join_link": join_link,
        "password": meeting.password if meeting.requires_password() else None,
        "instructions": [f"{n}. {step}" for n, step in enumerate(steps, start=1)],
    }
