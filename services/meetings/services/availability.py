from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, List

import pytz
from sqlalchemy.orm import Session

from services.common.http_errors import ValidationError
from services.common.logging_config import get_logger
from services.meetings.models.meeting import Meeting
from services.meetings.services.conflicts import candidate_meetings, overlaps

logger = get_logger(__name__)

SLOT_STEP = timedelta(minutes=30)
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480


@dataclass(frozen=True)
class WorkingHours:
    start_hour: int = 9
    end_hour: int = 17


@dataclass
class TimeSlot:
    start: datetime
    end: datetime
    available: bool
    conflicts: List[Meeting] = field(default_factory=list)


def _validate(duration_minutes: int, working_hours: WorkingHours) -> None:
    if not MIN_DURATION_MINUTES <= duration_minutes <= MAX_DURATION_MINUTES:
        raise ValidationError(
            f"Duration must be between {MIN_DURATION_MINUTES} and "
            f"{MAX_DURATION_MINUTES} minutes",
            field="duration_minutes",
            value=duration_minutes,
        )
    if not 0 <= working_hours.start_hour < working_hours.end_hour <= 24:
        raise ValidationError(
            "Working hours must satisfy 0 <= start_hour < end_hour <= 24",
            field="working_hours",
            details={
                "start_hour": working_hours.start_hour,
                "end_hour": working_hours.end_hour,
            },
        )


def _zone(tz: str) -> pytz.BaseTzInfo:
    try:
        return pytz.timezone(tz)
    except pytz.exceptions.UnknownTimeZoneError:
        raise ValidationError(f"Unknown timezone: {tz}", field="tz", value=tz)


def day_bounds(
    day: date, working_hours: WorkingHours, tz: str = "UTC"
) -> tuple[datetime, datetime]:
    """Working-hours window of ``day`` in ``tz``, returned in UTC."""
    zone = _zone(tz)
    day_start = zone.localize(datetime.combine(day, time(working_hours.start_hour)))
    if working_hours.end_hour == 24:
        day_end = zone.localize(datetime.combine(day + timedelta(days=1), time(0)))
    else:
        day_end = zone.localize(datetime.combine(day, time(working_hours.end_hour)))
    return day_start.astimezone(timezone.utc), day_end.astimezone(timezone.utc)


def iter_time_slots(
    meetings: List[Meeting],
    day_start: datetime,
    day_end: datetime,
    duration: timedelta,
) -> Iterator[TimeSlot]:
    """Yield every window of ``duration`` that fits the day, 30 minutes apart.

    Windows overlap whenever ``duration`` exceeds the step.
    """
    window_start = day_start
    while window_start + duration <= day_end:
        window_end = window_start + duration
        conflicts = [m for m in meetings if overlaps(m, window_start, window_end)]
        yield TimeSlot(
            start=window_start,
            end=window_end,
            available=not conflicts,
            conflicts=conflicts,
        )
        window_start += SLOT_STEP


def get_available_slots(
    session: Session,
    actor_id: int,
    day: date,
    duration_minutes: int = 60,
    working_hours: WorkingHours = WorkingHours(),
    tz: str = "UTC",
) -> List[TimeSlot]:
    _validate(duration_minutes, working_hours)
    day_start, day_end = day_bounds(day, working_hours, tz)

    # One query for the whole day; each window is tested in memory
    meetings = candidate_meetings(session, actor_id, day_start, day_end)
    slots = list(
        iter_time_slots(
            meetings, day_start, day_end, timedelta(minutes=duration_minutes)
        )
    )

    logger.info(
        "Computed availability",
        actor_id=actor_id,
        day=day.isoformat(),
        duration_minutes=duration_minutes,
        total_slots=len(slots),
        available_slots=sum(1 for slot in slots if slot.available),
    )
    return slots
