"""
Join-time access gate.

Checks run in a fixed order and the first failure decides the outcome:
existence, cancellation, completion, password, guest policy. The decision
never carries the stored password.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from services.common.http_errors import AccessDeniedError, NotFoundError
from services.common.logging_config import get_logger
from services.meetings.models.meeting import Meeting, MeetingParticipant, MeetingStatus

logger = get_logger(__name__)

REASON_NOT_FOUND = "not_found"
REASON_CANCELLED = "cancelled"
REASON_COMPLETED = "completed"
REASON_PASSWORD_REQUIRED = "password_required"
REASON_INVALID_PASSWORD = "invalid_password"
REASON_GUEST_NOT_ALLOWED = "guest_access_not_allowed"

_MESSAGES = {
    REASON_NOT_FOUND: "Meeting not found",
    REASON_CANCELLED: "Meeting has been cancelled",
    REASON_COMPLETED: "Meeting has already ended",
    REASON_PASSWORD_REQUIRED: "Meeting password is required",
    REASON_INVALID_PASSWORD: "Invalid meeting password",
    REASON_GUEST_NOT_ALLOWED: "Guest access is not allowed for this meeting",
}


@dataclass
class AccessDecision:
    can_join: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    join_info: Optional[Dict[str, Any]] = None
    meeting: Optional[Meeting] = None


def _deny(reason: str, meeting: Optional[Meeting] = None) -> AccessDecision:
    return AccessDecision(
        can_join=False, reason=reason, message=_MESSAGES[reason], meeting=meeting
    )


def _is_participant(session: Session, meeting_id: int, caller_id: int) -> bool:
    stmt = select(MeetingParticipant.id).where(
        MeetingParticipant.meeting_id == meeting_id,
        MeetingParticipant.user_id == caller_id,
    )
    return session.execute(stmt).first() is not None


def validate_access(
    session: Session,
    meeting_id: int,
    password: Optional[str] = None,
    caller_id: Optional[int] = None,
) -> AccessDecision:
    meeting = session.get(Meeting, meeting_id)
    if meeting is None:
        return _deny(REASON_NOT_FOUND)

    status = meeting.effective_status()
    if status == MeetingStatus.cancelled:
        return _deny(REASON_CANCELLED, meeting)
    if status == MeetingStatus.completed:
        return _deny(REASON_COMPLETED, meeting)

    if meeting.requires_password():
        if not password:
            return _deny(REASON_PASSWORD_REQUIRED, meeting)
        if not meeting.check_password(password):
            return _deny(REASON_INVALID_PASSWORD, meeting)

    if not meeting.allow_guest_access:
        is_participant = caller_id is not None and (
            caller_id == meeting.organizer_id
            or _is_participant(session, meeting.id, caller_id)
        )
        if not is_participant:
            return _deny(REASON_GUEST_NOT_ALLOWED, meeting)

    return AccessDecision(
        can_join=True, join_info=meeting.join_info(), meeting=meeting
    )


def require_access(
    session: Session,
    meeting_id: int,
    password: Optional[str] = None,
    caller_id: Optional[int] = None,
) -> AccessDecision:
    """Like ``validate_access`` but raises on denial."""
    decision = validate_access(session, meeting_id, password, caller_id)
    if decision.can_join:
        return decision

    logger.info(
        "Meeting access denied",
        meeting_id=meeting_id,
        reason=decision.reason,
        caller_id=caller_id,
    )
    if decision.reason == REASON_NOT_FOUND:
        raise NotFoundError("Meeting", str(meeting_id))
    raise AccessDeniedError(decision.message or "Access denied", reason=decision.reason)
