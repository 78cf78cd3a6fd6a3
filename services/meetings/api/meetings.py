from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from services.common.http_errors import NotFoundError
from services.common.logging_config import get_logger
from services.meetings.api.auth import get_current_user_id
from services.meetings.models import Meeting, get_session
from services.meetings.schemas import (
    AccessRequest,
    AccessResponse,
    AddParticipantsRequest,
    CalendarOverviewResponse,
    InvitationResponse,
    JoinInfo,
    MeetingCreate,
    MeetingDetailResponse,
    MeetingFilters,
    MeetingListResponse,
    MeetingPasswordUpdate,
    MeetingResponse,
    MeetingUpdate,
    ParticipantResponse,
    ParticipantResponseUpdate,
    PasswordUpdateResponse,
    ResponseStats,
    ShareLinkResponse,
)
from services.meetings.services import access, lifecycle
from services.meetings.services.lifecycle import organizer_locks

logger = get_logger(__name__)

router = APIRouter()


def _meeting_list(
    meetings: List[Meeting], total: Optional[int] = None
) -> MeetingListResponse:
    return MeetingListResponse(
        meetings=[MeetingResponse.model_validate(m) for m in meetings],
        total=len(meetings) if total is None else total,
    )


@router.post("", response_model=MeetingResponse, status_code=201)
def create_meeting(
    data: MeetingCreate, user_id: int = Depends(get_current_user_id)
) -> MeetingResponse:
    logger.info(
        "Creating meeting",
        user_id=user_id,
        start_time=data.start_time.isoformat(),
        participants=len(data.participants),
    )
    # Held until after commit so a concurrent create sees this row
    with organizer_locks.hold(user_id):
        with get_session() as session:
            meeting = lifecycle.create_meeting(session, user_id, data)
            return MeetingResponse.model_validate(meeting)


@router.get("", response_model=MeetingListResponse)
def list_meetings(
    filters: MeetingFilters = Depends(),
    user_id: int = Depends(get_current_user_id),
) -> MeetingListResponse:
    with get_session() as session:
        meetings = lifecycle.list_meetings(session, user_id, filters)
        return _meeting_list(meetings)


@router.get("/upcoming", response_model=MeetingListResponse)
def upcoming_meetings(
    limit: int = Query(10, ge=1, le=50),
    user_id: int = Depends(get_current_user_id),
) -> MeetingListResponse:
    with get_session() as session:
        meetings, total = lifecycle.get_upcoming_meetings(session, user_id, limit)
        return _meeting_list(meetings, total)


@router.get("/overview", response_model=CalendarOverviewResponse)
def calendar_overview(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    user_id: int = Depends(get_current_user_id),
) -> CalendarOverviewResponse:
    today = datetime.now(timezone.utc)
    year = year or today.year
    month = month or today.month
    with get_session() as session:
        by_date = lifecycle.get_calendar_overview(session, user_id, year, month)
        return CalendarOverviewResponse(
            year=year,
            month=month,
            days={
                day: [MeetingResponse.model_validate(m) for m in meetings]
                for day, meetings in by_date.items()
            },
            total=sum(len(meetings) for meetings in by_date.values()),
        )


@router.get("/{meeting_id}", response_model=MeetingDetailResponse)
def get_meeting(
    meeting_id: int, user_id: int = Depends(get_current_user_id)
) -> MeetingDetailResponse:
    with get_session() as session:
        details = lifecycle.get_meeting_details(session, meeting_id, user_id)
        return MeetingDetailResponse(
            meeting=MeetingResponse.model_validate(details.meeting),
            participants=[
                ParticipantResponse.model_validate(p) for p in details.participants
            ],
            participation=(
                ParticipantResponse.model_validate(details.participation)
                if details.participation is not None
                else None
            ),
            is_organizer=details.is_organizer,
            response_stats=ResponseStats(**details.response_stats),
        )


@router.put("/{meeting_id}", response_model=MeetingResponse)
def update_meeting(
    meeting_id: int,
    data: MeetingUpdate,
    user_id: int = Depends(get_current_user_id),
) -> MeetingResponse:
    with organizer_locks.hold(user_id):
        with get_session() as session:
            meeting = lifecycle.update_meeting(session, meeting_id, user_id, data)
            return MeetingResponse.model_validate(meeting)


@router.delete("/{meeting_id}", response_model=MeetingResponse)
def cancel_meeting(
    meeting_id: int, user_id: int = Depends(get_current_user_id)
) -> MeetingResponse:
    with get_session() as session:
        meeting = lifecycle.cancel_meeting(session, meeting_id, user_id)
        return MeetingResponse.model_validate(meeting)


@router.post(
    "/{meeting_id}/participants",
    response_model=List[ParticipantResponse],
    status_code=201,
)
def add_participants(
    meeting_id: int,
    data: AddParticipantsRequest,
    user_id: int = Depends(get_current_user_id),
) -> List[ParticipantResponse]:
    with get_session() as session:
        created = lifecycle.add_participants(
            session, meeting_id, data.participants, organizer_id=user_id
        )
        return [ParticipantResponse.model_validate(p) for p in created]


@router.put("/{meeting_id}/response", response_model=ParticipantResponse)
def respond_to_meeting(
    meeting_id: int,
    data: ParticipantResponseUpdate,
    user_id: int = Depends(get_current_user_id),
) -> ParticipantResponse:
    with get_session() as session:
        participant = lifecycle.update_participant_response(
            session, meeting_id, user_id, data.status, data.notes
        )
        return ParticipantResponse.model_validate(participant)


@router.post("/{meeting_id}/validate-access", response_model=AccessResponse)
def validate_access(
    meeting_id: int,
    data: AccessRequest,
    user_id: int = Depends(get_current_user_id),
) -> AccessResponse:
    with get_session() as session:
        decision = access.validate_access(session, meeting_id, data.password, user_id)
        if decision.reason == access.REASON_NOT_FOUND:
            raise NotFoundError("Meeting", str(meeting_id))
        return AccessResponse(
            can_join=decision.can_join,
            reason=decision.reason,
            message=decision.message,
            join_info=JoinInfo(**decision.join_info) if decision.join_info else None,
        )


@router.get("/{meeting_id}/share-link", response_model=ShareLinkResponse)
def share_link(
    meeting_id: int,
    include_password: bool = Query(False),
    user_id: int = Depends(get_current_user_id),
) -> ShareLinkResponse:
    with get_session() as session:
        link = lifecycle.get_share_link(session, meeting_id, user_id, include_password)
        return ShareLinkResponse(**link)


@router.get("/{meeting_id}/invitation", response_model=InvitationResponse)
def invitation(
    meeting_id: int, user_id: int = Depends(get_current_user_id)
) -> InvitationResponse:
    with get_session() as session:
        payload = lifecycle.generate_invitation(session, meeting_id, user_id)
        return InvitationResponse(**payload)


@router.put("/{meeting_id}/password", response_model=PasswordUpdateResponse)
def update_password(
    meeting_id: int,
    data: MeetingPasswordUpdate,
    user_id: int = Depends(get_current_user_id),
) -> PasswordUpdateResponse:
    with get_session() as session:
        meeting = lifecycle.update_meeting_password(
            session,
            meeting_id,
            user_id,
            new_password=data.new_password,
            remove_password=data.remove_password,
        )
        return PasswordUpdateResponse(
            meeting_id=meeting.id,
            is_password_protected=meeting.is_password_protected,
            password=meeting.password,
            message=(
                "Password removed successfully"
                if data.remove_password
                else "Password updated successfully"
            ),
        )
