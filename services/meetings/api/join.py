"""
Public join endpoint.

Guests call it without credentials; signed-in users may send their bearer
token so that participant-only meetings let them through.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from services.common.logging_config import get_logger
from services.meetings.api.auth import get_optional_user_id
from services.meetings.models import get_session
from services.meetings.schemas import AccessRequest, JoinInfo, JoinResponse
from services.meetings.services import security
from services.meetings.services.access import require_access

logger = get_logger(__name__)

router = APIRouter()

JOIN_TOKEN_TTL_SECONDS = 3600


@router.post("/{meeting_id}", response_model=JoinResponse)
def join_meeting(
    meeting_id: int,
    data: AccessRequest,
    user_id: Optional[int] = Depends(get_optional_user_id),
) -> JoinResponse:
    with get_session() as session:
        decision = require_access(session, meeting_id, data.password, user_id)
        meeting = decision.meeting
        assert meeting is not None and decision.join_info is not None

        token = security.generate_join_token(
            meeting.id, user_id, expires_in=JOIN_TOKEN_TTL_SECONDS
        )
        logger.info(
            "Join granted",
            meeting_id=meeting.id,
            user_id=user_id,
            guest=user_id is None,
        )
        return JoinResponse(
            meeting_id=meeting.id,
            title=meeting.title,
            start_time=meeting.start_time,
            end_time=meeting.end_time,
            join_info=JoinInfo(**decision.join_info),
            join_token=token,
            expires_in=JOIN_TOKEN_TTL_SECONDS,
        )
