from datetime import date

from fastapi import APIRouter, Depends, Query

from services.common.logging_config import get_logger
from services.meetings.api.auth import get_current_user_id
from services.meetings.models import get_session
from services.meetings.schemas import AvailabilityResponse, TimeSlotResponse
from services.meetings.services.availability import WorkingHours, get_available_slots

logger = get_logger(__name__)

router = APIRouter()


@router.get("", response_model=AvailabilityResponse)
def get_availability(
    day: date = Query(..., alias="date", description="Day to inspect (YYYY-MM-DD)"),
    duration: int = Query(60, description="Slot length in minutes"),
    start_hour: int = Query(9),
    end_hour: int = Query(17),
    tz: str = Query("UTC", alias="timezone"),
    user_id: int = Depends(get_current_user_id),
) -> AvailabilityResponse:
    # Range checks live in the engine so they map to validation_error, not 422
    with get_session() as session:
        slots = get_available_slots(
            session,
            user_id,
            day,
            duration_minutes=duration,
            working_hours=WorkingHours(start_hour=start_hour, end_hour=end_hour),
            tz=tz,
        )
        return AvailabilityResponse(
            date=day,
            duration_minutes=duration,
            timezone=tz,
            slots=[TimeSlotResponse.model_validate(slot) for slot in slots],
        )
