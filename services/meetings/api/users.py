from fastapi import APIRouter, Depends

from services.common.logging_config import get_logger
from services.meetings.api.auth import get_current_user_id
from services.meetings.models import get_session
from services.meetings.schemas import UserResponse, UserUpdate
from services.meetings.services import identity

logger = get_logger(__name__)

router = APIRouter()


@router.get("/me", response_model=UserResponse)
def get_me(user_id: int = Depends(get_current_user_id)) -> UserResponse:
    with get_session() as session:
        return UserResponse.model_validate(identity.get_user(session, user_id))


@router.put("/me", response_model=UserResponse)
def update_me(
    data: UserUpdate, user_id: int = Depends(get_current_user_id)
) -> UserResponse:
    with get_session() as session:
        user = identity.update_profile(session, user_id, data)
        return UserResponse.model_validate(user)


@router.post("/me/deactivate", response_model=UserResponse)
def deactivate_me(user_id: int = Depends(get_current_user_id)) -> UserResponse:
    with get_session() as session:
        user = identity.deactivate_user(session, user_id)
        logger.info("Account deactivated by owner", user_id=user_id)
        return UserResponse.model_validate(user)
