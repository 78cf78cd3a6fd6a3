"""
Request identity for the meetings API, plus the register/login endpoints.

Callers authenticate with ``Authorization: Bearer <token>``; the token is
decoded and the account must still be active.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.common.http_errors import AuthError, ErrorCode
from services.common.logging_config import get_logger
from services.meetings.models import User, get_session
from services.meetings.schemas import (
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from services.meetings.services import identity
from services.meetings.settings import get_settings

logger = get_logger(__name__)

router = APIRouter()

# auto_error=False so missing credentials surface as our own AuthError
bearer_scheme = HTTPBearer(auto_error=False)


def _user_id_from_credentials(credentials: HTTPAuthorizationCredentials) -> int:
    user_id = identity.decode_access_token(credentials.credentials)
    with get_session() as session:
        if not identity.is_active(session, user_id):
            raise AuthError(
                "User account is inactive or no longer exists",
                code=ErrorCode.ACCOUNT_DISABLED,
            )
    return user_id


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> int:
    if credentials is None:
        raise AuthError("Authentication required")
    return _user_id_from_credentials(credentials)


def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[int]:
    """Identity for public endpoints: anonymous when no token is sent."""
    if credentials is None:
        return None
    return _user_id_from_credentials(credentials)


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=identity.create_access_token(user),
        expires_in=get_settings().jwt_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=201)
def register(data: UserRegister) -> TokenResponse:
    with get_session() as session:
        user = identity.register_user(session, data)
        return _token_response(user)


@router.post("/login", response_model=TokenResponse)
def login(data: UserLogin) -> TokenResponse:
    with get_session() as session:
        user = identity.verify_credential(session, data.email, data.password)
        return _token_response(user)
