"""
Identity provider for the meetings service.

Owns registration, credential verification and user lookup. Account
passwords are bcrypt-hashed; access tokens are HS256 JWTs signed with
``settings.jwt_secret``.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from services.common.http_errors import (
    AuthError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from services.common.logging_config import get_logger
from services.meetings.models.base import utcnow
from services.meetings.models.user import User
from services.meetings.schemas.users import UserRegister, UserUpdate
from services.meetings.settings import get_settings

logger = get_logger(__name__)

ACCESS_TOKEN_ALGORITHM = "HS256"
ACCESS_TOKEN_ISSUER = "huddle-meetings"
ACCESS_TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def register_user(session: Session, data: UserRegister) -> User:
    email = data.email.lower()
    stmt = select(User).where(
        or_(
            func.lower(User.email) == email,
            func.lower(User.username) == data.username.lower(),
        )
    )
    existing = session.execute(stmt).scalars().first()
    if existing is not None:
        if existing.email.lower() == email:
            raise ValidationError(
                "Email is already registered",
                field="email",
                code=ErrorCode.ALREADY_EXISTS,
            )
        raise ValidationError(
            "Username is already taken",
            field="username",
            code=ErrorCode.ALREADY_EXISTS,
        )

    user = User(
        username=data.username,
        email=email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
    )
    session.add(user)
    session.flush()
    logger.info("User registered", user_id=user.id, username=user.username)
    return user


def verify_credential(session: Session, email: str, password: str) -> User:
    """Return the user for a valid email/password pair and record the login."""
    stmt = select(User).where(func.lower(User.email) == email.lower())
    user = session.execute(stmt).scalars().first()
    if user is None or not check_password(password, user.password_hash):
        logger.info("Login failed", email_domain=email.rsplit("@", 1)[-1])
        raise AuthError("Invalid email or password")
    if not user.is_active:
        raise AuthError("Account is deactivated", code=ErrorCode.ACCOUNT_DISABLED)

    user.last_login = utcnow()
    session.flush()
    logger.info("User logged in", user_id=user.id)
    return user


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", str(user_id))
    return user


def is_active(session: Session, user_id: int) -> bool:
    user = session.get(User, user_id)
    return bool(user is not None and user.is_active)


def update_profile(session: Session, user_id: int, data: UserUpdate) -> User:
    user = get_user(session, user_id)
    changes = data.model_dump(exclude_unset=True)
    for key, value in changes.items():
        if key in ("first_name", "last_name") and value is None:
            raise ValidationError(f"{key} cannot be empty", field=key)
        setattr(user, key, value)
    session.flush()
    logger.info("Profile updated", user_id=user_id, fields=sorted(changes))
    return user


def deactivate_user(session: Session, user_id: int) -> User:
    user = get_user(session, user_id)
    user.is_active = False
    session.flush()
    logger.info("User deactivated", user_id=user_id)
    return user


def create_access_token(user: User, expires_minutes: Optional[int] = None) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or settings.jwt_expire_minutes)
    payload: Dict[str, Any] = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role.value,
        "iss": ACCESS_TOKEN_ISSUER,
        "type": ACCESS_TOKEN_TYPE,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ACCESS_TOKEN_ALGORITHM)


def decode_access_token(token: str) -> int:
    """Validate an access token and return the user id it was issued for."""
    try:
        claims = jwt.decode(
            token,
            get_settings().jwt_secret,
            algorithms=[ACCESS_TOKEN_ALGORITHM],
            issuer=ACCESS_TOKEN_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Access token has expired", code=ErrorCode.TOKEN_EXPIRED)
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid access token", error=str(e))
        raise AuthError("Invalid access token", code=ErrorCode.TOKEN_INVALID)

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthError("Invalid access token", code=ErrorCode.TOKEN_INVALID)
    try:
        return int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthError("Missing user ID in token", code=ErrorCode.TOKEN_INVALID)
