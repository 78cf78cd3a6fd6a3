"""
Channel, password, share-link and join-token helpers for meetings.

The conferencing provider only ever sees the opaque channel name; passwords
here are meeting passwords (not account passwords) and are kept in plain text.
"""

import re
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import jwt

from services.meetings.settings import get_settings

# Visually confusable characters (0/O, 1/l/I) are left out
PASSWORD_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789"
PASSWORD_MIN_LENGTH = 4
PASSWORD_MAX_LENGTH = 50
CHANNEL_NAME_MAX_LENGTH = 100

_CHANNEL_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")
_PASSWORD_CHARSET_RE = re.compile(r"""^[a-zA-Z0-9!@#$%^&*()_+\-=\[\]{};':"\\|,.<>/?]*$""")

JOIN_TOKEN_ALGORITHM = "HS256"
JOIN_TOKEN_TYPE = "meeting_join"


@dataclass(frozen=True)
class PasswordCheck:
    ok: bool
    errors: List[str] = field(default_factory=list)


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    out = []
    while number:
        number, remainder = divmod(number, 36)
        out.append(digits[remainder])
    return "".join(reversed(out))


def generate_channel_name(title: str, meeting_id: Optional[int] = None) -> str:
    """
    Build a provider channel name from a meeting title.

    Shape: ``<sanitized title, max 20>_<base36 ms timestamp>_<8 hex>[_<id>]``.
    Uniqueness relies on the timestamp plus random suffix; collisions are not
    formally prevented (the column's unique constraint is the backstop).
    """
    sanitized = re.sub(r"[^a-z0-9]", "", title.lower())[:20]
    timestamp = _base36(int(time.time() * 1000))
    random_part = secrets.token_hex(4)
    id_part = f"_{meeting_id}" if meeting_id else ""
    return f"{sanitized}_{timestamp}_{random_part}{id_part}"


def validate_channel_name(name: str) -> bool:
    """Provider channel names: 1-64 chars of letters, digits, underscore, hyphen."""
    return bool(_CHANNEL_NAME_RE.match(name))


def generate_password(length: int = 8) -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def validate_password_strength(password: str) -> PasswordCheck:
    errors: List[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
        )
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password cannot exceed {PASSWORD_MAX_LENGTH} characters")
    if not _PASSWORD_CHARSET_RE.match(password):
        errors.append("Password contains invalid characters")
    return PasswordCheck(ok=not errors, errors=errors)


def share_link(
    base_url: str,
    meeting_id: int,
    include_password: bool = False,
    password: Optional[str] = None,
) -> str:
    link = f"{base_url.rstrip('/')}/join/{meeting_id}"
    if include_password and password:
        link += f"?pwd={quote(password, safe='')}"
    return link


def generate_join_token(
    meeting_id: int, user_id: Optional[int] = None, expires_in: int = 3600
) -> str:
    """Sign a short-lived token proving the holder passed the access gate."""
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "type": JOIN_TOKEN_TYPE,
        "meeting_id": meeting_id,
        "user_id": user_id,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(
        payload, get_settings().jwt_secret, algorithm=JOIN_TOKEN_ALGORITHM
    )

