# Overview: Service-layer operations for session tokens; signs and verifies JWTs.

"""
Session Token Service

Tokens are stateless HS256 JWTs carrying {id, role, iat, exp}. Nothing is
stored server-side; a token stops working when it expires, when the user is
deactivated, or when the password changes after the token was issued.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import jwt
from flask import current_app

from ..errors import AuthenticationError
from ..extensions import db
from ..models import User

ALGORITHM = "HS256"

# Responses carry an expiry warning once the token is this close to expiring
EXPIRY_WARNING_SECONDS = 24 * 60 * 60


@dataclass
class TokenContext:
    user: User
    issued_at: int
    expires_at: int


def _epoch(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def _now_epoch() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def issue_token(user: User) -> str:
    now = _now_epoch()
    payload = {
        "id": user.id,
        "role": user.role,
        "iat": now,
        "exp": now + int(current_app.config["JWT_EXPIRATION"]),
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET"], algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, current_app.config["JWT_SECRET"], algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Your session has expired. Please log in again.", code="TOKEN_EXPIRED")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token. Please log in again.", code="INVALID_TOKEN")


def resolve_token(token: str | None) -> TokenContext:
    """
    Token -> active user, or AuthenticationError with a machine code.

    Codes: NO_TOKEN, INVALID_TOKEN, TOKEN_EXPIRED, USER_NOT_FOUND, PASSWORD_CHANGED.
    """
    if not token:
        raise AuthenticationError("Not authorized to access this route", code="NO_TOKEN")

    payload = decode_token(token)
    user_id = payload.get("id")
    if user_id is None:
        raise AuthenticationError("Invalid token. Please log in again.", code="INVALID_TOKEN")

    user = db.session.get(User, user_id)
    if user is None or not user.active:
        raise AuthenticationError("The user belonging to this token no longer exists.", code="USER_NOT_FOUND")

    issued_at = int(payload.get("iat", 0))
    if user.password_changed_at and issued_at < _epoch(user.password_changed_at):
        raise AuthenticationError(
            "User recently changed password. Please log in again.", code="PASSWORD_CHANGED"
        )

    return TokenContext(user=user, issued_at=issued_at, expires_at=int(payload.get("exp", 0)))


def seconds_until_expiry(context: TokenContext) -> int:
    return max(context.expires_at - _now_epoch(), 0)


def expires_soon(context: TokenContext) -> bool:
    return seconds_until_expiry(context) < EXPIRY_WARNING_SECONDS
