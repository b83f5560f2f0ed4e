# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Every action must be attributable, so every request runs as a User.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, at least one uppercase, lowercase, digit and one
  of @$!%*?&; nothing outside letters, digits and those specials
- Five consecutive failed logins lock the account for 30 minutes. The lock
  lives on the user row and is cleared lazily by the next login attempt
  after it expires; no background sweep.
- Tokens are issued by token_service; changing a password invalidates
  every token issued before the change.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import timedelta

import bcrypt
from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import User
from ..models.auth import ROLES, PANEL_SECTIONS
from ..validation import ValidationError, field_error
from . import token_service
from fieldops.time_utils import utcnow

MAX_FAILED_ATTEMPTS = 5
LOCKOUT_DURATION = timedelta(minutes=30)

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Roles that public registration may not create
PRIVILEGED_ROLES = ("Admin", "Sub Admin")


class AuthError(ValueError):
    """Business-rule failure in account management (400)."""
    pass


class LoginError(Exception):
    """Failed login (401). Message is safe to show to the client."""
    pass


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


@dataclass
class LoginResult:
    user: User
    token: str


def validate_password_strength(password: str | None) -> None:
    if not password or len(password) < 8:
        raise PasswordValidationError(
            "Password must be at least 8 characters long",
            errors=[{"field": "password", "message": "Password must be at least 8 characters long"}],
        )
    if not PASSWORD_PATTERN.match(password):
        message = (
            "Password must include at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
        raise PasswordValidationError(message, errors=[{"field": "password", "message": message}])


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt (cost 12)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise field_error("email", "Please provide a valid email")
    return value


def validate_name(name: str | None) -> str:
    value = (name or "").strip()
    if not value:
        raise field_error("name", "Name is required")
    if len(value) > 50:
        raise field_error("name", "Name cannot be more than 50 characters")
    return value


def _validate_sections(sections) -> list[str]:
    if sections is None:
        return []
    if not isinstance(sections, list) or any(s not in PANEL_SECTIONS for s in sections):
        raise AuthError("Invalid permission(s) specified")
    return list(dict.fromkeys(sections))


def get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter(User.email == email.strip().lower()).first()


def create_user(
    *,
    name: str,
    email: str,
    password: str,
    role: str = "Marketing Staff",
    created_by_id: int | None = None,
    is_sub_admin: bool = False,
    sections: list[str] | None = None,
    duplicate_message: str = "User already exists",
) -> User:
    """Create a user; the caller commits."""
    name = validate_name(name)
    email = normalize_email(email)
    if role not in ROLES:
        raise field_error("role", f"role must be one of: {', '.join(ROLES)}")
    if get_user_by_email(email):
        raise AuthError(duplicate_message)

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_sub_admin=is_sub_admin,
        permissions=sections or [],
        created_by_id=created_by_id,
        active=True,
    )
    db.session.add(user)
    db.session.flush()
    return user


def register(payload: dict) -> LoginResult:
    role = payload.get("role") or "Marketing Staff"
    if role in PRIVILEGED_ROLES:
        raise AuthError("This role cannot be self-registered")

    user = create_user(
        name=payload.get("name"),
        email=payload.get("email"),
        password=payload.get("password"),
        role=role,
    )
    user.last_login_at = utcnow()
    db.session.commit()
    current_app.logger.info("New user registered: %s with role %s", user.email, user.role)
    return LoginResult(user=user, token=token_service.issue_token(user))


def authenticate(*, email: str | None, password: str | None, role: str | None = None, admin_panel: bool = False) -> LoginResult:
    """
    Resolve credentials to a user and a fresh token.

    admin_panel restricts matches to Admin and sub-admin users; role
    restricts matches to one role. Raises LoginError with the client message.
    """
    if not email or not password:
        raise field_error("email", "Please provide email and password")

    email = email.strip().lower()
    query = db.session.query(User).filter(User.email == email)
    if admin_panel:
        query = query.filter(db.or_(User.role == "Admin", User.is_sub_admin.is_(True)))
    elif role:
        query = query.filter(User.role == role)
    user = query.first()

    if user is None:
        message = "Invalid credentials"
        if role and not admin_panel and get_user_by_email(email):
            message = f"No user with role '{role}' found for this email"
        elif admin_panel:
            message = "You do not have permission to access the admin panel"
        current_app.logger.warning("Failed login attempt for %s%s", email, f" with role {role}" if role else "")
        raise LoginError(message)

    now = utcnow()
    if user.account_locked and user.lock_until and user.lock_until > now:
        minutes = math.ceil((user.lock_until - now).total_seconds() / 60)
        raise LoginError(f"Account is temporarily locked. Please try again in {minutes} minutes.")

    if user.account_locked:
        user.account_locked = False
        user.login_attempts = 0
        user.lock_until = None

    if not user.active or not verify_password(password, user.password_hash):
        _register_failed_login(user, now)
        db.session.commit()
        current_app.logger.warning("Failed login attempt for user: %s", email)
        raise LoginError("Invalid credentials")

    user.login_attempts = 0
    user.account_locked = False
    user.lock_until = None
    user.last_login_at = now
    db.session.commit()

    current_app.logger.info("User logged in: %s with role %s", user.email, user.role)
    return LoginResult(user=user, token=token_service.issue_token(user))


def _register_failed_login(user: User, now) -> None:
    user.login_attempts = (user.login_attempts or 0) + 1
    if user.login_attempts >= MAX_FAILED_ATTEMPTS:
        user.account_locked = True
        user.lock_until = now + LOCKOUT_DURATION


def unlock_user(user: User) -> None:
    user.login_attempts = 0
    user.account_locked = False
    user.lock_until = None


def set_password(user: User, new_password: str) -> None:
    """
    Replace the password and invalidate older tokens.

    password_changed_at is stamped one second in the past so a token issued
    right after the change (same second) is still accepted.
    """
    user.password_hash = hash_password(new_password)
    user.password_changed_at = utcnow() - timedelta(seconds=1)


def update_password(user: User, *, current_password: str | None, new_password: str | None) -> LoginResult:
    if not current_password or not new_password:
        raise AuthError("Please provide current password and new password")
    if not verify_password(current_password, user.password_hash):
        raise LoginError("Current password is incorrect")

    set_password(user, new_password)
    db.session.commit()
    current_app.logger.info("Password updated for user: %s", user.email)
    return LoginResult(user=user, token=token_service.issue_token(user))


def refresh(user: User) -> LoginResult:
    return LoginResult(user=user, token=token_service.issue_token(user))


# -- Sub-admins --

def create_sub_admin(*, payload: dict, created_by: User) -> User:
    sections = _validate_sections(payload.get("permissions"))
    user = create_user(
        name=payload.get("name"),
        email=payload.get("email"),
        password=payload.get("password"),
        role="Sub Admin",
        created_by_id=created_by.id,
        is_sub_admin=True,
        sections=sections,
    )
    db.session.commit()
    current_app.logger.info("Sub-admin created: %s by %s", user.email, created_by.id)
    return user


def _get_sub_admin(user_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id, is_sub_admin=True).first()
    if not user:
        raise NotFoundError("Sub-admin not found")
    return user


def list_sub_admins() -> list[User]:
    return db.session.query(User).filter_by(is_sub_admin=True).order_by(User.created_at.desc()).all()


def get_sub_admin(user_id: int) -> User:
    return _get_sub_admin(user_id)


def update_sub_admin(user_id: int, payload: dict) -> User:
    sections = None
    if "permissions" in payload:
        sections = _validate_sections(payload.get("permissions"))
    user = _get_sub_admin(user_id)

    if payload.get("name") is not None:
        user.name = validate_name(payload.get("name"))
    if payload.get("email") is not None:
        email = normalize_email(payload.get("email"))
        existing = get_user_by_email(email)
        if existing and existing.id != user.id:
            raise AuthError("Email already in use")
        user.email = email
    if sections is not None:
        user.permissions = sections

    db.session.commit()
    return user


def delete_sub_admin(user_id: int) -> None:
    user = _get_sub_admin(user_id)
    db.session.delete(user)
    db.session.commit()
