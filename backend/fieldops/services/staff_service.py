# Overview: Service-layer operations for staff administration (Admin panel).

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import User
from ..models.auth import ROLES
from . import auth_service
from .auth_service import AuthError


class StaffError(ValueError):
    pass


def _get(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("Staff member not found")
    return user


def staff_query(*, role: str | None = None, active: bool | None = None):
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role)
    if active is not None:
        query = query.filter(User.active.is_(active))
    return query.order_by(User.created_at.desc(), User.id.desc())


def get_staff(user_id: int) -> User:
    return _get(user_id)


def create_staff(*, payload: dict, created_by: User) -> User:
    role = payload.get("role") or "Marketing Staff"
    if role == "Sub Admin":
        raise StaffError("Use the sub-admin endpoints to create sub-admins")
    try:
        user = auth_service.create_user(
            name=payload.get("name"),
            email=payload.get("email"),
            password=payload.get("password"),
            role=role,
            created_by_id=created_by.id,
            duplicate_message="Staff member with this email already exists",
        )
    except AuthError as e:
        raise StaffError(str(e))
    db.session.commit()
    current_app.logger.info("Admin %s created staff member %s (%s)", created_by.id, user.email, user.role)
    return user


def update_staff(user_id: int, payload: dict) -> User:
    user = _get(user_id)
    if payload.get("name") is not None:
        user.name = auth_service.validate_name(payload.get("name"))
    if payload.get("email") is not None:
        email = auth_service.normalize_email(payload.get("email"))
        existing = auth_service.get_user_by_email(email)
        if existing and existing.id != user.id:
            raise StaffError("Email is already in use")
        user.email = email
    if payload.get("role") is not None:
        role = payload.get("role")
        if role not in ROLES or role == "Sub Admin":
            raise StaffError("Invalid role specified")
        user.role = role
    if payload.get("active") is not None:
        user.active = bool(payload.get("active"))
    db.session.commit()
    return user


def reset_password(user_id: int, new_password: str | None) -> User:
    user = _get(user_id)
    auth_service.set_password(user, new_password or "")
    auth_service.unlock_user(user)
    db.session.commit()
    return user


def toggle_status(user_id: int) -> User:
    user = _get(user_id)
    user.active = not user.active
    db.session.commit()
    return user


def delete_staff(user_id: int, *, acting_user: User) -> User:
    """Deactivate; rows stay because workflow history references them."""
    user = _get(user_id)
    if user.id == acting_user.id:
        raise StaffError("You cannot delete your own account")
    if user.role == "Admin":
        admins = db.session.query(User).filter(User.role == "Admin", User.active.is_(True)).count()
        if admins <= 1 and user.active:
            raise StaffError("Cannot delete the last admin user")
    user.active = False
    db.session.commit()
    return user


def users_by_role(role: str) -> list[User]:
    if role not in ROLES:
        raise StaffError("Invalid role specified")
    return staff_query(role=role, active=True).all()


def staff_stats() -> dict:
    total = db.session.query(User).count()
    active = db.session.query(User).filter(User.active.is_(True)).count()
    by_role = dict(
        db.session.query(User.role, db.func.count(User.id)).group_by(User.role).all()
    )
    recent = db.session.query(User).order_by(User.created_at.desc()).limit(5).all()
    return {
        "totalStaff": total,
        "activeStaff": active,
        "inactiveStaff": total - active,
        "staffByRole": by_role,
        "recentStaff": [u.summary() for u in recent],
    }
