from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow

ROLES = (
    "Admin",
    "Sub Admin",
    "Marketing Staff",
    "Mid-Level Manager",
    "Godown Incharge",
    "App Developer",
)

# Admin panel sections a sub-admin can be granted
PANEL_SECTIONS = (
    "dashboard",
    "staff",
    "marketing",
    "orders",
    "damage",
    "tasks",
    "distributors",
    "godown",
    "sales",
    "reports",
)


class User(db.Model):
    """
    Staff account used for authentication and attribution.

    Lockout state lives on the row: failed logins increment
    login_attempts; the fifth sets account_locked until lock_until.
    An expired lock is cleared on the next login attempt.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_role_active", "role", "active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    # Stored lowercase
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=False, default="Marketing Staff", index=True)
    is_sub_admin = db.Column(db.Boolean, nullable=False, default=False)
    permissions = db.Column(db.JSON, nullable=False, default=list)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    password_changed_at = db.Column(db.DateTime, nullable=True)

    active = db.Column(db.Boolean, nullable=False, default=True)
    last_login_at = db.Column(db.DateTime, nullable=True)

    login_attempts = db.Column(db.Integer, nullable=False, default=0)
    account_locked = db.Column(db.Boolean, nullable=False, default=False)
    lock_until = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    created_by = db.relationship("User", remote_side=[id])

    def summary(self) -> dict:
        """Populated reference used inside other entities."""
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "isSubAdmin": self.is_sub_admin,
            "permissions": list(self.permissions or []),
            "createdBy": self.created_by_id,
            "active": self.active,
            "lastLogin": to_utc_z(self.last_login_at),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


def user_ref(user: User | None) -> dict | None:
    return user.summary() if user else None
