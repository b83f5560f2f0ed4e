from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow
from .auth import user_ref

TASK_STATUSES = ("Pending", "In Progress", "Completed")
TASK_TYPES = ("internal", "external", "regular")
TASK_STAFF_ROLES = ("Marketing Staff", "Godown Incharge", "Mid-Level Manager")
PUNCH_STATES = ("punch-in", "punch-out")


class Task(db.Model):
    """
    Work item assigned to a staff member or to a named outside person.

    Status only moves forward: Pending -> In Progress -> Completed.
    punch_status is an independent sub-state toggled by punch in / out,
    each pair recorded as a TaskPunch row.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        db.Index("ix_tasks_assigned_to", "assigned_to_id"),
        db.Index("ix_tasks_status", "status"),
        db.Index("ix_tasks_created_by", "created_by_id"),
        db.Index("ix_tasks_staff_role", "staff_role"),
        db.Index("ix_tasks_type_created_by", "task_type", "created_by_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(16), nullable=False, default="Pending")
    task_type = db.Column(db.String(16), nullable=False, default="regular")

    assigned_to_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    # Set instead of assigned_to_id when the assignee has no account
    external_assignee_name = db.Column(db.String(120), nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    staff_role = db.Column(db.String(32), nullable=False)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=True, index=True)

    # Single-product fields for godown tasks; extra lines go in items
    brand = db.Column(db.String(120), nullable=True)
    variant = db.Column(db.String(120), nullable=True)
    size = db.Column(db.String(64), nullable=True)
    quantity = db.Column(db.Integer, nullable=True)

    deadline = db.Column(db.DateTime, nullable=True)
    assigned_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    report = db.Column(db.Text, nullable=True)

    punch_status = db.Column(db.String(16), nullable=True)
    last_punch_time = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    assigned_to = db.relationship("User", foreign_keys=[assigned_to_id])
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    distributor = db.relationship("Distributor")
    items = db.relationship(
        "TaskItem",
        back_populates="task",
        order_by="TaskItem.id",
        cascade="all, delete-orphan",
    )
    punches = db.relationship(
        "TaskPunch",
        back_populates="task",
        order_by="TaskPunch.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        external = None
        if self.external_assignee_name:
            external = {"name": self.external_assignee_name, "isExternalUser": True}
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "taskType": self.task_type,
            "assignedTo": user_ref(self.assigned_to),
            "externalAssignee": external,
            "createdBy": user_ref(self.created_by),
            "staffRole": self.staff_role,
            "distributorId": self.distributor.summary() if self.distributor else None,
            "brand": self.brand,
            "variant": self.variant,
            "size": self.size,
            "quantity": self.quantity,
            "items": [i.to_dict() for i in self.items],
            "deadline": to_utc_z(self.deadline),
            "assignedDate": to_utc_z(self.assigned_date),
            "report": self.report,
            "punchStatus": self.punch_status,
            "lastPunchTime": to_utc_z(self.last_punch_time),
            "punchHistory": [p.to_dict() for p in self.punches],
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class TaskItem(db.Model):
    __tablename__ = "task_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("tasks.id"), nullable=False, index=True)
    brand = db.Column(db.String(120), nullable=False)
    variant = db.Column(db.String(120), nullable=False)
    size = db.Column(db.String(64), nullable=False, default="N/A")
    quantity = db.Column(db.Integer, nullable=False)

    task = db.relationship("Task", back_populates="items")

    def to_dict(self) -> dict:
        return {"brand": self.brand, "variant": self.variant, "size": self.size, "quantity": self.quantity}


class TaskPunch(db.Model):
    """One punch-in / punch-out pair; punch_out_time is NULL while open."""
    __tablename__ = "task_punches"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(db.Integer, db.ForeignKey("tasks.id"), nullable=False, index=True)
    punch_in_time = db.Column(db.DateTime, nullable=False, default=utcnow)
    punch_out_time = db.Column(db.DateTime, nullable=True)
    location = db.Column(db.JSON, nullable=True)

    task = db.relationship("Task", back_populates="punches")

    def to_dict(self) -> dict:
        return {
            "punchInTime": to_utc_z(self.punch_in_time),
            "punchOutTime": to_utc_z(self.punch_out_time),
            "location": self.location,
        }
