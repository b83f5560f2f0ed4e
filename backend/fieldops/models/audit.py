from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow

ACTIVITY_TYPES = (
    "Task",
    "Task Creation",
    "Order",
    "Damage Claim",
    "Supply Estimate",
    "Inquiry",
    "Dispatch",
    "Other",
    "Damage Claim Replacement",
)

ACTIVITY_STATUSES = ("Completed", "Pending", "In Progress", "Cancelled")

# Discriminator for related_id
RELATED_MODELS = (
    "Task",
    "Order",
    "DamageClaim",
    "SupplyEstimate",
    "SalesInquiry",
    "Shop",
    "MarketingStaffActivity",
)


class StaffActivity(db.Model):
    """
    Append-only audit record, one per meaningful mutation.

    Written in the same transaction as the change it describes.
    related_id is a soft reference (no FK) so hard-deleted entities keep
    their history; on_model says which table it points at.
    """
    __tablename__ = "staff_activities"
    __table_args__ = (
        db.Index("ix_staff_activities_staff_date", "staff_id", "date"),
        db.Index("ix_staff_activities_related", "on_model", "related_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    date = db.Column(db.DateTime, nullable=False, default=utcnow)
    activity_type = db.Column(db.String(32), nullable=False, index=True)
    # Free-form verb such as "Punch In"; optional
    action = db.Column(db.String(64), nullable=True)
    details = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Completed")
    related_id = db.Column(db.Integer, nullable=True)
    on_model = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    staff = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staffId": self.staff.summary() if self.staff else self.staff_id,
            "date": to_utc_z(self.date),
            "activityType": self.activity_type,
            "action": self.action,
            "details": self.details,
            "status": self.status,
            "relatedId": self.related_id,
            "onModel": self.on_model,
            "createdAt": to_utc_z(self.created_at),
        }
