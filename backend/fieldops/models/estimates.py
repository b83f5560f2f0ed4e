from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow
from .auth import user_ref

ESTIMATE_STATUSES = ("Pending", "Approved", "Rejected")
ESTIMATE_TYPES = ("Initial", "Regular", "Special")


class SupplyEstimate(db.Model):
    """
    Stock estimate for a distributor, captured as a brand -> variant -> size tree.

    The tree is stored as JSON: [{brand, variants: [{variant, sizes: [{size,
    openingStock, rate}]}]}]. total_items counts size rows and is fixed at
    creation.
    """
    __tablename__ = "supply_estimates"
    __table_args__ = (
        db.Index("ix_supply_estimates_distributor", "distributor_id"),
        db.Index("ix_supply_estimates_submitted_by", "submitted_by_id"),
        db.Index("ix_supply_estimates_status", "status"),
        db.Index("ix_supply_estimates_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False)
    submitted_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Pending")
    brands = db.Column(db.JSON, nullable=False, default=list)
    total_items = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    estimate_type = db.Column(db.String(16), nullable=False, default="Regular")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    distributor = db.relationship("Distributor")
    submitted_by = db.relationship("User")
    revisions = db.relationship(
        "SupplyEstimateRevision",
        back_populates="estimate",
        order_by="SupplyEstimateRevision.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "distributorId": self.distributor.summary() if self.distributor else self.distributor_id,
            "submittedBy": user_ref(self.submitted_by),
            "status": self.status,
            "brands": self.brands or [],
            "totalItems": self.total_items,
            "notes": self.notes,
            "estimateType": self.estimate_type,
            "revisionHistory": [r.to_dict() for r in self.revisions],
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class SupplyEstimateRevision(db.Model):
    """Append-only review note; one row per approve or reject."""
    __tablename__ = "supply_estimate_revisions"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    estimate_id = db.Column(db.Integer, db.ForeignKey("supply_estimates.id"), nullable=False, index=True)
    revised_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    revision_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    revision_notes = db.Column(db.Text, nullable=True)

    estimate = db.relationship("SupplyEstimate", back_populates="revisions")
    revised_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "revisedBy": user_ref(self.revised_by),
            "revisionDate": to_utc_z(self.revision_date),
            "revisionNotes": self.revision_notes,
        }
