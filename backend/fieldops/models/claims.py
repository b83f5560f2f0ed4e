from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow
from .auth import user_ref

CLAIM_STATUSES = ("Pending", "Commented", "Approved", "Partially Approved", "Rejected")
APPROVED_LIKE = ("Approved", "Partially Approved")
REPLACEMENT_STATUSES = ("Pending", "Completed")


class DamageClaim(db.Model):
    """
    Claim for damaged stock found at a distributor.

    LIFECYCLE:
    - Pending -> Commented (Mid-Level Manager comment, repeatable)
    - Pending | Commented -> Approved | Partially Approved | Rejected (Admin)
    - approved-like -> replacement_status Completed (Godown Incharge)

    tracking_id is assigned once, the first time the claim becomes
    approved-like, and is unique.
    """
    __tablename__ = "damage_claims"
    __table_args__ = (
        db.Index("ix_damage_claims_status", "status"),
        db.Index("ix_damage_claims_created_by", "created_by_id"),
        db.Index("ix_damage_claims_distributor", "distributor_id"),
        db.Index("ix_damage_claims_manufacturing_date", "manufacturing_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False)
    distributor_name = db.Column(db.String(120), nullable=False)
    brand = db.Column(db.String(120), nullable=False)
    variant = db.Column(db.String(120), nullable=False)
    size = db.Column(db.String(64), nullable=False)
    pieces = db.Column(db.Integer, nullable=False)
    manufacturing_date = db.Column(db.DateTime, nullable=False)
    batch_details = db.Column(db.String(255), nullable=False)
    damage_type = db.Column(db.String(120), nullable=False)
    reason = db.Column(db.Text, nullable=False)
    images = db.Column(db.JSON, nullable=False, default=list)

    status = db.Column(db.String(24), nullable=False, default="Pending")
    replacement_status = db.Column(db.String(16), nullable=False, default="Pending")
    tracking_id = db.Column(db.String(16), nullable=True, unique=True)
    approved_pieces = db.Column(db.Integer, nullable=False, default=0)

    comment = db.Column(db.Text, nullable=True)
    mlm_comment = db.Column(db.Text, nullable=True)
    admin_comment = db.Column(db.Text, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    mlm_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_date = db.Column(db.DateTime, nullable=True)

    # Replacement shipment (set once by the godown)
    replacement_dispatch_date = db.Column(db.DateTime, nullable=True)
    replacement_approved_by = db.Column(db.String(120), nullable=True)
    replacement_channelled_to = db.Column(db.String(120), nullable=True)
    replacement_reference_number = db.Column(db.String(64), nullable=True)
    replacement_processed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    replacement_processed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    distributor = db.relationship("Distributor")
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    mlm = db.relationship("User", foreign_keys=[mlm_id])
    admin = db.relationship("User", foreign_keys=[admin_id])
    replacement_processed_by = db.relationship("User", foreign_keys=[replacement_processed_by_id])

    @property
    def is_approved_like(self) -> bool:
        return self.status in APPROVED_LIKE

    def replacement_details(self) -> dict | None:
        if self.replacement_processed_at is None:
            return None
        return {
            "dispatchDate": to_utc_z(self.replacement_dispatch_date),
            "approvedBy": self.replacement_approved_by,
            "channelledTo": self.replacement_channelled_to,
            "referenceNumber": self.replacement_reference_number,
            "processedBy": user_ref(self.replacement_processed_by),
            "processedAt": to_utc_z(self.replacement_processed_at),
        }

    def to_dict(self, url_for_path=None) -> dict:
        expand = url_for_path or (lambda p: p)
        return {
            "id": self.id,
            "distributorId": self.distributor.summary() if self.distributor else self.distributor_id,
            "distributorName": self.distributor_name,
            "brand": self.brand,
            "variant": self.variant,
            "size": self.size,
            "pieces": self.pieces,
            "manufacturingDate": to_utc_z(self.manufacturing_date),
            "batchDetails": self.batch_details,
            "damageType": self.damage_type,
            "reason": self.reason,
            "images": [expand(p) for p in (self.images or [])],
            "status": self.status,
            "replacementStatus": self.replacement_status,
            "trackingId": self.tracking_id,
            "approvedPieces": self.approved_pieces,
            "comment": self.comment,
            "mlmComment": self.mlm_comment,
            "adminComment": self.admin_comment,
            "createdBy": user_ref(self.created_by),
            "mlmId": user_ref(self.mlm),
            "adminId": user_ref(self.admin),
            "approvedBy": user_ref(self.admin),
            "approvedDate": to_utc_z(self.approved_date),
            "replacementDetails": self.replacement_details(),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
