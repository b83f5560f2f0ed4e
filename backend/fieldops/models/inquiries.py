from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow
from .auth import user_ref

INQUIRY_STATUSES = ("Pending", "Processing", "Completed", "Rejected", "Commented", "Dispatched")


class SalesInquiry(db.Model):
    """
    Request for stock raised from the field on behalf of a distributor.

    LIFECYCLE:
    - Pending | Commented -> Commented (manager comment)
    - Pending | Commented -> Processing -> Completed | Rejected (Admin / manager)
    - Processing | Completed -> Dispatched (Godown Incharge)
    """
    __tablename__ = "sales_inquiries"
    __table_args__ = (
        db.Index("ix_sales_inquiries_status", "status"),
        db.Index("ix_sales_inquiries_created_by", "created_by_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False, index=True)
    distributor_name = db.Column(db.String(120), nullable=False)
    shop_name = db.Column(db.String(120), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="Pending")
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    manager_comment = db.Column(db.Text, nullable=True)
    manager_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    manager_comment_date = db.Column(db.DateTime, nullable=True)

    processed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    processed_date = db.Column(db.DateTime, nullable=True)

    dispatched_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    # Planned dispatch date supplied by the godown; dispatched_at is when it was recorded
    dispatch_date = db.Column(db.DateTime, nullable=True)
    dispatched_at = db.Column(db.DateTime, nullable=True)
    vehicle_id = db.Column(db.String(64), nullable=True)
    reference_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    distributor = db.relationship("Distributor")
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    manager = db.relationship("User", foreign_keys=[manager_id])
    processed_by = db.relationship("User", foreign_keys=[processed_by_id])
    dispatched_by = db.relationship("User", foreign_keys=[dispatched_by_id])
    products = db.relationship(
        "SalesInquiryProduct",
        back_populates="inquiry",
        order_by="SalesInquiryProduct.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "distributorId": self.distributor.summary() if self.distributor else self.distributor_id,
            "distributorName": self.distributor_name,
            "shopName": self.shop_name,
            "products": [p.to_dict() for p in self.products],
            "status": self.status,
            "createdBy": user_ref(self.created_by),
            "managerComment": self.manager_comment,
            "managerId": user_ref(self.manager),
            "managerCommentDate": to_utc_z(self.manager_comment_date),
            "processedBy": user_ref(self.processed_by),
            "processedDate": to_utc_z(self.processed_date),
            "dispatchedBy": user_ref(self.dispatched_by),
            "dispatchDate": to_utc_z(self.dispatch_date),
            "dispatchedAt": to_utc_z(self.dispatched_at),
            "vehicleId": self.vehicle_id,
            "referenceNumber": self.reference_number,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class SalesInquiryProduct(db.Model):
    __tablename__ = "sales_inquiry_products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    inquiry_id = db.Column(db.Integer, db.ForeignKey("sales_inquiries.id"), nullable=False, index=True)
    brand = db.Column(db.String(120), nullable=False)
    variant = db.Column(db.String(120), nullable=False)
    size = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    inquiry = db.relationship("SalesInquiry", back_populates="products")

    def to_dict(self) -> dict:
        return {"brand": self.brand, "variant": self.variant, "size": self.size, "quantity": self.quantity}
