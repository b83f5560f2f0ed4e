from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow
from .auth import user_ref

ORDER_STATUSES = ("Requested", "Approved", "Rejected", "Dispatched")


class Order(db.Model):
    """
    Stock order raised by marketing staff for a distributor.

    LIFECYCLE:
    - Requested -> Approved | Rejected (Mid-Level Manager)
    - Approved -> Dispatched (Godown Incharge)

    Soft-deleted through is_active; inactive orders are invisible to reads.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_distributor", "distributor_id"),
        db.Index("ix_orders_status", "status"),
        db.Index("ix_orders_created_by", "created_by_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="Requested")
    comments = db.Column(db.Text, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    dispatched_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    dispatched_at = db.Column(db.DateTime, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    distributor = db.relationship("Distributor")
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    approved_by = db.relationship("User", foreign_keys=[approved_by_id])
    dispatched_by = db.relationship("User", foreign_keys=[dispatched_by_id])
    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "distributorId": self.distributor.summary() if self.distributor else self.distributor_id,
            "items": [i.to_dict() for i in self.items],
            "status": self.status,
            "comments": self.comments,
            "createdBy": user_ref(self.created_by),
            "approvedBy": user_ref(self.approved_by),
            "approvedAt": to_utc_z(self.approved_at),
            "dispatchedBy": user_ref(self.dispatched_by),
            "dispatchedAt": to_utc_z(self.dispatched_at),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_name = db.Column(db.String(120), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit = db.Column(db.String(32), nullable=False)

    order = db.relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {"productName": self.product_name, "quantity": self.quantity, "unit": self.unit}
