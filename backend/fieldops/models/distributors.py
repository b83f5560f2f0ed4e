from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow

SHOP_TYPES = ("Retailer", "Whole Seller")
APPROVAL_STATUSES = ("Pending", "Approved", "Rejected")


class Distributor(db.Model):
    """
    Distributor owning a network of retail and wholesale shops.

    Soft-deleted through is_active. Shop counts are derived from the legacy
    shop rows; order_count is bumped when an order is placed.
    """
    __tablename__ = "distributors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, index=True)
    shop_name = db.Column(db.String(120), nullable=False)
    contact = db.Column(db.String(64), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=False)
    order_count = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    legacy_shops = db.relationship(
        "LegacyShop",
        back_populates="distributor",
        order_by="LegacyShop.id",
        cascade="all, delete-orphan",
    )

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "shopName": self.shop_name,
            "contact": self.contact,
            "address": self.address,
        }

    def to_dict(self, include_shops: bool = True) -> dict:
        retail = [s for s in self.legacy_shops if s.shop_type == "Retailer"]
        wholesale = [s for s in self.legacy_shops if s.shop_type == "Whole Seller"]
        data = {
            "id": self.id,
            "name": self.name,
            "shopName": self.shop_name,
            "contact": self.contact,
            "phoneNumber": self.phone_number,
            "address": self.address,
            "retailShopCount": len(retail),
            "wholesaleShopCount": len(wholesale),
            "orderCount": self.order_count,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_shops:
            data["retailShops"] = [s.to_dict() for s in retail]
            data["wholesaleShops"] = [s.to_dict() for s in wholesale]
        return data


class LegacyShop(db.Model):
    """
    Shop entry embedded in a distributor's own shop list.

    Rows predating the Shop table have shop_id = NULL. Approved Shop rows are
    mirrored here with shop_id set, which is the stable identity used when
    merging both sources. mirrored marks rows written by approval rather than
    older rows that approval only linked.
    """
    __tablename__ = "distributor_legacy_shops"
    __table_args__ = (
        db.UniqueConstraint("shop_id", name="uq_distributor_legacy_shops_shop_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False, index=True)
    shop_type = db.Column(db.String(16), nullable=False)
    shop_name = db.Column(db.String(120), nullable=False)
    owner_name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True)
    mirrored = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    distributor = db.relationship("Distributor", back_populates="legacy_shops")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shopName": self.shop_name,
            "ownerName": self.owner_name,
            "address": self.address,
            "type": self.shop_type,
            "shopId": self.shop_id,
            "createdAt": to_utc_z(self.created_at),
        }


class Shop(db.Model):
    """
    Canonical shop record.

    Shops created by field staff start Pending; Admin and Mid-Level
    Manager creations are Approved immediately.
    """
    __tablename__ = "shops"
    __table_args__ = (
        db.Index("ix_shops_distributor_approval", "distributor_id", "approval_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    owner_name = db.Column(db.String(120), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False, index=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    approval_status = db.Column(db.String(16), nullable=False, default="Pending", index=True)
    approved_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approval_date = db.Column(db.DateTime, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    distributor = db.relationship("Distributor")
    created_by = db.relationship("User", foreign_keys=[created_by_id])
    approved_by = db.relationship("User", foreign_keys=[approved_by_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "ownerName": self.owner_name,
            "address": self.address,
            "type": self.type,
            "distributorId": self.distributor.summary() if self.distributor else self.distributor_id,
            "createdBy": self.created_by.summary() if self.created_by else self.created_by_id,
            "isActive": self.is_active,
            "approvalStatus": self.approval_status,
            "approvedBy": self.approved_by.summary() if self.approved_by else None,
            "approvalDate": to_utc_z(self.approval_date),
            "rejectionReason": self.rejection_reason,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


assignment_distributors = db.Table(
    "staff_assignment_distributors",
    db.Column("assignment_id", db.Integer, db.ForeignKey("staff_distributor_assignments.id"), primary_key=True),
    db.Column("distributor_id", db.Integer, db.ForeignKey("distributors.id"), primary_key=True),
)


class StaffDistributorAssignment(db.Model):
    """
    The set of distributors a marketing staff member works against.

    At most one active row per staff (partial unique index). Re-assigning
    replaces the distributor set; deleting flips is_active.
    """
    __tablename__ = "staff_distributor_assignments"

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    assigned_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    assigned_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_updated_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    __table_args__ = (
        db.Index(
            "uq_staff_assignment_active",
            "staff_id",
            unique=True,
            sqlite_where=is_active.is_(True),
            postgresql_where=is_active.is_(True),
        ),
        {"sqlite_autoincrement": True},
    )

    staff = db.relationship("User", foreign_keys=[staff_id])
    assigned_by = db.relationship("User", foreign_keys=[assigned_by_id])
    last_updated_by = db.relationship("User", foreign_keys=[last_updated_by_id])
    distributors = db.relationship("Distributor", secondary=assignment_distributors, order_by="Distributor.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staffId": self.staff.summary() if self.staff else self.staff_id,
            "distributorIds": [d.summary() for d in self.distributors],
            "assignedBy": self.assigned_by.summary() if self.assigned_by else self.assigned_by_id,
            "assignedAt": to_utc_z(self.assigned_at),
            "lastUpdatedAt": to_utc_z(self.last_updated_at),
            "lastUpdatedBy": self.last_updated_by_id,
            "isActive": self.is_active,
        }
