from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow


class Brand(db.Model):
    """Product brand; root of the brand -> variant -> size catalog. Soft-deleted."""
    __tablename__ = "brands"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    variants = db.relationship("Variant", back_populates="brand", order_by="Variant.name")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "isActive": self.is_active,
            "createdBy": self.created_by_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Variant(db.Model):
    __tablename__ = "variants"
    __table_args__ = (
        db.Index("ix_variants_brand_name", "brand_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    brand = db.relationship("Brand", back_populates="variants")
    sizes = db.relationship(
        "VariantSize",
        back_populates="variant",
        order_by="VariantSize.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand": {"id": self.brand.id, "name": self.brand.name} if self.brand else self.brand_id,
            "sizes": [s.to_dict() for s in self.sizes],
            "isActive": self.is_active,
            "createdBy": self.created_by_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class VariantSize(db.Model):
    __tablename__ = "variant_sizes"
    __table_args__ = (
        db.UniqueConstraint("variant_id", "name", name="uq_variant_sizes_variant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id"), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    variant = db.relationship("Variant", back_populates="sizes")

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "isActive": self.is_active}
