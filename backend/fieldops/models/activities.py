from __future__ import annotations

from ..extensions import db
from fieldops.time_utils import to_utc_z, utcnow
from .auth import user_ref

TRIP_STATUSES = ("Punched In", "Punched Out")
COMPANION_CATEGORIES = ("Distributor Staff", "Marketing Staff", "Other")
ORDER_TYPES = ("Fresh Order", "Repeat Order", "Emergency Order")
MARKET_SHARES = ("Low", "Medium", "High")
VISIT_TYPES = ("Scheduled", "Unscheduled", "Follow-up", "Emergency")
VISIT_OBJECTIVES = (
    "Order Collection",
    "Market Survey",
    "Complaint Resolution",
    "Product Introduction",
    "Relationship Building",
)
VISIT_OUTCOMES = ("Successful", "Partially Successful", "Unsuccessful", "Rescheduled")
VISIT_STATUSES = ("In Progress", "Completed", "Cancelled")


class MarketingStaffActivity(db.Model):
    """
    One marketing trip: punch in at a distributor, visit shops, punch out.

    LIFECYCLE:
    - Punched In: created by punch-in, meeting_end_time is NULL
    - Punched Out: end time, duration and shop-visit rollup are stamped once

    At most one Punched In row per staff member (partial unique index), so
    two racing punch-ins cannot both succeed.

    JSON columns hold the trip snapshot captured at punch-in:
    - planned_shops: [{id, name, ownerName, address, type, isTemporary}]
    - brand_supply_estimates: [{name, variants: [{name, sizes: [{name, openingStock, proposedMarketRate}]}]}]
    - voice_notes: [{url, duration, createdAt}]
    """
    __tablename__ = "marketing_staff_activities"

    id = db.Column(db.Integer, primary_key=True)
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False, index=True)
    marketing_staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    retail_shop = db.Column(db.String(120), nullable=False)
    distributor_name = db.Column(db.String(120), nullable=False)
    area_name = db.Column(db.String(120), nullable=False)
    trip_companion_category = db.Column(db.String(32), nullable=False)
    trip_companion_name = db.Column(db.String(120), nullable=False)
    mode_of_transport = db.Column(db.String(64), nullable=False)
    selfie_image = db.Column(db.String(255), nullable=False)
    shop_types = db.Column(db.JSON, nullable=False, default=list)

    planned_shops = db.Column(db.JSON, nullable=False, default=list)
    brand_supply_estimates = db.Column(db.JSON, nullable=False, default=list)
    voice_notes = db.Column(db.JSON, nullable=False, default=list)

    meeting_start_time = db.Column(db.DateTime, nullable=False, default=utcnow)
    meeting_end_time = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="Punched In")
    duration_minutes = db.Column(db.Integer, nullable=False, default=0)

    # Rollup of the trip's shop visits, computed at punch-out
    total_shops_visited = db.Column(db.Integer, nullable=False, default=0)
    total_sales_orders = db.Column(db.Integer, nullable=False, default=0)
    total_sales_value = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.Index(
            "uq_marketing_activity_open",
            "marketing_staff_id",
            unique=True,
            sqlite_where=status == "Punched In",
            postgresql_where=status == "Punched In",
        ),
        db.Index("ix_marketing_activity_staff_created", "marketing_staff_id", "created_at"),
        db.Index("ix_marketing_activity_distributor_created", "distributor_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    distributor = db.relationship("Distributor")
    marketing_staff = db.relationship("User")
    shop_visits = db.relationship(
        "RetailerShopActivity",
        back_populates="marketing_activity",
        order_by="RetailerShopActivity.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, url_for_path=None) -> dict:
        expand = url_for_path or (lambda p: p)
        return {
            "id": self.id,
            "distributorId": self.distributor.summary() if self.distributor else self.distributor_id,
            "marketingStaffId": user_ref(self.marketing_staff),
            "retailShop": self.retail_shop,
            "distributor": self.distributor_name,
            "areaName": self.area_name,
            "tripCompanion": {"category": self.trip_companion_category, "name": self.trip_companion_name},
            "modeOfTransport": self.mode_of_transport,
            "selfieImage": expand(self.selfie_image),
            "shopTypes": list(self.shop_types or []),
            "shops": list(self.planned_shops or []),
            "brandSupplyEstimates": list(self.brand_supply_estimates or []),
            "voiceNotes": [dict(n, url=expand(n.get("url"))) for n in (self.voice_notes or [])],
            "meetingStartTime": to_utc_z(self.meeting_start_time),
            "meetingEndTime": to_utc_z(self.meeting_end_time),
            "status": self.status,
            "durationMinutes": self.duration_minutes,
            "totalShopsVisited": self.total_shops_visited,
            "totalSalesOrders": self.total_sales_orders,
            "totalSalesValue": self.total_sales_value,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class RetailerShopActivity(db.Model):
    """
    Detail of one shop visited during a trip.

    Unique per (staff, distributor, shop, trip); a second submission for the
    same key overwrites the first. The shop is either a canonical Shop
    (shop_id) or an unlinked legacy distributor shop (legacy_shop_id).
    """
    __tablename__ = "retailer_shop_activities"
    __table_args__ = (
        db.Index("ix_shop_visits_staff_created", "marketing_staff_id", "created_at"),
        db.Index("ix_shop_visits_distributor_created", "distributor_id", "created_at"),
        db.Index("ix_shop_visits_status", "status"),
        db.Index("ix_shop_visits_start", "visit_start_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    marketing_staff_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    marketing_activity_id = db.Column(
        db.Integer, db.ForeignKey("marketing_staff_activities.id"), nullable=False, index=True
    )
    distributor_id = db.Column(db.Integer, db.ForeignKey("distributors.id"), nullable=False)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)
    legacy_shop_id = db.Column(db.Integer, db.ForeignKey("distributor_legacy_shops.id"), nullable=True)

    shop_name = db.Column(db.String(120), nullable=False)
    shop_owner_name = db.Column(db.String(120), nullable=False)
    shop_address = db.Column(db.String(255), nullable=False)
    shop_type = db.Column(db.String(16), nullable=False, default="Retailer")

    visit_start_time = db.Column(db.DateTime, nullable=False)
    visit_end_time = db.Column(db.DateTime, nullable=True)
    visit_duration_minutes = db.Column(db.Integer, nullable=False, default=0)

    complaint = db.Column(db.Text, nullable=False, default="")
    market_insight = db.Column(db.Text, nullable=False, default="")
    photos = db.Column(db.JSON, nullable=False, default=list)
    voice_note = db.Column(db.String(255), nullable=False, default="")
    mobile_number = db.Column(db.String(32), nullable=False, default="")
    visit_type = db.Column(db.String(16), nullable=False, default="Scheduled")
    visit_objective = db.Column(db.String(32), nullable=False, default="Order Collection")
    visit_outcome = db.Column(db.String(32), nullable=False, default="Successful")
    status = db.Column(db.String(16), nullable=False, default="Completed")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    marketing_staff = db.relationship("User")
    marketing_activity = db.relationship("MarketingStaffActivity", back_populates="shop_visits")
    distributor = db.relationship("Distributor")
    sales_orders = db.relationship(
        "ShopSalesOrder",
        back_populates="visit",
        order_by="ShopSalesOrder.id",
        cascade="all, delete-orphan",
    )
    alternate_providers = db.relationship(
        "AlternateProvider",
        back_populates="visit",
        order_by="AlternateProvider.id",
        cascade="all, delete-orphan",
    )

    @property
    def total_sales_value(self) -> float:
        return sum(o.quantity * o.rate for o in self.sales_orders)

    def to_dict(self, url_for_path=None) -> dict:
        expand = url_for_path or (lambda p: p)
        return {
            "id": self.id,
            "marketingStaffId": user_ref(self.marketing_staff),
            "marketingActivityId": self.marketing_activity_id,
            "distributorId": self.distributor.summary() if self.distributor else self.distributor_id,
            "shopId": self.shop_id if self.shop_id is not None else self.legacy_shop_id,
            "isLegacyShop": self.shop_id is None,
            "shopName": self.shop_name,
            "shopOwnerName": self.shop_owner_name,
            "shopAddress": self.shop_address,
            "shopType": self.shop_type,
            "visitStartTime": to_utc_z(self.visit_start_time),
            "visitEndTime": to_utc_z(self.visit_end_time),
            "visitDurationMinutes": self.visit_duration_minutes,
            "salesOrders": [o.to_dict() for o in self.sales_orders],
            "alternateProviders": [p.to_dict() for p in self.alternate_providers],
            "complaint": self.complaint,
            "marketInsight": self.market_insight,
            "photos": [expand(p) for p in (self.photos or [])],
            "voiceNote": expand(self.voice_note) if self.voice_note else "",
            "mobileNumber": self.mobile_number,
            "visitType": self.visit_type,
            "visitObjective": self.visit_objective,
            "visitOutcome": self.visit_outcome,
            "status": self.status,
            "totalSalesOrders": len(self.sales_orders),
            "totalSalesValue": self.total_sales_value,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class ShopSalesOrder(db.Model):
    __tablename__ = "shop_sales_orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    visit_id = db.Column(db.Integer, db.ForeignKey("retailer_shop_activities.id"), nullable=False, index=True)
    brand_name = db.Column(db.String(120), nullable=False)
    variant = db.Column(db.String(120), nullable=False)
    size = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    rate = db.Column(db.Float, nullable=False, default=0.0)
    is_displayed_in_counter = db.Column(db.Boolean, nullable=False, default=False)
    order_type = db.Column(db.String(24), nullable=False, default="Fresh Order")

    visit = db.relationship("RetailerShopActivity", back_populates="sales_orders")

    def to_dict(self) -> dict:
        return {
            "brandName": self.brand_name,
            "variant": self.variant,
            "size": self.size,
            "quantity": self.quantity,
            "rate": self.rate,
            "isDisplayedInCounter": self.is_displayed_in_counter,
            "orderType": self.order_type,
        }


class AlternateProvider(db.Model):
    """Competitor product seen at the shop."""
    __tablename__ = "alternate_providers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    visit_id = db.Column(db.Integer, db.ForeignKey("retailer_shop_activities.id"), nullable=False, index=True)
    for_product = db.Column(db.String(120), nullable=False)
    brand_name = db.Column(db.String(120), nullable=False)
    variant = db.Column(db.String(120), nullable=False)
    size = db.Column(db.String(64), nullable=False)
    rate = db.Column(db.Float, nullable=False)
    stock_date = db.Column(db.String(32), nullable=False)
    market_share = db.Column(db.String(8), nullable=False, default="Medium")
    quality_rating = db.Column(db.Integer, nullable=False, default=3)

    visit = db.relationship("RetailerShopActivity", back_populates="alternate_providers")

    def to_dict(self) -> dict:
        return {
            "for": self.for_product,
            "brandName": self.brand_name,
            "variant": self.variant,
            "size": self.size,
            "rate": self.rate,
            "stockDate": self.stock_date,
            "marketShare": self.market_share,
            "qualityRating": self.quality_rating,
        }
