# Overview: Service-layer operations for per-shop visits recorded during an open marketing trip.

"""
Shop Visits

One row per (staff, distributor, shop, open trip). A second submission for
the same key updates the row in place; fields the client leaves out keep
their previous values.

SHOP RESOLUTION:
- isLegacy true: shopId names a distributor legacy shop row.
- otherwise: shopId names an active Shop of the distributor; if there is
  none, a legacy shop row of the distributor with that id is accepted.
- A legacy row already linked to a Shop resolves to that Shop, so one
  physical shop never gets two visit rows in the same trip.

FRESH ORDERS:
- Replace the sales orders on the caller's visit to a shop for the current
  UTC day; without one the open trip's visit for that shop is used or created.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..errors import AccessDeniedError, NotFoundError
from ..extensions import db
from ..models import (
    AlternateProvider,
    Distributor,
    LegacyShop,
    MarketingStaffActivity,
    RetailerShopActivity,
    Shop,
    ShopSalesOrder,
    User,
)
from ..models.activities import (
    MARKET_SHARES,
    ORDER_TYPES,
    VISIT_OBJECTIVES,
    VISIT_OUTCOMES,
    VISIT_STATUSES,
    VISIT_TYPES,
)
from ..validation import coerce_datetime, coerce_float, coerce_int, field_error, optional_str, require_choice
from . import permission_service, storage_service
from .marketing_activity_service import NOT_PUNCHED_IN, open_trip
from fieldops.time_utils import end_of_day, minutes_between, start_of_day, utcnow


class ShopVisitError(ValueError):
    pass


def _resolve_shop(distributor: Distributor, shop_id, *, legacy_only: bool) -> tuple[Shop | None, LegacyShop | None]:
    if not legacy_only:
        shop = (
            db.session.query(Shop)
            .filter_by(id=shop_id, distributor_id=distributor.id, is_active=True)
            .first()
        )
        if shop is not None:
            return shop, None

    legacy = db.session.query(LegacyShop).filter_by(id=shop_id, distributor_id=distributor.id).first()
    if legacy is None:
        raise NotFoundError("Shop not found. Please use a valid shop ID from the distributor.")
    if legacy.shop_id is not None:
        linked = db.session.get(Shop, legacy.shop_id)
        if linked is not None and linked.is_active:
            return linked, None
    return None, legacy


def _visit_query(staff: User, distributor: Distributor, shop: Shop | None, legacy: LegacyShop | None):
    query = db.session.query(RetailerShopActivity).filter_by(
        marketing_staff_id=staff.id,
        distributor_id=distributor.id,
    )
    if shop is not None:
        return query.filter_by(shop_id=shop.id)
    return query.filter_by(legacy_shop_id=legacy.id, shop_id=None)


def _new_visit(staff, trip, distributor, shop, legacy, start: datetime) -> RetailerShopActivity:
    return RetailerShopActivity(
        marketing_staff_id=staff.id,
        marketing_activity_id=trip.id,
        distributor_id=distributor.id,
        shop_id=shop.id if shop else None,
        legacy_shop_id=legacy.id if legacy else None,
        shop_name=shop.name if shop else legacy.shop_name,
        shop_owner_name=shop.owner_name if shop else legacy.owner_name,
        shop_address=shop.address if shop else legacy.address,
        shop_type=shop.type if shop else legacy.shop_type,
        visit_start_time=start,
        photos=[],
    )


def _sales_orders(raw) -> list[ShopSalesOrder]:
    if not isinstance(raw, list):
        raise field_error("salesOrders", "salesOrders must be a list")
    orders = []
    for index, item in enumerate(raw):
        prefix = f"salesOrders[{index}]"
        if not isinstance(item, dict):
            raise field_error(prefix, f"{prefix} must be an object")
        for key in ("brandName", "variant", "size"):
            if not str(item.get(key) or "").strip():
                raise field_error(f"{prefix}.{key}", f"{key} is required for each sales order")
        order_type = item.get("orderType") or "Fresh Order"
        require_choice(order_type, f"{prefix}.orderType", ORDER_TYPES)
        orders.append(
            ShopSalesOrder(
                brand_name=str(item["brandName"]).strip(),
                variant=str(item["variant"]).strip(),
                size=str(item["size"]).strip(),
                quantity=coerce_int(item.get("quantity"), f"{prefix}.quantity", minimum=1),
                rate=coerce_float(item.get("rate"), f"{prefix}.rate", default=0.0),
                is_displayed_in_counter=bool(item.get("isDisplayedInCounter", False)),
                order_type=order_type,
            )
        )
    return orders


def _alternate_providers(raw) -> list[AlternateProvider]:
    if not isinstance(raw, list):
        raise field_error("alternateProviders", "alternateProviders must be a list")
    providers = []
    for index, item in enumerate(raw):
        prefix = f"alternateProviders[{index}]"
        if not isinstance(item, dict):
            raise field_error(prefix, f"{prefix} must be an object")
        for key in ("for", "brandName", "variant", "size", "stockDate"):
            if not str(item.get(key) or "").strip():
                raise field_error(f"{prefix}.{key}", f"{key} is required for each alternate provider")
        market_share = item.get("marketShare") or "Medium"
        require_choice(market_share, f"{prefix}.marketShare", MARKET_SHARES)
        providers.append(
            AlternateProvider(
                for_product=str(item["for"]).strip(),
                brand_name=str(item["brandName"]).strip(),
                variant=str(item["variant"]).strip(),
                size=str(item["size"]).strip(),
                rate=coerce_float(item.get("rate"), f"{prefix}.rate"),
                stock_date=str(item["stockDate"]).strip(),
                market_share=market_share,
                quality_rating=coerce_int(
                    item.get("qualityRating", 3), f"{prefix}.qualityRating", minimum=1, maximum=5
                ),
            )
        )
    return providers


def _photos(raw) -> list[str]:
    if not isinstance(raw, list):
        raise field_error("photos", "photos must be a list")
    stored = []
    for photo in raw:
        if not isinstance(photo, str) or not photo.strip():
            continue
        if photo.startswith("data:"):
            stored.append(storage_service.save_base64("shop-photos", photo, default_ext="jpg"))
        else:
            stored.append(photo.strip())
    return stored


def _choice(payload: dict, field: str, allowed) -> str | None:
    value = payload.get(field)
    if value in (None, ""):
        return None
    return require_choice(value, field, allowed)


def record_visit(*, payload: dict, staff: User) -> tuple[RetailerShopActivity, bool]:
    """Create or update the visit for the staff member's open trip. Returns (visit, created)."""
    if payload.get("shopId") in (None, ""):
        raise field_error("shopId", "Shop ID is required")
    if payload.get("distributorId") in (None, ""):
        raise field_error("distributorId", "Distributor ID is required")

    start = coerce_datetime(payload.get("visitStartTime"), "visitStartTime")
    end = coerce_datetime(payload.get("visitEndTime"), "visitEndTime")
    if start and end and end < start:
        raise field_error("visitEndTime", "visitEndTime cannot be before visitStartTime")
    visit_type = _choice(payload, "visitType", VISIT_TYPES)
    visit_objective = _choice(payload, "visitObjective", VISIT_OBJECTIVES)
    visit_outcome = _choice(payload, "visitOutcome", VISIT_OUTCOMES)
    status = _choice(payload, "status", VISIT_STATUSES)
    sales_orders = _sales_orders(payload["salesOrders"]) if "salesOrders" in payload else None
    providers = _alternate_providers(payload["alternateProviders"]) if "alternateProviders" in payload else None

    trip = open_trip(staff.id)
    if trip is None:
        raise ShopVisitError(NOT_PUNCHED_IN)

    distributor = db.session.get(Distributor, payload.get("distributorId"))
    if distributor is None:
        raise NotFoundError("Distributor not found")
    shop, legacy = _resolve_shop(distributor, payload.get("shopId"), legacy_only=bool(payload.get("isLegacy")))

    visit = _visit_query(staff, distributor, shop, legacy).filter_by(marketing_activity_id=trip.id).first()
    created = visit is None

    if created:
        start = start or utcnow()
    effective_start = start or visit.visit_start_time
    effective_end = end or (visit.visit_end_time if visit else None)
    if effective_end and effective_end < effective_start:
        raise field_error("visitEndTime", "visitEndTime cannot be before visitStartTime")

    if created:
        visit = _new_visit(staff, trip, distributor, shop, legacy, start)
        db.session.add(visit)
    elif start:
        visit.visit_start_time = start

    if end:
        visit.visit_end_time = end
    if visit.visit_end_time:
        visit.visit_duration_minutes = minutes_between(visit.visit_start_time, visit.visit_end_time)

    if sales_orders is not None:
        visit.sales_orders = sales_orders
    if providers is not None:
        visit.alternate_providers = providers
    if "complaint" in payload:
        visit.complaint = optional_str(payload, "complaint") or ""
    if "marketInsight" in payload:
        visit.market_insight = optional_str(payload, "marketInsight") or ""
    if "photos" in payload:
        visit.photos = _photos(payload["photos"])
    if payload.get("voiceNote"):
        visit.voice_note = str(payload["voiceNote"]).strip()
    if payload.get("voiceNoteBase64"):
        visit.voice_note = storage_service.save_base64(
            "voice-notes", payload["voiceNoteBase64"], default_ext="wav"
        )
    if payload.get("mobileNumber"):
        visit.mobile_number = optional_str(payload, "mobileNumber", max_length=32)
    for attr, value in (
        ("visit_type", visit_type),
        ("visit_objective", visit_objective),
        ("visit_outcome", visit_outcome),
        ("status", status),
    ):
        if value:
            setattr(visit, attr, value)

    db.session.commit()
    current_app.logger.info(
        "%s shop visit %s for %s (trip %s)", "Created" if created else "Updated", visit.id, visit.shop_name, trip.id
    )
    return visit, created


def _filtered(query, *, distributor_id=None, staff_id=None, status=None, day: datetime | None = None):
    if distributor_id:
        query = query.filter(RetailerShopActivity.distributor_id == distributor_id)
    if staff_id:
        query = query.filter(RetailerShopActivity.marketing_staff_id == staff_id)
    if status:
        require_choice(status, "status", VISIT_STATUSES)
        query = query.filter(RetailerShopActivity.status == status)
    if day:
        query = query.filter(
            RetailerShopActivity.created_at >= start_of_day(day),
            RetailerShopActivity.created_at <= end_of_day(day),
        )
    return query.order_by(RetailerShopActivity.created_at.desc(), RetailerShopActivity.id.desc())


def my_visits_query(staff: User, *, distributor_id=None, status=None, day=None):
    query = db.session.query(RetailerShopActivity).filter(RetailerShopActivity.marketing_staff_id == staff.id)
    return _filtered(query, distributor_id=distributor_id, status=status, day=day)


def all_visits_query(*, distributor_id=None, staff_id=None, status=None, day=None):
    return _filtered(
        db.session.query(RetailerShopActivity),
        distributor_id=distributor_id,
        staff_id=staff_id,
        status=status,
        day=day,
    )


def visits_for_trip(trip_id: int, *, viewer: User) -> list[RetailerShopActivity]:
    trip = db.session.get(MarketingStaffActivity, trip_id)
    if trip is None:
        raise NotFoundError("Marketing activity not found")
    if trip.marketing_staff_id != viewer.id and not permission_service.has_capability(viewer, "VIEW_TEAM_ACTIVITIES"):
        raise AccessDeniedError("Not authorized to view this marketing activity")
    return list(trip.shop_visits)


def record_fresh_orders(*, payload: dict, staff: User) -> tuple[RetailerShopActivity, bool]:
    """
    Replace the sales orders on today's visit of (staff, distributor, shop).

    With no visit today the orders go on the open trip's visit for that shop,
    which is created if needed. Returns (visit, created).
    """
    if payload.get("shopId") in (None, ""):
        raise field_error("shopId", "Shop ID is required")
    if payload.get("distributorId") in (None, ""):
        raise field_error("distributorId", "Distributor ID is required")
    raw = payload.get("orders")
    if not isinstance(raw, list) or not raw:
        raise field_error("orders", "At least one order is required")
    orders = _sales_orders(raw)

    distributor = db.session.get(Distributor, payload.get("distributorId"))
    if distributor is None:
        raise NotFoundError("Distributor not found")
    shop, legacy = _resolve_shop(distributor, payload.get("shopId"), legacy_only=bool(payload.get("isLegacy")))

    now = utcnow()
    visit = (
        _visit_query(staff, distributor, shop, legacy)
        .filter(
            RetailerShopActivity.created_at >= start_of_day(now),
            RetailerShopActivity.created_at <= end_of_day(now),
        )
        .order_by(RetailerShopActivity.created_at.desc())
        .first()
    )
    created = False
    if visit is None:
        trip = open_trip(staff.id)
        if trip is None:
            raise ShopVisitError(NOT_PUNCHED_IN)
        visit = _visit_query(staff, distributor, shop, legacy).filter_by(marketing_activity_id=trip.id).first()
        if visit is None:
            visit = _new_visit(staff, trip, distributor, shop, legacy, now)
            db.session.add(visit)
            created = True

    visit.sales_orders = orders
    db.session.commit()
    current_app.logger.info("Recorded %s fresh orders for %s (visit %s)", len(orders), visit.shop_name, visit.id)
    return visit, created


def fresh_orders_query(viewer: User, *, distributor_id=None, shop_id=None, day=None):
    """Visits carrying sales orders; staff without the team capability see their own."""
    query = db.session.query(RetailerShopActivity).filter(RetailerShopActivity.sales_orders.any())
    if not permission_service.has_capability(viewer, "VIEW_TEAM_ACTIVITIES"):
        query = query.filter(RetailerShopActivity.marketing_staff_id == viewer.id)
    if shop_id:
        query = query.filter(
            db.or_(
                RetailerShopActivity.shop_id == shop_id,
                db.and_(RetailerShopActivity.shop_id.is_(None), RetailerShopActivity.legacy_shop_id == shop_id),
            )
        )
    return _filtered(query, distributor_id=distributor_id, day=day)


def distributor_shop_orders(
    staff: User, *, distributor_id, start_date: datetime | None = None, end_date: datetime | None = None
) -> list[dict]:
    """
    The caller's visits to one distributor's shops, one entry per shop with
    every sales order taken there, newest shop activity first.
    """
    if distributor_id in (None, ""):
        raise field_error("distributorId", "distributorId is required")
    distributor = db.session.get(Distributor, distributor_id)
    if distributor is None:
        raise NotFoundError("Distributor not found")

    query = db.session.query(RetailerShopActivity).filter(
        RetailerShopActivity.marketing_staff_id == staff.id,
        RetailerShopActivity.distributor_id == distributor.id,
    )
    if start_date:
        query = query.filter(RetailerShopActivity.created_at >= start_of_day(start_date))
    if end_date:
        query = query.filter(RetailerShopActivity.created_at <= end_of_day(end_date))

    grouped: dict[tuple, dict] = {}
    for visit in query.order_by(RetailerShopActivity.created_at.desc(), RetailerShopActivity.id.desc()):
        legacy = visit.shop_id is None
        key = ("legacy", visit.legacy_shop_id) if legacy else ("shop", visit.shop_id)
        entry = grouped.get(key)
        if entry is None:
            entry = grouped[key] = {
                "shopId": visit.legacy_shop_id if legacy else visit.shop_id,
                "isLegacyShop": legacy,
                "shopName": visit.shop_name,
                "shopOwner": visit.shop_owner_name,
                "shopAddress": visit.shop_address,
                "shopType": visit.shop_type,
                "salesOrders": [],
            }
        entry["salesOrders"].extend(order.to_dict() for order in visit.sales_orders)
    return list(grouped.values())
