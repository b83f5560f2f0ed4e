# Overview: Service-layer operations for marketing trips (punch in / punch out) and their feeds.

"""
Marketing Trips

(none) -> Punched In -> Punched Out, one open trip per staff member.

PUNCH IN:
- Rejected with 400 while the staff member has a Punched In trip.
- The check is backed by the partial unique index uq_marketing_activity_open,
  so a racing second insert fails at commit and gets the same 400.
- Planned shop stubs get a temporary id each.

PUNCH OUT:
- 404 when no trip is open.
- Stamps end time and duration_minutes = round((end - start) / 60 s), then
  rolls the trip's shop visits up into total_shops_visited,
  total_sales_orders and total_sales_value (sum of quantity * rate). The
  rollup is computed once; later visit edits do not refresh it.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AccessDeniedError, NotFoundError
from ..extensions import db
from ..models import Distributor, MarketingStaffActivity, User
from ..models.activities import COMPANION_CATEGORIES, TRIP_STATUSES
from ..validation import coerce_float, coerce_int, field_error, optional_str, require_choice, require_fields
from . import audit_service, permission_service, storage_service
from fieldops.time_utils import days_ago, end_of_day, minutes_between, start_of_day, utcnow

ALREADY_PUNCHED_IN = "You are already punched in. Please punch out first."
NOT_PUNCHED_IN = "No active marketing activity found. Please punch in first."


class MarketingActivityError(ValueError):
    pass


def open_trip(staff_id: int) -> MarketingStaffActivity | None:
    return (
        db.session.query(MarketingStaffActivity)
        .filter_by(marketing_staff_id=staff_id, status="Punched In")
        .first()
    )


def _planned_shops(raw) -> list[dict]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise field_error("shops", "shops must be a list")
    shops = []
    for shop in raw:
        shop = shop if isinstance(shop, dict) else {}
        shops.append(
            {
                "id": uuid.uuid4().hex,
                "name": shop.get("name") or "Unknown Shop",
                "ownerName": shop.get("ownerName") or "Unknown Owner",
                "address": shop.get("address") or "Unknown Address",
                "type": shop.get("type") or "Retailer",
                "isTemporary": True,
            }
        )
    return shops


def _supply_snapshot(raw) -> list[dict]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise field_error("brandSupplyEstimates", "brandSupplyEstimates must be a list")
    snapshot = []
    for brand in raw:
        if not isinstance(brand, dict):
            continue
        variants = []
        for variant in brand.get("variants") or []:
            if not isinstance(variant, dict):
                continue
            sizes = []
            for size in variant.get("sizes") or []:
                if not isinstance(size, dict):
                    continue
                try:
                    stock = coerce_int(size.get("openingStock") or 0, "openingStock")
                except ValueError:
                    stock = 0
                try:
                    rate = coerce_float(size.get("proposedMarketRate"), "proposedMarketRate", default=0.0)
                except ValueError:
                    rate = 0.0
                sizes.append({"name": size.get("name"), "openingStock": stock, "proposedMarketRate": rate})
            variants.append({"name": variant.get("name"), "sizes": sizes})
        snapshot.append({"name": brand.get("name"), "variants": variants})
    return snapshot


def _selfie_reference(value: str) -> str:
    if value.startswith("data:"):
        return storage_service.save_base64("selfies", value, default_ext="jpg")
    return value


def punch_in(*, payload: dict, staff: User) -> MarketingStaffActivity:
    require_fields(payload, "distributorId", "areaName", "modeOfTransport", "selfieImage")
    companion = payload.get("tripCompanion")
    if not isinstance(companion, dict) or not companion.get("name"):
        raise field_error("tripCompanion", "Trip companion name and category are required")
    require_choice(companion.get("category"), "tripCompanion.category", COMPANION_CATEGORIES)

    if open_trip(staff.id) is not None:
        raise MarketingActivityError(ALREADY_PUNCHED_IN)

    distributor = db.session.get(Distributor, payload.get("distributorId"))
    if distributor is None:
        raise NotFoundError("Distributor not found")

    shop_types = payload.get("shopTypes") or []
    if not isinstance(shop_types, list):
        raise field_error("shopTypes", "shopTypes must be a list")

    trip = MarketingStaffActivity(
        marketing_staff_id=staff.id,
        distributor_id=distributor.id,
        retail_shop=optional_str(payload, "retailShop", max_length=120) or "",
        distributor_name=optional_str(payload, "distributor", max_length=120) or distributor.name,
        area_name=optional_str(payload, "areaName", max_length=120),
        trip_companion_category=companion["category"],
        trip_companion_name=str(companion["name"]).strip(),
        mode_of_transport=optional_str(payload, "modeOfTransport", max_length=64),
        selfie_image=_selfie_reference(str(payload["selfieImage"]).strip()),
        shop_types=shop_types,
        planned_shops=_planned_shops(payload.get("shops")),
        brand_supply_estimates=_supply_snapshot(payload.get("brandSupplyEstimates")),
        meeting_start_time=utcnow(),
        status="Punched In",
    )
    db.session.add(trip)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise MarketingActivityError(ALREADY_PUNCHED_IN)

    audit_service.record_activity(
        staff_id=staff.id,
        activity_type="Other",
        action="Punch In",
        details=f"Punched in at distributor: {distributor.name}",
        related_id=trip.id,
        on_model="MarketingStaffActivity",
        status="In Progress",
    )
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise MarketingActivityError(ALREADY_PUNCHED_IN)

    current_app.logger.info("Staff %s punched in at distributor %s", staff.id, distributor.id)
    return trip


def _voice_notes(raw) -> list[dict]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise field_error("voiceNotes", "voiceNotes must be a list")
    notes = []
    for note in raw:
        if not isinstance(note, dict) or not note.get("url"):
            raise field_error("voiceNotes", "Each voice note needs a url")
        notes.append(
            {
                "url": str(note["url"]).strip(),
                "duration": coerce_float(note.get("duration"), "voiceNotes.duration", default=0.0),
                "createdAt": utcnow().isoformat(),
            }
        )
    return notes


def punch_out(*, payload: dict, staff: User) -> MarketingStaffActivity:
    notes = _voice_notes(payload.get("voiceNotes"))
    trip = open_trip(staff.id)
    if trip is None:
        raise NotFoundError(NOT_PUNCHED_IN)

    trip.meeting_end_time = utcnow()
    trip.status = "Punched Out"
    trip.voice_notes = notes
    trip.duration_minutes = minutes_between(trip.meeting_start_time, trip.meeting_end_time)

    visits = list(trip.shop_visits)
    trip.total_shops_visited = len(visits)
    trip.total_sales_orders = sum(len(v.sales_orders) for v in visits)
    trip.total_sales_value = sum(v.total_sales_value for v in visits)

    audit_service.record_activity(
        staff_id=staff.id,
        activity_type="Other",
        action="Punch Out",
        details=f"Punched out from distributor: {trip.distributor_name} ({trip.total_shops_visited} shops)",
        related_id=trip.id,
        on_model="MarketingStaffActivity",
    )
    db.session.commit()
    current_app.logger.info("Staff %s punched out after %d minutes", staff.id, trip.duration_minutes)
    return trip


def _apply_filters(query, *, distributor_id=None, staff_id=None, status=None, day: datetime | None = None):
    if distributor_id:
        query = query.filter(MarketingStaffActivity.distributor_id == distributor_id)
    if staff_id:
        query = query.filter(MarketingStaffActivity.marketing_staff_id == staff_id)
    if status:
        require_choice(status, "status", TRIP_STATUSES)
        query = query.filter(MarketingStaffActivity.status == status)
    if day:
        query = query.filter(
            MarketingStaffActivity.created_at >= start_of_day(day),
            MarketingStaffActivity.created_at <= end_of_day(day),
        )
    return query


def _window_start() -> datetime:
    return days_ago(current_app.config["ACTIVITY_WINDOW_DAYS"])


def my_trips_query(staff: User, *, distributor_id=None, status=None, day=None):
    query = db.session.query(MarketingStaffActivity).filter(
        MarketingStaffActivity.marketing_staff_id == staff.id,
        MarketingStaffActivity.created_at >= _window_start(),
    )
    query = _apply_filters(query, distributor_id=distributor_id, status=status, day=day)
    return query.order_by(MarketingStaffActivity.created_at.desc(), MarketingStaffActivity.id.desc())


def team_trips_query(*, distributor_id=None, staff_id=None, status=None, day=None):
    query = db.session.query(MarketingStaffActivity).filter(
        MarketingStaffActivity.created_at >= _window_start(),
    )
    query = _apply_filters(query, distributor_id=distributor_id, staff_id=staff_id, status=status, day=day)
    return query.order_by(MarketingStaffActivity.created_at.desc(), MarketingStaffActivity.id.desc())


def all_trips_query(
    *,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    staff_id=None,
    distributor_id=None,
    status=None,
):
    query = _apply_filters(
        db.session.query(MarketingStaffActivity),
        distributor_id=distributor_id,
        staff_id=staff_id,
        status=status,
    )
    if from_date:
        query = query.filter(MarketingStaffActivity.created_at >= start_of_day(from_date))
    if to_date:
        query = query.filter(MarketingStaffActivity.created_at <= end_of_day(to_date))
    return query.order_by(MarketingStaffActivity.created_at.desc(), MarketingStaffActivity.id.desc())


def get_trip(trip_id: int, *, viewer: User) -> MarketingStaffActivity:
    trip = db.session.get(MarketingStaffActivity, trip_id)
    if trip is None:
        raise NotFoundError("Marketing activity not found")
    if trip.marketing_staff_id != viewer.id and not permission_service.has_capability(viewer, "VIEW_TEAM_ACTIVITIES"):
        raise AccessDeniedError("Not authorized to view this marketing activity")
    return trip


def trips_for_distributor(distributor_id: int) -> list[MarketingStaffActivity]:
    if db.session.get(Distributor, distributor_id) is None:
        raise NotFoundError("Distributor not found")
    return all_trips_query(distributor_id=distributor_id).all()


def delete_trip(trip_id: int) -> None:
    """Hard delete; the trip's shop visits go with it."""
    trip = db.session.get(MarketingStaffActivity, trip_id)
    if trip is None:
        raise NotFoundError("Marketing activity not found")
    db.session.delete(trip)
    db.session.commit()
    current_app.logger.info("Marketing activity %s deleted", trip_id)
