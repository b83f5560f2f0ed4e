# Overview: Service-layer operations for shops, shop approval and the merged shop list.

"""
Shops and Legacy Shops

Two tables describe shops under a distributor:
- shops: canonical rows with an approval workflow
- distributor_legacy_shops: the distributor's own retail/wholesale lists

An approved Shop is mirrored into the legacy table exactly once, as a row
whose shop_id points back at it (unique). If an unlinked legacy row already
describes the same shop (same type and normalised name/owner/address), that
row is linked instead of adding a second one.

Merged list = approved active Shop rows (isLegacy false) + legacy rows with
no shop_id that do not match an approved Shop by normalised triple
(isLegacy true). Linked legacy rows never appear on their own.
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import Distributor, LegacyShop, RetailerShopActivity, Shop, User
from ..models.distributors import SHOP_TYPES
from ..validation import ModelValidationPolicy, validate_payload
from . import audit_service, permission_service
from .workflow_service import require_status, require_transition
from fieldops.time_utils import to_utc_z, utcnow

SHOP_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "ownerName": "owner_name",
        "address": "address",
        "type": "type",
        "notes": "notes",
    },
    required_on_create=frozenset({"name", "ownerName", "address", "type"}),
    choices={"type": SHOP_TYPES},
)

APPROVAL_TRANSITIONS = {
    "Pending": ("Approved", "Rejected"),
}


class ShopError(ValueError):
    pass


def _normalise(value: str | None) -> str:
    return " ".join((value or "").split()).casefold()


def shop_key(name: str | None, owner: str | None, address: str | None) -> tuple[str, str, str]:
    """Comparison key for shops without a stable link: trimmed, whitespace-collapsed, case-folded."""
    return (_normalise(name), _normalise(owner), _normalise(address))


def _get_active_distributor(distributor_id) -> Distributor:
    distributor = db.session.get(Distributor, distributor_id) if distributor_id is not None else None
    if distributor is None or not distributor.is_active:
        raise NotFoundError("Distributor not found")
    return distributor


def get_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id)
    if shop is None or not shop.is_active:
        raise NotFoundError("Shop not found")
    return shop


def _shop_entry(shop: Shop) -> dict:
    return {
        "id": shop.id,
        "name": shop.name,
        "ownerName": shop.owner_name,
        "address": shop.address,
        "type": shop.type,
        "distributorId": shop.distributor_id,
        "isLegacy": False,
        "isActive": shop.is_active,
        "approvalStatus": shop.approval_status,
        "createdAt": to_utc_z(shop.created_at),
    }


def _legacy_entry(row: LegacyShop) -> dict:
    return {
        "id": row.id,
        "name": row.shop_name,
        "ownerName": row.owner_name,
        "address": row.address,
        "type": row.shop_type,
        "distributorId": row.distributor_id,
        "isLegacy": True,
        "isActive": True,
        "approvalStatus": "Approved",
        "createdAt": to_utc_z(row.created_at),
    }


def merged_shops(distributor_id: int, *, shop_type: str | None = None) -> list[dict]:
    """Approved shops and unlinked legacy shops of one distributor, newest first."""
    shops_q = db.session.query(Shop).filter(
        Shop.distributor_id == distributor_id,
        Shop.is_active.is_(True),
        Shop.approval_status == "Approved",
    )
    legacy_q = db.session.query(LegacyShop).filter(
        LegacyShop.distributor_id == distributor_id,
        LegacyShop.shop_id.is_(None),
    )
    if shop_type:
        shops_q = shops_q.filter(Shop.type == shop_type)
        legacy_q = legacy_q.filter(LegacyShop.shop_type == shop_type)

    shops = shops_q.all()
    known = {shop_key(s.name, s.owner_name, s.address) for s in shops}

    entries = [(s.created_at, _shop_entry(s)) for s in shops]
    for row in legacy_q.all():
        if shop_key(row.shop_name, row.owner_name, row.address) in known:
            continue
        entries.append((row.created_at, _legacy_entry(row)))

    entries.sort(key=lambda pair: pair[0], reverse=True)
    return [entry for _, entry in entries]


def shops_for_distributor(distributor_id: int, *, shop_type: str | None = None) -> list[dict]:
    _get_active_distributor(distributor_id)
    if shop_type and shop_type not in SHOP_TYPES:
        raise ShopError(f"type must be one of: {', '.join(SHOP_TYPES)}")
    return merged_shops(distributor_id, shop_type=shop_type)


def mirror_into_legacy(shop: Shop) -> LegacyShop:
    """Link (or add) the legacy row for an approved shop. Idempotent."""
    existing = db.session.query(LegacyShop).filter_by(shop_id=shop.id).first()
    if existing:
        return existing

    key = shop_key(shop.name, shop.owner_name, shop.address)
    candidates = db.session.query(LegacyShop).filter(
        LegacyShop.distributor_id == shop.distributor_id,
        LegacyShop.shop_type == shop.type,
        LegacyShop.shop_id.is_(None),
    )
    for row in candidates:
        if shop_key(row.shop_name, row.owner_name, row.address) == key:
            row.shop_id = shop.id
            db.session.flush()
            return row

    row = LegacyShop(
        distributor_id=shop.distributor_id,
        shop_type=shop.type,
        shop_name=shop.name,
        owner_name=shop.owner_name,
        address=shop.address,
        shop_id=shop.id,
        mirrored=True,
    )
    db.session.add(row)
    db.session.flush()
    return row


def _sync_mirror(shop: Shop) -> None:
    row = db.session.query(LegacyShop).filter_by(shop_id=shop.id).first()
    if row is None:
        return
    row.shop_type = shop.type
    row.shop_name = shop.name
    row.owner_name = shop.owner_name
    row.address = shop.address


def create_shop(*, payload: dict, created_by: User) -> Shop:
    patch = validate_payload(model=Shop, payload=payload, policy=SHOP_POLICY, partial=False)
    distributor = _get_active_distributor(payload.get("distributorId"))

    duplicate = (
        db.session.query(Shop.id)
        .filter(
            Shop.distributor_id == distributor.id,
            Shop.is_active.is_(True),
            db.func.lower(Shop.name) == patch["name"].lower(),
        )
        .first()
    )
    if duplicate:
        raise ShopError("A shop with this name already exists for this distributor")

    shop = Shop(distributor_id=distributor.id, created_by_id=created_by.id, **patch)
    if permission_service.has_capability(created_by, "AUTO_APPROVE_SHOPS"):
        shop.approval_status = "Approved"
        shop.approved_by_id = created_by.id
        shop.approval_date = utcnow()
    else:
        shop.approval_status = "Pending"

    db.session.add(shop)
    db.session.flush()
    if shop.approval_status == "Approved":
        mirror_into_legacy(shop)
    db.session.commit()

    current_app.logger.info("Shop created: %s (%s) by %s", shop.name, shop.approval_status, created_by.id)
    return shop


def update_shop(shop_id: int, payload: dict) -> Shop:
    shop = get_shop(shop_id)
    patch = validate_payload(model=Shop, payload=payload, policy=SHOP_POLICY, partial=True)
    for key, value in patch.items():
        setattr(shop, key, value)
    _sync_mirror(shop)
    db.session.commit()
    return shop


def delete_shop(shop_id: int) -> Shop:
    """
    Soft delete. A legacy row written by approval is removed; an older legacy
    row that approval only linked is unlinked and stays on the distributor.
    """
    shop = get_shop(shop_id)
    shop.is_active = False
    row = db.session.query(LegacyShop).filter_by(shop_id=shop.id).first()
    if row is not None and row.mirrored:
        db.session.query(RetailerShopActivity).filter_by(legacy_shop_id=row.id).update(
            {"legacy_shop_id": None}, synchronize_session=False
        )
        db.session.delete(row)
    elif row is not None:
        row.shop_id = None
    db.session.commit()
    return shop


def pending_shops(*, distributor_id: int | None = None) -> list[Shop]:
    query = db.session.query(Shop).filter(Shop.approval_status == "Pending", Shop.is_active.is_(True))
    if distributor_id:
        query = query.filter(Shop.distributor_id == distributor_id)
    return query.order_by(Shop.created_at.desc()).all()


def review_shop(shop_id: int, *, payload: dict, reviewer: User) -> Shop:
    status = payload.get("approvalStatus")
    require_status(
        status,
        ("Approved", "Rejected"),
        ShopError,
        'Invalid approval status. Must be either "Approved" or "Rejected"',
    )
    reason = (payload.get("rejectionReason") or "").strip()
    if status == "Rejected" and not reason:
        raise ShopError("Rejection reason is required when rejecting a shop")

    shop = get_shop(shop_id)
    require_transition(
        current=shop.approval_status,
        target=status,
        transitions=APPROVAL_TRANSITIONS,
        error_cls=ShopError,
        message=f"Shop is already {shop.approval_status.lower()}",
    )

    shop.approval_status = status
    shop.approved_by_id = reviewer.id
    shop.approval_date = utcnow()
    if status == "Rejected":
        shop.rejection_reason = reason
    if payload.get("notes"):
        shop.notes = str(payload["notes"]).strip()

    if status == "Approved":
        mirror_into_legacy(shop)

    audit_service.record_activity(
        staff_id=reviewer.id,
        activity_type="Other",
        details=f"{status} shop: {shop.name}",
        related_id=shop.id,
        on_model="Shop",
    )
    db.session.commit()
    return shop


def approval_status(shop_id: int) -> dict:
    shop = get_shop(shop_id)
    return {
        "id": shop.id,
        "approvalStatus": shop.approval_status,
        "approvedBy": shop.approved_by.summary() if shop.approved_by else None,
        "approvalDate": to_utc_z(shop.approval_date),
        "rejectionReason": shop.rejection_reason,
        "notes": shop.notes,
    }
