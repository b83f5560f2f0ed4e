# Overview: Service-layer operations for distributors and their legacy shop lists.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import DamageClaim, Distributor, LegacyShop, Order, User
from ..validation import ModelValidationPolicy, require_fields, validate_payload
from . import shop_service

DISTRIBUTOR_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "shopName": "shop_name",
        "contact": "contact",
        "phoneNumber": "phone_number",
        "address": "address",
    },
    required_on_create=frozenset({"name", "shopName", "contact", "address"}),
)

LEGACY_SHOP_KINDS = {"retail": "Retailer", "wholesale": "Whole Seller"}


def get_distributor(distributor_id: int, *, include_inactive: bool = False) -> Distributor:
    distributor = db.session.get(Distributor, distributor_id)
    if distributor is None or (not distributor.is_active and not include_inactive):
        raise NotFoundError("Distributor not found")
    return distributor


def distributors_query(*, search: str | None = None):
    query = db.session.query(Distributor).filter(Distributor.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(db.or_(Distributor.name.ilike(pattern), Distributor.shop_name.ilike(pattern)))
    return query.order_by(Distributor.name.asc(), Distributor.id.asc())


def create_distributor(*, payload: dict, created_by: User) -> Distributor:
    patch = validate_payload(model=Distributor, payload=payload, policy=DISTRIBUTOR_POLICY, partial=False)
    distributor = Distributor(created_by_id=created_by.id, **patch)
    db.session.add(distributor)
    db.session.commit()
    current_app.logger.info("Distributor created: %s by %s", distributor.name, created_by.id)
    return distributor


def update_distributor(distributor_id: int, payload: dict) -> Distributor:
    distributor = get_distributor(distributor_id)
    patch = validate_payload(model=Distributor, payload=payload, policy=DISTRIBUTOR_POLICY, partial=True)
    for key, value in patch.items():
        setattr(distributor, key, value)
    db.session.commit()
    return distributor


def delete_distributor(distributor_id: int) -> Distributor:
    distributor = get_distributor(distributor_id)
    distributor.is_active = False
    db.session.commit()
    current_app.logger.info("Distributor deactivated: %s", distributor.id)
    return distributor


def add_legacy_shop(distributor_id: int, *, kind: str, payload: dict) -> Distributor:
    """Append a shop to the distributor's own retail or wholesale list."""
    shop_type = LEGACY_SHOP_KINDS[kind]
    require_fields(payload, "shopName", "ownerName", "address")
    distributor = get_distributor(distributor_id)

    distributor.legacy_shops.append(
        LegacyShop(
            shop_type=shop_type,
            shop_name=str(payload["shopName"]).strip(),
            owner_name=str(payload["ownerName"]).strip(),
            address=str(payload["address"]).strip(),
        )
    )
    db.session.commit()
    return distributor


def distributor_details(distributor_id: int) -> dict:
    """Distributor plus its merged shop list, recent orders and recent claims."""
    distributor = get_distributor(distributor_id)
    shops = shop_service.merged_shops(distributor.id)
    shops.sort(key=lambda s: (s["name"] or "").casefold())

    recent_orders = (
        db.session.query(Order)
        .filter(Order.distributor_id == distributor.id, Order.is_active.is_(True))
        .order_by(Order.created_at.desc())
        .limit(10)
        .all()
    )
    recent_claims = (
        db.session.query(DamageClaim)
        .filter(DamageClaim.distributor_id == distributor.id)
        .order_by(DamageClaim.created_at.desc())
        .limit(10)
        .all()
    )

    data = distributor.to_dict(include_shops=False)
    data["shops"] = {
        "retailShops": [s for s in shops if s["type"] == "Retailer"],
        "wholesaleShops": [s for s in shops if s["type"] == "Whole Seller"],
    }
    data["recentOrders"] = [o.to_dict() for o in recent_orders]
    data["recentDamageClaims"] = [c.to_dict() for c in recent_claims]
    return data
