# Overview: Service-layer operations for stock orders; create, review, dispatch and track.

"""
Order Workflow

    Requested -> Approved | Rejected   (APPROVE_ORDERS)
    Approved  -> Dispatched            (DISPATCH_ORDERS)

Each transition stamps the acting user and time, and writes one Order audit
row in the same transaction.
"""

from __future__ import annotations

from flask import current_app

from ..errors import AccessDeniedError, NotFoundError
from ..extensions import db
from ..models import Distributor, Order, OrderItem, User
from ..models.orders import ORDER_STATUSES
from ..validation import coerce_int, field_error, optional_str, require_list
from . import audit_service, permission_service
from .workflow_service import require_status, require_transition
from fieldops.time_utils import to_utc_z, utcnow

ORDER_TRANSITIONS = {
    "Requested": ("Approved", "Rejected"),
    "Approved": ("Dispatched",),
}


class OrderError(ValueError):
    pass


def _parse_items(payload: dict) -> list[OrderItem]:
    items = require_list(payload, "items")
    parsed = []
    for index, item in enumerate(items):
        name = str(item.get("productName") or "").strip()
        unit = str(item.get("unit") or "").strip()
        if not name:
            raise field_error(f"items[{index}].productName", "Product name is required for each item")
        if not unit:
            raise field_error(f"items[{index}].unit", "Unit is required for each item")
        quantity = coerce_int(item.get("quantity"), f"items[{index}].quantity", minimum=1)
        parsed.append(OrderItem(product_name=name, quantity=quantity, unit=unit))
    return parsed


def _get(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None or not order.is_active:
        raise NotFoundError("Order not found")
    return order


def create_order(*, payload: dict, created_by: User) -> Order:
    items = _parse_items(payload)
    comments = optional_str(payload, "comments")

    distributor_id = payload.get("distributorId")
    distributor = db.session.get(Distributor, distributor_id) if distributor_id is not None else None
    if distributor is None or not distributor.is_active:
        raise NotFoundError("Distributor not found")

    order = Order(
        distributor_id=distributor.id,
        comments=comments,
        created_by_id=created_by.id,
        status="Requested",
    )
    order.items = items
    db.session.add(order)
    distributor.order_count = (distributor.order_count or 0) + 1
    db.session.flush()

    audit_service.record_activity(
        staff_id=created_by.id,
        activity_type="Order",
        details=f"Created order request for {distributor.name}",
        related_id=order.id,
        on_model="Order",
    )
    db.session.commit()
    current_app.logger.info("Order %s created for distributor %s", order.id, distributor.id)
    return order


def orders_query(*, viewer: User, status: str | None = None, distributor_id: int | None = None):
    query = db.session.query(Order).filter(Order.is_active.is_(True))
    if not permission_service.has_capability(viewer, "VIEW_ALL_ORDERS"):
        query = query.filter(Order.created_by_id == viewer.id)
    if status:
        if status not in ORDER_STATUSES:
            raise field_error("status", f"status must be one of: {', '.join(ORDER_STATUSES)}")
        query = query.filter(Order.status == status)
    if distributor_id:
        query = query.filter(Order.distributor_id == distributor_id)
    return query.order_by(Order.created_at.desc(), Order.id.desc())


def get_order(order_id: int, *, viewer: User) -> Order:
    order = _get(order_id)
    if order.created_by_id != viewer.id and not permission_service.has_capability(viewer, "VIEW_ALL_ORDERS"):
        raise AccessDeniedError("Not authorized to access this order")
    return order


def review_order(order_id: int, *, status: str | None, comments: str | None, reviewer: User) -> Order:
    require_status(status, ("Approved", "Rejected"), OrderError, "Status must be either Approved or Rejected")
    order = _get(order_id)
    require_transition(
        current=order.status,
        target=status,
        transitions=ORDER_TRANSITIONS,
        error_cls=OrderError,
        message=f"Order is already {order.status}",
    )

    order.status = status
    order.approved_by_id = reviewer.id
    order.approved_at = utcnow()
    if comments:
        order.comments = str(comments).strip()

    audit_service.record_activity(
        staff_id=reviewer.id,
        activity_type="Order",
        details=f"{status} order for {order.distributor.name}",
        related_id=order.id,
        on_model="Order",
    )
    db.session.commit()
    return order


def dispatch_order(order_id: int, *, dispatcher: User) -> Order:
    order = _get(order_id)
    require_transition(
        current=order.status,
        target="Dispatched",
        transitions=ORDER_TRANSITIONS,
        error_cls=OrderError,
        message="Only approved orders can be dispatched",
    )

    order.status = "Dispatched"
    order.dispatched_by_id = dispatcher.id
    order.dispatched_at = utcnow()

    audit_service.record_activity(
        staff_id=dispatcher.id,
        activity_type="Order",
        details=f"Dispatched order for {order.distributor.name}",
        related_id=order.id,
        on_model="Order",
    )
    db.session.commit()
    return order


def track_order(order_id: int) -> dict:
    order = _get(order_id)
    timeline = [
        {
            "date": to_utc_z(entry.date),
            "action": entry.details,
            "staff": entry.staff.name if entry.staff else None,
            "status": order.status,
        }
        for entry in audit_service.timeline_for("Order", order.id)
    ]
    return {"order": order.to_dict(), "timeline": timeline}


def delete_order(order_id: int) -> Order:
    order = _get(order_id)
    order.is_active = False
    db.session.commit()
    current_app.logger.info("Order %s deleted", order.id)
    return order
