# Overview: Service-layer operations for sales inquiries; comment, status and dispatch.

from __future__ import annotations

from flask import current_app

from ..errors import AccessDeniedError, NotFoundError
from ..extensions import db
from ..models import Distributor, SalesInquiry, SalesInquiryProduct, User
from ..models.inquiries import INQUIRY_STATUSES
from ..validation import coerce_datetime, coerce_int, field_error, optional_str, require_list
from . import audit_service, permission_service
from .workflow_service import require_status, require_transition
from fieldops.time_utils import utcnow

INQUIRY_TRANSITIONS = {
    "Pending": ("Commented", "Processing"),
    "Commented": ("Commented", "Processing"),
    "Processing": ("Completed", "Rejected", "Dispatched"),
    "Completed": ("Dispatched",),
}


class SalesInquiryError(ValueError):
    pass


def _get(inquiry_id: int) -> SalesInquiry:
    inquiry = db.session.get(SalesInquiry, inquiry_id)
    if inquiry is None:
        raise NotFoundError("Sales inquiry not found")
    return inquiry


def _parse_products(payload: dict) -> list[SalesInquiryProduct]:
    products = []
    for index, item in enumerate(require_list(payload, "products")):
        values = {}
        for key, label in (("brand", "Brand name"), ("variant", "Variant"), ("size", "Size")):
            value = str(item.get(key) or "").strip()
            if not value:
                raise field_error(f"products[{index}].{key}", f"{label} is required for all products")
            values[key] = value
        quantity = coerce_int(item.get("quantity"), f"products[{index}].quantity", minimum=1)
        products.append(SalesInquiryProduct(quantity=quantity, **values))
    return products


def create_inquiry(*, payload: dict, created_by: User) -> SalesInquiry:
    products = _parse_products(payload)
    distributor_id = payload.get("distributorId")
    distributor = db.session.get(Distributor, distributor_id) if distributor_id is not None else None
    if distributor is None:
        raise NotFoundError("Distributor not found")

    inquiry = SalesInquiry(
        distributor_id=distributor.id,
        distributor_name=optional_str(payload, "distributorName", max_length=120) or distributor.name,
        shop_name=optional_str(payload, "shopName", max_length=120),
        notes=optional_str(payload, "notes"),
        created_by_id=created_by.id,
        status="Pending",
    )
    inquiry.products = products
    db.session.add(inquiry)
    db.session.flush()

    audit_service.record_activity(
        staff_id=created_by.id,
        activity_type="Inquiry",
        details=f"Created sales inquiry for {inquiry.distributor_name}",
        related_id=inquiry.id,
        on_model="SalesInquiry",
        status="Pending",
    )
    db.session.commit()
    current_app.logger.info("Sales inquiry %s created by %s", inquiry.id, created_by.id)
    return inquiry


def inquiries_query(*, viewer: User, status: str | None = None, distributor_id: int | None = None, own_only: bool = False):
    query = db.session.query(SalesInquiry)
    if own_only or not permission_service.has_capability(viewer, "VIEW_ALL_SALES_INQUIRIES"):
        query = query.filter(SalesInquiry.created_by_id == viewer.id)
    if status:
        if status not in INQUIRY_STATUSES:
            raise field_error("status", f"status must be one of: {', '.join(INQUIRY_STATUSES)}")
        query = query.filter(SalesInquiry.status == status)
    if distributor_id:
        query = query.filter(SalesInquiry.distributor_id == distributor_id)
    return query.order_by(SalesInquiry.created_at.desc(), SalesInquiry.id.desc())


def get_inquiry(inquiry_id: int, *, viewer: User) -> SalesInquiry:
    inquiry = _get(inquiry_id)
    if inquiry.created_by_id != viewer.id and not permission_service.has_capability(viewer, "VIEW_ALL_SALES_INQUIRIES"):
        raise AccessDeniedError("Not authorized to view this sales inquiry")
    return inquiry


def add_manager_comment(inquiry_id: int, *, comment: str | None, manager: User) -> SalesInquiry:
    text = (comment or "").strip()
    if not text:
        raise field_error("comment", "Comment is required")
    inquiry = _get(inquiry_id)
    require_transition(
        current=inquiry.status,
        target="Commented",
        transitions=INQUIRY_TRANSITIONS,
        error_cls=SalesInquiryError,
        message=f"Cannot add comment to an inquiry with status {inquiry.status}",
    )

    inquiry.manager_comment = text
    inquiry.manager_id = manager.id
    inquiry.manager_comment_date = utcnow()
    inquiry.status = "Commented"

    audit_service.record_activity(
        staff_id=manager.id,
        activity_type="Inquiry",
        details=f"Added comment to sales inquiry for {inquiry.distributor_name}",
        related_id=inquiry.id,
        on_model="SalesInquiry",
    )
    db.session.commit()
    return inquiry


def update_status(inquiry_id: int, *, payload: dict, reviewer: User) -> SalesInquiry:
    status = payload.get("status")
    require_status(
        status,
        ("Processing", "Completed", "Rejected"),
        SalesInquiryError,
        "Status must be Processing, Completed, or Rejected",
    )
    inquiry = _get(inquiry_id)
    require_transition(
        current=inquiry.status,
        target=status,
        transitions=INQUIRY_TRANSITIONS,
        error_cls=SalesInquiryError,
        message=f"Cannot change status of an inquiry from {inquiry.status} to {status}",
    )

    inquiry.status = status
    inquiry.processed_by_id = reviewer.id
    inquiry.processed_date = utcnow()
    notes = optional_str(payload, "notes")
    if notes:
        inquiry.notes = notes

    audit_service.record_activity(
        staff_id=reviewer.id,
        activity_type="Inquiry",
        details=f"Marked sales inquiry for {inquiry.distributor_name} as {status}",
        related_id=inquiry.id,
        on_model="SalesInquiry",
    )
    db.session.commit()
    return inquiry


def dispatch_inquiry(inquiry_id: int, *, payload: dict, godown: User) -> SalesInquiry:
    dispatch_date = coerce_datetime(payload.get("dispatchDate"), "dispatchDate")
    inquiry = _get(inquiry_id)
    require_transition(
        current=inquiry.status,
        target="Dispatched",
        transitions=INQUIRY_TRANSITIONS,
        error_cls=SalesInquiryError,
        message="Only processing or completed inquiries can be dispatched",
    )

    now = utcnow()
    inquiry.status = "Dispatched"
    inquiry.dispatched_by_id = godown.id
    inquiry.dispatch_date = dispatch_date or now
    inquiry.dispatched_at = now
    inquiry.vehicle_id = optional_str(payload, "vehicleId", max_length=64)
    inquiry.reference_number = optional_str(payload, "referenceNumber", max_length=64)
    notes = optional_str(payload, "notes")
    if notes:
        inquiry.notes = notes

    audit_service.record_activity(
        staff_id=godown.id,
        activity_type="Dispatch",
        details=f"Dispatched sales inquiry for {inquiry.distributor_name}",
        related_id=inquiry.id,
        on_model="SalesInquiry",
    )
    db.session.commit()
    return inquiry


def delete_inquiry(inquiry_id: int, *, admin: User) -> None:
    inquiry = _get(inquiry_id)
    audit_service.record_activity(
        staff_id=admin.id,
        activity_type="Inquiry",
        details=f"Deleted sales inquiry for {inquiry.distributor_name}",
        related_id=inquiry.id,
        on_model="SalesInquiry",
    )
    db.session.delete(inquiry)
    db.session.commit()
