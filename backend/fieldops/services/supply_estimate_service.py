# Overview: Service-layer operations for supply estimates; submission and review.

from __future__ import annotations

from flask import current_app

from ..errors import AccessDeniedError, NotFoundError
from ..extensions import db
from ..models import Distributor, SupplyEstimate, SupplyEstimateRevision, User
from ..models.estimates import ESTIMATE_STATUSES, ESTIMATE_TYPES
from ..validation import coerce_float, field_error, optional_str, require_choice, require_list
from . import audit_service, permission_service
from .workflow_service import require_transition
from fieldops.time_utils import utcnow

ESTIMATE_TRANSITIONS = {
    "Pending": ("Approved", "Rejected"),
}


class SupplyEstimateError(ValueError):
    pass


def normalise_brand_tree(raw) -> tuple[list[dict], int]:
    """
    Validate the brand -> variant -> size tree.

    Returns (tree, size_row_count). Brand and variant entries accept either
    "brand"/"variant" or "name" as the label key.
    """
    brands = require_list({"brands": raw}, "brands")
    tree: list[dict] = []
    total = 0
    for b_index, brand in enumerate(brands):
        brand_name = str(brand.get("brand") or brand.get("name") or "").strip()
        if not brand_name:
            raise field_error(f"brands[{b_index}].brand", "Brand name is required")
        variants = []
        for v_index, variant in enumerate(brand.get("variants") or []):
            if not isinstance(variant, dict):
                raise field_error(f"brands[{b_index}].variants[{v_index}]", "Variant must be an object")
            variant_name = str(variant.get("variant") or variant.get("name") or "").strip()
            if not variant_name:
                raise field_error(f"brands[{b_index}].variants[{v_index}].variant", "Variant name is required")
            sizes = []
            for s_index, size in enumerate(variant.get("sizes") or []):
                prefix = f"brands[{b_index}].variants[{v_index}].sizes[{s_index}]"
                if not isinstance(size, dict):
                    raise field_error(prefix, "Size must be an object")
                size_name = str(size.get("size") or size.get("name") or "").strip()
                if not size_name:
                    raise field_error(f"{prefix}.size", "Size is required")
                sizes.append(
                    {
                        "size": size_name,
                        "openingStock": coerce_float(size.get("openingStock"), f"{prefix}.openingStock", default=0.0),
                        "rate": coerce_float(size.get("rate"), f"{prefix}.rate", default=0.0),
                    }
                )
            total += len(sizes)
            variants.append({"variant": variant_name, "sizes": sizes})
        tree.append({"brand": brand_name, "variants": variants})
    return tree, total


def _get(estimate_id: int) -> SupplyEstimate:
    estimate = db.session.get(SupplyEstimate, estimate_id)
    if estimate is None:
        raise NotFoundError("Supply estimate not found")
    return estimate


def create_estimate(*, payload: dict, submitted_by: User) -> SupplyEstimate:
    tree, total = normalise_brand_tree(payload.get("brands"))
    estimate_type = payload.get("estimateType") or "Regular"
    require_choice(estimate_type, "estimateType", ESTIMATE_TYPES)

    distributor_id = payload.get("distributorId")
    distributor = db.session.get(Distributor, distributor_id) if distributor_id is not None else None
    if distributor is None:
        raise NotFoundError("Distributor not found")

    estimate = SupplyEstimate(
        distributor_id=distributor.id,
        submitted_by_id=submitted_by.id,
        status="Pending",
        brands=tree,
        total_items=total,
        notes=optional_str(payload, "notes"),
        estimate_type=estimate_type,
    )
    db.session.add(estimate)
    db.session.flush()

    audit_service.record_activity(
        staff_id=submitted_by.id,
        activity_type="Supply Estimate",
        details=f"Submitted {estimate_type} supply estimate for distributor: {distributor.name}",
        related_id=estimate.id,
        on_model="SupplyEstimate",
    )
    db.session.commit()
    current_app.logger.info("Supply estimate %s submitted by %s", estimate.id, submitted_by.id)
    return estimate


def estimates_query(
    *,
    viewer: User | None = None,
    status: str | None = None,
    distributor_id: int | None = None,
    submitted_by_id: int | None = None,
):
    query = db.session.query(SupplyEstimate)
    if viewer is not None and not permission_service.has_capability(viewer, "VIEW_ALL_SUPPLY_ESTIMATES"):
        query = query.filter(SupplyEstimate.submitted_by_id == viewer.id)
    if status:
        require_choice(status, "status", ESTIMATE_STATUSES)
        query = query.filter(SupplyEstimate.status == status)
    if distributor_id:
        query = query.filter(SupplyEstimate.distributor_id == distributor_id)
    if submitted_by_id:
        query = query.filter(SupplyEstimate.submitted_by_id == submitted_by_id)
    return query.order_by(SupplyEstimate.created_at.desc(), SupplyEstimate.id.desc())


def get_estimate(estimate_id: int, *, viewer: User) -> SupplyEstimate:
    estimate = _get(estimate_id)
    if estimate.submitted_by_id != viewer.id and not permission_service.has_capability(
        viewer, "VIEW_ALL_SUPPLY_ESTIMATES"
    ):
        raise AccessDeniedError("Not authorized to access this supply estimate")
    return estimate


def for_distributor(distributor_id: int, *, status: str | None = None) -> list[SupplyEstimate]:
    if db.session.get(Distributor, distributor_id) is None:
        raise NotFoundError("Distributor not found")
    return estimates_query(status=status, distributor_id=distributor_id).all()


def for_staff(staff_id: int, *, status: str | None = None) -> list[SupplyEstimate]:
    if db.session.get(User, staff_id) is None:
        raise NotFoundError("Staff member not found")
    return estimates_query(status=status, submitted_by_id=staff_id).all()


def _review(estimate_id: int, *, target: str, verb: str, notes: str | None, reviewer: User) -> SupplyEstimate:
    estimate = _get(estimate_id)
    require_transition(
        current=estimate.status,
        target=target,
        transitions=ESTIMATE_TRANSITIONS,
        error_cls=SupplyEstimateError,
        message=f"Cannot {verb} an estimate that is already {estimate.status.lower()}",
    )

    estimate.status = target
    estimate.revisions.append(
        SupplyEstimateRevision(revised_by_id=reviewer.id, revision_date=utcnow(), revision_notes=notes)
    )
    audit_service.record_activity(
        staff_id=reviewer.id,
        activity_type="Supply Estimate",
        details=f"{target} supply estimate ID: {estimate.id}",
        related_id=estimate.id,
        on_model="SupplyEstimate",
    )
    db.session.commit()
    return estimate


def approve_estimate(estimate_id: int, *, payload: dict, reviewer: User) -> SupplyEstimate:
    return _review(estimate_id, target="Approved", verb="approve", notes=optional_str(payload, "notes"), reviewer=reviewer)


def reject_estimate(estimate_id: int, *, payload: dict, reviewer: User) -> SupplyEstimate:
    reason = optional_str(payload, "reason")
    if not reason:
        raise field_error("reason", "Reason for rejection is required")
    return _review(estimate_id, target="Rejected", verb="reject", notes=reason, reviewer=reviewer)
