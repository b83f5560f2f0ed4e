# Overview: Service-layer operations for damage claims; review, tracking codes and replacements.

"""
Damage Claim Workflow

    Pending | Commented -> Commented                                (COMMENT_DAMAGE_CLAIMS)
    Pending | Commented -> Approved | Partially Approved | Rejected (PROCESS_DAMAGE_CLAIMS)
    approved-like, replacement Pending -> replacement Completed     (PROCESS_REPLACEMENTS)

approvedPieces: Approved = pieces, Partially Approved = given value with
0 < value < pieces, Rejected = 0.

TRACKING CODES:
- Assigned the first time a claim becomes approved-like; never replaced.
- damage_claims.tracking_id is unique. Generation skips codes already in
  use; if a concurrent writer still wins the same code, the commit fails
  and the whole processing step is retried from a fresh read.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AccessDeniedError, NotFoundError
from ..extensions import db
from ..models import DamageClaim, Distributor, User
from ..models.claims import APPROVED_LIKE, CLAIM_STATUSES
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    coerce_datetime,
    coerce_int,
    field_error,
    validate_payload,
)
from . import audit_service, permission_service, storage_service, tracking_service
from .workflow_service import require_status, require_transition
from fieldops.time_utils import utcnow

CLAIM_POLICY = ModelValidationPolicy(
    writable_fields={
        "distributorName": "distributor_name",
        "brand": "brand",
        "variant": "variant",
        "size": "size",
        "pieces": "pieces",
        "manufacturingDate": "manufacturing_date",
        "batchDetails": "batch_details",
        "damageType": "damage_type",
        "reason": "reason",
        "comment": "comment",
    },
    required_on_create=frozenset(
        {"brand", "variant", "size", "pieces", "manufacturingDate", "batchDetails", "damageType", "reason"}
    ),
)

_REVIEW_TARGETS = ("Commented", "Approved", "Partially Approved", "Rejected")
CLAIM_TRANSITIONS = {
    "Pending": _REVIEW_TARGETS,
    "Commented": _REVIEW_TARGETS,
}

PROCESS_ATTEMPTS = 3
IMAGE_CATEGORY = "damage-claims"


class DamageClaimError(ValueError):
    pass


def _get(claim_id: int) -> DamageClaim:
    claim = db.session.get(DamageClaim, claim_id)
    if claim is None:
        raise NotFoundError("Damage claim not found")
    return claim


def _store_images(files, body_images) -> list[str]:
    stored: list[str] = []
    for fs in files or []:
        stored.append(storage_service.save_file_storage(IMAGE_CATEGORY, fs))
    for image in body_images or []:
        if not isinstance(image, str) or not image.strip():
            continue
        if image.startswith("data:"):
            stored.append(storage_service.save_base64(IMAGE_CATEGORY, image, default_ext="jpg"))
        else:
            stored.append(image.strip())
    return stored


def create_claim(*, payload: dict, created_by: User, files=None) -> DamageClaim:
    patch = validate_payload(model=DamageClaim, payload=payload, policy=CLAIM_POLICY, partial=False)
    if patch["pieces"] < 1:
        raise field_error("pieces", "pieces must be at least 1")

    if payload.get("distributorId") in (None, ""):
        raise field_error("distributorId", "distributorId is required")
    distributor = db.session.get(Distributor, coerce_int(payload["distributorId"], "distributorId"))
    if distributor is None:
        raise NotFoundError("Distributor not found")

    body_images = payload.get("images")
    if body_images is not None and not isinstance(body_images, list):
        raise field_error("images", "images must be a list")

    claim = DamageClaim(distributor_id=distributor.id, created_by_id=created_by.id, **patch)
    claim.distributor_name = patch.get("distributor_name") or distributor.name
    claim.images = _store_images(files, body_images)
    db.session.add(claim)
    db.session.flush()

    audit_service.record_activity(
        staff_id=created_by.id,
        activity_type="Damage Claim",
        details=f"Created damage claim for {claim.distributor_name}: {claim.brand} {claim.variant}",
        related_id=claim.id,
        on_model="DamageClaim",
        status="Pending",
    )
    db.session.commit()
    current_app.logger.info("Damage claim %s created by %s", claim.id, created_by.id)
    return claim


def claims_query(*, viewer: User, status: str | None = None, distributor_id: int | None = None, own_only: bool = False):
    query = db.session.query(DamageClaim)
    if own_only or not permission_service.has_capability(viewer, "VIEW_ALL_DAMAGE_CLAIMS"):
        query = query.filter(DamageClaim.created_by_id == viewer.id)
    if status:
        if status not in CLAIM_STATUSES:
            raise field_error("status", f"status must be one of: {', '.join(CLAIM_STATUSES)}")
        query = query.filter(DamageClaim.status == status)
    if distributor_id:
        query = query.filter(DamageClaim.distributor_id == distributor_id)
    return query.order_by(DamageClaim.created_at.desc(), DamageClaim.id.desc())


def get_claim(claim_id: int, *, viewer: User) -> DamageClaim:
    claim = _get(claim_id)
    if claim.created_by_id != viewer.id and not permission_service.has_any_capability(
        viewer, "VIEW_ALL_DAMAGE_CLAIMS", "VIEW_GODOWN_DAMAGE_CLAIMS"
    ):
        raise AccessDeniedError("Not authorized to view this damage claim")
    return claim


def add_manager_comment(claim_id: int, *, comment: str | None, manager: User) -> DamageClaim:
    text = (comment or "").strip()
    if not text:
        raise field_error("comment", "Comment is required")

    claim = _get(claim_id)
    require_transition(
        current=claim.status,
        target="Commented",
        transitions=CLAIM_TRANSITIONS,
        error_cls=DamageClaimError,
        message=f"Cannot add comment to a claim with status {claim.status}",
    )

    claim.mlm_comment = text
    claim.mlm_id = manager.id
    claim.status = "Commented"

    audit_service.record_activity(
        staff_id=manager.id,
        activity_type="Damage Claim",
        details=f"Added comments to damage claim for {claim.distributor_name}",
        related_id=claim.id,
        on_model="DamageClaim",
    )
    db.session.commit()
    return claim


def _approved_pieces(claim: DamageClaim, status: str, requested) -> int:
    if status == "Approved":
        return claim.pieces
    if status == "Rejected":
        return 0
    message = "Approved pieces must be greater than zero and less than the damaged pieces"
    try:
        pieces = coerce_int(requested, "approvedPieces")
    except ValidationError:
        raise DamageClaimError(message)
    if not 0 < pieces < claim.pieces:
        raise DamageClaimError(message)
    return pieces


def _apply_processing(claim_id: int, *, status: str, admin_comment: str | None, approved_pieces, admin: User) -> DamageClaim:
    claim = _get(claim_id)
    require_transition(
        current=claim.status,
        target=status,
        transitions=CLAIM_TRANSITIONS,
        error_cls=DamageClaimError,
        message=f"Cannot process a claim with status {claim.status}",
    )
    pieces = _approved_pieces(claim, status, approved_pieces)

    claim.status = status
    claim.admin_id = admin.id
    claim.approved_date = utcnow()
    claim.approved_pieces = pieces
    if admin_comment is not None:
        claim.admin_comment = str(admin_comment).strip() or None
    if status in APPROVED_LIKE and not claim.tracking_id:
        claim.tracking_id = tracking_service.generate_tracking_code()

    action = {"Approved": "Approved", "Partially Approved": "Partially approved"}.get(status, "Rejected")
    audit_service.record_activity(
        staff_id=admin.id,
        activity_type="Damage Claim",
        details=f"{action} damage claim for {claim.distributor_name}: {claim.brand} {claim.variant}",
        related_id=claim.id,
        on_model="DamageClaim",
    )
    return claim


def process_claim(claim_id: int, *, payload: dict, admin: User) -> DamageClaim:
    status = payload.get("status")
    require_status(
        status,
        ("Approved", "Partially Approved", "Rejected"),
        DamageClaimError,
        "Status must be Approved, Partially Approved, or Rejected",
    )

    for attempt in range(1, PROCESS_ATTEMPTS + 1):
        claim = _apply_processing(
            claim_id,
            status=status,
            admin_comment=payload.get("adminComment"),
            approved_pieces=payload.get("approvedPieces"),
            admin=admin,
        )
        try:
            db.session.commit()
            return claim
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning(
                "Tracking code conflict for damage claim %s (attempt %d/%d)", claim_id, attempt, PROCESS_ATTEMPTS
            )
    raise DamageClaimError("Could not allocate a unique tracking code, please retry")


def get_by_tracking(tracking_id: str, *, viewer: User) -> DamageClaim:
    claim = db.session.query(DamageClaim).filter_by(tracking_id=(tracking_id or "").strip()).first()
    if claim is None:
        raise NotFoundError("Damage claim not found with this tracking ID")
    if not permission_service.has_capability(viewer, "PROCESS_DAMAGE_CLAIMS") and not claim.is_approved_like:
        raise DamageClaimError("Damage claim is not approved for replacement")
    return claim


def godown_query(*, status: str | None = None):
    query = db.session.query(DamageClaim)
    if status and status in CLAIM_STATUSES:
        query = query.filter(DamageClaim.status == status)
    return query.order_by(DamageClaim.created_at.desc(), DamageClaim.id.desc())


def godown_approved_query():
    return (
        db.session.query(DamageClaim)
        .filter(DamageClaim.status.in_(APPROVED_LIKE), DamageClaim.tracking_id.isnot(None))
        .order_by(DamageClaim.approved_date.desc(), DamageClaim.id.desc())
    )


def godown_get(claim_id: int) -> DamageClaim:
    return _get(claim_id)


def process_replacement(*, payload: dict, godown: User) -> DamageClaim:
    tracking_id = (payload.get("trackingId") or "").strip()
    if not tracking_id:
        raise field_error("trackingId", "Tracking ID is required")
    dispatch_date = coerce_datetime(payload.get("dispatchDate"), "dispatchDate")
    if dispatch_date is None:
        raise field_error("dispatchDate", "Dispatch date is required")

    claim = db.session.query(DamageClaim).filter_by(tracking_id=tracking_id).first()
    if claim is None:
        raise NotFoundError("Damage claim not found with this tracking ID")
    if not claim.is_approved_like:
        raise DamageClaimError("Only approved or partially approved claims can have replacements")
    if claim.replacement_status == "Completed":
        raise DamageClaimError("Replacement has already been processed for this claim")

    claim.replacement_dispatch_date = dispatch_date
    claim.replacement_approved_by = (payload.get("approvedBy") or "").strip() or None
    claim.replacement_channelled_to = (payload.get("channelledTo") or "").strip() or None
    claim.replacement_reference_number = (payload.get("referenceNumber") or "").strip() or None
    claim.replacement_processed_by_id = godown.id
    claim.replacement_processed_at = utcnow()
    claim.replacement_status = "Completed"

    audit_service.record_activity(
        staff_id=godown.id,
        activity_type="Damage Claim Replacement",
        details=f"Processed replacement for damage claim {tracking_id} for {claim.distributor_name}",
        related_id=claim.id,
        on_model="DamageClaim",
    )
    db.session.commit()
    return claim


def delete_claim(claim_id: int, *, admin: User) -> None:
    claim = _get(claim_id)
    images = list(claim.images or [])
    audit_service.record_activity(
        staff_id=admin.id,
        activity_type="Damage Claim",
        details=f"Deleted damage claim for {claim.distributor_name}",
        related_id=claim.id,
        on_model="DamageClaim",
    )
    db.session.delete(claim)
    db.session.commit()
    for path in images:
        storage_service.delete_upload(path)
