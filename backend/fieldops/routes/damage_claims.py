# Overview: Flask API routes for damage claims, godown views and replacement dispatch.

"""
Damage Claim API routes

    Pending -> Commented (manager comment)
    Pending | Commented -> Approved | Partially Approved | Rejected (admin)

Approved and partially approved claims get a tracking code (DMG + yymmdd +
4 digits) once; the godown looks claims up by that code and records the
replacement dispatch exactly once.

Create accepts JSON (images as data URLs or stored paths) or multipart form
data with files under "images".
"""

from flask import Blueprint, g, request

from ..decorators import require_any_capability, require_auth, require_capability
from ..responses import fail, ok, paged
from ..services import damage_claim_service, storage_service
from ..services.damage_claim_service import DamageClaimError

damage_claims_bp = Blueprint("damage_claims", __name__, url_prefix="/api/damage-claims")


def _serialize(claim):
    return claim.to_dict(storage_service.public_url)


@damage_claims_bp.post("")
@require_auth
@require_capability("CREATE_DAMAGE_CLAIM")
def create_claim_route():
    files = None
    if request.files:
        payload = request.form.to_dict()
        files = request.files.getlist("images")
    else:
        payload = request.get_json(silent=True) or {}
    try:
        claim = damage_claim_service.create_claim(payload=payload, created_by=g.current_user, files=files)
    except DamageClaimError as e:
        return fail(str(e), 400)
    return ok(_serialize(claim), 201)


@damage_claims_bp.get("")
@require_auth
def list_claims_route():
    """
    List damage claims, newest first.

    Users without VIEW_ALL_DAMAGE_CLAIMS only see their own.

    Query params:
    - status, distributorId, page, limit
    """
    query = damage_claim_service.claims_query(
        viewer=g.current_user,
        status=request.args.get("status"),
        distributor_id=request.args.get("distributorId", type=int),
    )
    return paged(query, _serialize)


@damage_claims_bp.get("/user")
@require_auth
def my_claims_route():
    query = damage_claim_service.claims_query(
        viewer=g.current_user,
        status=request.args.get("status"),
        own_only=True,
    )
    return paged(query, _serialize)


@damage_claims_bp.get("/tracking/<tracking_id>")
@require_auth
@require_any_capability("PROCESS_DAMAGE_CLAIMS", "VIEW_GODOWN_DAMAGE_CLAIMS")
def claim_by_tracking_route(tracking_id: str):
    try:
        claim = damage_claim_service.get_by_tracking(tracking_id, viewer=g.current_user)
    except DamageClaimError as e:
        return fail(str(e), 400)
    return ok(_serialize(claim))


@damage_claims_bp.get("/godown")
@require_auth
@require_capability("VIEW_GODOWN_DAMAGE_CLAIMS")
def godown_claims_route():
    query = damage_claim_service.godown_query(status=request.args.get("status"))
    return paged(query, _serialize)


@damage_claims_bp.get("/godown/approved")
@require_auth
@require_capability("VIEW_GODOWN_DAMAGE_CLAIMS")
def godown_approved_claims_route():
    return paged(damage_claim_service.godown_approved_query(), _serialize)


@damage_claims_bp.get("/godown/<int:claim_id>")
@require_auth
@require_capability("VIEW_GODOWN_DAMAGE_CLAIMS")
def godown_claim_route(claim_id: int):
    return ok(_serialize(damage_claim_service.godown_get(claim_id)))


@damage_claims_bp.post("/replacement")
@require_auth
@require_capability("PROCESS_REPLACEMENTS")
def process_replacement_route():
    """Body: {trackingId, dispatchDate, approvedBy?, channelledTo?, referenceNumber?}"""
    payload = request.get_json(silent=True) or {}
    try:
        claim = damage_claim_service.process_replacement(payload=payload, godown=g.current_user)
    except DamageClaimError as e:
        return fail(str(e), 400)
    return ok(_serialize(claim), message="Replacement processed successfully")


@damage_claims_bp.get("/<int:claim_id>")
@require_auth
def get_claim_route(claim_id: int):
    return ok(_serialize(damage_claim_service.get_claim(claim_id, viewer=g.current_user)))


@damage_claims_bp.patch("/<int:claim_id>/comment")
@require_auth
@require_capability("COMMENT_DAMAGE_CLAIMS")
def comment_claim_route(claim_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        claim = damage_claim_service.add_manager_comment(
            claim_id, comment=payload.get("comment"), manager=g.current_user
        )
    except DamageClaimError as e:
        return fail(str(e), 400)
    return ok(_serialize(claim))


@damage_claims_bp.patch("/<int:claim_id>/process")
@require_auth
@require_capability("PROCESS_DAMAGE_CLAIMS")
def process_claim_route(claim_id: int):
    """Body: {status: Approved | Partially Approved | Rejected, approvedPieces?, adminComment?}"""
    payload = request.get_json(silent=True) or {}
    try:
        claim = damage_claim_service.process_claim(claim_id, payload=payload, admin=g.current_user)
    except DamageClaimError as e:
        return fail(str(e), 400)
    return ok(_serialize(claim))


@damage_claims_bp.delete("/<int:claim_id>")
@require_auth
@require_capability("DELETE_DAMAGE_CLAIM")
def delete_claim_route(claim_id: int):
    damage_claim_service.delete_claim(claim_id, admin=g.current_user)
    return ok({}, message="Damage claim deleted")
