# Overview: Flask API routes for supply estimates; submission, listing and review.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import fail, ok, paged
from ..services import supply_estimate_service
from ..services.supply_estimate_service import SupplyEstimateError

supply_estimates_bp = Blueprint("supply_estimates", __name__, url_prefix="/api/supply-estimates")


@supply_estimates_bp.post("")
@require_auth
@require_capability("CREATE_SUPPLY_ESTIMATE")
def create_estimate_route():
    """
    Body: {distributorId, brands: [{brand, variants: [{variant, sizes: [...]}]}],
    estimateType?: Initial | Regular | Special, notes?}
    """
    payload = request.get_json(silent=True) or {}
    estimate = supply_estimate_service.create_estimate(payload=payload, submitted_by=g.current_user)
    return ok(estimate.to_dict(), 201)


@supply_estimates_bp.get("")
@require_auth
def list_estimates_route():
    query = supply_estimate_service.estimates_query(
        viewer=g.current_user,
        status=request.args.get("status"),
        distributor_id=request.args.get("distributorId", type=int),
    )
    return paged(query, lambda e: e.to_dict())


@supply_estimates_bp.get("/<int:estimate_id>")
@require_auth
def get_estimate_route(estimate_id: int):
    return ok(supply_estimate_service.get_estimate(estimate_id, viewer=g.current_user).to_dict())


@supply_estimates_bp.get("/distributor/<int:distributor_id>")
@require_auth
@require_capability("VIEW_ALL_SUPPLY_ESTIMATES")
def estimates_for_distributor_route(distributor_id: int):
    estimates = supply_estimate_service.for_distributor(distributor_id, status=request.args.get("status"))
    return ok([e.to_dict() for e in estimates], count=len(estimates))


@supply_estimates_bp.get("/staff/<int:staff_id>")
@require_auth
@require_capability("VIEW_ALL_SUPPLY_ESTIMATES")
def estimates_for_staff_route(staff_id: int):
    estimates = supply_estimate_service.for_staff(staff_id, status=request.args.get("status"))
    return ok([e.to_dict() for e in estimates], count=len(estimates))


@supply_estimates_bp.put("/<int:estimate_id>/approve")
@require_auth
@require_capability("REVIEW_SUPPLY_ESTIMATES")
def approve_estimate_route(estimate_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        estimate = supply_estimate_service.approve_estimate(estimate_id, payload=payload, reviewer=g.current_user)
    except SupplyEstimateError as e:
        return fail(str(e), 400)
    return ok(estimate.to_dict())


@supply_estimates_bp.put("/<int:estimate_id>/reject")
@require_auth
@require_capability("REVIEW_SUPPLY_ESTIMATES")
def reject_estimate_route(estimate_id: int):
    """Body: {reason}"""
    payload = request.get_json(silent=True) or {}
    try:
        estimate = supply_estimate_service.reject_estimate(estimate_id, payload=payload, reviewer=g.current_user)
    except SupplyEstimateError as e:
        return fail(str(e), 400)
    return ok(estimate.to_dict())
