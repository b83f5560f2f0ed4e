# Overview: Flask API routes for distributors and their legacy shop lists.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import ok, paged
from ..services import distributor_service

distributors_bp = Blueprint("distributors", __name__, url_prefix="/api/distributors")


@distributors_bp.get("")
@require_auth
@require_capability("VIEW_DISTRIBUTORS")
def list_distributors_route():
    query = distributor_service.distributors_query(search=request.args.get("search"))
    return paged(query, lambda d: d.to_dict(include_shops=False), default_limit=50)


@distributors_bp.get("/<int:distributor_id>")
@require_auth
@require_capability("VIEW_DISTRIBUTORS")
def get_distributor_route(distributor_id: int):
    return ok(distributor_service.get_distributor(distributor_id).to_dict())


@distributors_bp.get("/<int:distributor_id>/details")
@require_auth
@require_capability("VIEW_DISTRIBUTORS")
def distributor_details_route(distributor_id: int):
    """Distributor with merged shops, its ten latest orders and damage claims."""
    return ok(distributor_service.distributor_details(distributor_id))


@distributors_bp.post("")
@require_auth
@require_capability("MANAGE_DISTRIBUTORS")
def create_distributor_route():
    payload = request.get_json(silent=True) or {}
    distributor = distributor_service.create_distributor(payload=payload, created_by=g.current_user)
    return ok(distributor.to_dict(), 201)


@distributors_bp.put("/<int:distributor_id>")
@require_auth
@require_capability("MANAGE_DISTRIBUTORS")
def update_distributor_route(distributor_id: int):
    payload = request.get_json(silent=True) or {}
    return ok(distributor_service.update_distributor(distributor_id, payload).to_dict())


@distributors_bp.post("/<int:distributor_id>/retail-shops")
@require_auth
@require_capability("MANAGE_DISTRIBUTORS")
def add_retail_shop_route(distributor_id: int):
    payload = request.get_json(silent=True) or {}
    distributor = distributor_service.add_legacy_shop(distributor_id, kind="retail", payload=payload)
    return ok(distributor.to_dict(), 201)


@distributors_bp.post("/<int:distributor_id>/wholesale-shops")
@require_auth
@require_capability("MANAGE_DISTRIBUTORS")
def add_wholesale_shop_route(distributor_id: int):
    payload = request.get_json(silent=True) or {}
    distributor = distributor_service.add_legacy_shop(distributor_id, kind="wholesale", payload=payload)
    return ok(distributor.to_dict(), 201)


@distributors_bp.delete("/<int:distributor_id>")
@require_auth
@require_capability("DELETE_DISTRIBUTOR")
def delete_distributor_route(distributor_id: int):
    distributor_service.delete_distributor(distributor_id)
    return ok({}, message="Distributor deleted")
