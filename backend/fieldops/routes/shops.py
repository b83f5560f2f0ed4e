# Overview: Flask API routes for shops; creation, merged listing and approval.

"""
Shop API routes

Shops created by users without AUTO_APPROVE_SHOPS start Pending and stay out
of the distributor's merged list until approved. Approval mirrors the shop
into the distributor's legacy shop rows in the same transaction.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import fail, ok
from ..services import shop_service
from ..services.shop_service import ShopError

shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


@shops_bp.post("")
@require_auth
@require_capability("CREATE_SHOP")
def create_shop_route():
    payload = request.get_json(silent=True) or {}
    try:
        shop = shop_service.create_shop(payload=payload, created_by=g.current_user)
    except ShopError as e:
        return fail(str(e), 400)
    if shop.approval_status == "Pending":
        return ok(shop.to_dict(), 201, message="Shop created and sent for approval")
    return ok(shop.to_dict(), 201, message="Shop created")


@shops_bp.get("/distributor/<int:distributor_id>")
@require_auth
@require_capability("VIEW_SHOPS")
def shops_by_distributor_route(distributor_id: int):
    """
    Merged shop list for one distributor.

    Query params:
    - type: Retailer | Whole Seller
    """
    try:
        shops = shop_service.shops_for_distributor(distributor_id, shop_type=request.args.get("type"))
    except ShopError as e:
        return fail(str(e), 400)
    return ok(shops, count=len(shops))


@shops_bp.get("/pending")
@require_auth
@require_capability("APPROVE_SHOPS")
def pending_shops_route():
    shops = shop_service.pending_shops(distributor_id=request.args.get("distributorId", type=int))
    return ok([s.to_dict() for s in shops], count=len(shops))


@shops_bp.get("/<int:shop_id>")
@require_auth
@require_capability("VIEW_SHOPS")
def get_shop_route(shop_id: int):
    return ok(shop_service.get_shop(shop_id).to_dict())


@shops_bp.put("/<int:shop_id>")
@require_auth
@require_capability("UPDATE_SHOP")
def update_shop_route(shop_id: int):
    payload = request.get_json(silent=True) or {}
    return ok(shop_service.update_shop(shop_id, payload).to_dict())


@shops_bp.delete("/<int:shop_id>")
@require_auth
@require_capability("DELETE_SHOP")
def delete_shop_route(shop_id: int):
    shop_service.delete_shop(shop_id)
    return ok({}, message="Shop deleted")


@shops_bp.patch("/<int:shop_id>/approval")
@require_auth
@require_capability("APPROVE_SHOPS")
def review_shop_route(shop_id: int):
    """Body: {approvalStatus: Approved | Rejected, rejectionReason?, notes?}"""
    payload = request.get_json(silent=True) or {}
    try:
        shop = shop_service.review_shop(shop_id, payload=payload, reviewer=g.current_user)
    except ShopError as e:
        return fail(str(e), 400)
    return ok(shop.to_dict(), message=f"Shop {shop.approval_status.lower()} successfully")


@shops_bp.get("/<int:shop_id>/approval-status")
@require_auth
@require_capability("VIEW_SHOPS")
def approval_status_route(shop_id: int):
    return ok(shop_service.approval_status(shop_id))
