# Overview: Flask API routes for stock orders; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import fail, ok, paged
from ..services import order_service
from ..services.order_service import OrderError

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
@require_capability("CREATE_ORDER")
def create_order_route():
    """Body: {distributorId, items: [{productName, quantity, unit}], comments?}"""
    payload = request.get_json(silent=True) or {}
    order = order_service.create_order(payload=payload, created_by=g.current_user)
    return ok(order.to_dict(), 201)


@orders_bp.get("")
@require_auth
@require_capability("VIEW_ORDERS")
def list_orders_route():
    """
    List orders, newest first.

    Users without VIEW_ALL_ORDERS only see their own.

    Query params:
    - status: Requested | Approved | Rejected | Dispatched
    - distributorId
    - page, limit
    """
    query = order_service.orders_query(
        viewer=g.current_user,
        status=request.args.get("status"),
        distributor_id=request.args.get("distributorId", type=int),
    )
    return paged(query, lambda o: o.to_dict())


@orders_bp.get("/<int:order_id>")
@require_auth
@require_capability("VIEW_ORDERS")
def get_order_route(order_id: int):
    return ok(order_service.get_order(order_id, viewer=g.current_user).to_dict())


@orders_bp.patch("/<int:order_id>/status")
@require_auth
@require_capability("APPROVE_ORDERS")
def review_order_route(order_id: int):
    """Body: {status: Approved | Rejected, comments?}"""
    payload = request.get_json(silent=True) or {}
    try:
        order = order_service.review_order(
            order_id,
            status=payload.get("status"),
            comments=payload.get("comments"),
            reviewer=g.current_user,
        )
    except OrderError as e:
        return fail(str(e), 400)
    return ok(order.to_dict())


@orders_bp.patch("/<int:order_id>/dispatch")
@require_auth
@require_capability("DISPATCH_ORDERS")
def dispatch_order_route(order_id: int):
    try:
        order = order_service.dispatch_order(order_id, dispatcher=g.current_user)
    except OrderError as e:
        return fail(str(e), 400)
    return ok(order.to_dict())


@orders_bp.get("/track/<int:order_id>")
@require_auth
@require_capability("VIEW_ORDERS")
def track_order_route(order_id: int):
    order_service.get_order(order_id, viewer=g.current_user)
    return ok(order_service.track_order(order_id))


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_capability("DELETE_ORDER")
def delete_order_route(order_id: int):
    order_service.delete_order(order_id)
    return ok({}, message="Order deleted")
