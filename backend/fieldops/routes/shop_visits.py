# Overview: Flask API routes for per-shop visits recorded during an open marketing trip.

from flask import Blueprint, g, request

from ..decorators import require_any_capability, require_auth, require_capability
from ..responses import fail, ok, paged
from ..services import shop_visit_service, storage_service
from ..services.shop_visit_service import ShopVisitError
from ..validation import coerce_datetime
from fieldops.time_utils import to_utc_z

shop_visits_bp = Blueprint("shop_visits", __name__, url_prefix="/api/retailer-shop-activity")
fresh_orders_bp = Blueprint("fresh_orders", __name__, url_prefix="/api/fresh-orders")


def _serialize(visit):
    return visit.to_dict(storage_service.public_url)


@shop_visits_bp.post("")
@require_auth
@require_capability("RECORD_SHOP_VISITS")
def record_visit_route():
    """
    Create or update the visit for (staff, distributor, shop, open trip).

    Answers 201 for a new visit and 200 when an existing one was updated.
    Fields left out of an update keep their stored values.
    """
    payload = request.get_json(silent=True) or {}
    try:
        visit, created = shop_visit_service.record_visit(payload=payload, staff=g.current_user)
    except ShopVisitError as e:
        return fail(str(e), 400)
    return ok(_serialize(visit), 201 if created else 200)


@shop_visits_bp.get("/my-activities")
@require_auth
@require_capability("RECORD_SHOP_VISITS")
def my_visits_route():
    query = shop_visit_service.my_visits_query(
        g.current_user,
        distributor_id=request.args.get("distributorId", type=int),
        status=request.args.get("status"),
        day=coerce_datetime(request.args.get("date"), "date"),
    )
    return paged(query, _serialize)


@shop_visits_bp.get("")
@require_auth
@require_capability("VIEW_TEAM_ACTIVITIES")
def all_visits_route():
    query = shop_visit_service.all_visits_query(
        distributor_id=request.args.get("distributorId", type=int),
        staff_id=request.args.get("staffId", type=int),
        status=request.args.get("status"),
        day=coerce_datetime(request.args.get("date"), "date"),
    )
    return paged(query, _serialize, default_limit=20)


@shop_visits_bp.get("/distributor-shops-sales-orders")
@require_auth
@require_any_capability("RECORD_SHOP_VISITS", "VIEW_ORDERS")
def distributor_shop_orders_route():
    shops = shop_visit_service.distributor_shop_orders(
        g.current_user,
        distributor_id=request.args.get("distributorId", type=int),
        start_date=coerce_datetime(request.args.get("startDate"), "startDate"),
        end_date=coerce_datetime(request.args.get("endDate"), "endDate"),
    )
    return ok(shops, count=len(shops))


# =============================================================================
# FRESH ORDERS
# =============================================================================


def _fresh_order(visit):
    return {
        "visitId": visit.id,
        "shopId": visit.shop_id if visit.shop_id is not None else visit.legacy_shop_id,
        "isLegacyShop": visit.shop_id is None,
        "shopName": visit.shop_name,
        "distributorId": visit.distributor_id,
        "distributorName": visit.distributor.name if visit.distributor else "",
        "marketingStaffId": visit.marketing_staff_id,
        "createdAt": to_utc_z(visit.created_at),
        "salesOrders": [order.to_dict() for order in visit.sales_orders],
    }


@fresh_orders_bp.post("")
@require_auth
@require_capability("RECORD_SHOP_VISITS")
def record_fresh_orders_route():
    payload = request.get_json(silent=True) or {}
    try:
        visit, created = shop_visit_service.record_fresh_orders(payload=payload, staff=g.current_user)
    except ShopVisitError as e:
        return fail(str(e), 400)
    return ok(_fresh_order(visit), 201 if created else 200)


@fresh_orders_bp.get("")
@require_auth
@require_any_capability("RECORD_SHOP_VISITS", "VIEW_TEAM_ACTIVITIES")
def list_fresh_orders_route():
    query = shop_visit_service.fresh_orders_query(
        g.current_user,
        distributor_id=request.args.get("distributorId", type=int),
        shop_id=request.args.get("shopId", type=int),
        day=coerce_datetime(request.args.get("date"), "date"),
    )
    return paged(query, _fresh_order, default_limit=20)
