# Overview: Flask API routes for marketing trips; punch in/out and activity feeds.

"""
Marketing Activity API routes

A staff member has at most one open (Punched In) trip. Punch-in while a trip
is open answers 400; punch-out without one answers 404. Punch-out rolls the
trip's shop visits up into the trip totals.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import fail, ok, paged
from ..services import marketing_activity_service, shop_visit_service, storage_service
from ..services.marketing_activity_service import MarketingActivityError
from ..validation import coerce_datetime

marketing_activity_bp = Blueprint("marketing_activity", __name__, url_prefix="/api/marketing-activity")


def _serialize(trip):
    return trip.to_dict(storage_service.public_url)


def _feed_filters() -> dict:
    return {
        "distributor_id": request.args.get("distributorId", type=int),
        "status": request.args.get("status"),
        "day": coerce_datetime(request.args.get("date"), "date"),
    }


@marketing_activity_bp.post("/punch-in")
@require_auth
@require_capability("PUNCH_IN_OUT")
def punch_in_route():
    """
    Body: {distributorId, areaName, tripCompanion: {category, name},
    modeOfTransport, selfieImage, retailShop?, distributor?, shopTypes?,
    shops?, brandSupplyEstimates?}
    """
    payload = request.get_json(silent=True) or {}
    try:
        trip = marketing_activity_service.punch_in(payload=payload, staff=g.current_user)
    except MarketingActivityError as e:
        return fail(str(e), 400)
    return ok(_serialize(trip), 201)


@marketing_activity_bp.patch("/punch-out")
@require_auth
@require_capability("PUNCH_IN_OUT")
def punch_out_route():
    payload = request.get_json(silent=True) or {}
    trip = marketing_activity_service.punch_out(payload=payload, staff=g.current_user)
    return ok(_serialize(trip))


@marketing_activity_bp.get("/current")
@require_auth
@require_capability("PUNCH_IN_OUT")
def current_trip_route():
    trip = marketing_activity_service.open_trip(g.current_user.id)
    return ok(_serialize(trip) if trip else None, isPunchedIn=trip is not None)


@marketing_activity_bp.get("/my-activities")
@require_auth
def my_activities_route():
    query = marketing_activity_service.my_trips_query(g.current_user, **_feed_filters())
    return paged(query, _serialize)


@marketing_activity_bp.get("/team-activities")
@require_auth
@require_capability("VIEW_TEAM_ACTIVITIES")
def team_activities_route():
    query = marketing_activity_service.team_trips_query(
        staff_id=request.args.get("staffId", type=int), **_feed_filters()
    )
    return paged(query, _serialize)


@marketing_activity_bp.get("")
@require_auth
@require_capability("VIEW_TEAM_ACTIVITIES")
def all_activities_route():
    """
    Admin list over any date range.

    Query params:
    - fromDate, toDate (ISO dates, inclusive)
    - staffId, distributorId, status
    - page, limit
    """
    query = marketing_activity_service.all_trips_query(
        from_date=coerce_datetime(request.args.get("fromDate"), "fromDate"),
        to_date=coerce_datetime(request.args.get("toDate"), "toDate"),
        staff_id=request.args.get("staffId", type=int),
        distributor_id=request.args.get("distributorId", type=int),
        status=request.args.get("status"),
    )
    return paged(query, _serialize, default_limit=20)


@marketing_activity_bp.get("/distributor/<int:distributor_id>")
@require_auth
@require_capability("VIEW_TEAM_ACTIVITIES")
def activities_for_distributor_route(distributor_id: int):
    trips = marketing_activity_service.trips_for_distributor(distributor_id)
    return ok([_serialize(t) for t in trips], count=len(trips))


@marketing_activity_bp.get("/<int:trip_id>")
@require_auth
def get_activity_route(trip_id: int):
    return ok(_serialize(marketing_activity_service.get_trip(trip_id, viewer=g.current_user)))


@marketing_activity_bp.get("/<int:trip_id>/shop-visits")
@require_auth
def trip_shop_visits_route(trip_id: int):
    visits = shop_visit_service.visits_for_trip(trip_id, viewer=g.current_user)
    return ok([v.to_dict(storage_service.public_url) for v in visits], count=len(visits))


@marketing_activity_bp.delete("/<int:trip_id>")
@require_auth
@require_capability("DELETE_MARKETING_ACTIVITY")
def delete_activity_route(trip_id: int):
    marketing_activity_service.delete_trip(trip_id)
    return ok({}, message="Marketing activity deleted")
