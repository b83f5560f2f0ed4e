# Overview: Flask API routes for the staff activity trail.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import ok, paged
from ..services import audit_service
from ..validation import coerce_datetime

staff_activity_bp = Blueprint("staff_activity", __name__, url_prefix="/api/staff-activity")


@staff_activity_bp.get("")
@require_auth
@require_capability("VIEW_STAFF_ACTIVITY")
def list_staff_activity_route():
    """
    Activity rows, newest first.

    Query params:
    - staffId, status, activityType
    - fromDate, toDate (inclusive days)
    - page, limit
    """
    query = audit_service.activities_query(
        staff_id=request.args.get("staffId", type=int),
        from_date=coerce_datetime(request.args.get("fromDate"), "fromDate"),
        to_date=coerce_datetime(request.args.get("toDate"), "toDate"),
        status=request.args.get("status"),
        activity_type=request.args.get("activityType"),
    )
    return paged(query, lambda a: a.to_dict(), default_limit=20)


@staff_activity_bp.get("/me")
@require_auth
def my_staff_activity_route():
    query = audit_service.activities_query(
        staff_id=g.current_user.id,
        from_date=coerce_datetime(request.args.get("fromDate"), "fromDate"),
        to_date=coerce_datetime(request.args.get("toDate"), "toDate"),
    )
    return paged(query, lambda a: a.to_dict(), default_limit=20)


@staff_activity_bp.post("")
@require_auth
@require_capability("LOG_STAFF_ACTIVITY")
def log_staff_activity_route():
    """Body: {activityType, details, status?, relatedId?, onModel?}"""
    payload = request.get_json(silent=True) or {}
    activity = audit_service.log_manual_activity(staff_id=g.current_user.id, payload=payload)
    return ok(activity.to_dict(), 201)
