# Overview: Flask API routes for staff administration; Admin panel only.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import fail, ok, paged
from ..services import staff_service
from ..services.auth_service import AuthError
from ..services.staff_service import StaffError

staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


def _bool_arg(name: str):
    value = request.args.get(name)
    if value is None or value == "":
        return None
    return value.lower() in ("1", "true", "yes")


@staff_bp.get("")
@require_auth
@require_capability("VIEW_USERS")
def list_staff_route():
    query = staff_service.staff_query(role=request.args.get("role"), active=_bool_arg("active"))
    return paged(query, lambda u: u.to_dict())


@staff_bp.get("/stats")
@require_auth
@require_capability("VIEW_USERS")
def staff_stats_route():
    return ok(staff_service.staff_stats())


@staff_bp.get("/<int:user_id>")
@require_auth
@require_capability("VIEW_USERS")
def get_staff_route(user_id: int):
    return ok(staff_service.get_staff(user_id).to_dict())


@staff_bp.post("")
@require_auth
@require_capability("MANAGE_STAFF")
def create_staff_route():
    payload = request.get_json(silent=True) or {}
    try:
        user = staff_service.create_staff(payload=payload, created_by=g.current_user)
    except StaffError as e:
        return fail(str(e), 400)
    return ok(user.to_dict(), 201)


@staff_bp.put("/<int:user_id>")
@require_auth
@require_capability("MANAGE_STAFF")
def update_staff_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        user = staff_service.update_staff(user_id, payload)
    except StaffError as e:
        return fail(str(e), 400)
    return ok(user.to_dict())


@staff_bp.put("/<int:user_id>/reset-password")
@require_auth
@require_capability("MANAGE_STAFF")
def reset_password_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        staff_service.reset_password(user_id, payload.get("password") or payload.get("newPassword"))
    except AuthError as e:
        return fail(str(e), 400)
    return ok({}, message="Password reset successfully")


@staff_bp.patch("/<int:user_id>/toggle-status")
@require_auth
@require_capability("MANAGE_STAFF")
def toggle_status_route(user_id: int):
    user = staff_service.toggle_status(user_id)
    return ok(user.to_dict(), message=f"Staff member {'activated' if user.active else 'deactivated'}")


@staff_bp.delete("/<int:user_id>")
@require_auth
@require_capability("MANAGE_STAFF")
def delete_staff_route(user_id: int):
    try:
        staff_service.delete_staff(user_id, acting_user=g.current_user)
    except StaffError as e:
        return fail(str(e), 400)
    return ok({}, message="Staff member deleted")
