# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration and password change
- Account lockout after five failed logins (30 minutes)
- x-admin-panel: true narrows login to Admin and sub-admin accounts
- In production the token is also set as a Secure, HttpOnly, SameSite=Strict
  `jwt` cookie
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth, require_capability
from ..models.auth import PANEL_SECTIONS
from ..permissions import SUB_ADMIN_SECTION_PERMISSIONS, permission_catalog
from ..responses import fail, ok
from ..services import auth_service, permission_service, staff_service
from ..services.auth_service import AuthError, LoginError
from ..services.staff_service import StaffError

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_response(result, status=200):
    response, status = ok(None, status, token=result.token, user=result.user.to_dict())
    if current_app.config["APP_ENV"] == "production":
        response.set_cookie(
            "jwt",
            result.token,
            max_age=current_app.config["JWT_EXPIRATION"],
            secure=True,
            httponly=True,
            samesite="Strict",
        )
    return response, status


@auth_bp.post("/register")
def register_route():
    payload = request.get_json(silent=True) or {}
    try:
        result = auth_service.register(payload)
    except AuthError as e:
        return fail(str(e), 400)
    return _session_response(result, 201)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and issue a session token.

    Body: {email, password, role?}. Header x-admin-panel: true restricts the
    match to Admin and sub-admin users.
    """
    payload = request.get_json(silent=True) or {}
    admin_panel = request.headers.get("x-admin-panel", "").lower() == "true"
    try:
        result = auth_service.authenticate(
            email=payload.get("email"),
            password=payload.get("password"),
            role=payload.get("role"),
            admin_panel=admin_panel,
        )
    except LoginError as e:
        return fail(str(e), 401)
    return _session_response(result)


@auth_bp.get("/me")
@require_auth
def me_route():
    data = g.current_user.to_dict()
    data["capabilities"] = sorted(permission_service.get_user_permissions(g.current_user))
    return ok(data)


@auth_bp.patch("/update-password")
@require_auth
def update_password_route():
    payload = request.get_json(silent=True) or {}
    try:
        result = auth_service.update_password(
            g.current_user,
            current_password=payload.get("currentPassword"),
            new_password=payload.get("newPassword"),
        )
    except LoginError as e:
        return fail(str(e), 401)
    except AuthError as e:
        return fail(str(e), 400)
    return _session_response(result)


@auth_bp.get("/logout")
def logout_route():
    response, status = ok(None, message="User logged out successfully")
    response.set_cookie("jwt", "", expires=0, httponly=True)
    return response, status


@auth_bp.post("/refresh-token")
@require_auth
def refresh_token_route():
    return _session_response(auth_service.refresh(g.current_user))


# -- Sub-admins (Admin panel) --

@auth_bp.post("/sub-admins")
@require_auth
@require_capability("MANAGE_SUB_ADMINS")
def create_sub_admin_route():
    payload = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_sub_admin(payload=payload, created_by=g.current_user)
    except AuthError as e:
        return fail(str(e), 400)
    return ok(user.to_dict(), 201)


@auth_bp.get("/sub-admins")
@require_auth
@require_capability("MANAGE_SUB_ADMINS")
def list_sub_admins_route():
    users = auth_service.list_sub_admins()
    return ok([u.to_dict() for u in users], count=len(users))


@auth_bp.get("/sub-admins/<int:user_id>")
@require_auth
@require_capability("MANAGE_SUB_ADMINS")
def get_sub_admin_route(user_id: int):
    return ok(auth_service.get_sub_admin(user_id).to_dict())


@auth_bp.put("/sub-admins/<int:user_id>")
@require_auth
@require_capability("MANAGE_SUB_ADMINS")
def update_sub_admin_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_sub_admin(user_id, payload)
    except AuthError as e:
        return fail(str(e), 400)
    return ok(user.to_dict())


@auth_bp.delete("/sub-admins/<int:user_id>")
@require_auth
@require_capability("MANAGE_SUB_ADMINS")
def delete_sub_admin_route(user_id: int):
    auth_service.delete_sub_admin(user_id)
    return ok({}, message="Sub-admin deleted")


# -- User lookups --

@auth_bp.get("/all-users")
@require_auth
@require_capability("VIEW_USERS")
def all_users_route():
    users = staff_service.staff_query(active=True).all()
    return ok([u.summary() for u in users], count=len(users))


@auth_bp.get("/users-by-role/<role>")
@require_auth
@require_capability("VIEW_USERS")
def users_by_role_route(role: str):
    try:
        users = staff_service.users_by_role(role)
    except StaffError as e:
        return fail(str(e), 400)
    return ok([u.summary() for u in users], count=len(users))


@auth_bp.get("/permissions")
@require_auth
@require_capability("MANAGE_SUB_ADMINS")
def permission_catalog_route():
    """Capability definitions by category and the capabilities each panel section grants."""
    return ok(
        {
            "categories": permission_catalog(),
            "sections": {section: SUB_ADMIN_SECTION_PERMISSIONS.get(section, []) for section in PANEL_SECTIONS},
        }
    )
