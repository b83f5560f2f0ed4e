# Overview: Request and capability decorators for API routes.

from functools import wraps

from flask import current_app, g, make_response, request

from .errors import AuthenticationError
from .responses import fail
from .services import permission_service, token_service

FORBIDDEN_MESSAGE = "You do not have permission to perform this action"


def _is_authenticated() -> bool:
    return hasattr(g, "current_user")


def _token_from_request() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return request.cookies.get("jwt") or None


def require_auth(f):
    """
    Require a valid session token.

    Sets:
    - g.current_user: the authenticated, active User
    - g.token_context: issued/expiry info for the presented token

    Returns 401 with a machine `code` (NO_TOKEN, INVALID_TOKEN,
    TOKEN_EXPIRED, USER_NOT_FOUND, PASSWORD_CHANGED). Tokens expiring within
    a day add X-Token-Expires-Soon / X-Token-Expires-In to the response.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            context = token_service.resolve_token(_token_from_request())
        except AuthenticationError as e:
            current_app.logger.warning("Rejected token on %s %s: %s", request.method, request.path, e.code)
            return fail(str(e), 401, code=e.code)

        g.current_user = context.user
        g.token_context = context

        response = make_response(f(*args, **kwargs))
        if token_service.expires_soon(context):
            response.headers["X-Token-Expires-Soon"] = "true"
            response.headers["X-Token-Expires-In"] = str(token_service.seconds_until_expiry(context))
        return response

    return decorated_function


def require_capability(code: str):
    """Require one capability code; 403 otherwise. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return fail("Not authorized to access this route", 401, code="NO_TOKEN")

            if not permission_service.has_capability(g.current_user, code):
                current_app.logger.warning(
                    "Permission denied: user %s lacks %s on %s", g.current_user.id, code, request.path
                )
                return fail(FORBIDDEN_MESSAGE, 403, requiredPermission=code)

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_capability(*codes: str):
    """Require at least one of the capability codes."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return fail("Not authorized to access this route", 401, code="NO_TOKEN")

            if not permission_service.has_any_capability(g.current_user, *codes):
                current_app.logger.warning(
                    "Permission denied: user %s lacks any of %s on %s",
                    g.current_user.id,
                    ",".join(codes),
                    request.path,
                )
                return fail(FORBIDDEN_MESSAGE, 403, requiredPermissions=list(codes))

            return f(*args, **kwargs)

        return decorated_function
    return decorator
