# backend/fieldops/__init__.py
import time

from flask import Flask, g, request, send_from_directory
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import AccessDeniedError, AuthenticationError, NotFoundError
from .extensions import db, migrate
from .responses import fail
from .services.storage_service import StorageError
from .validation import ValidationError


def create_app(test_config=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.from_mapping(test_config)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.staff import staff_bp
    from .routes.distributors import distributors_bp
    from .routes.shops import shops_bp
    from .routes.catalog import brands_bp, products_bp, variants_bp
    from .routes.assignments import assignments_bp
    from .routes.orders import orders_bp
    from .routes.damage_claims import damage_claims_bp
    from .routes.sales_inquiries import sales_inquiries_bp
    from .routes.supply_estimates import supply_estimates_bp
    from .routes.tasks import tasks_bp
    from .routes.marketing_activity import marketing_activity_bp
    from .routes.shop_visits import fresh_orders_bp, shop_visits_bp
    from .routes.staff_activity import staff_activity_bp

    for blueprint in (
        system_bp,
        auth_bp,
        staff_bp,
        distributors_bp,
        shops_bp,
        products_bp,
        brands_bp,
        variants_bp,
        assignments_bp,
        orders_bp,
        damage_claims_bp,
        sales_inquiries_bp,
        supply_estimates_bp,
        tasks_bp,
        marketing_activity_bp,
        shop_visits_bp,
        fresh_orders_bp,
        staff_activity_bp,
    ):
        app.register_blueprint(blueprint)

    @app.get("/uploads/<path:filename>")
    def uploaded_file(filename):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    register_request_logging(app)
    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, x-admin-panel"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = "X-Token-Expires-Soon, X-Token-Expires-In"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_request_logging(app: Flask) -> None:
    @app.before_request
    def log_request():
        g.request_started = time.perf_counter()
        app.logger.info("REQUEST: %s %s from %s", request.method, request.path, request.remote_addr)

    @app.after_request
    def log_response(response):
        started = g.pop("request_started", None)
        elapsed_ms = round((time.perf_counter() - started) * 1000) if started is not None else 0
        log = app.logger.warning if response.status_code >= 400 else app.logger.info
        log("RESPONSE: %s %s - %s - %dms", request.method, request.path, response.status_code, elapsed_ms)
        return response


def register_error_handlers(app: Flask) -> None:
    """Shared error classes -> JSON envelope. The session is rolled back first."""

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        db.session.rollback()
        return fail(str(e), 400, errors=e.errors or None)

    @app.errorhandler(StorageError)
    def handle_storage_error(e):
        db.session.rollback()
        return fail(str(e), 400)

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        db.session.rollback()
        return fail(str(e), 404)

    @app.errorhandler(AccessDeniedError)
    def handle_access_denied(e):
        db.session.rollback()
        return fail(str(e), 403)

    @app.errorhandler(AuthenticationError)
    def handle_authentication_error(e):
        return fail(str(e), 401, code=e.code)

    @app.errorhandler(404)
    def handle_unknown_route(e):
        return fail(f"Route not found: {request.method} {request.path}", 404)

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return fail("Method not allowed", 405)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return fail(e.description or e.name, e.code or 500)
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail("Internal server error", 500)
