# Overview: System health endpoint.

"""
System health

Checks database connectivity and that the user table answers. Returns 503
when the database is unreachable so a load balancer can take the instance out.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import User
from fieldops.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        active_count = db.session.query(User).filter(User.active.is_(True)).count()
    except SQLAlchemyError:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }

    return {
        "status": "healthy",
        "latency_ms": round((time.time() - start_time) * 1000, 2),
        "details": {"users": user_count, "active_users": active_count},
    }


@system_bp.get("/api/health")
def health():
    database_health = check_database_health()
    healthy = database_health["status"] == "healthy"
    return {
        "success": healthy,
        "status": database_health["status"],
        "environment": current_app.config["APP_ENV"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }, 200 if healthy else 503
