# Overview: Startup database connectivity check with bounded exponential backoff.

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from sqlalchemy import text

from .extensions import db

T = TypeVar("T")

logger = logging.getLogger(__name__)


def connect_with_retry(
    connect: Callable[[], T],
    *,
    attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call `connect` up to `attempts` times.

    After failed attempt n (1-based) waits base_delay * 2**n seconds, so the
    default schedule is 2s then 4s. The last failure is re-raised.
    """
    for attempt in range(1, attempts + 1):
        try:
            return connect()
        except Exception as e:
            logger.warning("Database connection attempt %d failed: %s", attempt, e)
            if attempt >= attempts:
                raise
            sleep(base_delay * 2 ** attempt)
    raise RuntimeError("attempts must be >= 1")


def ping_database() -> None:
    """Open a connection and run a trivial statement (requires app context)."""
    with db.engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def wait_for_database(app) -> None:
    with app.app_context():
        connect_with_retry(
            ping_database,
            attempts=app.config["DB_CONNECT_ATTEMPTS"],
            base_delay=app.config["DB_CONNECT_BASE_DELAY"],
        )
        app.logger.info("Database connected: %s", db.engine.url.render_as_string(hide_password=True))
