# Overview: Human-readable tracking codes for approved damage claims.

from __future__ import annotations

import random
import re
from datetime import datetime
from typing import Callable

from ..extensions import db
from ..models import DamageClaim
from fieldops.time_utils import utcnow

TRACKING_PREFIX = "DMG"
TRACKING_PATTERN = re.compile(r"^DMG\d{6}\d{4}$")

# Existence-checked draws before giving up on a single day's code space
MAX_DRAWS = 20


class TrackingCodeError(RuntimeError):
    pass


def format_tracking_code(day: datetime, suffix: int) -> str:
    """DMG + YYMMDD + 4-digit zero-padded suffix."""
    return f"{TRACKING_PREFIX}{day.strftime('%y%m%d')}{suffix:04d}"


def is_tracking_code(value: str | None) -> bool:
    return bool(value) and TRACKING_PATTERN.match(value) is not None


def _code_in_use(code: str) -> bool:
    return db.session.query(DamageClaim.id).filter_by(tracking_id=code).first() is not None


def generate_tracking_code(
    *,
    now: datetime | None = None,
    rand: Callable[[int, int], int] = random.randint,
    exists: Callable[[str], bool] = _code_in_use,
) -> str:
    """
    Draw random codes for today until one is unused.

    The unique index on damage_claims.tracking_id still backs this up; a
    concurrent writer that wins the same code makes the caller retry.
    """
    day = now or utcnow()
    for _ in range(MAX_DRAWS):
        code = format_tracking_code(day, rand(0, 9999))
        if not exists(code):
            return code
    raise TrackingCodeError("Could not allocate a unique tracking code")
