# Overview: Service-layer operations for the staff activity trail; append and query.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import StaffActivity
from ..models.audit import ACTIVITY_TYPES, ACTIVITY_STATUSES, RELATED_MODELS
from ..validation import coerce_int, field_error, require_choice
from fieldops.time_utils import utcnow, start_of_day, end_of_day
"""
Staff Activity Invariants

- Append-only: rows are never updated by the workflow code.
- Written inside the same DB transaction as the mutation they describe;
  the caller commits.
- related_id/on_model is a soft reference; deleting the entity keeps the row.
"""


def record_activity(
    *,
    staff_id: int,
    activity_type: str,
    details: str,
    related_id: int | None = None,
    on_model: str | None = None,
    status: str = "Completed",
    action: str | None = None,
    date: datetime | None = None,
) -> StaffActivity:
    if activity_type not in ACTIVITY_TYPES:
        raise ValueError(f"Unknown activity type: {activity_type}")
    if on_model is not None and on_model not in RELATED_MODELS:
        raise ValueError(f"Unknown related model: {on_model}")

    activity = StaffActivity(
        staff_id=staff_id,
        date=date or utcnow(),
        activity_type=activity_type,
        action=action,
        details=details,
        status=status,
        related_id=related_id,
        on_model=on_model,
    )
    db.session.add(activity)
    db.session.flush()
    return activity


def log_manual_activity(*, staff_id: int, payload: dict) -> StaffActivity:
    """Staff-entered activity line; validated like any other input."""
    activity_type = require_choice(payload.get("activityType"), "activityType", ACTIVITY_TYPES)
    details = str(payload.get("details") or "").strip()
    if not details:
        raise field_error("details", "details is required")
    status = payload.get("status") or "Completed"
    require_choice(status, "status", ACTIVITY_STATUSES)

    on_model = payload.get("onModel")
    if on_model is not None:
        require_choice(on_model, "onModel", RELATED_MODELS)
    related_id = None
    if payload.get("relatedId") not in (None, ""):
        related_id = coerce_int(payload.get("relatedId"), "relatedId", minimum=1)

    activity = record_activity(
        staff_id=staff_id,
        activity_type=activity_type,
        details=details,
        status=status,
        related_id=related_id,
        on_model=on_model,
    )
    db.session.commit()
    return activity


def activities_query(
    *,
    staff_id: int | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    status: str | None = None,
    activity_type: str | None = None,
):
    query = db.session.query(StaffActivity)
    if staff_id:
        query = query.filter(StaffActivity.staff_id == staff_id)
    if from_date:
        query = query.filter(StaffActivity.date >= start_of_day(from_date))
    if to_date:
        query = query.filter(StaffActivity.date <= end_of_day(to_date))
    if status:
        query = query.filter(StaffActivity.status == status)
    if activity_type:
        query = query.filter(StaffActivity.activity_type == activity_type)
    return query.order_by(StaffActivity.date.desc(), StaffActivity.id.desc())


def timeline_for(on_model: str, related_id: int) -> list[StaffActivity]:
    return (
        db.session.query(StaffActivity)
        .filter_by(on_model=on_model, related_id=related_id)
        .order_by(StaffActivity.date.asc(), StaffActivity.id.asc())
        .all()
    )
