# Overview: Service-layer operations for staff <-> distributor assignments.

"""
Staff Distributor Assignment

At most one active assignment per marketing staff member, enforced by the
partial unique index uq_staff_assignment_active. Re-assigning replaces the
distributor set; removing distributors is set subtraction; deleting flips
is_active so the row stays as history.
"""

from __future__ import annotations

from flask import current_app

from ..errors import AccessDeniedError, NotFoundError
from ..extensions import db
from ..models import Distributor, StaffDistributorAssignment, User
from ..validation import field_error
from . import permission_service
from fieldops.time_utils import utcnow


class AssignmentError(ValueError):
    pass


def _id_list(raw, field: str) -> list[int]:
    if not isinstance(raw, list):
        raise field_error(field, f"{field} must be a list")
    ids: list[int] = []
    for value in raw:
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise field_error(field, f"{field} must contain distributor ids")
        if number not in ids:
            ids.append(number)
    return ids


def active_assignment(staff_id: int) -> StaffDistributorAssignment | None:
    return (
        db.session.query(StaffDistributorAssignment)
        .filter_by(staff_id=staff_id, is_active=True)
        .first()
    )


def assign(*, payload: dict, acting_user: User) -> tuple[StaffDistributorAssignment, bool]:
    """Create or replace the staff member's distributor set. Returns (assignment, created)."""
    staff_id = payload.get("staffId")
    distributor_ids = _id_list(payload.get("distributorIds") or [], "distributorIds")

    staff = db.session.get(User, staff_id) if staff_id is not None else None
    if staff is None:
        raise NotFoundError("Staff not found")
    if staff.role != "Marketing Staff":
        raise AssignmentError("Only marketing staff can be assigned distributors")

    distributors = []
    if distributor_ids:
        distributors = db.session.query(Distributor).filter(Distributor.id.in_(distributor_ids)).all()
        if len(distributors) != len(distributor_ids):
            raise AssignmentError("One or more distributors do not exist")

    assignment = active_assignment(staff.id)
    created = assignment is None
    now = utcnow()
    if created:
        assignment = StaffDistributorAssignment(
            staff_id=staff.id,
            assigned_by_id=acting_user.id,
            assigned_at=now,
        )
        db.session.add(assignment)
    assignment.distributors = sorted(distributors, key=lambda d: d.id)
    assignment.last_updated_at = now
    assignment.last_updated_by_id = acting_user.id
    db.session.commit()

    current_app.logger.info(
        "Assigned %d distributor(s) to staff %s by %s", len(distributors), staff.id, acting_user.id
    )
    return assignment, created


def list_assignments() -> list[StaffDistributorAssignment]:
    return (
        db.session.query(StaffDistributorAssignment)
        .filter_by(is_active=True)
        .order_by(StaffDistributorAssignment.last_updated_at.desc())
        .all()
    )


def get_for_staff(staff_id: int, *, viewer: User) -> StaffDistributorAssignment:
    if viewer.id != staff_id and not permission_service.has_capability(viewer, "MANAGE_ASSIGNMENTS"):
        raise AccessDeniedError("Not authorized to view this assignment")
    assignment = active_assignment(staff_id)
    if assignment is None:
        raise NotFoundError("No active assignment found for this staff")
    return assignment


def remove_distributors(staff_id: int, *, payload: dict, acting_user: User) -> StaffDistributorAssignment:
    raw = payload.get("distributorIds")
    if not isinstance(raw, list) or not raw:
        raise AssignmentError("Please provide distributor IDs to remove")
    to_remove = set(_id_list(raw, "distributorIds"))

    assignment = active_assignment(staff_id)
    if assignment is None:
        raise NotFoundError("No active assignment found for this staff")

    assignment.distributors = [d for d in assignment.distributors if d.id not in to_remove]
    assignment.last_updated_at = utcnow()
    assignment.last_updated_by_id = acting_user.id
    db.session.commit()
    return assignment


def delete_assignment(assignment_id: int, *, acting_user: User) -> StaffDistributorAssignment:
    assignment = db.session.get(StaffDistributorAssignment, assignment_id)
    if assignment is None:
        raise NotFoundError("Assignment not found")
    assignment.is_active = False
    assignment.last_updated_at = utcnow()
    assignment.last_updated_by_id = acting_user.id
    db.session.commit()
    return assignment


def my_distributors(user: User) -> list[Distributor]:
    assignment = active_assignment(user.id)
    if assignment is None:
        return []
    return [d for d in assignment.distributors if d.is_active]
