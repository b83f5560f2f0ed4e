# Overview: Flask API routes for staff <-> distributor assignments.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import fail, ok
from ..services import assignment_service
from ..services.assignment_service import AssignmentError

assignments_bp = Blueprint("assignments", __name__, url_prefix="/api/staff-assignments")


@assignments_bp.post("")
@require_auth
@require_capability("MANAGE_ASSIGNMENTS")
def assign_route():
    """
    Body: {staffId, distributorIds: [...]}

    Replaces the distributor set of an existing active assignment (200) or
    creates one (201).
    """
    payload = request.get_json(silent=True) or {}
    try:
        assignment, created = assignment_service.assign(payload=payload, acting_user=g.current_user)
    except AssignmentError as e:
        return fail(str(e), 400)
    return ok(assignment.to_dict(), 201 if created else 200)


@assignments_bp.get("")
@require_auth
@require_capability("MANAGE_ASSIGNMENTS")
def list_assignments_route():
    assignments = assignment_service.list_assignments()
    return ok([a.to_dict() for a in assignments], count=len(assignments))


@assignments_bp.get("/my-distributors")
@require_auth
def my_distributors_route():
    distributors = assignment_service.my_distributors(g.current_user)
    return ok([d.to_dict(include_shops=False) for d in distributors], count=len(distributors))


@assignments_bp.get("/<int:staff_id>")
@require_auth
def get_staff_assignment_route(staff_id: int):
    return ok(assignment_service.get_for_staff(staff_id, viewer=g.current_user).to_dict())


@assignments_bp.patch("/<int:staff_id>/remove-distributors")
@require_auth
@require_capability("MANAGE_ASSIGNMENTS")
def remove_distributors_route(staff_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        assignment = assignment_service.remove_distributors(
            staff_id, payload=payload, acting_user=g.current_user
        )
    except AssignmentError as e:
        return fail(str(e), 400)
    return ok(assignment.to_dict())


@assignments_bp.delete("/<int:assignment_id>")
@require_auth
@require_capability("MANAGE_ASSIGNMENTS")
def delete_assignment_route(assignment_id: int):
    assignment_service.delete_assignment(assignment_id, acting_user=g.current_user)
    return ok({}, message="Assignment deleted")
