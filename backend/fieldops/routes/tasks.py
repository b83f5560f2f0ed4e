# Overview: Flask API routes for tasks; assignment, status updates and punch in/out.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import fail, ok, paged
from ..services import task_service
from ..services.task_service import TaskError

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


@tasks_bp.post("")
@require_auth
@require_capability("CREATE_TASK")
def create_task_route():
    payload = request.get_json(silent=True) or {}
    try:
        task = task_service.create_task(payload=payload, created_by=g.current_user)
    except TaskError as e:
        return fail(str(e), 400)
    return ok(task.to_dict(), 201)


@tasks_bp.post("/internal")
@require_auth
@require_capability("CREATE_TASK")
def create_internal_task_route():
    """Body: {taskDetail, assignTo?, isOtherUser?, otherUserName?}"""
    payload = request.get_json(silent=True) or {}
    try:
        task = task_service.create_internal_task(payload=payload, created_by=g.current_user)
    except TaskError as e:
        return fail(str(e), 400)
    return ok(task.to_dict(), 201)


@tasks_bp.get("")
@require_auth
def list_tasks_route():
    """
    List tasks, newest first.

    Query params:
    - status: Pending | In Progress | Completed
    - assignedTo: user id or "me"
    - staffRole, type, creatorRole
    - showCompleted: include completed tasks when no status is given
    - page, limit
    """
    query = task_service.tasks_query(
        viewer=g.current_user,
        status=request.args.get("status"),
        assigned_to=request.args.get("assignedTo"),
        staff_role=request.args.get("staffRole"),
        task_type=request.args.get("type"),
        creator_role=request.args.get("creatorRole"),
        show_completed=request.args.get("showCompleted", "false").lower() == "true",
    )
    return paged(query, lambda t: t.to_dict(), default_limit=20)


@tasks_bp.get("/my-tasks")
@require_auth
def my_tasks_route():
    tasks = task_service.my_tasks(g.current_user, status=request.args.get("status"))
    return ok([t.to_dict() for t in tasks], count=len(tasks))


@tasks_bp.get("/created-by-me")
@require_auth
def created_by_me_route():
    tasks = task_service.created_by(g.current_user.id)
    return ok([t.to_dict() for t in tasks], count=len(tasks))


@tasks_bp.get("/<int:task_id>")
@require_auth
def get_task_route(task_id: int):
    return ok(task_service.get_task(task_id, viewer=g.current_user).to_dict())


@tasks_bp.put("/<int:task_id>/status")
@require_auth
def update_task_status_route(task_id: int):
    """Body: {status, report?}. Forward only: Pending -> In Progress -> Completed."""
    payload = request.get_json(silent=True) or {}
    try:
        task = task_service.update_status(task_id, payload=payload, acting_user=g.current_user)
    except TaskError as e:
        return fail(str(e), 400)
    return ok(task.to_dict())


@tasks_bp.post("/<int:task_id>/punch-in")
@require_auth
def task_punch_in_route(task_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        task = task_service.punch_in(task_id, location=payload.get("location"), acting_user=g.current_user)
    except TaskError as e:
        return fail(str(e), 400)
    return ok(task.to_dict())


@tasks_bp.post("/<int:task_id>/punch-out")
@require_auth
def task_punch_out_route(task_id: int):
    try:
        task = task_service.punch_out(task_id, acting_user=g.current_user)
    except TaskError as e:
        return fail(str(e), 400)
    return ok(task.to_dict())


@tasks_bp.delete("/<int:task_id>")
@require_auth
def delete_task_route(task_id: int):
    task_service.delete_task(task_id, acting_user=g.current_user)
    return ok({}, message="Task deleted")
