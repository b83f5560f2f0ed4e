# Overview: Service-layer operations for tasks; assignment, status and punch in/out.

"""
Tasks

A task is assigned either to a user (assigned_to_id) or to a named person
without an account (external_assignee_name); never both.

STATUS: Pending -> In Progress -> Completed, forward only. Marketing staff
may only move tasks assigned to them.

PUNCH: punch_status alternates punch-in / punch-out. Each punch-in opens a
TaskPunch row; the matching punch-out closes the latest open row.
"""

from __future__ import annotations

from flask import current_app

from ..errors import AccessDeniedError, NotFoundError
from ..extensions import db
from ..models import Distributor, Task, TaskItem, TaskPunch, User
from ..models.tasks import TASK_STAFF_ROLES, TASK_STATUSES, TASK_TYPES
from ..validation import coerce_datetime, coerce_int, field_error, optional_str, require_choice
from . import audit_service, permission_service
from .workflow_service import require_status, require_transition
from fieldops.time_utils import utcnow

TASK_TRANSITIONS = {
    "Pending": ("In Progress", "Completed"),
    "In Progress": ("Completed",),
}


class TaskError(ValueError):
    pass


def _get(task_id: int) -> Task:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task not found")
    return task


def _resolve_assignee(assigned_to) -> User:
    user = db.session.get(User, assigned_to) if assigned_to is not None else None
    if user is None or not user.active:
        raise NotFoundError("Assigned user not found")
    return user


def _parse_items(raw) -> list[TaskItem]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise field_error("items", "items must be a list")
    items = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise field_error(f"items[{index}]", f"items[{index}] must be an object")
        brand = str(item.get("brand") or "").strip()
        variant = str(item.get("variant") or "").strip()
        if not brand or not variant:
            raise field_error(f"items[{index}]", "Brand and variant are required for each item")
        items.append(
            TaskItem(
                brand=brand,
                variant=variant,
                size=str(item.get("size") or "").strip() or "N/A",
                quantity=coerce_int(item.get("quantity"), f"items[{index}].quantity", minimum=1),
            )
        )
    return items


def create_task(*, payload: dict, created_by: User) -> Task:
    title = optional_str(payload, "title", max_length=200)
    if not title:
        raise field_error("title", "Title is required")
    staff_role = payload.get("staffRole") or "Marketing Staff"
    require_choice(staff_role, "staffRole", TASK_STAFF_ROLES)
    task_type = payload.get("taskType") or "regular"
    require_choice(task_type, "taskType", TASK_TYPES)

    task = Task(
        title=title,
        description=optional_str(payload, "description") or "",
        status="Pending",
        task_type=task_type,
        created_by_id=created_by.id,
        staff_role=staff_role,
        assigned_date=coerce_datetime(payload.get("assignedDate"), "assignedDate") or utcnow(),
    )

    external_name = optional_str(payload, "assigneeName", max_length=120)
    if payload.get("isExternalUser") and external_name:
        task.external_assignee_name = external_name
    else:
        task.assigned_to_id = _resolve_assignee(payload.get("assignedTo") or created_by.id).id

    if staff_role in ("Marketing Staff", "Mid-Level Manager"):
        task.deadline = coerce_datetime(payload.get("deadline"), "deadline")
    if staff_role == "Marketing Staff" and payload.get("distributorId") is not None:
        distributor = db.session.get(Distributor, payload.get("distributorId"))
        if distributor is None:
            raise NotFoundError("Distributor not found")
        task.distributor_id = distributor.id
    if staff_role == "Godown Incharge":
        task.brand = optional_str(payload, "brand", max_length=120)
        task.variant = optional_str(payload, "variant", max_length=120)
        task.size = optional_str(payload, "size", max_length=64)
        if payload.get("quantity") not in (None, ""):
            task.quantity = coerce_int(payload.get("quantity"), "quantity", minimum=1)
        task.items = _parse_items(payload.get("items"))

    db.session.add(task)
    db.session.flush()
    audit_service.record_activity(
        staff_id=created_by.id,
        activity_type="Task",
        details=f"Created task: {task.title}",
        related_id=task.id,
        on_model="Task",
        status="Pending",
    )
    db.session.commit()
    current_app.logger.info("Task %s created by %s", task.id, created_by.id)
    return task


def create_internal_task(*, payload: dict, created_by: User) -> Task:
    """Quick task from the mobile app: one line of text, a user or an outside name."""
    detail = optional_str(payload, "taskDetail", max_length=200)
    if not detail:
        raise field_error("taskDetail", "Task detail is required")

    task = Task(
        title=detail,
        description="",
        status="Pending",
        task_type="internal",
        created_by_id=created_by.id,
        staff_role=created_by.role,
        assigned_date=utcnow(),
    )
    if payload.get("isOtherUser"):
        name = optional_str(payload, "otherUserName", max_length=120)
        if not name:
            raise TaskError("External user name is required when isOtherUser is true")
        task.external_assignee_name = name
    else:
        if payload.get("assignTo") is None:
            raise TaskError("Assigned user ID is required when isOtherUser is false")
        task.assigned_to_id = _resolve_assignee(payload.get("assignTo")).id

    db.session.add(task)
    db.session.flush()
    audit_service.record_activity(
        staff_id=created_by.id,
        activity_type="Task Creation",
        details=f"Created internal task: {detail}",
        related_id=task.id,
        on_model="Task",
        status="Pending",
    )
    db.session.commit()
    return task


def tasks_query(
    *,
    viewer: User,
    status: str | None = None,
    assigned_to: str | None = None,
    staff_role: str | None = None,
    task_type: str | None = None,
    creator_role: str | None = None,
    show_completed: bool = False,
):
    query = db.session.query(Task)
    if not permission_service.has_capability(viewer, "VIEW_ALL_TASKS"):
        query = query.filter(db.or_(Task.assigned_to_id == viewer.id, Task.created_by_id == viewer.id))

    if status:
        require_choice(status, "status", TASK_STATUSES)
        query = query.filter(Task.status == status)
    elif not show_completed:
        query = query.filter(Task.status != "Completed")

    if assigned_to:
        query = query.filter(Task.assigned_to_id == (viewer.id if assigned_to == "me" else assigned_to))
    if staff_role:
        query = query.filter(Task.staff_role == staff_role)
    if task_type:
        query = query.filter(Task.task_type == task_type)
    if creator_role:
        creators = db.session.query(User.id).filter(User.role == creator_role)
        query = query.filter(Task.created_by_id.in_(creators))
    return query.order_by(Task.created_at.desc(), Task.id.desc())


def my_tasks(user: User, *, status: str | None = None) -> list[Task]:
    query = db.session.query(Task).filter(Task.assigned_to_id == user.id)
    if status:
        require_choice(status, "status", TASK_STATUSES)
        query = query.filter(Task.status == status)
    return query.order_by(Task.created_at.desc()).all()


def created_by(user_id: int) -> list[Task]:
    return (
        db.session.query(Task)
        .filter(Task.created_by_id == user_id)
        .order_by(Task.created_at.desc())
        .all()
    )


def _can_see(task: Task, viewer: User) -> bool:
    if permission_service.has_capability(viewer, "VIEW_ALL_TASKS"):
        return True
    return viewer.id in (task.assigned_to_id, task.created_by_id)


def get_task(task_id: int, *, viewer: User) -> Task:
    task = _get(task_id)
    if not _can_see(task, viewer):
        raise AccessDeniedError("Not authorized to access this task")
    return task


def update_status(task_id: int, *, payload: dict, acting_user: User) -> Task:
    status = payload.get("status")
    require_status(status, TASK_STATUSES, TaskError, "Status must be Pending, In Progress, or Completed")
    task = _get(task_id)
    if task.assigned_to_id != acting_user.id and not permission_service.has_capability(
        acting_user, "UPDATE_ANY_TASK_STATUS"
    ):
        raise AccessDeniedError("Not authorized to update this task")
    if not _can_see(task, acting_user):
        raise AccessDeniedError("Not authorized to update this task")

    require_transition(
        current=task.status,
        target=status,
        transitions=TASK_TRANSITIONS,
        error_cls=TaskError,
        message=f"Cannot change task status from {task.status} to {status}",
    )
    task.status = status
    report = optional_str(payload, "report")
    if report:
        task.report = report

    audit_service.record_activity(
        staff_id=acting_user.id,
        activity_type="Task",
        details=f"Updated task status to {status}: {task.title}",
        related_id=task.id,
        on_model="Task",
        status="Completed" if status == "Completed" else "In Progress",
    )
    db.session.commit()
    return task


def punch_in(task_id: int, *, location, acting_user: User) -> Task:
    task = get_task(task_id, viewer=acting_user)
    if task.punch_status == "punch-in":
        raise TaskError("Already punched in for this task")

    now = utcnow()
    task.punches.append(TaskPunch(punch_in_time=now, location=location if isinstance(location, dict) else None))
    task.punch_status = "punch-in"
    task.last_punch_time = now

    audit_service.record_activity(
        staff_id=acting_user.id,
        activity_type="Task",
        action="Punch In",
        details=f"Punched in for task: {task.title}",
        related_id=task.id,
        on_model="Task",
        status="In Progress",
    )
    db.session.commit()
    return task


def punch_out(task_id: int, *, acting_user: User) -> Task:
    task = get_task(task_id, viewer=acting_user)
    if task.punch_status == "punch-out":
        raise TaskError("Already punched out from this task")
    last = task.punches[-1] if task.punches else None
    if last is None or last.punch_out_time is not None:
        raise TaskError("No active punch-in found")

    now = utcnow()
    last.punch_out_time = now
    task.punch_status = "punch-out"
    task.last_punch_time = now

    audit_service.record_activity(
        staff_id=acting_user.id,
        activity_type="Task",
        action="Punch Out",
        details=f"Punched out from task: {task.title}",
        related_id=task.id,
        on_model="Task",
    )
    db.session.commit()
    return task


def delete_task(task_id: int, *, acting_user: User) -> None:
    task = _get(task_id)
    if task.created_by_id != acting_user.id and not permission_service.has_capability(acting_user, "DELETE_ANY_TASK"):
        raise AccessDeniedError("Not authorized to delete this task")
    audit_service.record_activity(
        staff_id=acting_user.id,
        activity_type="Task",
        details=f"Deleted task: {task.title}",
        related_id=task.id,
        on_model="Task",
    )
    db.session.delete(task)
    db.session.commit()
