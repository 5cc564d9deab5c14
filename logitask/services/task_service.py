"""
Task & requirement administration.

Admins create delivery tasks and hang requirements (TaskAttachment) on
them; everyone else reads. Drivers only see tasks assigned to them.

Task status is not set here: ``new`` on create, then the lifecycle engine
owns the transitions. The only manual transition is cancelling.
Adding, editing or removing a requirement changes the required-coverage
set, so those operations re-run the lifecycle reconciliation.
"""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError

from logitask.core.exceptions import (
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from logitask.models import db
from logitask.models.auth import DEPARTMENT_SUBMITTER_ROLE, Profile
from logitask.models.checklist import ChecklistTemplate
from logitask.models.task import (
    ATTACHMENT_TYPES,
    DEPARTMENTS,
    RESUBMITTABLE_STATUSES,
    TASK_STATUSES,
    VEHICLE_TYPES,
    Supplier,
    Task,
    TaskAttachment,
)
from logitask.services import task_lifecycle
from logitask.services.review_workflow import latest_submission
from logitask.services.storage import get_object_store
from logitask.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

_REQUIRED_TASK_FIELDS = ("customer_name", "delivery_address", "product_name")
_TEXT_FIELDS = ("customer_name", "delivery_address", "product_name", "supplier",
                "docket_number", "haulier_tanker")
_DATE_FIELDS = ("planned_decant_date", "planned_delivery_date")


def _require_admin(user, action: str) -> None:
    if user.role != "admin":
        raise PermissionDenied(user.id, action, "only admins manage tasks")


def _get_task(task_id: int) -> Task:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task", task_id)
    return task


def _get_attachment(attachment_id: int) -> TaskAttachment:
    attachment = db.session.get(TaskAttachment, attachment_id)
    if attachment is None:
        raise NotFoundError("TaskAttachment", attachment_id)
    return attachment


def _check_can_view(task: Task, user) -> None:
    if user.role == "driver" and task.assigned_driver_id != user.id:
        raise PermissionDenied(user.id, "view_task", "task is assigned to another driver")


# ── Payload parsing ────────────────────────────────────────────────────────────


def _apply_task_fields(task: Task, data: dict, *, creating: bool) -> None:
    errors: dict[str, str] = {}

    for key in _TEXT_FIELDS:
        if key in data:
            value = data.get(key)
            setattr(task, key, value.strip() if isinstance(value, str) else value)
    if creating or any(k in data for k in _REQUIRED_TASK_FIELDS):
        for key in _REQUIRED_TASK_FIELDS:
            if not (getattr(task, key) or "").strip():
                errors[key] = f"{key.replace('_', ' ').capitalize()} is required"

    if "vehicle_type" in data:
        vehicle = data.get("vehicle_type") or "truck"
        if vehicle not in VEHICLE_TYPES:
            errors["vehicle_type"] = f"must be one of: {', '.join(VEHICLE_TYPES)}"
        else:
            task.vehicle_type = vehicle

    if "number_of_bags" in data:
        raw = data.get("number_of_bags")
        try:
            bags = None if raw in (None, "") else int(raw)
            if bags is not None and bags < 0:
                raise ValueError
            task.number_of_bags = bags
        except (TypeError, ValueError):
            errors["number_of_bags"] = "must be a whole number of zero or more"

    if "bag_weight" in data:
        raw = data.get("bag_weight")
        try:
            weight = None if raw in (None, "") else float(raw)
            if weight is not None and weight < 0:
                raise ValueError
            task.bag_weight = weight
        except (TypeError, ValueError):
            errors["bag_weight"] = "must be a number of zero or more"

    for key in _DATE_FIELDS:
        if key in data:
            try:
                setattr(task, key, parse_date_input(data.get(key)))
            except ValueError as exc:
                errors[key] = str(exc)

    if "assigned_driver_id" in data:
        driver_id = data.get("assigned_driver_id")
        if driver_id in (None, ""):
            task.assigned_driver_id = None
            task.assigned_driver_name = None
        else:
            driver = db.session.get(Profile, driver_id)
            if driver is None or driver.role != "driver":
                errors["assigned_driver_id"] = "must reference a driver"
            else:
                task.assigned_driver_id = driver.id
                task.assigned_driver_name = driver.full_name or driver.email

    if errors:
        raise ValidationError("Task details are invalid", details=errors)


def _validate_attachment_payload(data: dict, attachment: TaskAttachment | None = None) -> dict:
    """Merge ``data`` over an existing attachment (or defaults) and validate."""
    merged = {
        "attachment_type": attachment.attachment_type if attachment else data.get("attachment_type"),
        "title": attachment.title if attachment else None,
        "checklist_template_id": attachment.checklist_template_id if attachment else None,
        "is_required": attachment.is_required if attachment else True,
        "assigned_to": attachment.assigned_to if attachment else "transport",
    }
    for key in ("title", "checklist_template_id", "is_required", "assigned_to"):
        if key in data:
            merged[key] = data[key]
    merged["title"] = (merged["title"] or "").strip()
    merged["is_required"] = bool(merged["is_required"])

    errors: dict[str, str] = {}
    if merged["attachment_type"] not in ATTACHMENT_TYPES:
        errors["attachment_type"] = f"must be one of: {', '.join(ATTACHMENT_TYPES)}"
    if not merged["title"]:
        errors["title"] = "Title is required"
    if merged["assigned_to"] not in DEPARTMENTS:
        errors["assigned_to"] = f"must be one of: {', '.join(DEPARTMENTS)}"

    if merged["attachment_type"] == "checklist":
        template_id = merged["checklist_template_id"]
        if template_id in (None, ""):
            errors["checklist_template_id"] = "A checklist requirement needs a template"
        elif not str(template_id).isdigit() or db.session.get(ChecklistTemplate, int(template_id)) is None:
            errors["checklist_template_id"] = "Checklist template not found"
        else:
            merged["checklist_template_id"] = int(template_id)
    elif merged["attachment_type"] == "document":
        if merged["checklist_template_id"] not in (None, ""):
            errors["checklist_template_id"] = "A document requirement cannot have a template"
        merged["checklist_template_id"] = None

    if errors:
        raise ValidationError("Requirement details are invalid", details=errors)
    return merged


def _reconcile(task_id: int) -> None:
    task_lifecycle.run_reconciliation(
        "reconcile_after_regression", task_lifecycle.reconcile_after_regression, task_id,
    )
    task = db.session.get(Task, task_id)
    if task is not None and task.status in ("new", "in_progress"):
        task_lifecycle.run_reconciliation(
            "reevaluate_completion", task_lifecycle.reevaluate_completion, task_id,
        )


# ── Serialisation ──────────────────────────────────────────────────────────────


def serialize_attachment(attachment: TaskAttachment, user=None) -> dict:
    """Requirement with its submission history and current status."""
    latest = latest_submission(attachment.id)
    status = latest.status if latest else "pending"
    d = attachment.to_dict()
    d["template_title"] = attachment.template.title if attachment.template else None
    d["status"] = status
    d["latest_submission"] = latest.to_dict() if latest else None
    d["submissions"] = [s.to_dict() for s in attachment.submissions]
    if user is not None:
        may_submit = user.role == "admin" or DEPARTMENT_SUBMITTER_ROLE.get(attachment.assigned_to) == user.role
        d["can_submit"] = may_submit and status in RESUBMITTABLE_STATUSES
    return d


def task_detail(task_id: int, user) -> dict:
    task = _get_task(task_id)
    _check_can_view(task, user)
    d = task.to_dict()
    d["attachments"] = [serialize_attachment(a, user) for a in task.attachments]
    d["progress"] = task_lifecycle.progress(task.id)
    return d


# ── Tasks ──────────────────────────────────────────────────────────────────────


def list_tasks(user, *, status: str | None = None, search: str | None = None,
               driver_id: int | None = None) -> list[Task]:
    """Tasks newest first; drivers only get the tasks assigned to them."""
    if status is not None and status not in TASK_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(TASK_STATUSES)}")

    stmt = select(Task).order_by(Task.created_at.desc(), Task.id.desc())
    if user.role == "driver":
        stmt = stmt.where(Task.assigned_driver_id == user.id)
    elif driver_id is not None:
        stmt = stmt.where(Task.assigned_driver_id == driver_id)
    if status:
        stmt = stmt.where(Task.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            Task.customer_name.ilike(pattern),
            Task.docket_number.ilike(pattern),
            Task.product_name.ilike(pattern),
            Task.delivery_address.ilike(pattern),
        ))
    return list(db.session.execute(stmt).scalars())


def get_task(task_id: int, user) -> Task:
    task = _get_task(task_id)
    _check_can_view(task, user)
    return task


def create_task(data: dict, user) -> Task:
    """
    Create a task in status ``new``, optionally with its requirements.

    Args:
        data: task columns plus an optional ``attachments`` list of
              requirement payloads.
    """
    _require_admin(user, "create_task")
    task = Task(status="new", vehicle_type="truck", created_by=user.id)
    _apply_task_fields(task, data, creating=True)

    requirements = data.get("attachments") or []
    if not isinstance(requirements, list):
        raise ValidationError("attachments must be a list")
    validated = [_validate_attachment_payload(r) for r in requirements]

    db.session.add(task)
    for values in validated:
        task.attachments.append(TaskAttachment(created_by=user.id, **values))
    db.session.commit()
    logger.info("Task %s created with %d requirement(s)", task.id, len(validated),
                extra={"task_id": task.id})
    return task


def update_task(task_id: int, data: dict, user) -> Task:
    """Edit task details. ``status`` only accepts the manual ``cancelled``."""
    _require_admin(user, "update_task")
    task = _get_task(task_id)
    _apply_task_fields(task, data, creating=False)

    if "status" in data and data["status"] != task.status:
        if data["status"] != "cancelled":
            raise ValidationError(
                "Task status follows its requirements; it can only be set to cancelled manually",
                details={"status": data["status"]},
            )
        task.status = "cancelled"
        logger.info("Task %s cancelled by user %s", task.id, user.id, extra={"task_id": task.id})

    db.session.commit()
    return task


def cancel_task(task_id: int, user) -> Task:
    return update_task(task_id, {"status": "cancelled"}, user)


def delete_task(task_id: int, user) -> None:
    """Delete a task with its requirements and submissions, then their stored files."""
    _require_admin(user, "delete_task")
    task = _get_task(task_id)
    paths = [s.file_path for a in task.attachments for s in a.submissions if s.file_path]
    db.session.delete(task)
    db.session.commit()

    store = get_object_store()
    for path in paths:
        try:
            store.delete(path)
        except (InfrastructureError, ValidationError):
            logger.warning("Could not remove stored file %s of deleted task %s", path, task_id,
                           exc_info=True)
    logger.info("Task %s deleted", task_id, extra={"task_id": task_id})


# ── Requirements ───────────────────────────────────────────────────────────────


def add_attachment(task_id: int, data: dict, user) -> TaskAttachment:
    _require_admin(user, "add_attachment")
    task = _get_task(task_id)
    values = _validate_attachment_payload(data)
    attachment = TaskAttachment(task_id=task.id, created_by=user.id, **values)
    db.session.add(attachment)
    db.session.commit()
    logger.info("Requirement %s added to task %s", attachment.id, task.id, extra={"task_id": task.id})

    if attachment.is_required:
        _reconcile(task.id)
    return attachment


def update_attachment(attachment_id: int, data: dict, user) -> TaskAttachment:
    _require_admin(user, "update_attachment")
    attachment = _get_attachment(attachment_id)
    if "attachment_type" in data and data["attachment_type"] != attachment.attachment_type:
        raise ValidationError(
            "The type of a requirement cannot change; remove it and add a new one",
            details={"attachment_type": data["attachment_type"]},
        )
    values = _validate_attachment_payload(data, attachment)
    for key, value in values.items():
        setattr(attachment, key, value)
    db.session.commit()

    _reconcile(attachment.task_id)
    return attachment


def delete_attachment(attachment_id: int, user) -> None:
    _require_admin(user, "delete_attachment")
    attachment = _get_attachment(attachment_id)
    task_id = attachment.task_id
    paths = [s.file_path for s in attachment.submissions if s.file_path]
    db.session.delete(attachment)
    db.session.commit()

    store = get_object_store()
    for path in paths:
        try:
            store.delete(path)
        except (InfrastructureError, ValidationError):
            logger.warning("Could not remove stored file %s", path, exc_info=True)
    _reconcile(task_id)


# ── Suppliers ──────────────────────────────────────────────────────────────────


def list_suppliers() -> list[Supplier]:
    return list(db.session.execute(select(Supplier).order_by(Supplier.name)).scalars())


def create_supplier(name: str, user) -> Supplier:
    _require_admin(user, "create_supplier")
    name = (name or "").strip()
    if not name:
        raise ValidationError("Supplier name is required", details={"name": "Supplier name is required"})
    supplier = Supplier(name=name)
    db.session.add(supplier)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Supplier", f"Supplier '{name}' already exists") from exc
    return supplier
