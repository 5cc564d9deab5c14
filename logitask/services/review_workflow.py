"""
Submission Review Workflow — submit, review, resubmit.

State machine over a requirement (TaskAttachment) and its submissions:

    pending ──submit──▶ submitted ──review──▶ approved | rejected | flagged
                                                          │
                           ◀──── submit (new row) ────────┘

``pending`` is virtual: a requirement with no submission rows. A resubmission
never mutates the rejected/flagged row; it inserts a new one and that row
becomes the latest. Only the latest submission can be reviewed.

Each operation commits its primary write first, then runs task status
reconciliation (task_lifecycle) and the review notification as best-effort
follow-ups that cannot undo the primary write.

Role rules (repeated here so callers outside the HTTP layer obey them):
    submit  — role matching the requirement department
              (transport → driver, warehouse → warehouse); admin for either;
              drivers only on tasks assigned to them, never on cancelled tasks
    review  — admin, warehouse, executive, operational_lead

Usage:
    from logitask.services.review_workflow import submit_checklist, review_submission

    submission = submit_checklist(attachment_id, payload, user)
    review_submission(submission.id, "reject", "missing signature", reviewer)
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from logitask.core.exceptions import (
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from logitask.models import db
from logitask.models.auth import DEPARTMENT_SUBMITTER_ROLE, REVIEWER_ROLES
from logitask.models.checklist import ChecklistTemplate
from logitask.models.task import (
    RESUBMITTABLE_STATUSES,
    SUBMISSION_STATUSES,
    TaskAttachment,
    TaskSubmission,
)
from logitask.services import task_lifecycle
from logitask.services.form_engine import clean_form_data, render_form, validate_form
from logitask.services.notification import dispatch_review_notification
from logitask.services.storage import get_object_store

logger = logging.getLogger(__name__)

# decision -> stored submission status
DECISIONS = {
    "approve": "approved",
    "reject": "rejected",
    "flag": "flagged",
}

# Allowed document uploads: MIME type -> default extension
DOCUMENT_MIME_TYPES = {
    "application/pdf": "pdf",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
}


# ── Private helpers ────────────────────────────────────────────────────────────


def _get_attachment(attachment_id: int) -> TaskAttachment:
    attachment = db.session.get(TaskAttachment, attachment_id)
    if attachment is None:
        raise NotFoundError("TaskAttachment", attachment_id)
    return attachment


def _get_submission(submission_id: int) -> TaskSubmission:
    submission = db.session.get(TaskSubmission, submission_id)
    if submission is None:
        raise NotFoundError("TaskSubmission", submission_id)
    return submission


def _check_driver_assignment(user, attachment: TaskAttachment) -> None:
    if user.role == "driver" and attachment.task.assigned_driver_id != user.id:
        raise PermissionDenied(user.id, "submit", "task is assigned to another driver")


def _check_can_submit(user, attachment: TaskAttachment) -> None:
    if user.role == "admin":
        return
    _check_driver_assignment(user, attachment)
    expected = DEPARTMENT_SUBMITTER_ROLE.get(attachment.assigned_to)
    if user.role != expected:
        raise PermissionDenied(
            user.id, "submit",
            f"requirement is assigned to {attachment.assigned_to}; role {user.role} cannot submit it",
        )


def _check_can_review(user) -> None:
    if user.role not in REVIEWER_ROLES:
        raise PermissionDenied(user.id, "review", f"role {user.role} cannot review submissions")


def _check_accepts_submission(attachment: TaskAttachment) -> None:
    if attachment.task.status == "cancelled":
        raise ConflictError("Task", "Task is cancelled and no longer accepts submissions")
    status = attachment_status(attachment)
    if status not in RESUBMITTABLE_STATUSES:
        raise ConflictError(
            "TaskSubmission",
            f"Requirement already has a {status} submission; "
            "a new submission is accepted only when pending, rejected or flagged",
        )


def _commit(operation: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Database failure during %s", operation, exc_info=True)
        raise InfrastructureError(operation, exc) from exc


def _after_submit(submission: TaskSubmission, attachment: TaskAttachment) -> None:
    logger.info(
        "Submission %s created for attachment %s by user %s",
        submission.id, attachment.id, submission.submitted_by,
        extra={"task_id": attachment.task_id, "submission_id": submission.id},
    )
    task_lifecycle.run_reconciliation(
        "on_first_submission", task_lifecycle.on_first_submission, attachment.task_id,
    )


# ── Queries ────────────────────────────────────────────────────────────────────


def latest_submission(attachment_id: int) -> TaskSubmission | None:
    """Latest submission of a requirement: greatest created_at, then greatest id."""
    return db.session.execute(
        select(TaskSubmission)
        .where(TaskSubmission.task_attachment_id == attachment_id)
        .order_by(TaskSubmission.created_at.desc(), TaskSubmission.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def attachment_status(attachment: TaskAttachment) -> str:
    """Status of the latest submission, or ``pending`` when there is none."""
    latest = latest_submission(attachment.id)
    return latest.status if latest else "pending"


def get_submission(submission_id: int, user) -> TaskSubmission:
    """Submission visible to reviewers and to the profile that submitted it."""
    submission = _get_submission(submission_id)
    if user.role not in REVIEWER_ROLES and submission.submitted_by != user.id:
        raise PermissionDenied(user.id, "view_submission")
    return submission


def list_submissions(
    user,
    *,
    status: str | None = None,
    task_id: int | None = None,
    department: str | None = None,
    latest_only: bool = False,
) -> list[TaskSubmission]:
    """
    Submission queue, newest first.

    Reviewers see every submission; other roles see their own only.
    ``latest_only`` drops superseded rows (the review queue view).
    """
    if status is not None and status not in SUBMISSION_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(SUBMISSION_STATUSES)}",
            details={"status": status},
        )

    stmt = (
        select(TaskSubmission)
        .join(TaskAttachment, TaskSubmission.task_attachment_id == TaskAttachment.id)
        .order_by(TaskSubmission.created_at.desc(), TaskSubmission.id.desc())
    )
    if user.role not in REVIEWER_ROLES:
        stmt = stmt.where(TaskSubmission.submitted_by == user.id)
    if status:
        stmt = stmt.where(TaskSubmission.status == status)
    if task_id is not None:
        stmt = stmt.where(TaskAttachment.task_id == task_id)
    if department:
        stmt = stmt.where(TaskAttachment.assigned_to == department)

    rows = list(db.session.execute(stmt).scalars())
    if not latest_only:
        return rows

    # Rows are newest first, so the first row seen per attachment is its latest
    seen: set[int] = set()
    latest_rows = []
    for row in rows:
        if row.task_attachment_id in seen:
            continue
        seen.add(row.task_attachment_id)
        if latest_submission(row.task_attachment_id).id == row.id:
            latest_rows.append(row)
    return latest_rows


def checklist_form(attachment_id: int, user) -> dict:
    """Render payload for a checklist requirement, pre-filled after rejection or flag."""
    attachment = _get_attachment(attachment_id)
    _check_driver_assignment(user, attachment)
    if attachment.attachment_type != "checklist":
        raise ValidationError("Requirement is not a checklist")
    template = db.session.get(ChecklistTemplate, attachment.checklist_template_id)
    if template is None:
        raise NotFoundError("ChecklistTemplate", attachment.checklist_template_id)

    latest = latest_submission(attachment.id)
    payload = render_form(template, latest)
    payload["attachment_id"] = attachment.id
    payload["status"] = latest.status if latest else "pending"
    payload["can_submit"] = (
        payload["status"] in RESUBMITTABLE_STATUSES and attachment.task.status != "cancelled"
    )
    return payload


def get_submission_file_url(submission_id: int, user) -> str:
    """Time-bounded read URL for a document submission's file."""
    submission = get_submission(submission_id, user)
    if not submission.file_path:
        raise ValidationError("Submission has no uploaded file")
    return get_object_store().signed_url(submission.file_path)


# ── Submit ─────────────────────────────────────────────────────────────────────


def submit_checklist(attachment_id: int, values: dict | None, user) -> TaskSubmission:
    """
    Submit a filled-in checklist for a requirement.

    Raises:
        NotFoundError, PermissionDenied, ConflictError,
        ValidationError (details = {field_name: message}), InfrastructureError
    """
    attachment = _get_attachment(attachment_id)
    _check_can_submit(user, attachment)
    if attachment.attachment_type != "checklist":
        raise ValidationError("Requirement expects a document upload, not a checklist")
    _check_accepts_submission(attachment)

    template = db.session.get(ChecklistTemplate, attachment.checklist_template_id)
    if template is None:
        raise NotFoundError("ChecklistTemplate", attachment.checklist_template_id)

    errors = validate_form(template.fields, values)
    if errors:
        raise ValidationError("Please fill in all required fields", details=errors)

    submission = TaskSubmission(
        task_attachment_id=attachment.id,
        status="submitted",
        form_data=clean_form_data(template.fields, values),
        submitted_by=user.id,
        submitted_by_name=user.full_name or user.email,
    )
    db.session.add(submission)
    _commit("checklist submission")

    _after_submit(submission, attachment)
    return submission


def submit_document(
    attachment_id: int,
    *,
    file_name: str,
    data: bytes,
    mime_type: str,
    user,
) -> TaskSubmission:
    """
    Upload a document for a requirement.

    The file is written to ``{task_id}/{attachment_id}/{epoch_ms}.{ext}``
    before the row is inserted; when the insert fails the object is removed.
    """
    attachment = _get_attachment(attachment_id)
    _check_can_submit(user, attachment)
    if attachment.attachment_type != "document":
        raise ValidationError("Requirement expects a checklist, not a document upload")
    _check_accepts_submission(attachment)

    mime_type = (mime_type or "").split(";")[0].strip().lower()
    if mime_type not in DOCUMENT_MIME_TYPES:
        raise ValidationError(
            "File type not allowed. Upload a PDF, image or Word document.",
            details={"mime_type": mime_type},
        )
    if not data:
        raise ValidationError("Uploaded file is empty")
    max_bytes = current_app.config.get("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)
    if len(data) > max_bytes:
        raise ValidationError(
            f"File is too large. Maximum size is {max_bytes // (1024 * 1024)}MB",
            details={"file_size": len(data)},
        )

    ext = os.path.splitext(file_name or "")[1].lstrip(".").lower() or DOCUMENT_MIME_TYPES[mime_type]
    store = get_object_store()
    stamp = int(time.time() * 1000)
    path = f"{attachment.task_id}/{attachment.id}/{stamp}.{ext}"
    # Same-millisecond uploads take the next free stamp
    while store.exists(path):
        stamp += 1
        path = f"{attachment.task_id}/{attachment.id}/{stamp}.{ext}"

    stored_path = store.put(path, data)

    submission = TaskSubmission(
        task_attachment_id=attachment.id,
        status="submitted",
        file_path=stored_path,
        file_name=file_name or os.path.basename(stored_path),
        file_size=len(data),
        mime_type=mime_type,
        submitted_by=user.id,
        submitted_by_name=user.full_name or user.email,
    )
    db.session.add(submission)
    try:
        _commit("document submission")
    except InfrastructureError:
        store.delete(stored_path)
        raise

    _after_submit(submission, attachment)
    return submission


# ── Review ─────────────────────────────────────────────────────────────────────


def review_submission(
    submission_id: int,
    decision: str,
    comments: str | None,
    user,
    *,
    expected_version: int | None = None,
) -> TaskSubmission:
    """
    Record a reviewer decision on the latest submission of a requirement.

    The update is a compare-and-set on ``version``: when ``expected_version``
    is given it must match the stored row, otherwise the version read here
    is used. Either way a concurrent decision in between yields ConflictError.

    approve        → completion re-evaluated
    reject / flag  → a completed task is reopened when coverage is lost

    Raises:
        PermissionDenied, ValidationError, NotFoundError, ConflictError,
        InfrastructureError
    """
    _check_can_review(user)

    status = DECISIONS.get((decision or "").strip().lower())
    if status is None:
        raise ValidationError(
            "decision must be one of: approve, reject, flag",
            details={"decision": decision},
        )
    comments = (comments or "").strip()
    if status != "approved" and not comments:
        raise ValidationError(
            "A comment is required when rejecting or flagging a submission",
            details={"reviewer_comments": "Comment is required"},
        )

    submission = _get_submission(submission_id)
    latest = latest_submission(submission.task_attachment_id)
    if latest.id != submission.id:
        raise ConflictError(
            "TaskSubmission",
            "This submission has been superseded by a newer one and can no longer be reviewed",
        )

    version = submission.version if expected_version is None else expected_version
    try:
        result = db.session.execute(
            update(TaskSubmission)
            .where(TaskSubmission.id == submission.id, TaskSubmission.version == version)
            .values(
                status=status,
                reviewed_by=user.id,
                reviewed_at=datetime.now(timezone.utc),
                reviewer_comments=comments or None,
                version=TaskSubmission.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Database failure during submission review", exc_info=True)
        raise InfrastructureError("submission review", exc) from exc

    if result.rowcount != 1:
        db.session.rollback()
        raise ConflictError(
            "TaskSubmission",
            "Submission was changed by another reviewer; reload it and try again",
        )
    _commit("submission review")
    db.session.refresh(submission)

    attachment = submission.attachment
    task = attachment.task
    logger.info(
        "Submission %s %s by user %s", submission.id, status, user.id,
        extra={"task_id": task.id, "submission_id": submission.id},
    )

    if status == "approved":
        task_lifecycle.run_reconciliation(
            "reevaluate_completion", task_lifecycle.reevaluate_completion, task.id,
        )
    else:
        task_lifecycle.run_reconciliation(
            "reconcile_after_regression", task_lifecycle.reconcile_after_regression, task.id,
        )

    dispatch_review_notification(
        submission.id, status, comments or None, task.title, attachment.title,
    )
    return submission
