"""
Task Lifecycle Engine — derives Task.status from requirement state.

Transitions driven here:
    new          -> in_progress   first submission against any requirement
    in_progress  -> completed     every required requirement has an approved submission
    completed    -> in_progress   coverage lost (approved item re-reviewed, new required item)

Cancelled tasks are never touched. A task with no required requirements
never auto-completes.

Status updates are reconciliation steps that run after the primary write
(submission insert, review decision) has been committed. ``run_reconciliation``
gives each step its own error boundary: a failure is logged and rolled back
on its own, the primary write stays, and the task status lags until the next
trigger.

Usage:
    from logitask.services.task_lifecycle import run_reconciliation, reevaluate_completion

    run_reconciliation("reevaluate_completion", reevaluate_completion, task_id)
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from logitask.models import db
from logitask.models.task import Task, TaskAttachment, TaskSubmission

logger = logging.getLogger(__name__)


def required_coverage(task_id: int) -> tuple[set[int], set[int]]:
    """
    Required-requirement coverage for a task.

    Returns:
        (required attachment ids, required attachment ids with an approved submission)
    """
    required = set(
        db.session.execute(
            select(TaskAttachment.id).where(
                TaskAttachment.task_id == task_id,
                TaskAttachment.is_required.is_(True),
            )
        ).scalars()
    )
    if not required:
        return set(), set()

    approved = set(
        db.session.execute(
            select(TaskSubmission.task_attachment_id)
            .where(
                TaskSubmission.task_attachment_id.in_(required),
                TaskSubmission.status == "approved",
            )
            .distinct()
        ).scalars()
    )
    return required, approved


def _set_status(task_id: int, from_status: str, to_status: str) -> bool:
    """Conditional status update; True when a row changed."""
    result = db.session.execute(
        update(Task)
        .where(Task.id == task_id, Task.status == from_status)
        .values(status=to_status)
        .execution_options(synchronize_session="fetch")
    )
    db.session.commit()
    changed = result.rowcount == 1
    if changed:
        logger.info(
            "Task %s status %s -> %s", task_id, from_status, to_status,
            extra={"task_id": task_id},
        )
    return changed


def on_first_submission(task_id: int) -> bool:
    """Move a ``new`` task to ``in_progress``. Re-applying is a no-op."""
    return _set_status(task_id, "new", "in_progress")


def reevaluate_completion(task_id: int) -> bool:
    """
    Complete the task once every required requirement is approved.

    Pure set equality: partial coverage leaves the status unchanged and a
    task with no required requirements is left alone.
    """
    required, approved = required_coverage(task_id)
    if not required or approved != required:
        return False
    # A first submission might still be racing; accept either open state
    return _set_status(task_id, "in_progress", "completed") or _set_status(task_id, "new", "completed")


def reconcile_after_regression(task_id: int) -> bool:
    """Reopen a completed task whose required coverage no longer holds."""
    task = db.session.get(Task, task_id)
    if task is None or task.status != "completed":
        return False
    required, approved = required_coverage(task_id)
    if required and approved == required:
        return False
    return _set_status(task_id, "completed", "in_progress")


def run_reconciliation(step: str, func, task_id: int) -> bool:
    """
    Run one best-effort reconciliation step in its own error boundary.

    Returns:
        The step's result, or False when it failed. Never raises on
        storage errors.
    """
    try:
        return func(task_id)
    except SQLAlchemyError:
        db.session.rollback()
        logger.error(
            "Task status reconciliation '%s' failed for task %s; status left stale",
            step, task_id,
            exc_info=True,
            extra={"task_id": task_id},
        )
        return False


def progress(task_id: int) -> dict:
    """Required-coverage summary for task detail views."""
    required, approved = required_coverage(task_id)
    total = len(required)
    done = len(approved)
    return {
        "required": total,
        "approved": done,
        "percent": round(done / total * 100) if total else 0,
        "outstanding_attachment_ids": sorted(required - approved),
    }
