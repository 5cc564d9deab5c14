"""
Dashboard Metrics Service — per-role counters.

    admin / executive / operational_lead   whole-fleet task and review counters
    driver                                 tasks assigned to me, my submissions
    warehouse                              warehouse requirements, review queue
"""

import logging

from sqlalchemy import func

from logitask.models import db
from logitask.models.auth import REVIEWER_ROLES
from logitask.models.task import TASK_STATUSES, Task, TaskAttachment, TaskSubmission

logger = logging.getLogger(__name__)


def task_status_counts(driver_id=None):
    """Task count per status, zero-filled."""
    query = db.session.query(Task.status, func.count(Task.id))
    if driver_id is not None:
        query = query.filter(Task.assigned_driver_id == driver_id)
    counts = dict(query.group_by(Task.status).all())
    return {status: counts.get(status, 0) for status in TASK_STATUSES}


def submission_status_counts(submitted_by=None, department=None):
    query = (
        db.session.query(TaskSubmission.status, func.count(TaskSubmission.id))
        .join(TaskAttachment, TaskSubmission.task_attachment_id == TaskAttachment.id)
    )
    if submitted_by is not None:
        query = query.filter(TaskSubmission.submitted_by == submitted_by)
    if department is not None:
        query = query.filter(TaskAttachment.assigned_to == department)
    return dict(query.group_by(TaskSubmission.status).all())


def pending_review_count(department=None):
    """Latest submissions still waiting for a decision."""
    latest = (
        db.session.query(
            TaskSubmission.task_attachment_id,
            func.max(TaskSubmission.id).label("max_id"),
        )
        .group_by(TaskSubmission.task_attachment_id)
        .subquery()
    )
    query = (
        db.session.query(func.count(TaskSubmission.id))
        .join(latest, TaskSubmission.id == latest.c.max_id)
        .join(TaskAttachment, TaskSubmission.task_attachment_id == TaskAttachment.id)
        .filter(TaskSubmission.status == "submitted")
    )
    if department is not None:
        query = query.filter(TaskAttachment.assigned_to == department)
    return query.scalar() or 0


def recent_submissions(limit=5, submitted_by=None):
    query = TaskSubmission.query.order_by(TaskSubmission.created_at.desc(), TaskSubmission.id.desc())
    if submitted_by is not None:
        query = query.filter(TaskSubmission.submitted_by == submitted_by)
    return [s.to_dict() for s in query.limit(limit).all()]


def dashboard_for(user):
    """Counters for the caller's role dashboard."""
    if user.role == "driver":
        tasks = task_status_counts(driver_id=user.id)
        return {
            "role": user.role,
            "tasks": tasks,
            "active_tasks": tasks["new"] + tasks["in_progress"],
            "my_submissions": submission_status_counts(submitted_by=user.id),
            "recent_submissions": recent_submissions(submitted_by=user.id),
        }
    if user.role == "warehouse":
        return {
            "role": user.role,
            "tasks": task_status_counts(),
            "my_submissions": submission_status_counts(submitted_by=user.id),
            "warehouse_submissions": submission_status_counts(department="warehouse"),
            "pending_reviews": pending_review_count(),
            "recent_submissions": recent_submissions(),
        }
    if user.role in REVIEWER_ROLES:
        return {
            "role": user.role,
            "tasks": task_status_counts(),
            "submissions": submission_status_counts(),
            "pending_reviews": pending_review_count(),
            "recent_submissions": recent_submissions(),
        }
    return {"role": user.role, "tasks": {}, "recent_submissions": []}
