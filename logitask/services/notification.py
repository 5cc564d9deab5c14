"""
Logistics Task Management
Review notification dispatcher.

``dispatch_review_notification`` is fire-and-forget: the review workflow
calls it after its write has been committed and never waits for or sees
the outcome. Delivery runs on a daemon thread with its own app context and
session; with ``NOTIFICATIONS_INLINE`` (tests) it runs on the caller's
thread instead. Either way every failure is logged and swallowed.
"""

from __future__ import annotations

import html
import logging
import threading

from flask import current_app

from logitask.models import db
from logitask.models.auth import Profile
from logitask.models.task import TaskSubmission
from logitask.services.email_service import EmailService

logger = logging.getLogger(__name__)

_TEMPLATE_BY_STATUS = {
    "approved": "submission_approved",
    "rejected": "submission_rejected",
    "flagged": "submission_flagged",
}


def _deliver(
    submission_id: int,
    status: str,
    reviewer_comments: str | None,
    task_title: str | None,
    attachment_title: str | None,
) -> None:
    template_name = _TEMPLATE_BY_STATUS.get(status)
    if template_name is None:
        logger.warning("No notification template for status %s", status)
        return

    submission = db.session.get(TaskSubmission, submission_id)
    if submission is None or submission.submitted_by is None:
        logger.info("Submission %s has no submitter to notify", submission_id,
                    extra={"submission_id": submission_id})
        return

    submitter = db.session.get(Profile, submission.submitted_by)
    if submitter is None or not submitter.email:
        logger.info("Submitter of submission %s has no e-mail address", submission_id,
                    extra={"submission_id": submission_id})
        return

    attachment = submission.attachment
    comments_block = ""
    if reviewer_comments:
        comments_block = (
            '<p style="color: #334155;"><strong>Reviewer comments:</strong><br>'
            f"{html.escape(reviewer_comments)}</p>"
        )
    base_url = current_app.config.get("APP_BASE_URL", "").rstrip("/")

    EmailService.send_from_template(
        to_email=submitter.email,
        to_name=submitter.full_name or submitter.email,
        template_name=template_name,
        context={
            "recipient_name": html.escape(submitter.first_name or submitter.email),
            "task_title": html.escape(task_title or attachment.task.title),
            "attachment_title": html.escape(attachment_title or attachment.title),
            "comments_block": comments_block,
            "task_url": f"{base_url}/tasks/{attachment.task_id}",
        },
        submission_id=submission_id,
    )
    db.session.commit()


def _deliver_safely(*args) -> None:
    try:
        _deliver(*args)
    except Exception:
        db.session.rollback()
        logger.error("Review notification failed for submission %s", args[0],
                     exc_info=True, extra={"submission_id": args[0]})


def _deliver_in_context(app, *args) -> None:
    with app.app_context():
        try:
            _deliver_safely(*args)
        finally:
            db.session.remove()


def dispatch_review_notification(
    submission_id: int,
    status: str,
    reviewer_comments: str | None = None,
    task_title: str | None = None,
    attachment_title: str | None = None,
) -> None:
    """Notify the submitter of a review decision without blocking the caller."""
    args = (submission_id, status, reviewer_comments, task_title, attachment_title)
    app = current_app._get_current_object()
    if app.config.get("NOTIFICATIONS_INLINE"):
        _deliver_safely(*args)
        return

    try:
        thread = threading.Thread(
            target=_deliver_in_context, args=(app, *args),
            name=f"notify-submission-{submission_id}", daemon=True,
        )
        thread.start()
    except RuntimeError:
        logger.error("Could not start notification thread for submission %s",
                     submission_id, exc_info=True, extra={"submission_id": submission_id})
