"""
Tests — Task Lifecycle Engine.

Covers:
    - new -> in_progress on first submission
    - in_progress -> completed once every required requirement is approved
    - completed -> in_progress when coverage is lost
    - Optional requirements; cancelled tasks keep their status and refuse submissions
    - Reconciliation failures never undo the primary write
"""

import pytest
from sqlalchemy.exc import OperationalError

from logitask.models import db
from logitask.models.task import Task, TaskSubmission
from logitask.services import review_workflow, task_lifecycle, task_service


def _status(task_id):
    db.session.expire_all()
    return db.session.get(Task, task_id).status


def _approve(submission, reviewer):
    return review_workflow.review_submission(submission.id, "approve", None, reviewer)


def _complete(task, checklist_req, document_req, driver, reviewer, valid_checklist, pdf_bytes):
    checklist = review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)
    document = review_workflow.submit_document(
        document_req.id, file_name="pod.pdf", data=pdf_bytes, mime_type="application/pdf", user=driver,
    )
    _approve(checklist, reviewer)
    _approve(document, reviewer)
    assert _status(task.id) == "completed"
    return checklist, document


class TestForwardTransitions:
    def test_new_task_starts_new(self, task):
        assert task.status == "new"
        assert task_lifecycle.progress(task.id) == {
            "required": 2,
            "approved": 0,
            "percent": 0,
            "outstanding_attachment_ids": sorted(
                a.id for a in task.attachments if a.is_required
            ),
        }

    def test_first_submission_moves_to_in_progress(self, task, checklist_req, driver, valid_checklist):
        review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)
        assert _status(task.id) == "in_progress"

    def test_on_first_submission_is_idempotent(self, task):
        assert task_lifecycle.on_first_submission(task.id) is True
        assert task_lifecycle.on_first_submission(task.id) is False
        assert _status(task.id) == "in_progress"

    def test_partial_approval_keeps_in_progress(self, task, checklist_req, driver, admin, valid_checklist):
        submission = review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)
        _approve(submission, admin)
        assert _status(task.id) == "in_progress"
        assert task_lifecycle.progress(task.id)["percent"] == 50

    def test_all_required_approved_completes(self, task, checklist_req, document_req, driver,
                                             warehouse_user, valid_checklist, pdf_bytes):
        _complete(task, checklist_req, document_req, driver, warehouse_user, valid_checklist, pdf_bytes)
        assert task_lifecycle.progress(task.id)["outstanding_attachment_ids"] == []

    def test_optional_requirement_not_needed(self, task, checklist_req, document_req, optional_req,
                                             driver, admin, valid_checklist, pdf_bytes):
        _complete(task, checklist_req, document_req, driver, admin, valid_checklist, pdf_bytes)
        required, approved = task_lifecycle.required_coverage(task.id)
        assert optional_req.id not in required
        assert required == approved


class TestNoRequiredRequirements:
    def test_task_without_required_items_never_completes(self, admin, warehouse_user):
        task = task_service.create_task({
            "customer_name": "Acme", "delivery_address": "Dock 2", "product_name": "Barley",
            "attachments": [{"attachment_type": "document", "title": "Slip",
                             "assigned_to": "warehouse", "is_required": False}],
        }, admin)
        slip = task.attachments[0]
        submission = review_workflow.submit_document(
            slip.id, file_name="slip.png", data=b"\x89PNG", mime_type="image/png", user=warehouse_user,
        )
        _approve(submission, admin)
        assert _status(task.id) == "in_progress"
        assert task_lifecycle.reevaluate_completion(task.id) is False


class TestRegression:
    def test_rejecting_approved_item_reopens_task(self, task, checklist_req, document_req, driver,
                                                  admin, valid_checklist, pdf_bytes):
        checklist, _ = _complete(task, checklist_req, document_req, driver, admin,
                                 valid_checklist, pdf_bytes)
        review_workflow.review_submission(checklist.id, "reject", "Signature missing", admin)
        assert _status(task.id) == "in_progress"

    def test_new_required_requirement_reopens_task(self, task, checklist_req, document_req, driver,
                                                   admin, valid_checklist, pdf_bytes):
        _complete(task, checklist_req, document_req, driver, admin, valid_checklist, pdf_bytes)
        task_service.add_attachment(task.id, {
            "attachment_type": "document", "title": "Weighbridge ticket", "assigned_to": "transport",
        }, admin)
        assert _status(task.id) == "in_progress"

    def test_new_optional_requirement_keeps_completed(self, task, checklist_req, document_req, driver,
                                                      admin, valid_checklist, pdf_bytes):
        _complete(task, checklist_req, document_req, driver, admin, valid_checklist, pdf_bytes)
        task_service.add_attachment(task.id, {
            "attachment_type": "document", "title": "Photo", "assigned_to": "transport",
            "is_required": False,
        }, admin)
        assert _status(task.id) == "completed"

    def test_removing_last_outstanding_requirement_completes(self, task, checklist_req, document_req,
                                                             driver, admin, valid_checklist):
        submission = review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)
        _approve(submission, admin)
        task_service.delete_attachment(document_req.id, admin)
        assert _status(task.id) == "completed"


class TestCancelled:
    def test_cancelled_task_is_never_changed(self, task, checklist_req, document_req, driver, admin,
                                             valid_checklist, pdf_bytes):
        checklist = review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)
        document = review_workflow.submit_document(
            document_req.id, file_name="pod.pdf", data=pdf_bytes, mime_type="application/pdf", user=driver,
        )
        task_service.cancel_task(task.id, admin)
        _approve(checklist, admin)
        _approve(document, admin)
        assert _status(task.id) == "cancelled"

    def test_cancelled_task_refuses_submission(self, client, auth, task, checklist_req, driver, admin,
                                               valid_checklist):
        task_service.cancel_task(task.id, admin)
        res = client.post(f"/api/v1/attachments/{checklist_req.id}/submissions/checklist",
                          json={"form_data": valid_checklist}, headers=auth(driver))
        assert res.status_code == 409
        assert TaskSubmission.query.count() == 0
        assert _status(task.id) == "cancelled"


class TestReconciliationFailure:
    def test_failed_status_update_keeps_submission(self, task, checklist_req, driver, valid_checklist,
                                                   monkeypatch):
        def _boom(*args, **kwargs):
            raise OperationalError("UPDATE tasks", {}, Exception("database is locked"))

        monkeypatch.setattr(task_lifecycle, "_set_status", _boom)
        submission = review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)

        assert db.session.get(TaskSubmission, submission.id) is not None
        assert _status(task.id) == "new"

    def test_run_reconciliation_reports_failure(self, task, monkeypatch):
        def _boom(task_id):
            raise OperationalError("SELECT", {}, Exception("gone away"))

        assert task_lifecycle.run_reconciliation("reevaluate_completion", _boom, task.id) is False

    def test_run_reconciliation_propagates_programming_errors(self, task):
        def _bug(task_id):
            raise KeyError("oops")

        with pytest.raises(KeyError):
            task_lifecycle.run_reconciliation("reevaluate_completion", _bug, task.id)
