"""
Submission Blueprint — fulfilling and reviewing task requirements.

Endpoints:
    GET  /api/v1/attachments/<id>/checklist-form        — render payload (pre-filled after reject/flag)
    POST /api/v1/attachments/<id>/submissions/checklist — submit checklist values (JSON)
    POST /api/v1/attachments/<id>/submissions/document  — upload document (multipart ``file``)
    GET  /api/v1/submissions                            — review queue / own submissions
    GET  /api/v1/submissions/<id>                       — one submission
    GET  /api/v1/submissions/<id>/file-url              — signed read URL for the upload
    POST /api/v1/submissions/<id>/review                — approve | reject | flag
"""

import logging

from flask import Blueprint, jsonify, request

from logitask.auth import current_user, login_required, require_roles
from logitask.blueprints import paginate
from logitask.models.auth import REVIEWER_ROLES
from logitask.services import review_workflow
from logitask.utils.errors import E, api_error
from logitask.utils.helpers import parse_bool, parse_int_arg

logger = logging.getLogger(__name__)

submission_bp = Blueprint("submissions", __name__, url_prefix="/api/v1")


@submission_bp.route("/attachments/<int:attachment_id>/checklist-form", methods=["GET"])
@login_required
def checklist_form(attachment_id):
    return jsonify(review_workflow.checklist_form(attachment_id, current_user())), 200


@submission_bp.route("/attachments/<int:attachment_id>/submissions/checklist", methods=["POST"])
@require_roles("admin", "driver", "warehouse")
def submit_checklist(attachment_id):
    """Body: {"form_data": {field_name: value, ...}}"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error(E.BAD_REQUEST, "Request body must be a JSON object")
    values = data.get("form_data", data)
    if not isinstance(values, dict):
        return api_error(E.BAD_REQUEST, "form_data must be an object")
    submission = review_workflow.submit_checklist(attachment_id, values, current_user())
    return jsonify(submission.to_dict()), 201


@submission_bp.route("/attachments/<int:attachment_id>/submissions/document", methods=["POST"])
@require_roles("admin", "driver", "warehouse")
def submit_document(attachment_id):
    """Multipart form with a single ``file`` part."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return api_error(E.VALIDATION_REQUIRED, "Please select a file to upload",
                         details={"file": "File is required"})
    submission = review_workflow.submit_document(
        attachment_id,
        file_name=upload.filename,
        data=upload.read(),
        mime_type=upload.mimetype,
        user=current_user(),
    )
    return jsonify(submission.to_dict()), 201


@submission_bp.route("/submissions", methods=["GET"])
@login_required
def list_submissions():
    """Query params: status, task_id, department, latest_only, limit, offset"""
    submissions = review_workflow.list_submissions(
        current_user(),
        status=request.args.get("status") or None,
        task_id=parse_int_arg(request.args.get("task_id")),
        department=request.args.get("department") or None,
        latest_only=parse_bool(request.args.get("latest_only")),
    )
    page, total = paginate(submissions)
    return jsonify({"items": [s.to_dict() for s in page], "total": total}), 200


@submission_bp.route("/submissions/<int:submission_id>", methods=["GET"])
@login_required
def get_submission(submission_id):
    submission = review_workflow.get_submission(submission_id, current_user())
    return jsonify(submission.to_dict()), 200


@submission_bp.route("/submissions/<int:submission_id>/file-url", methods=["GET"])
@login_required
def submission_file_url(submission_id):
    url = review_workflow.get_submission_file_url(submission_id, current_user())
    return jsonify({"url": url}), 200


@submission_bp.route("/submissions/<int:submission_id>/review", methods=["POST"])
@require_roles(*sorted(REVIEWER_ROLES))
def review_submission(submission_id):
    """Body: {"decision": "approve|reject|flag", "comments"?: str, "expected_version"?: int}"""
    data = request.get_json(silent=True) or {}
    expected_version = data.get("expected_version")
    if expected_version is not None and (
        isinstance(expected_version, bool) or not isinstance(expected_version, int)
    ):
        return api_error(E.VALIDATION_INVALID, "expected_version must be an integer",
                         details={"expected_version": expected_version})
    submission = review_workflow.review_submission(
        submission_id,
        data.get("decision"),
        data.get("comments") or data.get("reviewer_comments"),
        current_user(),
        expected_version=expected_version,
    )
    return jsonify(submission.to_dict()), 200
