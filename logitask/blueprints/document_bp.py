"""
Document Library Blueprint.

Endpoints:
    GET    /api/v1/documents                   — list (search, department, status, policy_area, tag)
    POST   /api/v1/documents                   — upload (multipart ``file`` + metadata fields)
    GET    /api/v1/documents/<id>              — metadata
    PUT    /api/v1/documents/<id>              — update status / tags
    GET    /api/v1/documents/<id>/download     — signed read URL
    DELETE /api/v1/documents/<id>              — delete row and stored file
"""

from flask import Blueprint, jsonify, request

from logitask.auth import current_user, login_required, require_roles
from logitask.blueprints import paginate
from logitask.services import document_service
from logitask.services.document_service import DOCUMENT_MANAGER_ROLES
from logitask.utils.errors import E, api_error

document_bp = Blueprint("documents", __name__, url_prefix="/api/v1/documents")

_MANAGERS = sorted(DOCUMENT_MANAGER_ROLES)


@document_bp.route("", methods=["GET"])
@login_required
def list_documents():
    documents = document_service.list_documents(
        search=request.args.get("search") or None,
        department=request.args.get("department") or None,
        status=request.args.get("status") or None,
        policy_area=request.args.get("policy_area") or None,
        tag=request.args.get("tag") or None,
    )
    page, total = paginate(documents)
    return jsonify({"items": [d.to_dict() for d in page], "total": total}), 200


@document_bp.route("", methods=["POST"])
@require_roles(*_MANAGERS)
def upload_document():
    """Multipart: file, title, department, policy_area, responsible_role,
    document_date, version, status?, tags? (comma separated)."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return api_error(E.VALIDATION_REQUIRED, "Please select a file to upload",
                         details={"file": "File is required"})
    document = document_service.upload_document(
        request.form.to_dict(),
        file_name=upload.filename,
        data=upload.read(),
        mime_type=upload.mimetype,
        user=current_user(),
    )
    return jsonify(document.to_dict()), 201


@document_bp.route("/<int:document_id>", methods=["GET"])
@login_required
def get_document(document_id):
    return jsonify(document_service.get_document(document_id).to_dict()), 200


@document_bp.route("/<int:document_id>", methods=["PUT", "PATCH"])
@require_roles(*_MANAGERS)
def update_document(document_id):
    data = request.get_json(silent=True) or {}
    document = document_service.update_document(document_id, data, current_user())
    return jsonify(document.to_dict()), 200


@document_bp.route("/<int:document_id>/download", methods=["GET"])
@login_required
def download_document(document_id):
    return jsonify({"url": document_service.document_download_url(document_id)}), 200


@document_bp.route("/<int:document_id>", methods=["DELETE"])
@require_roles(*_MANAGERS)
def delete_document(document_id):
    document_service.delete_document(document_id, current_user())
    return jsonify({"message": "Document deleted"}), 200
