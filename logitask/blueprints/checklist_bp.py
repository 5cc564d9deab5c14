"""
Checklist Template Blueprint — the form builder's API.

Endpoints:
    GET    /api/v1/checklist-templates                 — list (search?)
    POST   /api/v1/checklist-templates                 — create (admin)
    GET    /api/v1/checklist-templates/<id>            — template with fields
    PUT    /api/v1/checklist-templates/<id>            — update (admin)
    DELETE /api/v1/checklist-templates/<id>            — delete if unused (admin)
    PUT    /api/v1/checklist-templates/<id>/reorder    — set field order (admin)
    POST   /api/v1/checklist-templates/<id>/clone      — copy as "<title> (Copy)" (admin)
    GET    /api/v1/checklist-templates/<id>/preview    — render payload, nothing stored
"""

from flask import Blueprint, jsonify, request

from logitask.auth import current_user, login_required, require_roles
from logitask.services import template_service
from logitask.utils.errors import E, api_error

checklist_bp = Blueprint("checklists", __name__, url_prefix="/api/v1/checklist-templates")


@checklist_bp.route("", methods=["GET"])
@login_required
def list_templates():
    templates = template_service.list_templates(request.args.get("search") or None)
    return jsonify([t.to_dict(include_fields=False) for t in templates]), 200


@checklist_bp.route("", methods=["POST"])
@require_roles("admin")
def create_template():
    data = request.get_json(silent=True) or {}
    template = template_service.create_template(data, current_user())
    return jsonify(template.to_dict()), 201


@checklist_bp.route("/<int:template_id>", methods=["GET"])
@login_required
def get_template(template_id):
    return jsonify(template_service.get_template(template_id).to_dict()), 200


@checklist_bp.route("/<int:template_id>", methods=["PUT", "PATCH"])
@require_roles("admin")
def update_template(template_id):
    data = request.get_json(silent=True) or {}
    template = template_service.update_template(template_id, data, current_user())
    return jsonify(template.to_dict()), 200


@checklist_bp.route("/<int:template_id>", methods=["DELETE"])
@require_roles("admin")
def delete_template(template_id):
    template_service.delete_template(template_id, current_user())
    return jsonify({"message": "Template deleted"}), 200


@checklist_bp.route("/<int:template_id>/reorder", methods=["PUT"])
@require_roles("admin")
def reorder_fields(template_id):
    """Body: {"field_ids": [id, ...]} in the new display order."""
    data = request.get_json(silent=True) or {}
    field_ids = data.get("field_ids")
    if not isinstance(field_ids, list):
        return api_error(E.VALIDATION_REQUIRED, "field_ids is required",
                         details={"field_ids": "A list of field ids is required"})
    template = template_service.reorder_fields(template_id, field_ids, current_user())
    return jsonify(template.to_dict()), 200


@checklist_bp.route("/<int:template_id>/clone", methods=["POST"])
@require_roles("admin")
def clone_template(template_id):
    clone = template_service.clone_template(template_id, current_user())
    return jsonify(clone.to_dict()), 201


@checklist_bp.route("/<int:template_id>/preview", methods=["GET"])
@login_required
def preview_template(template_id):
    return jsonify(template_service.preview_template(template_id)), 200
