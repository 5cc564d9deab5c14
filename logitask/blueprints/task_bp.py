"""
Task Blueprint — delivery tasks, their requirements and suppliers.

Endpoints:
    GET    /api/v1/tasks                          — list (drivers: own tasks)
    POST   /api/v1/tasks                          — create (admin)
    GET    /api/v1/tasks/<id>                     — detail with requirements + progress
    PUT    /api/v1/tasks/<id>                     — edit / cancel (admin)
    POST   /api/v1/tasks/<id>/cancel              — cancel (admin)
    DELETE /api/v1/tasks/<id>                     — delete (admin)
    GET    /api/v1/tasks/<id>/progress            — required vs approved coverage
    POST   /api/v1/tasks/<id>/attachments         — add requirement (admin)
    PUT    /api/v1/attachments/<id>               — edit requirement (admin)
    DELETE /api/v1/attachments/<id>               — remove requirement (admin)
    GET    /api/v1/drivers                        — active drivers for assignment
    GET    /api/v1/suppliers                      — supplier list
    POST   /api/v1/suppliers                      — add supplier (admin)
"""

import logging

from flask import Blueprint, jsonify, request

from logitask.auth import current_user, login_required, require_roles
from logitask.blueprints import paginate
from logitask.services import task_lifecycle, task_service
from logitask.services.user_service import list_profiles
from logitask.utils.helpers import parse_int_arg

logger = logging.getLogger(__name__)

task_bp = Blueprint("tasks", __name__, url_prefix="/api/v1")


# ═════════════════════════════════════════════════════════════════════════════
# Tasks
# ═════════════════════════════════════════════════════════════════════════════


@task_bp.route("/tasks", methods=["GET"])
@login_required
def list_tasks():
    """List tasks, newest first.

    Query params: status, search, driver_id, limit, offset
    """
    tasks = task_service.list_tasks(
        current_user(),
        status=request.args.get("status") or None,
        search=request.args.get("search") or None,
        driver_id=parse_int_arg(request.args.get("driver_id")),
    )
    page, total = paginate(tasks)
    return jsonify({"items": [t.to_dict() for t in page], "total": total}), 200


@task_bp.route("/tasks", methods=["POST"])
@require_roles("admin")
def create_task():
    """Create a task, optionally with an ``attachments`` list of requirements."""
    data = request.get_json(silent=True) or {}
    user = current_user()
    task = task_service.create_task(data, user)
    return jsonify(task_service.task_detail(task.id, user)), 201


@task_bp.route("/tasks/<int:task_id>", methods=["GET"])
@login_required
def get_task(task_id):
    return jsonify(task_service.task_detail(task_id, current_user())), 200


@task_bp.route("/tasks/<int:task_id>", methods=["PUT", "PATCH"])
@require_roles("admin")
def update_task(task_id):
    data = request.get_json(silent=True) or {}
    task = task_service.update_task(task_id, data, current_user())
    return jsonify(task.to_dict()), 200


@task_bp.route("/tasks/<int:task_id>/cancel", methods=["POST"])
@require_roles("admin")
def cancel_task(task_id):
    task = task_service.cancel_task(task_id, current_user())
    return jsonify(task.to_dict()), 200


@task_bp.route("/tasks/<int:task_id>", methods=["DELETE"])
@require_roles("admin")
def delete_task(task_id):
    task_service.delete_task(task_id, current_user())
    return jsonify({"message": "Task deleted"}), 200


@task_bp.route("/tasks/<int:task_id>/progress", methods=["GET"])
@login_required
def task_progress(task_id):
    task = task_service.get_task(task_id, current_user())
    return jsonify(task_lifecycle.progress(task.id)), 200


# ═════════════════════════════════════════════════════════════════════════════
# Requirements (TaskAttachment)
# ═════════════════════════════════════════════════════════════════════════════


@task_bp.route("/tasks/<int:task_id>/attachments", methods=["POST"])
@require_roles("admin")
def add_attachment(task_id):
    """Body: attachment_type, title, checklist_template_id?, is_required?, assigned_to?"""
    data = request.get_json(silent=True) or {}
    user = current_user()
    attachment = task_service.add_attachment(task_id, data, user)
    return jsonify(task_service.serialize_attachment(attachment, user)), 201


@task_bp.route("/attachments/<int:attachment_id>", methods=["PUT", "PATCH"])
@require_roles("admin")
def update_attachment(attachment_id):
    data = request.get_json(silent=True) or {}
    user = current_user()
    attachment = task_service.update_attachment(attachment_id, data, user)
    return jsonify(task_service.serialize_attachment(attachment, user)), 200


@task_bp.route("/attachments/<int:attachment_id>", methods=["DELETE"])
@require_roles("admin")
def delete_attachment(attachment_id):
    task_service.delete_attachment(attachment_id, current_user())
    return jsonify({"message": "Requirement deleted"}), 200


# ═════════════════════════════════════════════════════════════════════════════
# Lookups
# ═════════════════════════════════════════════════════════════════════════════


@task_bp.route("/drivers", methods=["GET"])
@require_roles("admin", "executive", "operational_lead")
def list_drivers():
    drivers = list_profiles(role="driver", status="active")
    return jsonify([
        {"id": d.id, "name": d.full_name or d.email, "email": d.email} for d in drivers
    ]), 200


@task_bp.route("/suppliers", methods=["GET"])
@login_required
def list_suppliers():
    return jsonify([s.to_dict() for s in task_service.list_suppliers()]), 200


@task_bp.route("/suppliers", methods=["POST"])
@require_roles("admin")
def create_supplier():
    data = request.get_json(silent=True) or {}
    supplier = task_service.create_supplier(data.get("name"), current_user())
    return jsonify(supplier.to_dict()), 201
