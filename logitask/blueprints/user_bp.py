"""
User Blueprint — the caller's profile, role layout and user administration.

Endpoints:
    GET  /api/v1/me                        — own profile
    PUT  /api/v1/me                        — edit own contact details
    GET  /api/v1/me/navigation             — layout, dashboard and nav items for the caller's role
    GET  /api/v1/users                     — list (role, status, search)
    POST /api/v1/users                     — create profile with a role (admin)
    GET  /api/v1/users/<id>                — profile
    PUT  /api/v1/users/<id>                — edit profile (admin)
    PUT  /api/v1/users/<id>/role           — change role (admin)
    PUT  /api/v1/users/<id>/status         — activate / deactivate (admin)
"""

from flask import Blueprint, jsonify, request

from logitask.auth import current_user, login_required, require_roles
from logitask.services import user_service
from logitask.services.navigation import layout_for

user_bp = Blueprint("users", __name__, url_prefix="/api/v1")


@user_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify(current_user().to_dict()), 200


@user_bp.route("/me", methods=["PUT", "PATCH"])
@login_required
def update_me():
    data = request.get_json(silent=True) or {}
    user = current_user()
    profile = user_service.update_profile(user.id, data, user)
    return jsonify(profile.to_dict()), 200


@user_bp.route("/me/navigation", methods=["GET"])
@login_required
def my_navigation():
    user = current_user()
    payload = layout_for(user.role).to_dict()
    payload["role"] = user.role
    return jsonify(payload), 200


@user_bp.route("/users", methods=["GET"])
@require_roles("admin", "executive", "operational_lead")
def list_users():
    profiles = user_service.list_profiles(
        role=request.args.get("role") or None,
        status=request.args.get("status") or None,
        search=request.args.get("search") or None,
    )
    return jsonify([p.to_dict() for p in profiles]), 200


@user_bp.route("/users", methods=["POST"])
@require_roles("admin")
def create_user():
    """Body: email, role, first_name?, last_name?, department?, phone?, status?"""
    data = request.get_json(silent=True) or {}
    profile = user_service.create_profile(
        data.get("email"),
        data.get("role"),
        first_name=data.get("first_name") or "",
        last_name=data.get("last_name") or "",
        department=data.get("department"),
        phone=data.get("phone"),
        status=data.get("status") or "active",
    )
    return jsonify(profile.to_dict()), 201


@user_bp.route("/users/<int:user_id>", methods=["GET"])
@require_roles("admin", "executive", "operational_lead")
def get_user(user_id):
    return jsonify(user_service.get_profile(user_id).to_dict()), 200


@user_bp.route("/users/<int:user_id>", methods=["PUT", "PATCH"])
@require_roles("admin")
def update_user(user_id):
    data = request.get_json(silent=True) or {}
    profile = user_service.update_profile(user_id, data, current_user())
    return jsonify(profile.to_dict()), 200


@user_bp.route("/users/<int:user_id>/role", methods=["PUT"])
@require_roles("admin")
def set_role(user_id):
    data = request.get_json(silent=True) or {}
    profile = user_service.set_role(user_id, data.get("role"), current_user())
    return jsonify(profile.to_dict()), 200


@user_bp.route("/users/<int:user_id>/status", methods=["PUT"])
@require_roles("admin")
def set_status(user_id):
    data = request.get_json(silent=True) or {}
    profile = user_service.set_status(user_id, data.get("status"), current_user())
    return jsonify(profile.to_dict()), 200
