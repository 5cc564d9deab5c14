"""
Dashboard Blueprint — counters for the caller's role dashboard.
"""

from flask import Blueprint, jsonify

from logitask.auth import current_user, login_required
from logitask.services import dashboard_service as svc
from logitask.services.navigation import layout_for

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/dashboard")


@dashboard_bp.route("", methods=["GET"])
@login_required
def my_dashboard():
    """Counters for the caller's role, tagged with the dashboard to render."""
    user = current_user()
    data = svc.dashboard_for(user)
    data["dashboard"] = layout_for(user.role).dashboard
    return jsonify(data), 200


@dashboard_bp.route("/task-status", methods=["GET"])
@login_required
def task_status():
    user = current_user()
    driver_id = user.id if user.role == "driver" else None
    return jsonify(svc.task_status_counts(driver_id=driver_id)), 200
