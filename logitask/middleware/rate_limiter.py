"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter. The Limiter instance
is created in logitask/__init__.py with no default limits; this module
applies granular limits per route category.

Usage:
    from logitask.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

# Blueprint name -> limit (per remote IP)
BLUEPRINT_LIMITS = {
    "submissions": "60/minute",     # uploads and review decisions
    "documents": "60/minute",
    "tasks": "120/minute",
    "checklists": "120/minute",
    "users": "120/minute",
    "dashboard": "200/minute",
    "storage": "200/minute",
}


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Submit / review / upload:  60/minute
        - Admin CRUD:                120/minute
        - Dashboards and downloads:  200/minute
        - Health check:              exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name, limit in BLUEPRINT_LIMITS.items():
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(limit)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — submit/review/upload: 60/min, CRUD: 120/min, read: 200/min"
    )
