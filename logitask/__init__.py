"""
Logistics Task Management
Flask Application Factory.

Usage:
    from logitask import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from logitask.config import config
from logitask.middleware.jwt_auth import init_jwt_middleware
from logitask.middleware.logging_config import configure_logging
from logitask.middleware.rate_limiter import init_rate_limits
from logitask.middleware.security_headers import init_security_headers
from logitask.middleware.timing import init_request_timing
from logitask.models import db
from logitask.services.storage import init_object_store
from logitask.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # limits are applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)

# Mutating routes that take multipart uploads instead of JSON
_MULTIPART_SUFFIXES = ("/documents", "/submissions/document")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    config_class = config[config_name]
    app.config.from_object(config_class() if config_name == "production" else config_class)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    init_object_store(app)

    # ── Security headers ─────────────────────────────────────────────────
    init_security_headers(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Identity: resolves g.current_user once per request ──────────────
    init_jwt_middleware(app)

    # ── Request guards (body size + Content-Type) ────────────────────────
    @app.before_request
    def _guard_request():
        max_len = app.config.get("MAX_CONTENT_LENGTH")
        if max_len and request.content_length and request.content_length > max_len:
            return api_error(E.PAYLOAD_TOO_LARGE, "Request body too large")
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if "multipart/form-data" in ct and request.path.endswith(_MULTIPART_SUFFIXES):
                return None
            if request.content_length and "json" not in ct:
                return api_error(E.UNSUPPORTED_MEDIA, "Content-Type must be application/json")
        return None

    # ── Import all models so Alembic can detect them ─────────────────────
    from logitask.models import auth as _auth_models                  # noqa: F401
    from logitask.models import task as _task_models                  # noqa: F401
    from logitask.models import checklist as _checklist_models        # noqa: F401
    from logitask.models import document as _document_models          # noqa: F401
    from logitask.models import notification as _notification_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from logitask.blueprints.checklist_bp import checklist_bp
    from logitask.blueprints.dashboard_bp import dashboard_bp
    from logitask.blueprints.document_bp import document_bp
    from logitask.blueprints.errors import register_error_handlers
    from logitask.blueprints.health_bp import health_bp
    from logitask.blueprints.storage_bp import storage_bp
    from logitask.blueprints.submission_bp import submission_bp
    from logitask.blueprints.task_bp import task_bp
    from logitask.blueprints.user_bp import user_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(task_bp)
    app.register_blueprint(submission_bp)
    app.register_blueprint(checklist_bp)
    app.register_blueprint(document_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(storage_bp)

    # ── Error handlers: service exceptions and HTTP errors → JSON ────────
    register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-admin")
    @click.argument("email")
    @click.option("--first-name", default="Administrator")
    @click.option("--last-name", default="")
    def seed_admin_cmd(email, first_name, last_name):
        """Create the first admin profile (or promote an existing one)."""
        from logitask.services.user_service import seed_admin
        profile, created = seed_admin(email, first_name, last_name)
        click.echo(f"{'Created' if created else 'Promoted'} admin #{profile.id} {profile.email}")

    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Create one demo profile per role."""
        from logitask.services.user_service import seed_demo_users
        created = seed_demo_users()
        click.echo(f"Created {len(created)} demo profile(s).")

    @app.cli.command("issue-token")
    @click.argument("email")
    @click.option("--expires-in", default=None, type=int, help="Lifetime in seconds")
    def issue_token_cmd(email, expires_in):
        """Print a bearer token for a profile (development identity provider stand-in)."""
        from sqlalchemy import func

        from logitask.models.auth import Profile
        from logitask.services.jwt_service import generate_access_token
        profile = Profile.query.filter(func.lower(Profile.email) == email.lower()).first()
        if profile is None:
            raise click.ClickException(f"No profile with email {email}")
        click.echo(generate_access_token(profile.id, profile.role, expires_in))

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
