"""
Shared pytest fixtures for the logistics task management test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - storage_root: Per-test object store in a temp dir (autouse)
    - client: Flask test client (function-scoped)
    - admin / driver / warehouse_user / executive / ops_lead: one profile per role
    - auth: bearer header builder for a profile
    - checklist_template: "Pre-Delivery Inspection" template
    - task: task with a transport checklist, a transport document and an
      optional warehouse document requirement
    - checklist_req / document_req / optional_req: the three requirements of ``task``
    - valid_checklist / pdf_bytes: payloads that pass submission checks
"""

import pytest

from logitask import create_app
from logitask.models import db as _db
from logitask.services import task_service, template_service
from logitask.services.jwt_service import generate_access_token
from logitask.services.storage import init_object_store
from logitask.services.user_service import create_profile

PDF_BYTES = b"%PDF-1.4\n% proof of delivery\n"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Create the Flask application once per test session."""
    application = create_app("testing")
    application.config["STORAGE_ROOT"] = str(tmp_path_factory.mktemp("storage"))
    init_object_store(application)
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture(autouse=True)
def storage_root(app, tmp_path):
    """Per-test: fresh object store so stored files never outlive their rows."""
    app.config["STORAGE_ROOT"] = str(tmp_path / "storage")
    init_object_store(app)
    return tmp_path / "storage"


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Profiles ─────────────────────────────────────────────────────────────


@pytest.fixture()
def admin():
    return create_profile("admin@logitask.io", "admin", "Ada", "Admin", department="Administration")


@pytest.fixture()
def driver():
    return create_profile("driver@logitask.io", "driver", "John", "Smith", department="Transport")


@pytest.fixture()
def other_driver():
    return create_profile("driver2@logitask.io", "driver", "Sam", "Jones", department="Transport")


@pytest.fixture()
def warehouse_user():
    return create_profile("warehouse@logitask.io", "warehouse", "Mike", "Brown", department="Warehouse")


@pytest.fixture()
def executive():
    return create_profile("exec@logitask.io", "executive", "Emma", "Davis", department="Operations")


@pytest.fixture()
def ops_lead():
    return create_profile("opslead@logitask.io", "operational_lead", "David", "Wilson",
                          department="Operations")


@pytest.fixture()
def auth():
    """auth(profile) -> {"Authorization": "Bearer ..."}"""
    def _headers(profile, expires_in=None):
        token = generate_access_token(profile.id, profile.role, expires_in)
        return {"Authorization": f"Bearer {token}"}
    return _headers


# ── Domain fixtures ──────────────────────────────────────────────────────


@pytest.fixture()
def checklist_template(admin):
    return template_service.create_template({
        "title": "Pre-Delivery Inspection",
        "description": "Checks before leaving the depot",
        "fields": [
            {"field_label": "Driver Name", "field_type": "text", "is_required": True},
            {"field_label": "Temperature (°C)", "field_type": "number"},
            {"field_label": "Seal intact", "field_type": "checkbox", "is_required": True},
            {"field_label": "Condition", "field_type": "radio", "is_required": True,
             "options": ["Good", "Damaged"]},
            {"field_label": "", "field_type": "paragraph", "help_text": "<p>Check all seals.</p>"},
        ],
    }, admin)


@pytest.fixture()
def task(admin, driver, checklist_template):
    return task_service.create_task({
        "customer_name": "Acme Foods",
        "delivery_address": "1 Dock Road",
        "product_name": "Maize",
        "docket_number": "DK-100",
        "assigned_driver_id": driver.id,
        "attachments": [
            {"attachment_type": "checklist", "title": "Inspection",
             "checklist_template_id": checklist_template.id, "assigned_to": "transport"},
            {"attachment_type": "document", "title": "Proof of delivery", "assigned_to": "transport"},
            {"attachment_type": "document", "title": "Warehouse slip", "assigned_to": "warehouse",
             "is_required": False},
        ],
    }, admin)


def _requirement(task, title):
    return next(a for a in task.attachments if a.title == title)


@pytest.fixture()
def checklist_req(task):
    return _requirement(task, "Inspection")


@pytest.fixture()
def document_req(task):
    return _requirement(task, "Proof of delivery")


@pytest.fixture()
def optional_req(task):
    return _requirement(task, "Warehouse slip")


@pytest.fixture()
def valid_checklist():
    """Values that pass every check of ``checklist_template``."""
    return {
        "driver_name": "John Smith",
        "temperature_c": "4.5",
        "seal_intact": True,
        "condition": "Good",
    }


@pytest.fixture()
def pdf_bytes():
    return PDF_BYTES
