"""
Tests — Identity, users and operational endpoints.

Covers:
    - Bearer token resolution: missing, expired, invalid, inactive
    - Signed storage URLs
    - Profile administration (create, role, status, self-edit)
    - CLI commands: seed-admin, seed-demo, issue-token
    - Health probes
"""

import pytest

from logitask.core.exceptions import ConflictError, PermissionDenied, ValidationError
from logitask.models.auth import Profile
from logitask.services import user_service
from logitask.services.jwt_service import decode_access_token, generate_storage_token


class TestBearerTokens:
    def test_valid_token_resolves_profile(self, client, auth, driver):
        res = client.get("/api/v1/me", headers=auth(driver))
        assert res.status_code == 200
        assert res.get_json()["email"] == "driver@logitask.io"

    def test_expired_token(self, client, auth, driver):
        res = client.get("/api/v1/me", headers=auth(driver, expires_in=-10))
        assert res.status_code == 401
        assert res.get_json()["error"] == "Session expired"

    def test_garbage_token(self, client):
        res = client.get("/api/v1/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid session token"

    def test_storage_token_is_not_an_access_token(self, client):
        token = generate_storage_token("1/2/3.pdf", 60)
        res = client.get("/api/v1/me", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_inactive_profile_rejected(self, client, auth, admin, driver):
        user_service.set_status(driver.id, "inactive", admin)
        res = client.get("/api/v1/me", headers=auth(driver))
        assert res.status_code == 401
        assert res.get_json()["error"] == "Account is inactive"


class TestStorageLinks:
    def test_invalid_link(self, client):
        res = client.get("/api/v1/storage/not-a-token")
        assert res.status_code == 401

    def test_link_to_missing_object(self, client):
        res = client.get(f"/api/v1/storage/{generate_storage_token('9/9/404.pdf', 60)}")
        assert res.status_code == 404

    def test_expired_link(self, client):
        res = client.get(f"/api/v1/storage/{generate_storage_token('9/9/old.pdf', -5)}")
        assert res.status_code == 401
        assert res.get_json()["error"] == "Link expired"


class TestProfiles:
    def test_create_normalises_email(self):
        profile = user_service.create_profile("New.Driver@LogiTask.io", "driver", "New", "Driver")
        assert profile.role == "driver"
        assert profile.email.endswith("@logitask.io")

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            user_service.create_profile("not-an-email", "driver")

    def test_unknown_role(self):
        with pytest.raises(ValidationError):
            user_service.create_profile("x@logitask.io", "auditor")

    def test_duplicate_email(self, driver):
        with pytest.raises(ConflictError):
            user_service.create_profile("DRIVER@logitask.io", "driver")

    def test_admin_cannot_change_own_role(self, admin):
        with pytest.raises(ConflictError):
            user_service.set_role(admin.id, "driver", admin)

    def test_admin_changes_role(self, admin, driver):
        assert user_service.set_role(driver.id, "warehouse", admin).role == "warehouse"

    def test_non_admin_cannot_change_roles(self, executive, driver):
        with pytest.raises(PermissionDenied):
            user_service.set_role(driver.id, "admin", executive)

    def test_self_edit_limited_to_contact_details(self, driver):
        updated = user_service.update_profile(
            driver.id, {"phone": " 0400 000 000 ", "department": "Finance"}, driver,
        )
        assert updated.phone == "0400 000 000"
        assert updated.department == "Transport"

    def test_users_api(self, client, auth, admin, executive, driver):
        res = client.post("/api/v1/users", json={"email": "wh2@logitask.io", "role": "warehouse"},
                          headers=auth(admin))
        assert res.status_code == 201
        res = client.post("/api/v1/users", json={"email": "wh2@logitask.io", "role": "warehouse"},
                          headers=auth(admin))
        assert res.status_code == 409
        res = client.get("/api/v1/users?role=warehouse", headers=auth(executive))
        assert [u["email"] for u in res.get_json()] == ["wh2@logitask.io"]
        res = client.get("/api/v1/users", headers=auth(driver))
        assert res.status_code == 403


class TestCli:
    def test_seed_admin_creates_then_promotes(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["seed-admin", "boss@logitask.io"])
        assert result.exit_code == 0
        assert "Created admin" in result.output

        result = runner.invoke(args=["seed-admin", "boss@logitask.io"])
        assert "Promoted admin" in result.output
        assert Profile.query.filter_by(email="boss@logitask.io").one().role == "admin"

    def test_seed_demo_is_idempotent(self, app):
        runner = app.test_cli_runner()
        assert "Created 5 demo profile(s)." in runner.invoke(args=["seed-demo"]).output
        assert "Created 0 demo profile(s)." in runner.invoke(args=["seed-demo"]).output

    def test_issue_token(self, app, driver):
        result = app.test_cli_runner().invoke(args=["issue-token", "driver@logitask.io"])
        assert result.exit_code == 0
        payload = decode_access_token(result.output.strip())
        assert payload["sub"] == str(driver.id)
        assert payload["role"] == "driver"

    def test_issue_token_unknown_email(self, app):
        result = app.test_cli_runner().invoke(args=["issue-token", "ghost@logitask.io"])
        assert result.exit_code != 0


class TestHealth:
    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        body = res.get_json()
        assert body["checks"]["database"]["status"] == "ok"
        assert body["checks"]["storage"]["status"] == "ok"

    def test_unknown_api_route_404(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"
