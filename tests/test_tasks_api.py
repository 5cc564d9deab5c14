"""
Tests — Task & requirement API.

Covers:
    - Task CRUD (admin only), driver scoping, search and status filters
    - Manual status changes limited to cancelling
    - Requirement add / edit / delete and their validation
    - Suppliers and the driver lookup
    - Task detail with per-requirement status and progress
"""

from logitask.models import db
from logitask.models.task import Task, TaskAttachment
from logitask.services import review_workflow


def _task_payload(**overrides):
    payload = {
        "customer_name": "Northfield Mill",
        "delivery_address": "12 Quay Street",
        "product_name": "Wheat",
        "docket_number": "DK-200",
        "vehicle_type": "tank",
        "number_of_bags": 40,
        "bag_weight": "25.5",
        "planned_delivery_date": "05/03/2025",
    }
    payload.update(overrides)
    return payload


class TestTaskCrud:
    def test_admin_creates_task_with_requirements(self, client, auth, admin, driver, checklist_template):
        res = client.post("/api/v1/tasks", json=_task_payload(
            assigned_driver_id=driver.id,
            attachments=[
                {"attachment_type": "checklist", "title": "Inspection",
                 "checklist_template_id": checklist_template.id},
                {"attachment_type": "document", "title": "Docket", "assigned_to": "warehouse"},
            ],
        ), headers=auth(admin))
        assert res.status_code == 201
        body = res.get_json()
        assert body["status"] == "new"
        assert body["title"] == "DK-200 - Northfield Mill"
        assert body["vehicle_type"] == "tank"
        assert body["bag_weight"] == 25.5
        assert body["planned_delivery_date"] == "2025-03-05"
        assert body["assigned_driver_name"] == "John Smith"
        assert {a["status"] for a in body["attachments"]} == {"pending"}
        assert body["progress"]["required"] == 2

    def test_missing_required_task_fields_422(self, client, auth, admin):
        res = client.post("/api/v1/tasks", json={"customer_name": "X"}, headers=auth(admin))
        assert res.status_code == 422
        assert set(res.get_json()["details"]) == {"delivery_address", "product_name"}

    def test_checklist_requirement_needs_template_422(self, client, auth, admin):
        res = client.post("/api/v1/tasks", json=_task_payload(
            attachments=[{"attachment_type": "checklist", "title": "Inspection"}],
        ), headers=auth(admin))
        assert res.status_code == 422
        assert "checklist_template_id" in res.get_json()["details"]
        assert Task.query.count() == 0

    def test_assigning_non_driver_422(self, client, auth, admin, warehouse_user):
        res = client.post("/api/v1/tasks", json=_task_payload(assigned_driver_id=warehouse_user.id),
                          headers=auth(admin))
        assert res.status_code == 422

    def test_driver_cannot_create_403(self, client, auth, driver):
        res = client.post("/api/v1/tasks", json=_task_payload(), headers=auth(driver))
        assert res.status_code == 403

    def test_unauthenticated_401(self, client):
        res = client.get("/api/v1/tasks")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHENTICATED"

    def test_non_json_body_415(self, client, auth, admin):
        res = client.post("/api/v1/tasks", data="customer_name=x", content_type="text/plain",
                          headers=auth(admin))
        assert res.status_code == 415


class TestTaskVisibility:
    def test_driver_sees_only_assigned_tasks(self, client, auth, task, other_driver, driver):
        res = client.get("/api/v1/tasks", headers=auth(other_driver))
        assert res.get_json()["total"] == 0
        res = client.get(f"/api/v1/tasks/{task.id}", headers=auth(other_driver))
        assert res.status_code == 403

        res = client.get("/api/v1/tasks", headers=auth(driver))
        assert [t["id"] for t in res.get_json()["items"]] == [task.id]

    def test_search_and_status_filter(self, client, auth, task, executive):
        res = client.get("/api/v1/tasks?search=acme", headers=auth(executive))
        assert res.get_json()["total"] == 1
        res = client.get("/api/v1/tasks?status=completed", headers=auth(executive))
        assert res.get_json()["total"] == 0
        res = client.get("/api/v1/tasks?status=bogus", headers=auth(executive))
        assert res.status_code == 422

    def test_detail_reports_requirement_status(self, client, auth, task, checklist_req, driver,
                                               valid_checklist):
        review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)
        res = client.get(f"/api/v1/tasks/{task.id}", headers=auth(driver))
        body = res.get_json()
        assert body["status"] == "in_progress"
        by_title = {a["title"]: a for a in body["attachments"]}
        assert by_title["Inspection"]["status"] == "submitted"
        assert by_title["Inspection"]["can_submit"] is False
        assert by_title["Proof of delivery"]["can_submit"] is True
        assert by_title["Warehouse slip"]["can_submit"] is False


class TestStatusChanges:
    def test_status_cannot_be_set_to_completed(self, client, auth, admin, task):
        res = client.put(f"/api/v1/tasks/{task.id}", json={"status": "completed"}, headers=auth(admin))
        assert res.status_code == 422

    def test_cancel(self, client, auth, admin, task):
        res = client.post(f"/api/v1/tasks/{task.id}/cancel", headers=auth(admin))
        assert res.status_code == 200
        assert res.get_json()["status"] == "cancelled"

    def test_edit_details(self, client, auth, admin, task):
        res = client.put(f"/api/v1/tasks/{task.id}", json={"haulier_tanker": "T-12"}, headers=auth(admin))
        assert res.status_code == 200
        assert res.get_json()["haulier_tanker"] == "T-12"

    def test_delete_removes_requirements(self, client, auth, admin, task):
        res = client.delete(f"/api/v1/tasks/{task.id}", headers=auth(admin))
        assert res.status_code == 200
        assert db.session.get(Task, task.id) is None
        assert TaskAttachment.query.count() == 0


class TestRequirements:
    def test_add_requirement(self, client, auth, admin, task):
        res = client.post(f"/api/v1/tasks/{task.id}/attachments", json={
            "attachment_type": "document", "title": "Weighbridge ticket", "assigned_to": "warehouse",
        }, headers=auth(admin))
        assert res.status_code == 201
        assert res.get_json()["status"] == "pending"

    def test_invalid_department_422(self, client, auth, admin, task):
        res = client.post(f"/api/v1/tasks/{task.id}/attachments", json={
            "attachment_type": "document", "title": "Ticket", "assigned_to": "finance",
        }, headers=auth(admin))
        assert res.status_code == 422

    def test_type_is_immutable(self, client, auth, admin, document_req, checklist_template):
        res = client.put(f"/api/v1/attachments/{document_req.id}", json={
            "attachment_type": "checklist", "checklist_template_id": checklist_template.id,
        }, headers=auth(admin))
        assert res.status_code == 422

    def test_make_requirement_optional(self, client, auth, admin, document_req):
        res = client.put(f"/api/v1/attachments/{document_req.id}", json={"is_required": False},
                         headers=auth(admin))
        assert res.status_code == 200
        assert res.get_json()["is_required"] is False

    def test_delete_requirement(self, client, auth, admin, optional_req):
        res = client.delete(f"/api/v1/attachments/{optional_req.id}", headers=auth(admin))
        assert res.status_code == 200
        assert db.session.get(TaskAttachment, optional_req.id) is None


class TestLookups:
    def test_suppliers(self, client, auth, admin, driver):
        res = client.post("/api/v1/suppliers", json={"name": "Grain Co"}, headers=auth(admin))
        assert res.status_code == 201
        res = client.post("/api/v1/suppliers", json={"name": "Grain Co"}, headers=auth(admin))
        assert res.status_code == 409
        res = client.get("/api/v1/suppliers", headers=auth(driver))
        assert [s["name"] for s in res.get_json()] == ["Grain Co"]

    def test_drivers_lookup(self, client, auth, admin, driver, warehouse_user):
        res = client.get("/api/v1/drivers", headers=auth(admin))
        assert res.get_json() == [{"id": driver.id, "name": "John Smith", "email": driver.email}]

    def test_progress_endpoint(self, client, auth, executive, task):
        res = client.get(f"/api/v1/tasks/{task.id}/progress", headers=auth(executive))
        assert res.status_code == 200
        assert res.get_json()["required"] == 2
