"""
Tests — Role layout dispatch.

Covers:
    - Every role maps to its own layout and dashboard
    - Unknown / missing roles fall back to the restricted layout
    - Mobile navigation derived from the full item list
    - /api/v1/me/navigation and /api/v1/dashboard
"""

import pytest

from logitask.models.auth import ROLES
from logitask.services import review_workflow
from logitask.services.navigation import RESTRICTED_LAYOUT, ROLE_LAYOUTS, layout_for


@pytest.mark.parametrize("role", ROLES)
def test_every_role_has_a_layout(role):
    layout = layout_for(role)
    assert layout is ROLE_LAYOUTS[role]
    assert layout is not RESTRICTED_LAYOUT
    assert layout.nav_items[0].label == "Dashboard"


@pytest.mark.parametrize("role", [None, "", "auditor"])
def test_unknown_role_gets_restricted_layout(role):
    layout = layout_for(role)
    assert layout is RESTRICTED_LAYOUT
    assert [item.label for item in layout.nav_items] == ["Dashboard"]


def test_operational_lead_shares_executive_shell():
    layout = layout_for("operational_lead")
    assert layout.layout == "executive"
    assert layout.dashboard == "operational_lead_dashboard"
    assert layout.nav_items == layout_for("executive").nav_items


def test_only_admin_sees_template_builder():
    for role in ROLES:
        hrefs = {item.href for item in layout_for(role).nav_items}
        assert ("/checklist-templates" in hrefs) == (role == "admin")


def test_mobile_items_skip_dashboard_and_cap_at_four():
    payload = layout_for("admin").to_dict()
    labels = [item["label"] for item in payload["mobile_nav_items"]]
    assert labels == ["Create Task", "All Tasks", "Submissions", "Documents"]
    assert len(payload["nav_items"]) == 8


class TestNavigationAPI:
    def test_me_navigation(self, client, auth, driver):
        res = client.get("/api/v1/me/navigation", headers=auth(driver))
        assert res.status_code == 200
        body = res.get_json()
        assert body["role"] == "driver"
        assert body["layout"] == "driver"
        assert body["dashboard"] == "driver_dashboard"

    def test_profile_without_role_is_restricted(self, client, auth, driver):
        from logitask.models import db
        db.session.delete(driver.role_assignment)
        db.session.commit()
        res = client.get("/api/v1/me/navigation", headers=auth(driver))
        assert res.get_json()["layout"] == "restricted"


class TestDashboardAPI:
    def test_driver_dashboard_counts_own_work(self, client, auth, task, checklist_req, driver,
                                              valid_checklist):
        review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)
        res = client.get("/api/v1/dashboard", headers=auth(driver))
        body = res.get_json()
        assert body["dashboard"] == "driver_dashboard"
        assert body["tasks"]["in_progress"] == 1
        assert body["active_tasks"] == 1
        assert body["my_submissions"] == {"submitted": 1}

    def test_reviewer_dashboard_counts_pending_reviews(self, client, auth, task, checklist_req, driver,
                                                       admin, executive, valid_checklist):
        first = review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)
        review_workflow.review_submission(first.id, "reject", "Redo", admin)
        review_workflow.submit_checklist(checklist_req.id, valid_checklist, driver)

        res = client.get("/api/v1/dashboard", headers=auth(executive))
        body = res.get_json()
        assert body["dashboard"] == "executive_dashboard"
        assert body["pending_reviews"] == 1
        assert body["submissions"] == {"rejected": 1, "submitted": 1}
