"""
Tests — Checklist template authoring.

Covers:
    - field_name derivation (slug, position fallback, paragraph, de-duplication)
    - display_order normalisation and reorder
    - Field ids kept across edits
    - Clone with layout remapping
    - Delete blocked while a requirement uses the template
    - Admin-only authoring over HTTP
"""

import pytest

from logitask.core.exceptions import ConflictError, PermissionDenied, ValidationError
from logitask.services import template_service
from logitask.services.template_service import derive_field_name, slugify_label


class TestFieldNames:
    @pytest.mark.parametrize("label, expected", [
        ("Driver Name", "driver_name"),
        ("  Temp (°C) check ", "temp_c_check"),
        ("Seal-Number #", "sealnumber"),
        ("", ""),
    ])
    def test_slugify_label(self, label, expected):
        assert slugify_label(label) == expected

    def test_empty_label_falls_back_to_position(self):
        assert derive_field_name("", 3, "text", set()) == "field_3"

    def test_paragraph_named_by_position(self):
        assert derive_field_name("Instructions", 4, "paragraph", set()) == "paragraph_4"

    def test_duplicates_get_suffix(self):
        taken = set()
        names = [derive_field_name("Notes", i, "textarea", taken) for i in (1, 2, 3)]
        assert names == ["notes", "notes_2", "notes_3"]


class TestCreateAndEdit:
    def test_create_normalises_fields(self, admin):
        template = template_service.create_template({
            "title": "  Tanker wash  ",
            "fields": [
                {"field_label": "Second", "field_type": "text", "display_order": 5},
                {"field_label": "First", "field_type": "select", "display_order": 1,
                 "options": ["A", " B ", "A", ""]},
                {"field_label": "Info", "field_type": "paragraph", "is_required": True},
            ],
        }, admin)
        assert template.title == "Tanker wash"
        fields = [(f.field_name, f.display_order) for f in template.fields]
        assert fields == [("first", 0), ("paragraph_2", 1), ("second", 2)]
        assert template.fields[0].options == ["A", "B"]
        assert template.fields[1].is_required is False

    def test_title_required(self, admin):
        with pytest.raises(ValidationError):
            template_service.create_template({"title": " "}, admin)

    def test_unknown_field_type(self, admin):
        with pytest.raises(ValidationError, match="Unknown field type"):
            template_service.create_template({"title": "X", "fields": [{"field_type": "colour"}]}, admin)

    def test_non_admin_cannot_author(self, executive):
        with pytest.raises(PermissionDenied):
            template_service.create_template({"title": "X"}, executive)

    def test_edit_keeps_field_ids(self, admin, checklist_template):
        original = {f.field_name: f.id for f in checklist_template.fields}
        payload = [f.to_dict() for f in checklist_template.fields]
        payload.append({"field_label": "Odometer", "field_type": "number"})

        updated = template_service.update_template(checklist_template.id, {"fields": payload}, admin)
        by_name = {f.field_name: f.id for f in updated.fields}
        for name, field_id in original.items():
            assert by_name[name] == field_id
        assert "odometer" in by_name

    def test_relabelled_field_keeps_id_but_renames(self, admin, checklist_template):
        payload = [f.to_dict() for f in checklist_template.fields]
        driver_field = next(f for f in payload if f["field_name"] == "driver_name")
        driver_field["field_label"] = "Driver Full Name"

        updated = template_service.update_template(checklist_template.id, {"fields": payload}, admin)
        renamed = next(f for f in updated.fields if f.id == driver_field["id"])
        assert renamed.field_name == "driver_full_name"
        assert "driver_name" not in {f.field_name for f in updated.fields}

    def test_edit_drops_missing_fields(self, admin, checklist_template):
        keep = [f.to_dict() for f in checklist_template.fields if f.field_type != "paragraph"]
        updated = template_service.update_template(checklist_template.id, {"fields": keep}, admin)
        assert "paragraph" not in {f.field_type for f in updated.fields}

    def test_reorder(self, admin, checklist_template):
        ids = [f.id for f in checklist_template.fields]
        reordered = template_service.reorder_fields(checklist_template.id, list(reversed(ids)), admin)
        assert [f.id for f in reordered.fields] == list(reversed(ids))
        assert [f.display_order for f in reordered.fields] == list(range(len(ids)))

    def test_reorder_requires_every_field(self, admin, checklist_template):
        ids = [f.id for f in checklist_template.fields]
        with pytest.raises(ValidationError):
            template_service.reorder_fields(checklist_template.id, ids[:-1], admin)


class TestCloneAndDelete:
    def test_clone_copies_fields_and_layout(self, admin, checklist_template):
        source_ids = [f.id for f in checklist_template.fields]
        template_service.update_template(checklist_template.id, {
            "layout_config": [{"id": "row-1", "fieldIds": source_ids[:2], "order": 0}],
        }, admin)

        clone = template_service.clone_template(checklist_template.id, admin)
        assert clone.id != checklist_template.id
        assert clone.title == "Pre-Delivery Inspection (Copy)"
        assert [f.field_name for f in clone.fields] == [f.field_name for f in checklist_template.fields]
        clone_ids = [f.id for f in clone.fields]
        assert clone.layout_config[0]["fieldIds"] == clone_ids[:2]

    def test_delete_unused_template(self, admin, checklist_template):
        template_service.delete_template(checklist_template.id, admin)
        assert template_service.list_templates() == []

    def test_delete_template_in_use_conflicts(self, admin, task, checklist_template):
        with pytest.raises(ConflictError):
            template_service.delete_template(checklist_template.id, admin)

    def test_preview_renders_without_storing(self, checklist_template):
        preview = template_service.preview_template(checklist_template.id)
        assert preview["title"] == "Pre-Delivery Inspection"
        assert preview["initial_values"]["driver_name"] == ""


class TestTemplateAPI:
    def test_admin_creates_template(self, client, auth, admin):
        res = client.post("/api/v1/checklist-templates", json={
            "title": "Loading check",
            "fields": [{"field_label": "Bay", "field_type": "select", "options": ["1", "2"]}],
        }, headers=auth(admin))
        assert res.status_code == 201
        assert res.get_json()["fields"][0]["field_name"] == "bay"

    def test_driver_cannot_create_403(self, client, auth, driver):
        res = client.post("/api/v1/checklist-templates", json={"title": "X"}, headers=auth(driver))
        assert res.status_code == 403

    def test_list_shows_field_count(self, client, auth, driver, checklist_template):
        res = client.get("/api/v1/checklist-templates", headers=auth(driver))
        assert res.status_code == 200
        assert res.get_json()[0]["field_count"] == 5

    def test_delete_in_use_409(self, client, auth, admin, task, checklist_template):
        res = client.delete(f"/api/v1/checklist-templates/{checklist_template.id}", headers=auth(admin))
        assert res.status_code == 409

    def test_reorder_without_ids_422(self, client, auth, admin, checklist_template):
        res = client.put(f"/api/v1/checklist-templates/{checklist_template.id}/reorder",
                         json={}, headers=auth(admin))
        assert res.status_code == 422
