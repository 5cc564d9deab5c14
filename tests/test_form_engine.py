"""
Tests — Dynamic Form Engine.

Covers:
    - Required semantics per field kind (checkbox False, whitespace text, options)
    - Type checks and value cleaning
    - Pre-fill from rejected / flagged submissions, file fields cleared
    - Render descriptors (disabled empty selects, paragraph content, ordering)
"""

import pytest

from logitask.models.checklist import TemplateField
from logitask.models.task import TaskSubmission
from logitask.services import form_engine
from logitask.services.form_engine import (
    FIELD_KINDS,
    clean_form_data,
    get_kind,
    initial_values,
    render_fields,
    validate_form,
)


def _field(name, field_type, *, label=None, required=False, options=None, order=0, help_text=None):
    return TemplateField(
        field_name=name,
        field_label=label if label is not None else name.replace("_", " ").title(),
        field_type=field_type,
        is_required=required,
        options=options or [],
        help_text=help_text,
        display_order=order,
    )


# ═════════════════════════════════════════════════════════════════════════════
# Registry
# ═════════════════════════════════════════════════════════════════════════════


def test_every_field_type_has_a_kind():
    from logitask.models.checklist import FIELD_TYPES
    assert set(FIELD_KINDS) == set(FIELD_TYPES)


def test_unknown_field_type_raises():
    with pytest.raises(ValueError, match="Unknown field type"):
        get_kind("colour")


# ═════════════════════════════════════════════════════════════════════════════
# Validation
# ═════════════════════════════════════════════════════════════════════════════


class TestRequired:
    def test_missing_required_fields_reported_with_label(self):
        fields = [
            _field("driver_name", "text", label="Driver Name", required=True),
            _field("notes", "textarea"),
        ]
        errors = validate_form(fields, {})
        assert errors == {"driver_name": "Driver Name is required"}

    def test_whitespace_only_text_is_missing(self):
        fields = [_field("driver_name", "text", required=True)]
        assert "driver_name" in validate_form(fields, {"driver_name": "   "})

    def test_unticked_required_checkbox_fails(self):
        fields = [_field("seal_intact", "checkbox", label="Seal intact", required=True)]
        assert validate_form(fields, {"seal_intact": False}) == {"seal_intact": "Seal intact is required"}
        assert validate_form(fields, {"seal_intact": True}) == {}

    def test_unticked_optional_checkbox_passes(self):
        fields = [_field("extra_check", "checkbox")]
        assert validate_form(fields, {"extra_check": False}) == {}

    def test_paragraph_is_never_required(self):
        fields = [_field("paragraph_1", "paragraph", required=True, help_text="<p>Read me</p>")]
        assert validate_form(fields, {}) == {}

    def test_file_requires_a_name(self):
        fields = [_field("photo", "file", required=True)]
        assert "photo" in validate_form(fields, {"photo": {"name": ""}})
        assert validate_form(fields, {"photo": {"name": "seal.jpg"}}) == {}


class TestTypeChecks:
    def test_number_rejects_text(self):
        fields = [_field("temperature", "number", label="Temperature")]
        assert validate_form(fields, {"temperature": "warm"}) == {"temperature": "Temperature must be a number"}
        assert validate_form(fields, {"temperature": "4.5"}) == {}
        assert validate_form(fields, {"temperature": 7}) == {}

    def test_number_rejects_boolean(self):
        fields = [_field("bags", "number")]
        assert "bags" in validate_form(fields, {"bags": True})

    def test_date_must_be_iso(self):
        fields = [_field("decant_date", "date", label="Decant date")]
        assert validate_form(fields, {"decant_date": "2025-03-05"}) == {}
        assert validate_form(fields, {"decant_date": "2025-03-05T10:00:00Z"}) == {}
        assert validate_form(fields, {"decant_date": "05/03/2025"}) == {
            "decant_date": "Decant date must be a valid date",
        }

    def test_choice_must_be_an_option(self):
        fields = [_field("condition", "radio", label="Condition", options=["Good", "Damaged"])]
        assert validate_form(fields, {"condition": "Good"}) == {}
        assert validate_form(fields, {"condition": "Fine"}) == {
            "condition": "Condition must be one of: Good, Damaged",
        }

    def test_select_without_options_accepts_nothing(self):
        fields = [_field("bay", "select", label="Bay")]
        assert validate_form(fields, {"bay": "A1"}) == {"bay": "Bay has no options to choose from"}

    def test_signature_must_be_data_uri(self):
        fields = [_field("signature", "signature")]
        assert "signature" in validate_form(fields, {"signature": "John"})
        assert validate_form(fields, {"signature": "data:image/png;base64,iVBORw0KGgo="}) == {}


class TestClean:
    def test_clean_keeps_template_fields_only(self):
        fields = [
            _field("driver_name", "text"),
            _field("bags", "number", order=1),
            _field("seal_intact", "checkbox", order=2),
            _field("paragraph_4", "paragraph", order=3),
            _field("photo", "file", order=4),
        ]
        cleaned = clean_form_data(fields, {
            "driver_name": "John",
            "bags": "12",
            "photo": {"name": "seal.jpg", "size": 10},
            "injected": "x",
        })
        assert cleaned == {
            "driver_name": "John",
            "bags": 12,
            "seal_intact": False,
            "photo": {"name": "seal.jpg", "uploaded": True},
        }

    def test_empty_number_is_stored_as_none(self):
        assert clean_form_data([_field("bags", "number")], {"bags": ""}) == {"bags": None}


# ═════════════════════════════════════════════════════════════════════════════
# Pre-fill
# ═════════════════════════════════════════════════════════════════════════════


class TestInitialValues:
    FIELDS = [
        _field("driver_name", "text"),
        _field("seal_intact", "checkbox", order=1),
        _field("photo", "file", order=2),
        _field("paragraph_4", "paragraph", order=3),
    ]

    def test_defaults_without_submission(self):
        assert initial_values(self.FIELDS) == {"driver_name": "", "seal_intact": False, "photo": ""}

    @pytest.mark.parametrize("status", ["rejected", "flagged"])
    def test_prefill_from_rejected_or_flagged(self, status):
        latest = TaskSubmission(status=status, form_data={
            "driver_name": "John",
            "seal_intact": True,
            "photo": {"name": "seal.jpg", "uploaded": True},
        })
        assert initial_values(self.FIELDS, latest) == {
            "driver_name": "John",
            "seal_intact": True,
            "photo": None,
        }

    def test_no_prefill_from_approved(self):
        latest = TaskSubmission(status="approved", form_data={"driver_name": "John"})
        assert initial_values(self.FIELDS, latest)["driver_name"] == ""


# ═════════════════════════════════════════════════════════════════════════════
# Rendering
# ═════════════════════════════════════════════════════════════════════════════


class TestRender:
    def test_fields_rendered_in_display_order(self):
        fields = [_field("b", "text", order=1), _field("a", "text", order=0)]
        assert [d["field_name"] for d in render_fields(fields)] == ["a", "b"]

    def test_select_without_options_is_disabled(self):
        (descriptor,) = render_fields([_field("bay", "select")])
        assert descriptor["disabled"] is True
        assert descriptor["options"] == []
        assert descriptor["widget"] == "select"

    def test_paragraph_renders_help_text_as_content(self):
        (descriptor,) = render_fields([_field("paragraph_1", "paragraph", help_text="<p>Check seals</p>")])
        assert descriptor["content"] == "<p>Check seals</p>"
        assert descriptor["required"] is False

    def test_text_placeholder_defaults_from_label(self):
        (descriptor,) = render_fields([_field("driver_name", "text", label="Driver Name")])
        assert descriptor["placeholder"] == "Enter driver name..."

    def test_parse_iso_date_accepts_zulu(self):
        parsed = form_engine.parse_iso_date("2025-03-05T10:00:00Z")
        assert parsed.utcoffset().total_seconds() == 0
