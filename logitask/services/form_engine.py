"""
Dynamic Form Engine — checklist field kinds, validation, pre-fill, rendering.

Every template field has a ``field_type`` drawn from a closed set. Each type
is a FieldKind registered in FIELD_KINDS; the engine dispatches through that
table, so a new type is one new class plus one registry entry.

A FieldKind answers five questions about a value:
    initial_value()      value of an untouched input
    is_missing(value)    does the value fail a required check
    check(field, value)  type / shape error message, or None
    clean(value)         the form_data representation that is stored
    render(field)        widget descriptor the client renders

Required semantics worth knowing:
    - checkbox: False fails a required check (the box must be ticked)
    - text/textarea: whitespace-only counts as missing
    - radio/select: the value must be one of the ordered ``options``;
      with no options the input is disabled and no value is valid
    - paragraph: display-only rich text, never required, never stored

Usage:
    from logitask.services.form_engine import validate_form, clean_form_data

    errors = validate_form(template.fields, payload)
    if errors:
        raise ValidationError("Please fill in all required fields", details=errors)
    form_data = clean_form_data(template.fields, payload)
"""

from __future__ import annotations

from datetime import date, datetime
from numbers import Number

# ═══════════════════════════════════════════════════════════════════════════
#  Field kinds
# ═══════════════════════════════════════════════════════════════════════════


def _label(field) -> str:
    return field.field_label or field.field_name


class FieldKind:
    """Base kind: a free value, missing when None or empty string."""

    name = ""
    widget = "input"
    stored = True

    def initial_value(self):
        return ""

    def is_missing(self, value) -> bool:
        return value is None or value == ""

    def check(self, field, value) -> str | None:
        return None

    def clean(self, value):
        return value

    def render(self, field) -> dict:
        return {
            "field_name": field.field_name,
            "label": field.field_label,
            "field_type": self.name,
            "widget": self.widget,
            "required": bool(field.is_required),
            "placeholder": field.placeholder,
            "help_text": field.help_text,
            "display_order": field.display_order,
            "disabled": False,
        }


class TextKind(FieldKind):
    name = "text"

    def is_missing(self, value) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    def check(self, field, value):
        if not isinstance(value, str):
            return f"{_label(field)} must be text"
        return None

    def render(self, field):
        d = super().render(field)
        d["input_type"] = "text"
        d["placeholder"] = field.placeholder or f"Enter {(field.field_label or '').lower()}..."
        return d


class TextareaKind(TextKind):
    name = "textarea"
    widget = "textarea"

    def render(self, field):
        d = super().render(field)
        d.pop("input_type", None)
        d["rows"] = 4
        return d


class NumberKind(FieldKind):
    name = "number"

    @staticmethod
    def _to_number(value):
        if isinstance(value, bool):
            raise ValueError("boolean is not a number")
        if isinstance(value, Number):
            return value
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            return float(text)

    def check(self, field, value):
        try:
            self._to_number(value)
        except (TypeError, ValueError):
            return f"{_label(field)} must be a number"
        return None

    def clean(self, value):
        if value is None or value == "":
            return None
        return self._to_number(value)

    def render(self, field):
        d = super().render(field)
        d["input_type"] = "number"
        d["placeholder"] = field.placeholder or "0"
        return d


def parse_iso_date(value) -> date | datetime:
    """Parse an ISO-8601 date or datetime string (a trailing 'Z' is accepted)."""
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text)


class DateKind(FieldKind):
    name = "date"
    widget = "date_picker"

    def check(self, field, value):
        if not isinstance(value, str):
            return f"{_label(field)} must be a valid date"
        try:
            parse_iso_date(value)
        except ValueError:
            return f"{_label(field)} must be a valid date"
        return None

    def render(self, field):
        d = super().render(field)
        d["placeholder"] = field.placeholder or "Select a date"
        return d


class CheckboxKind(FieldKind):
    name = "checkbox"
    widget = "checkbox"

    def initial_value(self):
        return False

    def is_missing(self, value) -> bool:
        # An unticked required box fails, same as an absent one
        return value is None or value == "" or value is False

    def check(self, field, value):
        if not isinstance(value, bool):
            return f"{_label(field)} must be checked or unchecked"
        return None

    def clean(self, value):
        return bool(value)


class ChoiceKind(FieldKind):
    """Shared behaviour of radio and select: value must be an enumerated option."""

    def check(self, field, value):
        options = list(field.options or [])
        if not options:
            return f"{_label(field)} has no options to choose from"
        if value not in options:
            return f"{_label(field)} must be one of: {', '.join(options)}"
        return None

    def render(self, field):
        d = super().render(field)
        options = list(field.options or [])
        d["options"] = options
        d["disabled"] = not options
        return d


class RadioKind(ChoiceKind):
    name = "radio"
    widget = "radio_group"


class SelectKind(ChoiceKind):
    name = "select"
    widget = "select"

    def render(self, field):
        d = super().render(field)
        d["placeholder"] = field.placeholder or "Select an option"
        return d


class FileKind(FieldKind):
    """
    File picked inside a checklist.

    Only the file name is kept in form_data as ``{"name", "uploaded"}``;
    the binary is a separate upload concern.
    """

    name = "file"
    widget = "file_upload"

    @staticmethod
    def _file_name(value):
        if isinstance(value, dict):
            return value.get("name")
        if isinstance(value, str):
            return value
        return None

    def is_missing(self, value) -> bool:
        name = self._file_name(value)
        return not (name and str(name).strip())

    def check(self, field, value):
        if not isinstance(value, (dict, str)):
            return f"{_label(field)} must be a file"
        return None

    def clean(self, value):
        if self.is_missing(value):
            return None
        return {"name": str(self._file_name(value)), "uploaded": True}


class SignatureKind(FieldKind):
    """Freehand signature captured as a base64 image data URI."""

    name = "signature"
    widget = "signature_pad"

    def check(self, field, value):
        if not isinstance(value, str) or not value.startswith("data:image/") or ";base64," not in value:
            return f"{_label(field)} must be a signature image"
        return None


class ParagraphKind(FieldKind):
    """Display-only rich text taken from help_text."""

    name = "paragraph"
    widget = "rich_text"
    stored = False

    def initial_value(self):
        return None

    def is_missing(self, value) -> bool:
        return False

    def render(self, field):
        d = super().render(field)
        d["required"] = False
        d["content"] = field.help_text or ""
        d["help_text"] = None
        return d


FIELD_KINDS: dict[str, FieldKind] = {
    kind.name: kind
    for kind in (
        TextKind(),
        TextareaKind(),
        NumberKind(),
        DateKind(),
        CheckboxKind(),
        RadioKind(),
        SelectKind(),
        FileKind(),
        SignatureKind(),
        ParagraphKind(),
    )
}


def get_kind(field_type: str) -> FieldKind:
    """Look up the kind for a field type; unknown types raise ValueError."""
    try:
        return FIELD_KINDS[field_type]
    except KeyError:
        raise ValueError(f"Unknown field type: {field_type!r}") from None


# ═══════════════════════════════════════════════════════════════════════════
#  Form operations
# ═══════════════════════════════════════════════════════════════════════════


def _ordered(fields):
    return sorted(fields, key=lambda f: (f.display_order, f.id or 0))


def validate_form(fields, values: dict | None) -> dict[str, str]:
    """
    Run every field's required and type checks.

    Returns:
        {field_name: error message}; empty when the form is valid.
    """
    values = values or {}
    errors: dict[str, str] = {}
    for field in _ordered(fields):
        kind = get_kind(field.field_type)
        if not kind.stored:
            continue
        value = values.get(field.field_name)
        if kind.is_missing(value):
            if field.is_required:
                errors[field.field_name] = f"{_label(field)} is required"
            continue
        message = kind.check(field, value)
        if message:
            errors[field.field_name] = message
    return errors


def clean_form_data(fields, values: dict | None) -> dict:
    """Build the stored form_data: template fields only, paragraphs dropped."""
    values = values or {}
    cleaned = {}
    for field in _ordered(fields):
        kind = get_kind(field.field_type)
        if not kind.stored:
            continue
        cleaned[field.field_name] = kind.clean(values.get(field.field_name, kind.initial_value()))
    return cleaned


def initial_values(fields, latest_submission=None) -> dict:
    """
    Initial input values for a checklist form.

    When the latest submission was rejected or flagged its form_data
    pre-fills the form, except file fields which start empty again.
    """
    previous = None
    if latest_submission is not None and latest_submission.status in ("rejected", "flagged"):
        previous = latest_submission.form_data or {}

    values = {}
    for field in _ordered(fields):
        kind = get_kind(field.field_type)
        if not kind.stored:
            continue
        if previous is not None and field.field_name in previous:
            values[field.field_name] = None if field.field_type == "file" else previous[field.field_name]
        else:
            values[field.field_name] = kind.initial_value()
    return values


def render_fields(fields) -> list[dict]:
    """Widget descriptors in display order."""
    return [get_kind(f.field_type).render(f) for f in _ordered(fields)]


def render_form(template, latest_submission=None) -> dict:
    """Complete render payload for a template: descriptors, layout and initial values."""
    return {
        "template_id": template.id,
        "title": template.title,
        "description": template.description or "",
        "layout_config": template.layout_config or [],
        "fields": render_fields(template.fields),
        "initial_values": initial_values(template.fields, latest_submission),
    }
