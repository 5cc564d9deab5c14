"""
Checklist template authoring — create, edit, reorder, clone, delete.

A template owns an ordered list of typed fields. Every save renumbers
``display_order`` to 0..n-1 and derives ``field_name`` from the label:

    "Driver Name"      -> driver_name
    "Temp (°C) check"  -> temp_c_check
    ""                 -> field_3          (1-based position)
    paragraph field    -> paragraph_4
    duplicate names    -> driver_name_2, driver_name_3, ...

Fields that keep their ``id`` across an edit are updated in place, but their
``field_name`` still follows the label: relabelling a field renames the key
that new submissions store in form_data. Earlier submissions keep the old key.

Only admins author templates. A template referenced by any requirement
cannot be deleted.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from logitask.core.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from logitask.models import db
from logitask.models.checklist import FIELD_TYPES, ChecklistTemplate, TemplateField
from logitask.models.task import TaskAttachment
from logitask.services.form_engine import render_form

logger = logging.getLogger(__name__)

_CHOICE_TYPES = ("radio", "select")
_NON_SLUG = re.compile(r"[^a-z0-9_]")
_WHITESPACE = re.compile(r"\s+")


def _require_admin(user, action: str) -> None:
    if user.role != "admin":
        raise PermissionDenied(user.id, action, "only admins manage checklist templates")


def get_template(template_id: int) -> ChecklistTemplate:
    template = db.session.get(ChecklistTemplate, template_id)
    if template is None:
        raise NotFoundError("ChecklistTemplate", template_id)
    return template


def list_templates(search: str | None = None) -> list[ChecklistTemplate]:
    stmt = select(ChecklistTemplate).order_by(ChecklistTemplate.created_at.desc(), ChecklistTemplate.id.desc())
    if search:
        stmt = stmt.where(ChecklistTemplate.title.ilike(f"%{search.strip()}%"))
    return list(db.session.execute(stmt).scalars())


def preview_template(template_id: int) -> dict:
    return render_form(get_template(template_id))


# ── Field normalisation ────────────────────────────────────────────────────────


def slugify_label(label: str | None) -> str:
    """Lower-case, whitespace to underscores, anything outside [a-z0-9_] removed."""
    text = _WHITESPACE.sub("_", (label or "").strip().lower())
    return _NON_SLUG.sub("", text).strip("_")


def derive_field_name(label: str | None, position: int, field_type: str, taken: set[str]) -> str:
    """Unique field_name for the field at 1-based ``position``."""
    if field_type == "paragraph":
        base = f"paragraph_{position}"
    else:
        base = slugify_label(label) or f"field_{position}"
    name = base
    suffix = 2
    while name in taken:
        name = f"{base}_{suffix}"
        suffix += 1
    taken.add(name)
    return name


def _clean_options(raw, index: int) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError(
            "Options must be a list of strings",
            details={f"fields[{index}].options": "must be a list"},
        )
    options: list[str] = []
    for item in raw:
        text = str(item).strip()
        if text and text not in options:
            options.append(text)
    return options


def _normalise_fields(raw_fields) -> list[dict]:
    """Validate an authoring payload and return field dicts in display order."""
    if not isinstance(raw_fields, list):
        raise ValidationError("fields must be a list", details={"fields": "must be a list"})

    indexed = []
    for index, raw in enumerate(raw_fields):
        if not isinstance(raw, dict):
            raise ValidationError("Each field must be an object", details={f"fields[{index}]": "must be an object"})
        order = raw.get("display_order", index)
        if not isinstance(order, int) or isinstance(order, bool):
            order = index
        indexed.append((order, index, raw))
    indexed.sort(key=lambda item: (item[0], item[1]))

    taken: set[str] = set()
    fields = []
    for position, (_, index, raw) in enumerate(indexed):
        field_type = raw.get("field_type", "text")
        if field_type not in FIELD_TYPES:
            raise ValidationError(
                f"Unknown field type: {field_type}",
                details={f"fields[{index}].field_type": f"must be one of: {', '.join(FIELD_TYPES)}"},
            )
        label = (raw.get("field_label") or "").strip()
        is_paragraph = field_type == "paragraph"
        options = _clean_options(raw.get("options"), index) if field_type in _CHOICE_TYPES else []
        fields.append({
            "id": raw.get("id"),
            "field_name": derive_field_name(label, position + 1, field_type, taken),
            "field_label": label,
            "field_type": field_type,
            "is_required": False if is_paragraph else bool(raw.get("is_required", False)),
            "options": options,
            "placeholder": (raw.get("placeholder") or None) if not is_paragraph else None,
            "help_text": raw.get("help_text") or None,
            "display_order": position,
        })
    return fields


def _clean_layout(layout) -> list:
    if layout is None:
        return []
    if not isinstance(layout, list) or not all(isinstance(row, dict) for row in layout):
        raise ValidationError(
            "layout_config must be a list of row objects",
            details={"layout_config": "must be a list of row objects"},
        )
    return layout


def _apply_fields(template: ChecklistTemplate, raw_fields) -> None:
    """Replace the template's fields, updating rows whose id is kept."""
    wanted = _normalise_fields(raw_fields)
    existing = {f.id: f for f in template.fields}
    kept_ids = {f["id"] for f in wanted if f["id"] in existing}

    for field_id, field in existing.items():
        if field_id not in kept_ids:
            template.fields.remove(field)
    # Park kept names first so renames that swap names cannot collide mid-flush
    for field_id in kept_ids:
        existing[field_id].field_name = f"__renaming_{field_id}"
    db.session.flush()

    for spec in wanted:
        values = {k: v for k, v in spec.items() if k != "id"}
        if spec["id"] in kept_ids:
            field = existing[spec["id"]]
            for key, value in values.items():
                setattr(field, key, value)
        else:
            template.fields.append(TemplateField(**values))
    db.session.flush()
    template.fields.sort(key=lambda f: f.display_order)


def _commit_template(template: ChecklistTemplate) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Template save conflict: %s", exc)
        raise ConflictError("ChecklistTemplate", "Template fields conflict with an existing field") from exc


# ── Public API ─────────────────────────────────────────────────────────────────


def create_template(data: dict, user) -> ChecklistTemplate:
    """
    Create a template with its fields.

    Args:
        data: {"title", "description"?, "layout_config"?, "fields"?: [...]}
    """
    _require_admin(user, "create_template")
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("Title is required", details={"title": "Title is required"})

    template = ChecklistTemplate(
        title=title,
        description=(data.get("description") or "").strip(),
        layout_config=_clean_layout(data.get("layout_config")),
        created_by=user.id,
    )
    db.session.add(template)
    db.session.flush()
    _apply_fields(template, data.get("fields") or [])
    _commit_template(template)
    logger.info("Checklist template %s created with %d fields", template.id, len(template.fields))
    return template


def update_template(template_id: int, data: dict, user) -> ChecklistTemplate:
    """Update title/description/layout and, when ``fields`` is present, the field list."""
    _require_admin(user, "update_template")
    template = get_template(template_id)

    if "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("Title is required", details={"title": "Title is required"})
        template.title = title
    if "description" in data:
        template.description = (data.get("description") or "").strip()
    if "layout_config" in data:
        template.layout_config = _clean_layout(data.get("layout_config"))
    if "fields" in data:
        _apply_fields(template, data.get("fields") or [])

    _commit_template(template)
    return template


def reorder_fields(template_id: int, field_ids: list[int], user) -> ChecklistTemplate:
    """Set display_order from ``field_ids``; the list must hold exactly the template's field ids."""
    _require_admin(user, "reorder_fields")
    template = get_template(template_id)
    by_id = {f.id: f for f in template.fields}

    if not isinstance(field_ids, list) or len(field_ids) != len(by_id) or set(field_ids) != set(by_id):
        raise ValidationError(
            "field_ids must list every field of the template exactly once",
            details={"field_ids": sorted(by_id)},
        )
    for position, field_id in enumerate(field_ids):
        by_id[field_id].display_order = position
    _commit_template(template)
    template.fields.sort(key=lambda f: f.display_order)
    return template


def clone_template(template_id: int, user) -> ChecklistTemplate:
    """Copy a template and all of its fields as "<title> (Copy)"."""
    _require_admin(user, "clone_template")
    source = get_template(template_id)

    clone = ChecklistTemplate(
        title=f"{source.title} (Copy)",
        description=source.description,
        created_by=user.id,
    )
    db.session.add(clone)
    id_map = {}
    for field in source.fields:
        copy = TemplateField(
            field_name=field.field_name,
            field_label=field.field_label,
            field_type=field.field_type,
            is_required=field.is_required,
            options=list(field.options or []),
            placeholder=field.placeholder,
            help_text=field.help_text,
            display_order=field.display_order,
        )
        clone.fields.append(copy)
        id_map[field.id] = copy
    db.session.flush()

    # Layout rows point at field ids; point them at the copies
    layout = []
    for row in source.layout_config or []:
        row = dict(row)
        if isinstance(row.get("fieldIds"), list):
            row["fieldIds"] = [id_map[fid].id if fid in id_map else fid for fid in row["fieldIds"]]
        layout.append(row)
    clone.layout_config = layout

    _commit_template(clone)
    logger.info("Checklist template %s cloned to %s", source.id, clone.id)
    return clone


def delete_template(template_id: int, user) -> None:
    _require_admin(user, "delete_template")
    template = get_template(template_id)
    in_use = db.session.execute(
        select(func.count(TaskAttachment.id)).where(TaskAttachment.checklist_template_id == template.id)
    ).scalar_one()
    if in_use:
        raise ConflictError(
            "ChecklistTemplate",
            f"Template is used by {in_use} task requirement(s) and cannot be deleted",
        )
    db.session.delete(template)
    db.session.commit()
    logger.info("Checklist template %s deleted", template_id)
