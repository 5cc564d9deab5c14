"""Checklist template models: reusable form definitions and their typed fields."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from logitask.models import db

FIELD_TYPES = (
    "text", "textarea", "number", "date", "checkbox",
    "radio", "select", "file", "signature", "paragraph",
)


def _utcnow():
    return datetime.now(timezone.utc)


class ChecklistTemplate(db.Model):
    """A reusable checklist form; owns its fields."""

    __tablename__ = "checklist_templates"

    id = Column(Integer, primary_key=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, default="")
    layout_config = Column(JSON, default=list)  # [{"id","columns":{sm,md,lg,xl},"fieldIds","order"}]
    created_by = Column(Integer, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    fields = relationship(
        "TemplateField",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateField.display_order",
    )

    def to_dict(self, include_fields=True):
        d = {
            "id": self.id,
            "title": self.title,
            "description": self.description or "",
            "layout_config": self.layout_config or [],
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_fields:
            d["fields"] = [f.to_dict() for f in self.fields]
        else:
            d["field_count"] = len(self.fields)
        return d


class TemplateField(db.Model):
    """One typed field of a checklist template."""

    __tablename__ = "checklist_template_fields"

    id = Column(Integer, primary_key=True)
    template_id = Column(
        Integer, ForeignKey("checklist_templates.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    field_name = Column(String(120), nullable=False)
    field_label = Column(String(300), default="")
    field_type = Column(String(20), nullable=False, default="text")
    is_required = Column(Boolean, default=False)
    options = Column(JSON, default=list)  # ordered list of strings for radio/select
    placeholder = Column(String(300), nullable=True)
    help_text = Column(Text, nullable=True)  # rich-text body for paragraph fields
    display_order = Column(Integer, nullable=False, default=0)

    template = relationship("ChecklistTemplate", back_populates="fields")

    __table_args__ = (
        UniqueConstraint("template_id", "field_name", name="uq_template_field_name"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "template_id": self.template_id,
            "field_name": self.field_name,
            "field_label": self.field_label,
            "field_type": self.field_type,
            "is_required": bool(self.is_required),
            "options": list(self.options or []),
            "placeholder": self.placeholder,
            "help_text": self.help_text,
            "display_order": self.display_order,
        }
