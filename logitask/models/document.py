"""
Logistics Task Management
Document library model.

Standalone policy / reference files, unrelated to tasks.
"""

from datetime import datetime, timezone

from logitask.models import db

DOCUMENT_STATUSES = ("active", "draft", "under review", "archived")


class Document(db.Model):
    """A policy or reference document in the shared library."""

    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    file_path = db.Column(db.String(500), nullable=False, unique=True)
    file_name = db.Column(db.String(300), nullable=False)
    file_size = db.Column(db.Integer, nullable=True)
    mime_type = db.Column(db.String(150), nullable=True)
    department = db.Column(db.String(100), nullable=False, index=True)
    policy_area = db.Column(db.String(100), nullable=True)
    responsible_role = db.Column(db.String(100), nullable=True)
    status = db.Column(db.String(20), default="active", comment="active | draft | under review | archived")
    version = db.Column(db.String(20), default="v1.0")
    tags = db.Column(db.JSON, default=list)
    document_date = db.Column(db.Date, nullable=True)
    uploaded_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "file_path": self.file_path,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "department": self.department,
            "policy_area": self.policy_area,
            "responsible_role": self.responsible_role,
            "status": self.status,
            "version": self.version,
            "tags": list(self.tags or []),
            "document_date": self.document_date.isoformat() if self.document_date else None,
            "uploaded_by": self.uploaded_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Document #{self.id} {self.file_name}>"
