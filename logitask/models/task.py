"""
Logistics Task Management
Delivery task domain models.

Models:
    - Supplier:        product supplier referenced by tasks
    - Task:            one delivery job
    - TaskAttachment:  a document-or-checklist requirement on a task
    - TaskSubmission:  one fulfilment attempt for a requirement

Ownership: Task 1:N TaskAttachment 1:N TaskSubmission, all cascading.
Submissions are append-only from the submitter's point of view: a
resubmission after rejection inserts a new row, the earlier row stays.
"""

from datetime import datetime, timezone

from logitask.models import db

# ── Constants ────────────────────────────────────────────────────────────────

TASK_STATUSES = ("new", "in_progress", "completed", "cancelled")
VEHICLE_TYPES = ("truck", "tank")

ATTACHMENT_TYPES = ("document", "checklist")
DEPARTMENTS = ("transport", "warehouse")

# "pending" is virtual: an attachment with no submission rows yet
SUBMISSION_STATUSES = ("submitted", "approved", "rejected", "flagged")
RESUBMITTABLE_STATUSES = frozenset({"pending", "rejected", "flagged"})


def _utcnow():
    return datetime.now(timezone.utc)


class Supplier(db.Model):
    """Supplier catalogue entry offered when creating a task."""

    __tablename__ = "suppliers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {"id": self.id, "name": self.name}


class Task(db.Model):
    """A delivery job created by an admin and worked by drivers / warehouse."""

    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    customer_name = db.Column(db.String(200), nullable=False)
    delivery_address = db.Column(db.Text, nullable=False)
    product_name = db.Column(db.String(200), nullable=False)
    supplier = db.Column(db.String(200), nullable=True)
    number_of_bags = db.Column(db.Integer, nullable=True)
    bag_weight = db.Column(db.Float, nullable=True)
    docket_number = db.Column(db.String(100), nullable=True)
    vehicle_type = db.Column(db.String(10), default="truck", comment="truck | tank")
    haulier_tanker = db.Column(db.String(200), nullable=True)
    planned_decant_date = db.Column(db.Date, nullable=True)
    planned_delivery_date = db.Column(db.Date, nullable=True)

    assigned_driver_id = db.Column(
        db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    assigned_driver_name = db.Column(db.String(200), nullable=True)

    status = db.Column(
        db.String(20), nullable=False, default="new", index=True,
        comment="new | in_progress | completed | cancelled",
    )
    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    attachments = db.relationship(
        "TaskAttachment",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TaskAttachment.created_at",
    )

    @property
    def title(self) -> str:
        if self.docket_number:
            return f"{self.docket_number} - {self.customer_name}"
        return self.customer_name

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "customer_name": self.customer_name,
            "delivery_address": self.delivery_address,
            "product_name": self.product_name,
            "supplier": self.supplier,
            "number_of_bags": self.number_of_bags,
            "bag_weight": self.bag_weight,
            "docket_number": self.docket_number,
            "vehicle_type": self.vehicle_type,
            "haulier_tanker": self.haulier_tanker,
            "planned_decant_date": self.planned_decant_date.isoformat() if self.planned_decant_date else None,
            "planned_delivery_date": self.planned_delivery_date.isoformat() if self.planned_delivery_date else None,
            "assigned_driver_id": self.assigned_driver_id,
            "assigned_driver_name": self.assigned_driver_name,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Task #{self.id} {self.status}>"


class TaskAttachment(db.Model):
    """
    A requirement on a task: upload a document or fill in a checklist.

    Business rules:
    - attachment_type=checklist  <=> checklist_template_id is set.
    - assigned_to scopes the requirement to a department
      (transport -> driver role, warehouse -> warehouse role).
    """

    __tablename__ = "task_attachments"

    id = db.Column(db.Integer, primary_key=True)
    task_id = db.Column(
        db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    attachment_type = db.Column(db.String(20), nullable=False, comment="document | checklist")
    title = db.Column(db.String(300), nullable=False)
    checklist_template_id = db.Column(
        db.Integer, db.ForeignKey("checklist_templates.id"), nullable=True, index=True,
    )
    is_required = db.Column(db.Boolean, nullable=False, default=True)
    assigned_to = db.Column(db.String(20), nullable=False, default="transport", comment="transport | warehouse")
    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    task = db.relationship("Task", back_populates="attachments")
    template = db.relationship("ChecklistTemplate")
    submissions = db.relationship(
        "TaskSubmission",
        back_populates="attachment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="(TaskSubmission.created_at, TaskSubmission.id)",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "attachment_type": self.attachment_type,
            "title": self.title,
            "checklist_template_id": self.checklist_template_id,
            "is_required": self.is_required,
            "assigned_to": self.assigned_to,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<TaskAttachment #{self.id} {self.attachment_type} task={self.task_id}>"


class TaskSubmission(db.Model):
    """
    One fulfilment attempt for a requirement.

    Business rules:
    - form_data is set for checklist requirements, file_* for documents.
    - The latest row per attachment (max created_at, then id) is the
      current state; earlier rows are history and are never re-reviewed.
    - version is bumped on every review and checked by compare-and-set.
    """

    __tablename__ = "task_submissions"

    id = db.Column(db.Integer, primary_key=True)
    task_attachment_id = db.Column(
        db.Integer, db.ForeignKey("task_attachments.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    status = db.Column(
        db.String(20), nullable=False, default="submitted",
        comment="submitted | approved | rejected | flagged",
    )

    form_data = db.Column(db.JSON, nullable=True)
    file_path = db.Column(db.String(500), nullable=True)
    file_name = db.Column(db.String(300), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)
    mime_type = db.Column(db.String(150), nullable=True)

    submitted_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    submitted_by_name = db.Column(db.String(200), nullable=True)

    reviewed_by = db.Column(db.Integer, db.ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    reviewer_comments = db.Column(db.Text, nullable=True)

    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    attachment = db.relationship("TaskAttachment", back_populates="submissions")

    def to_dict(self):
        return {
            "id": self.id,
            "task_attachment_id": self.task_attachment_id,
            "status": self.status,
            "form_data": self.form_data,
            "file_path": self.file_path,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "submitted_by": self.submitted_by,
            "submitted_by_name": self.submitted_by_name,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewer_comments": self.reviewer_comments,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<TaskSubmission #{self.id} attachment={self.task_attachment_id} {self.status}>"
