"""
Document library — policy and reference files unrelated to tasks.

Uploads are renamed to a standardized filename built from the metadata:

    {Dept}_{Policy}_{Role}_{Title20}_{DDMMYYYY}_{version}.{ext}
    e.g. Trans_Safety_Driver_LoadSecuring_05032025_v1.0.pdf

and stored at ``{department lower-case}/{filename}``. Known departments,
policy areas and roles use the abbreviations below; anything else is used
with whitespace removed. The document title is the filename without its
extension.
"""

from __future__ import annotations

import logging
import os

from flask import current_app
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError

from logitask.core.exceptions import (
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from logitask.models import db
from logitask.models.document import DOCUMENT_STATUSES, Document
from logitask.services.storage import get_object_store
from logitask.utils.helpers import parse_date_input

logger = logging.getLogger(__name__)

DOCUMENT_MANAGER_ROLES = frozenset({"admin", "executive", "operational_lead"})

DEPARTMENT_ABBREVIATIONS = {
    "Warehouse": "Warehouse",
    "Transport": "Trans",
    "Operations": "Ops",
    "Administration": "Admin",
    "Finance": "Fin",
    "HR": "HR",
}

POLICY_AREA_ABBREVIATIONS = {
    "Quality Control": "QC",
    "Safety": "Safety",
    "Compliance": "Comp",
    "Operations": "Ops",
    "HR": "HR",
    "Environment": "Env",
    "Maintenance": "Maint",
    "Personal": "Personal",
}

ROLE_ABBREVIATIONS = {
    "Admin": "Admin",
    "Driver": "Driver",
    "Warehouse": "Warehouse",
    "Executive": "Exec",
    "Operational Lead": "OpsLead",
    "Logistics": "Logistics",
    "HR Manager": "HRMgr",
}

# Office documents accepted by the library
ALLOWED_EXTENSIONS = {"pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt"}


def _require_manager(user, action: str) -> None:
    if user.role not in DOCUMENT_MANAGER_ROLES:
        raise PermissionDenied(user.id, action, "only admins, executives and operational leads manage documents")


def _abbreviate(value: str, table: dict[str, str]) -> str:
    return table.get(value) or "".join(value.split())


def standardized_filename(*, department, policy_area, responsible_role, title,
                          document_date, version, extension) -> str:
    """Build the library filename from document metadata."""
    title_clean = "".join(title.split())[:20]
    return (
        f"{_abbreviate(department, DEPARTMENT_ABBREVIATIONS)}_"
        f"{_abbreviate(policy_area, POLICY_AREA_ABBREVIATIONS)}_"
        f"{_abbreviate(responsible_role, ROLE_ABBREVIATIONS)}_"
        f"{title_clean}_{document_date.strftime('%d%m%Y')}_{version}.{extension}"
    )


def normalise_tags(tags) -> list[str]:
    """Lower-case, trimmed, de-duplicated, first occurrence order kept."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    result: list[str] = []
    for tag in tags:
        clean = str(tag).strip().lower()
        if clean and clean not in result:
            result.append(clean)
    return result


def _normalise_status(value) -> str:
    status = (value or "active").strip().lower()
    if status not in DOCUMENT_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(DOCUMENT_STATUSES)}",
            details={"status": value},
        )
    return status


def get_document(document_id: int) -> Document:
    document = db.session.get(Document, document_id)
    if document is None:
        raise NotFoundError("Document", document_id)
    return document


def list_documents(*, search=None, department=None, status=None, policy_area=None, tag=None) -> list[Document]:
    """Library listing, newest first, with optional filters."""
    stmt = select(Document).order_by(Document.created_at.desc(), Document.id.desc())
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Document.title.ilike(pattern), Document.file_name.ilike(pattern)))
    if department:
        stmt = stmt.where(Document.department == department)
    if status:
        stmt = stmt.where(Document.status == status.strip().lower())
    if policy_area:
        stmt = stmt.where(Document.policy_area == policy_area)

    documents = list(db.session.execute(stmt).scalars())
    if tag:
        wanted = tag.strip().lower()
        documents = [d for d in documents if wanted in (d.tags or [])]
    return documents


def upload_document(metadata: dict, *, file_name: str, data: bytes, mime_type: str | None, user) -> Document:
    """
    Store a library document under its standardized filename.

    Args:
        metadata: title, department, policy_area, responsible_role,
                  document_date, version, status?, tags?
    """
    _require_manager(user, "upload_document")

    errors: dict[str, str] = {}
    values = {}
    for key, label in (("title", "Document name"), ("department", "Department"),
                       ("policy_area", "Policy area"), ("responsible_role", "Responsible role"),
                       ("version", "Version")):
        values[key] = (metadata.get(key) or "").strip()
        if not values[key]:
            errors[key] = f"{label} is required"
    if len(values["title"]) > 200:
        errors["title"] = "Document name must be at most 200 characters"

    try:
        document_date = parse_date_input(metadata.get("document_date"))
    except ValueError as exc:
        document_date = None
        errors["document_date"] = str(exc)
    if document_date is None and "document_date" not in errors:
        errors["document_date"] = "Date is required"

    extension = os.path.splitext(file_name or "")[1].lstrip(".").lower()
    if extension not in ALLOWED_EXTENSIONS:
        errors["file"] = f"File type not allowed. Accepted: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
    elif not data:
        errors["file"] = "Please select a file to upload"
    else:
        max_bytes = current_app.config.get("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)
        if len(data) > max_bytes:
            errors["file"] = f"File is too large. Maximum size is {max_bytes // (1024 * 1024)}MB"

    if errors:
        raise ValidationError("Document details are invalid", details=errors)
    status = _normalise_status(metadata.get("status"))

    filename = standardized_filename(
        department=values["department"],
        policy_area=values["policy_area"],
        responsible_role=values["responsible_role"],
        title=values["title"],
        document_date=document_date,
        version=values["version"],
        extension=extension,
    )
    path = f"{values['department'].lower()}/{filename}"

    if db.session.execute(select(Document.id).where(Document.file_path == path)).first():
        raise ConflictError("Document", f"A document named {filename} already exists")

    store = get_object_store()
    if store.exists(path):
        logger.warning("Replacing stored file %s that no document owns", path)
    store.put(path, data, overwrite=True)

    document = Document(
        title=filename[: -(len(extension) + 1)],
        file_path=path,
        file_name=filename,
        file_size=len(data),
        mime_type=mime_type,
        department=values["department"],
        policy_area=values["policy_area"],
        responsible_role=values["responsible_role"],
        status=status,
        version=values["version"],
        tags=normalise_tags(metadata.get("tags")),
        document_date=document_date,
        uploaded_by=user.id,
    )
    db.session.add(document)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        store.delete(path)
        raise ConflictError("Document", f"A document named {filename} already exists") from exc
    logger.info("Document %s uploaded as %s", document.id, path)
    return document


def update_document(document_id: int, data: dict, user) -> Document:
    """Update status and tags; the stored file and its name are fixed."""
    _require_manager(user, "update_document")
    document = get_document(document_id)
    if "status" in data:
        document.status = _normalise_status(data.get("status"))
    if "tags" in data:
        document.tags = normalise_tags(data.get("tags"))
    db.session.commit()
    return document


def document_download_url(document_id: int) -> str:
    return get_object_store().signed_url(get_document(document_id).file_path)


def delete_document(document_id: int, user) -> None:
    _require_manager(user, "delete_document")
    document = get_document(document_id)
    path = document.file_path
    db.session.delete(document)
    db.session.commit()
    try:
        get_object_store().delete(path)
    except (InfrastructureError, ValidationError):
        logger.warning("Could not remove stored document %s", path, exc_info=True)
