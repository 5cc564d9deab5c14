"""
Object store adapter.

Uploaded files (task document submissions, library documents) are stored
under ``STORAGE_ROOT`` by object path. Reads go through time-bounded signed
URLs: a storage JWT naming the path, served by ``storage_bp``.

Path conventions:
    task submissions   {task_id}/{attachment_id}/{epoch_ms}.{ext}
    library documents  {department}/{standardized-filename}

Usage:
    from logitask.services.storage import get_object_store

    store = get_object_store()
    store.put("12/40/1700000000000.pdf", data)
    url = store.signed_url("12/40/1700000000000.pdf")
"""

from __future__ import annotations

import logging
import os
import posixpath

from flask import current_app

from logitask.core.exceptions import InfrastructureError, NotFoundError, ValidationError
from logitask.services.jwt_service import generate_storage_token

logger = logging.getLogger(__name__)

_EXTENSION_KEY = "object_store"


class LocalObjectStore:
    """Filesystem-backed object store rooted at a single directory."""

    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    def _resolve(self, path: str) -> str:
        clean = posixpath.normpath(path.replace("\\", "/")).lstrip("/")
        if not clean or clean == "." or clean.startswith(".."):
            raise ValidationError("Invalid storage path", details={"path": path})
        return os.path.join(self.root, *clean.split("/"))

    def put(self, path: str, data: bytes, *, overwrite: bool = False) -> str:
        """Write ``data`` at ``path``. Returns the normalised object path."""
        full = self._resolve(path)
        if os.path.exists(full) and not overwrite:
            raise ValidationError("An object already exists at this path", details={"path": path})
        try:
            os.makedirs(os.path.dirname(full), exist_ok=True)
            with open(full, "wb") as fh:
                fh.write(data)
        except OSError as exc:
            logger.exception("Object store write failed path=%s", path)
            raise InfrastructureError("object upload", exc) from exc
        return posixpath.normpath(path).lstrip("/")

    def open(self, path: str) -> bytes:
        full = self._resolve(path)
        if not os.path.isfile(full):
            raise NotFoundError("StoredObject", path)
        with open(full, "rb") as fh:
            return fh.read()

    def exists(self, path: str) -> bool:
        return os.path.isfile(self._resolve(path))

    def delete(self, path: str) -> bool:
        """Remove an object; returns False when it was already absent."""
        full = self._resolve(path)
        try:
            os.remove(full)
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.exception("Object store delete failed path=%s", path)
            raise InfrastructureError("object delete", exc) from exc
        return True

    def root_writable(self) -> bool:
        try:
            os.makedirs(self.root, exist_ok=True)
        except OSError:
            return False
        return os.access(self.root, os.W_OK)

    def signed_url(self, path: str, expires_in: int | None = None) -> str:
        """Return a read URL for ``path`` valid for ``expires_in`` seconds."""
        ttl = expires_in or current_app.config.get("SIGNED_URL_TTL", 3600)
        token = generate_storage_token(path, ttl)
        return f"/api/v1/storage/{token}"


def init_object_store(app) -> None:
    """Attach the configured object store to the app."""
    app.extensions[_EXTENSION_KEY] = LocalObjectStore(app.config["STORAGE_ROOT"])


def get_object_store() -> LocalObjectStore:
    return current_app.extensions[_EXTENSION_KEY]
