"""
Storage Blueprint — serves stored objects behind signed URLs.

    GET /api/v1/storage/<token>

The token is a storage JWT naming one object path; it carries its own
expiry, so no bearer token is needed.
"""

import logging
import mimetypes
import posixpath

import jwt as pyjwt
from flask import Blueprint, Response

from logitask.services.jwt_service import decode_storage_token
from logitask.services.storage import get_object_store
from logitask.utils.errors import E, api_error

logger = logging.getLogger(__name__)

storage_bp = Blueprint("storage", __name__, url_prefix="/api/v1/storage")


@storage_bp.route("/<path:token>", methods=["GET"])
def fetch_object(token):
    try:
        payload = decode_storage_token(token)
    except pyjwt.ExpiredSignatureError:
        return api_error(E.UNAUTHENTICATED, "Link expired")
    except pyjwt.InvalidTokenError:
        return api_error(E.UNAUTHENTICATED, "Invalid link")

    path = payload.get("path") or ""
    data = get_object_store().open(path)
    mime_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    filename = posixpath.basename(path)
    return Response(
        data,
        mimetype=mime_type,
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
