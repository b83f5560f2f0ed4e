# Overview: Local file storage for uploaded images and voice notes.

from __future__ import annotations

import base64
import binascii
import os
import re
import secrets

from flask import current_app, has_request_context, request
from werkzeug.utils import secure_filename

# Stored references look like /uploads/<category>/<32 hex>.<ext>
UPLOAD_URL_PREFIX = "/uploads"

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)

_MIME_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/aac": "aac",
    "audio/wav": "wav",
    "audio/webm": "webm",
    "audio/ogg": "ogg",
}


class StorageError(ValueError):
    pass


def _upload_root() -> str:
    return current_app.config["UPLOAD_FOLDER"]


def _extension(filename: str | None, default: str) -> str:
    name = secure_filename(filename or "")
    _, ext = os.path.splitext(name)
    return (ext.lstrip(".").lower() or default)[:10]


def save_upload(category: str, filename: str | None, data: bytes, *, default_ext: str = "bin") -> str:
    """Write bytes under <UPLOAD_FOLDER>/<category>/ and return the stored reference."""
    if not data:
        raise StorageError("Uploaded file is empty")
    category = secure_filename(category)
    folder = os.path.join(_upload_root(), category)
    os.makedirs(folder, exist_ok=True)

    name = f"{secrets.token_hex(16)}.{_extension(filename, default_ext)}"
    with open(os.path.join(folder, name), "wb") as fh:
        fh.write(data)

    current_app.logger.debug("Stored upload %s/%s (%d bytes)", category, name, len(data))
    return f"{UPLOAD_URL_PREFIX}/{category}/{name}"


def save_file_storage(category: str, file_storage) -> str:
    """Persist a werkzeug FileStorage from request.files."""
    return save_upload(category, file_storage.filename, file_storage.read(), default_ext="jpg")


def save_base64(category: str, payload: str, *, default_ext: str) -> str:
    """
    Persist a base64 payload, either a data URL ("data:image/png;base64,...")
    or bare base64 text.
    """
    if not isinstance(payload, str) or not payload.strip():
        raise StorageError("Invalid base64 payload")

    ext = default_ext
    raw = payload.strip()
    match = _DATA_URL.match(raw)
    if match:
        ext = _MIME_EXTENSIONS.get(match.group("mime").lower(), default_ext)
        raw = match.group("data")

    try:
        data = base64.b64decode(raw, validate=False)
    except (binascii.Error, ValueError):
        raise StorageError("Invalid base64 payload")

    return save_upload(category, f"upload.{ext}", data, default_ext=default_ext)


def delete_upload(path: str | None) -> bool:
    if not path or not path.startswith(UPLOAD_URL_PREFIX + "/"):
        return False
    relative = path[len(UPLOAD_URL_PREFIX) + 1:]
    full = os.path.normpath(os.path.join(_upload_root(), relative))
    if not full.startswith(os.path.normpath(_upload_root())):
        return False
    if os.path.exists(full):
        os.remove(full)
        return True
    return False


def public_url(path: str | None) -> str | None:
    """Expand a stored reference to an absolute URL for responses."""
    if not path or not has_request_context():
        return path
    if path.startswith("http://") or path.startswith("https://"):
        return path
    return request.host_url.rstrip("/") + path
