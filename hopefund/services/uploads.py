# hopefund/services/uploads.py
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from hopefund.errors import ValidationError

log = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp", "svg"}
DOCUMENT_EXTENSIONS = {"pdf", "doc", "docx", "png", "jpg", "jpeg"}
MAX_FILE_BYTES = 5 * 1024 * 1024

_KINDS = {
    "image": (IMAGE_EXTENSIONS, "Image size must be less than 5MB"),
    "document": (DOCUMENT_EXTENSIONS, "File size must be less than 5MB"),
}

URL_PREFIX = "/uploads"


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def _file_size(storage: FileStorage) -> int:
    stream = storage.stream
    pos = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(pos)
    return size


def upload_root() -> Path:
    return Path(current_app.config["UPLOAD_FOLDER"])


def save_upload(storage: Optional[FileStorage], kind: str = "image") -> str:
    """
    Store an uploaded file under UPLOAD_FOLDER/<kind>s/ with a unique,
    sanitized name. Returns the public path (/uploads/images/...).
    """
    if storage is None or not storage.filename:
        raise ValidationError(["Please upload a required document." if kind == "document" else "Image is required"])

    allowed, too_big = _KINDS[kind]
    filename = secure_filename(storage.filename) or "upload"
    ext = _extension(filename)
    if ext not in allowed:
        raise ValidationError([f"File type .{ext or '?'} is not allowed. Allowed: {', '.join(sorted(allowed))}"])
    if _file_size(storage) > MAX_FILE_BYTES:
        raise ValidationError([too_big])

    stem = filename.rsplit(".", 1)[0][:40] or "upload"
    name = f"{stem}-{uuid.uuid4().hex[:12]}.{ext}"
    folder = upload_root() / f"{kind}s"
    folder.mkdir(parents=True, exist_ok=True)
    storage.save(str(folder / name))
    log.info("Stored %s upload %s", kind, name)
    return f"{URL_PREFIX}/{kind}s/{name}"


def delete_upload(public_path: Optional[str]) -> bool:
    """Remove a file previously returned by save_upload. Foreign URLs are left alone."""
    if not public_path or not public_path.startswith(URL_PREFIX + "/"):
        return False
    relative = public_path[len(URL_PREFIX) + 1 :]
    root = upload_root().resolve()
    target = (root / relative).resolve()
    if root not in target.parents:
        raise ValidationError(["Invalid upload path"])
    if not target.exists():
        return False
    target.unlink()
    return True
