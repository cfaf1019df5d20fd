"""Disk storage for multipart uploads"""

import os
import random
import time
from typing import List, Optional

from fastapi import HTTPException, UploadFile, status
from loguru import logger

from campushire.core.config import settings

IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/webp"]
DOCUMENT_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
]

# field -> (sub directory, allowed content types)
UPLOAD_FIELDS = {
    "profile_photo": ("profiles", IMAGE_TYPES),
    "id_card": ("idcards", IMAGE_TYPES),
    "resume": ("resumes", IMAGE_TYPES + DOCUMENT_TYPES),
    "cover_letter": ("coverletters", IMAGE_TYPES + DOCUMENT_TYPES),
}
DEFAULT_FIELD = ("misc", IMAGE_TYPES + DOCUMENT_TYPES)
UPLOAD_SUBDIRS = [subdir for subdir, _ in UPLOAD_FIELDS.values()] + [DEFAULT_FIELD[0]]


def _upload_error(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def upload_path(subdir: str) -> str:
    path = os.path.join(settings.UPLOAD_DIR, subdir)
    os.makedirs(path, exist_ok=True)
    return path


def unique_filename(original: Optional[str]) -> str:
    name, ext = os.path.splitext(os.path.basename(original or "file"))
    return f"{name or 'file'}-{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"


def allowed_types(field: str) -> List[str]:
    return UPLOAD_FIELDS.get(field, DEFAULT_FIELD)[1]


async def save_upload(file: Optional[UploadFile], field: str) -> Optional[str]:
    """Validate and store an upload, returning its path relative to the upload root.

    Returns None when no file was sent.
    """
    if file is None or not file.filename:
        return None

    subdir, types = UPLOAD_FIELDS.get(field, DEFAULT_FIELD)
    if file.content_type not in types:
        raise _upload_error(f"Invalid file type. Allowed types: {', '.join(types)}")

    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise _upload_error("File too large. Maximum size is 5MB.")

    filename = unique_filename(file.filename)
    with open(os.path.join(upload_path(subdir), filename), "wb") as out:
        out.write(content)

    logger.info(f"Stored upload {field} as {subdir}/{filename} ({len(content)} bytes)")
    return f"{subdir}/{filename}"
