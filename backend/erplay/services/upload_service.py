"""
Diagram image storage on local disk.

Files live in ``{UPLOAD_DIR}/diagrams/<uuid4><ext>`` and are exposed under
``/uploads/diagrams/<file>`` by the static files mount.
"""

import os
import uuid
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import aiofiles.os
from fastapi import UploadFile

from erplay.core.config import settings
from erplay.core.exceptions import FileTooLargeError, InvalidFileTypeError, ValidationError
from erplay.core.logging_config import logger

ALLOWED_EXTENSIONS = [".jpg", ".jpeg", ".png"]
ALLOWED_CONTENT_TYPES = ["image/jpeg", "image/jpg", "image/png"]
PUBLIC_PREFIX = "/uploads/diagrams/"
CHUNK_SIZE = 64 * 1024


def validate_image(upload: UploadFile) -> str:
    """Return the lowercase extension of a valid diagram image"""
    ext = os.path.splitext(upload.filename or "")[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise InvalidFileTypeError(ext or "unknown", ALLOWED_EXTENSIONS)
    if upload.content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidFileTypeError(upload.content_type or "unknown", ALLOWED_CONTENT_TYPES)
    return ext


async def save_diagram_image(upload: Optional[UploadFile]) -> Tuple[str, str]:
    """
    Validate and store an uploaded image.

    Returns (filename, public_path).
    """
    if upload is None or not upload.filename:
        raise ValidationError("Image is required", field="image")

    ext = validate_image(upload)
    directory = settings.DIAGRAMS_UPLOAD_PATH
    directory.mkdir(parents=True, exist_ok=True)

    filename = f"{uuid.uuid4()}{ext}"
    target = directory / filename
    written = 0
    try:
        async with aiofiles.open(target, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > settings.MAX_UPLOAD_SIZE:
                    raise FileTooLargeError(settings.MAX_UPLOAD_SIZE)
                await out.write(chunk)
    except FileTooLargeError:
        await remove_file(target)
        raise

    logger.info(f"[Uploads] Stored diagram image {filename} ({written} bytes)")
    return filename, f"{PUBLIC_PREFIX}{filename}"


def path_for_public(public_path: Optional[str]) -> Optional[Path]:
    """Map /uploads/diagrams/<file> back to the file on disk"""
    if not public_path or not public_path.startswith(PUBLIC_PREFIX):
        return None
    name = os.path.basename(public_path)
    if not name:
        return None
    return settings.DIAGRAMS_UPLOAD_PATH / name


async def remove_file(path: Optional[Path]) -> bool:
    if path is None:
        return False
    try:
        await aiofiles.os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"[Uploads] Could not delete {path}: {e}")
        return False


async def delete_diagram_image(public_path: Optional[str]) -> bool:
    return await remove_file(path_for_public(public_path))
