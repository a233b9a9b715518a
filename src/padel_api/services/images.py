# src/padel_api/services/images.py

import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from padel_api.core.config import settings
from padel_api.core.errors import ErrorKind, UserServiceError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


async def save_image(upload: UploadFile) -> str:
    """Writes an uploaded avatar under UPLOAD_DIR and returns the stored path."""
    extension = Path(upload.filename or "").suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise UserServiceError(
            ErrorKind.VALIDATION,
            f"Unsupported image type '{extension or upload.filename}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}.",
        )

    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    destination = upload_dir / f"{uuid.uuid4().hex}{extension}"

    content = await upload.read()
    destination.write_bytes(content)
    logger.info(f"Stored image '{upload.filename}' at {destination} ({len(content)} bytes).")
    return str(destination)


def delete_image(path: Optional[str]) -> None:
    """Best-effort removal of a stored avatar. The placeholder image is never removed."""
    if not path or path == settings.DEFAULT_IMAGE:
        return
    try:
        Path(path).unlink(missing_ok=True)
        logger.info(f"Deleted image {path}.")
    except OSError as e:
        logger.warning(f"Could not delete image {path}: {e}")
