"""
CiviSure - Evidence Upload Storage

Evidence attachments are written to UPLOAD_DIR under random names and
referenced from crime reports by filename only. They are served back
under /uploads.
"""

import logging
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import UploadFile

from civisure.config import settings
from civisure.errors import InvalidInput

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def evidence_extension(upload: UploadFile) -> str:
    return Path(upload.filename or "").suffix.lower()


def check_evidence_type(upload: UploadFile) -> None:
    ext = evidence_extension(upload)
    if ext not in settings.ALLOWED_EVIDENCE_EXTENSIONS:
        raise InvalidInput(f"File type not allowed: {ext or 'unknown'}")


async def write_evidence(upload: UploadFile) -> str:
    """
    Stream one attachment into UPLOAD_DIR and return its stored name.

    The size cap is checked per chunk, so an oversized upload is cut off
    and its partial file removed before it is fully read.
    """
    stored_name = f"{uuid.uuid4().hex}{evidence_extension(upload)}"
    target = settings.UPLOAD_DIR / stored_name
    limit = settings.MAX_FILE_SIZE_MB * 1024 * 1024
    written = 0

    try:
        with open(target, "wb") as out:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > limit:
                    raise InvalidInput(
                        f"File too large. Maximum size is {settings.MAX_FILE_SIZE_MB}MB"
                    )
                out.write(chunk)
    except InvalidInput:
        target.unlink(missing_ok=True)
        raise

    logger.info(f"Stored evidence {stored_name} ({written} bytes)")
    return stored_name


def delete_stored_files(filenames: List[str]) -> None:
    for name in filenames:
        (settings.UPLOAD_DIR / name).unlink(missing_ok=True)


async def store_evidence(files: Optional[List[UploadFile]]) -> List[str]:
    """
    Validate and store up to MAX_EVIDENCE_FILES attachments.

    Returns the stored filenames in upload order. If any file is rejected,
    files already written for this submission are removed.
    """
    uploads = [f for f in (files or []) if f is not None and f.filename]
    if len(uploads) > settings.MAX_EVIDENCE_FILES:
        raise InvalidInput(f"At most {settings.MAX_EVIDENCE_FILES} evidence files are allowed")

    for upload in uploads:
        check_evidence_type(upload)

    stored: List[str] = []
    try:
        for upload in uploads:
            stored.append(await write_evidence(upload))
    except InvalidInput:
        delete_stored_files(stored)
        raise

    return stored
