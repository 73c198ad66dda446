"""File validation utilities for interview attachments.

Security: Validates both the declared MIME type and the file content
(magic bytes), and enforces size limits before anything reaches the
object store.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

import magic
import structlog

if TYPE_CHECKING:
    from fastapi import UploadFile

from talent_pipeline.core.config import settings
from talent_pipeline.core.errors import UnsupportedFileTypeError, ValidationError

logger = structlog.get_logger()

# Chunk size for reading files (64 KB)
CHUNK_SIZE_BYTES = 64 * 1024

# Interview attachments and feedback files
ATTACHMENT_MIMES: dict[str, str] = {
    "application/pdf": "PDF",
    "image/jpeg": "JPEG",
    "image/png": "PNG",
}

# Resumes and job description files
DOCUMENT_MIMES: dict[str, str] = {
    "application/pdf": "PDF",
}


@dataclass(frozen=True)
class Attachment:
    """An uploaded file before it is handed to the object store.

    Attributes:
        filename: Client-supplied file name.
        content_type: Declared MIME type.
        content: Raw bytes.
    """

    filename: str
    content_type: str
    content: bytes


async def read_upload(
    file: "UploadFile",
    max_size: int | None = None,
) -> Attachment:
    """Read an UploadFile with a size limit to prevent DoS.

    Args:
        file: UploadFile from FastAPI.
        max_size: Maximum allowed size in bytes. Defaults to settings.

    Returns:
        Attachment carrying the declared type and content.

    Raises:
        ValidationError: If file exceeds size limit.
    """
    limit = max_size or settings.attachment_max_size_bytes
    content = b""
    total_size = 0

    while True:
        chunk = await file.read(CHUNK_SIZE_BYTES)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > limit:
            raise ValidationError(
                message=f"File too large. Maximum size: {limit // (1024 * 1024)}MB",
                details=[{"field": "file", "error": "FILE_TOO_LARGE"}],
            )
        content += chunk

    return Attachment(
        filename=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        content=content,
    )


def validate_attachment(
    attachment: Attachment,
    allowed: dict[str, str] = ATTACHMENT_MIMES,
    field: str = "file",
) -> str:
    """Check an attachment's declared type and content against an allow-list.

    Args:
        attachment: The uploaded file.
        allowed: MIME type -> label map of accepted types.
        field: Payload field name for error details.

    Returns:
        The declared MIME type (already verified).

    Raises:
        ValidationError: Empty file.
        UnsupportedFileTypeError: Declared or detected type not allowed.
    """
    labels = sorted(set(allowed.values()))
    declared = attachment.content_type.split(";")[0].strip().lower()
    if declared not in allowed:
        raise UnsupportedFileTypeError(declared, labels, field=field)

    if not attachment.content:
        raise ValidationError(
            message="File is empty",
            details=[{"field": field, "error": "EMPTY_FILE"}],
        )

    detected = magic.from_buffer(attachment.content, mime=True)
    if detected not in allowed:
        # Log detected MIME for server-side debugging; do NOT expose to client
        logger.warning(
            "Attachment content validation failed",
            declared_mime=declared,
            detected_mime=detected,
            filename=attachment.filename,
        )
        raise UnsupportedFileTypeError(declared, labels, field=field)

    return declared
