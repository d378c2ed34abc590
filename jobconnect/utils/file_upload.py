"""
File Upload Utility - store student documents in the uploads directory.

Only PDFs are accepted. Each file is checked with PyPDF2 before it is
written, so the transcript pipeline never receives something that is not
a readable PDF.

Max file size: MAX_UPLOAD_MB (default 5MB)
"""

import io
import logging
import os
import secrets
import time

from fastapi import UploadFile, HTTPException
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from jobconnect.core.config import get_settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.pdf'}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def validate_pdf(content: bytes) -> int:
    """Return the page count, or raise HTTPException if the bytes are not a usable PDF."""
    try:
        reader = PdfReader(io.BytesIO(content))
        pages = len(reader.pages)
    except (PdfReadError, ValueError, OSError) as e:
        raise HTTPException(status_code=400, detail=f"Error reading PDF: {str(e)}")
    if pages == 0:
        raise HTTPException(status_code=400, detail="PDF has no pages")
    return pages


def build_stored_name(owner: str) -> str:
    """Unique filename: <owner>-<millis>-<random>.pdf"""
    return f"{owner}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}.pdf"


async def save_pdf_upload(file: UploadFile, owner: str) -> str:
    """
    Validate and store an uploaded PDF.

    Args:
        file: FastAPI UploadFile
        owner: prefix for the stored name (the student number)

    Returns:
        Stored filename, relative to UPLOADS_DIR

    Raises:
        HTTPException on validation errors
    """
    settings = get_settings()
    max_bytes = settings.max_upload_mb * 1024 * 1024

    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Only PDF files are allowed"
        )

    content = await file.read()

    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {settings.max_upload_mb}MB"
        )

    pages = validate_pdf(content)

    os.makedirs(settings.uploads_dir, exist_ok=True)
    stored_name = build_stored_name(owner)
    with open(os.path.join(settings.uploads_dir, stored_name), "wb") as f:
        f.write(content)

    logger.info("Stored upload %s (%d pages) as %s", file.filename, pages, stored_name)
    return stored_name
