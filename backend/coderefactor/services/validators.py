"""
Upload validation for code files and zip archives

A file is accepted when either its declared MIME type or its extension is
on the allow-list; size is checked after the content is read into memory.
"""
import os
from typing import Optional, Set, Tuple
from fastapi import UploadFile

from coderefactor.services.languages import ALLOWED_CODE_EXTENSIONS

# =============================================================================
# Constants
# =============================================================================

ALLOWED_CODE_MIME_TYPES: Set[str] = {
    "application/javascript",
    "text/javascript",
    "text/plain",
}

ALLOWED_ZIP_MIME_TYPES: Set[str] = {
    "application/zip",
    "application/x-zip-compressed",
}
ALLOWED_ARCHIVE_EXTENSIONS: Set[str] = {".zip"}

INVALID_CODE_TYPE_MESSAGE = "Invalid file type. Only JavaScript files are allowed."
INVALID_ZIP_TYPE_MESSAGE = "Invalid file type. Only ZIP files are allowed."

# =============================================================================
# File Validation
# =============================================================================

class FileValidationError(Exception):
    """Raised when file validation fails"""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


def is_allowed_type(
    filename: str,
    content_type: Optional[str],
    allowed_mime_types: Set[str],
    allowed_extensions: Set[str],
) -> bool:
    """True when the MIME type OR the extension is allowed"""
    _, extension = os.path.splitext((filename or "").lower())
    return (content_type or "") in allowed_mime_types or extension in allowed_extensions


def validate_file_size(
    file_size: int,
    max_size: int,
    category: str = "file"
) -> None:
    """
    Validate file size against maximum.

    Raises:
        FileValidationError: If file too large
    """
    if file_size > max_size:
        raise FileValidationError(
            f"File too large for {category}. Maximum size is {max_size / (1024*1024):.1f} MB",
            {"max_bytes": max_size, "received_bytes": file_size}
        )


async def validate_upload_file(
    file: UploadFile,
    allowed_mime_types: Set[str],
    allowed_extensions: Set[str],
    max_size: int,
    invalid_type_message: str,
    category: str = "file",
) -> Tuple[bytes, str]:
    """
    Fully validate an uploaded file.

    Args:
        file: FastAPI UploadFile
        allowed_mime_types: Accepted declared content types
        allowed_extensions: Accepted filename extensions
        max_size: Maximum file size in bytes
        invalid_type_message: Message used when neither type nor extension match
        category: Category for error messages

    Returns:
        Tuple of (content_bytes, filename)

    Raises:
        FileValidationError: If validation fails
    """
    filename = file.filename or ""

    if not is_allowed_type(filename, file.content_type, allowed_mime_types, allowed_extensions):
        raise FileValidationError(
            invalid_type_message,
            {"filename": filename, "content_type": file.content_type},
        )

    content = await file.read()
    validate_file_size(len(content), max_size, category)

    return content, filename


async def validate_code_upload(file: UploadFile, max_size: int) -> Tuple[bytes, str]:
    return await validate_upload_file(
        file,
        ALLOWED_CODE_MIME_TYPES,
        ALLOWED_CODE_EXTENSIONS,
        max_size,
        INVALID_CODE_TYPE_MESSAGE,
        category="code file",
    )


async def validate_zip_upload(file: UploadFile, max_size: int) -> Tuple[bytes, str]:
    return await validate_upload_file(
        file,
        ALLOWED_ZIP_MIME_TYPES,
        ALLOWED_ARCHIVE_EXTENSIONS,
        max_size,
        INVALID_ZIP_TYPE_MESSAGE,
        category="archive",
    )
