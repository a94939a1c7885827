"""File validation utilities for document uploads"""

import os
import re
from typing import Optional, Tuple


# Office documents, PDF and plain text
SUPPORTED_MIME_TYPES = {
    'application/pdf',
    'application/msword',  # .doc
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',  # .docx
    'application/vnd.ms-excel',  # .xls
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',  # .xlsx
    'application/vnd.ms-powerpoint',  # .ppt
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',  # .pptx
    'text/plain',
    'text/csv',
    'image/jpeg',  # scanned documents
    'image/png',
}


def is_supported_mime_type(mime_type: str) -> bool:
    """Check if MIME type is supported for upload

    Example:
        >>> is_supported_mime_type('application/pdf')
        True
        >>> is_supported_mime_type('application/x-msdownload')
        False
    """
    return mime_type in SUPPORTED_MIME_TYPES


def validate_file_size(size_bytes: int, max_size: int) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> validate_file_size(1024, 10 * 1024 * 1024)
        (True, None)
        >>> validate_file_size(0, 10 * 1024 * 1024)
        (False, 'File is empty (0 bytes)')
    """
    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: str) -> Tuple[bool, Optional[str]]:
    """Validate an uploaded filename

    Validation rules:
    - Not empty
    - Max 255 characters
    - No path traversal (../, ..\\)
    - No null bytes or control characters

    Example:
        >>> validate_filename('policy.pdf')
        (True, None)
        >>> validate_filename('')
        (False, 'Filename cannot be empty')
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if '..' in filename or '/' in filename or '\\' in filename:
        return False, "Filename contains path traversal or directory separators"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage

    Example:
        >>> sanitize_filename('../../policy.pdf')
        'policy.pdf'
        >>> sanitize_filename('hr policy (v2).pdf')
        'hr_policy_v2_.pdf'
    """
    filename = os.path.basename(filename)
    filename = re.sub(r'[^\w\s.-]', '_', filename)
    filename = re.sub(r'[\s_]+', '_', filename)

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[:255 - len(ext)] + ext

    return filename


def format_file_size(size_bytes: int) -> str:
    """Human readable size with one decimal place.

    Example:
        >>> format_file_size(512)
        '512.0 B'
        >>> format_file_size(1536)
        '1.5 KB'
        >>> format_file_size(5 * 1024 * 1024)
        '5.0 MB'
    """
    size = float(size_bytes or 0)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"
