"""
Image Loader Module

Reads uploaded images into memory and validates them before processing.
The upload is read exactly once; downstream stages share the same bytes.
"""

from pathlib import Path
from typing import Optional, Tuple

from fastapi import UploadFile

from autorig.core.exceptions import InvalidImageError, UploadError


def read_upload(upload_file: Optional[UploadFile], max_bytes: Optional[int] = None) -> Tuple[bytes, Optional[str]]:
    """
    Read a FastAPI UploadFile.

    Returns:
        (contents, original filename)

    Raises:
        UploadError: missing or empty upload
        InvalidImageError: upload exceeds max_bytes
    """
    if upload_file is None:
        raise UploadError()

    contents = upload_file.file.read()
    if not contents:
        raise UploadError("Uploaded file is empty", details=upload_file.filename)

    if max_bytes is not None and len(contents) > max_bytes:
        raise InvalidImageError(
            "Image exceeds maximum upload size",
            details=f"Size: {len(contents)} bytes, Max: {max_bytes} bytes",
        )

    return contents, upload_file.filename


def load_from_path(file_path: str) -> Tuple[bytes, str]:
    """Read an image file from disk (CLI and tests)."""
    path = Path(file_path)
    try:
        contents = path.read_bytes()
    except OSError as e:
        raise UploadError("Cannot read image file", details=str(e))
    if not contents:
        raise UploadError("Image file is empty", details=str(path))
    return contents, path.name


__all__ = [
    "read_upload",
    "load_from_path",
]
