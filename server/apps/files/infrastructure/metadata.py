"""Validation rules and naming helpers for uploaded files."""

import re
import uuid
from collections.abc import Collection
from pathlib import Path
from typing import Final

from server.apps.files.exceptions import (
    FileTooLargeError,
    FileValidationError,
    MissingFileError,
    UnsupportedMediaTypeError,
)

MAX_FILENAME_LENGTH: Final = 255

_BLOB_PREFIX: Final = 'files'
_MAX_EXTENSION_LENGTH: Final = 16
_EXTENSION_DISALLOWED_CHARS: Final = re.compile('[^a-z0-9]')


def validate_payload(file_bytes: bytes | None, file_name: str | None) -> None:
    """Check that a write operation actually carries a file.

    Args:
        file_bytes: Raw file content.
        file_name: Filename supplied by the uploader.

    Raises:
        MissingFileError: If content or name is missing.
        FileValidationError: If the name is longer than
            MAX_FILENAME_LENGTH.
    """
    if file_bytes is None or not file_name:
        raise MissingFileError()
    if len(file_name) > MAX_FILENAME_LENGTH:
        raise FileValidationError(
            f'Filename is longer than {MAX_FILENAME_LENGTH} characters',
        )


def validate_content_type(
    content_type: str,
    allowed_content_types: Collection[str],
) -> None:
    """Validate MIME type against the allow-list.

    Args:
        content_type: MIME type declared by the client.
        allowed_content_types: Accepted MIME types.

    Raises:
        UnsupportedMediaTypeError: If the type is not allowed.
    """
    if content_type not in allowed_content_types:
        raise UnsupportedMediaTypeError(content_type)


def validate_file_size(file_bytes: bytes, size: int, max_size: int) -> None:
    """Validate declared size against content and the size limit.

    Args:
        file_bytes: Raw file content.
        size: Declared size in bytes.
        max_size: Maximum allowed size in bytes.

    Raises:
        FileValidationError: If size is negative or does not match content.
        FileTooLargeError: If size exceeds the limit.
    """
    if size < 0:
        raise FileValidationError('File size cannot be negative')
    if size > max_size:
        raise FileTooLargeError(size=size, max_size=max_size)
    if size != len(file_bytes):
        raise FileValidationError(
            f'Declared size {size} does not match content '
            f'length {len(file_bytes)}',
        )


def get_file_extension(filename: str) -> str:
    """Get a storage-safe file extension from filename.

    Args:
        filename: Filename (e.g., 'Report.PDF').

    Returns:
        Extension without dot, lowercase, alphanumeric only (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = Path(filename).suffix.lstrip('.').lower()
    extension = _EXTENSION_DISALLOWED_CHARS.sub('', extension)
    return extension[:_MAX_EXTENSION_LENGTH]


def generate_storage_key(filename: str) -> str:
    """Generate a fresh storage key keeping the original extension.

    No existence check is done, uuid4 collisions are not a concern.

    Args:
        filename: Original filename.

    Returns:
        Key such as '0f8c...e1.pdf', or the bare uuid without extension.
    """
    extension = get_file_extension(filename)
    key = str(uuid.uuid4())
    if extension:
        return f'{key}.{extension}'
    return key


def build_blob_key(owner_id: int, storage_key: str) -> str:
    """Build blob location inside the bucket.

    Args:
        owner_id: ID of the owning user.
        storage_key: Generated storage key.

    Returns:
        Blob key (e.g., 'files/42/0f8c...e1.pdf').
    """
    return f'{_BLOB_PREFIX}/{owner_id}/{storage_key}'
