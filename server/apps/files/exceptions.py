"""Exceptions for files app.

Every public operation in ``logic.file_operations`` either returns a value
or raises one ``FileServiceError`` subclass. The transport layer maps
``status_code`` straight to the HTTP response status.
"""

from http import HTTPStatus
from typing import ClassVar


class FileServiceError(Exception):
    """Base class for errors reported by the file service."""

    status_code: ClassVar[HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR
    default_message: ClassVar[str] = 'File operation failed'

    def __init__(self, message: str | None = None) -> None:
        """Initialize FileServiceError.

        Args:
            message: Human-readable error message.
        """
        self.message = message or self.default_message
        super().__init__(self.message)


class FileValidationError(FileServiceError):
    """Raised when an upload or a query fails validation."""

    status_code = HTTPStatus.BAD_REQUEST
    default_message = 'Invalid file'


class MissingFileError(FileValidationError):
    """Raised when a write operation receives no file."""

    default_message = 'No file provided'


class UnsupportedMediaTypeError(FileValidationError):
    """Raised when the content type is not allow-listed."""

    status_code = HTTPStatus.UNSUPPORTED_MEDIA_TYPE
    default_message = 'Unsupported file type'

    def __init__(self, content_type: str) -> None:
        """Initialize UnsupportedMediaTypeError.

        Args:
            content_type: Rejected MIME type.
        """
        self.content_type = content_type
        super().__init__(f'Unsupported file type: {content_type}')


class InvalidQueryError(FileValidationError):
    """Raised when list parameters are out of range."""

    default_message = 'Invalid query parameters'


class FileTooLargeError(FileServiceError):
    """Raised when an upload exceeds the size limit."""

    status_code = HTTPStatus.REQUEST_ENTITY_TOO_LARGE

    def __init__(self, size: int, max_size: int) -> None:
        """Initialize FileTooLargeError.

        Args:
            size: Size of the rejected upload in bytes.
            max_size: Maximum allowed size in bytes.
        """
        self.size = size
        self.max_size = max_size
        super().__init__(
            f'File size {size} bytes exceeds the {max_size} bytes limit',
        )


class FileRecordNotFoundError(FileServiceError):
    """Raised when a file is absent or owned by somebody else.

    Both cases share the same message so callers cannot probe for files
    of other users.
    """

    status_code = HTTPStatus.NOT_FOUND
    default_message = 'File not found'


class ConcurrentUpdateError(FileServiceError):
    """Raised when another update replaced the file first."""

    status_code = HTTPStatus.CONFLICT
    default_message = 'File was modified by another request'


class InternalStorageError(FileServiceError):
    """Raised when the storage backend fails during an operation."""

    default_message = 'Storage backend failure'


class InternalPersistenceError(FileServiceError):
    """Raised when the database fails during an operation."""

    default_message = 'Database failure'


class StorageProviderError(Exception):
    """Raised by storage providers for any backend failure."""


class SignedUrlError(Exception):
    """Raised when a signed download token is invalid or expired."""
