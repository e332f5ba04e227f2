"""Custom storage backend for S3-compatible storage."""

import logging
from typing import Any, final, override

from django.core.files.base import ContentFile
from django.utils.http import content_disposition_header
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


@final
class BlobStorage(S3Storage):
    """S3 storage backend for file blobs.

    Extends django-storages S3Storage with:
    - Writing raw bytes with an explicit content type
    - Download URLs that carry the display filename
    - Enhanced error logging
    """

    def write_bytes(self, name: str, data: bytes, content_type: str) -> str:
        """Write raw bytes under the given key.

        Args:
            name: Blob key.
            data: File content.
            content_type: MIME type stored with the object.

        Returns:
            Key the object was stored under.
        """
        content = ContentFile(data, name=name)
        # S3Storage reads the ContentType write parameter from here
        content.content_type = content_type  # type: ignore[attr-defined]
        return self.save(name, content)

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to S3 with error handling and logging.

        Args:
            name: Storage path for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage path used.

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading blob to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded blob: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload blob to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Deleting a missing key succeeds.

        Args:
            name: Storage path of file to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting blob from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted blob: %s', name)
        except Exception:
            logger.exception('Failed to delete blob from storage: %s', name)
            raise

    def signed_url(self, name: str, display_name: str) -> str:
        """Generate a presigned GET URL for a blob.

        The URL expires after ``querystring_expire`` seconds. The object is
        not checked for existence.

        Args:
            name: Blob key.
            display_name: Filename offered to the browser on download.

        Returns:
            Presigned URL.
        """
        disposition = content_disposition_header(
            as_attachment=True,
            filename=display_name,
        )
        return self.url(
            name,
            parameters={'ResponseContentDisposition': disposition},
            expire=self.querystring_expire,
        )
