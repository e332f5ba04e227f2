"""Storage providers: one interface over interchangeable blob backends.

A provider is stateless between calls. Backend handles are built per call
and every backend failure surfaces as ``StorageProviderError``.
"""

import functools
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Final, final, override
from urllib.parse import urljoin

from boto3.exceptions import Boto3Error
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core import signing
from django.core.files.base import ContentFile, File
from django.core.files.storage import FileSystemStorage
from django.urls import NoReverseMatch, reverse
from django.utils.module_loading import import_string

from server.apps.files.exceptions import SignedUrlError, StorageProviderError
from server.apps.files.infrastructure.storage import BlobStorage

logger = logging.getLogger(__name__)

_DEFAULT_SIGNED_URL_EXPIRE: Final = 3600
_S3_ERRORS: Final = (BotoCoreError, ClientError, Boto3Error)
_LOCAL_SIGNER_SALT: Final = 'server.apps.files.blob-download'


class StorageProvider(ABC):
    """Capabilities every blob backend must offer."""

    @abstractmethod
    def upload_data(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Write a blob, overwriting any existing one under the key."""

    @abstractmethod
    def generate_download_signed_url(
        self,
        bucket: str,
        key: str,
        display_name: str,
    ) -> str:
        """Issue a time-limited read-only URL for a blob."""

    @abstractmethod
    def delete_file(self, bucket: str, key: str) -> None:
        """Remove a blob. A missing blob is not an error."""


@final
class S3StorageProvider(StorageProvider):
    """Provider for S3-compatible object stores (AWS S3, MinIO, R2)."""

    def __init__(  # noqa: WPS211
        self,
        *,
        access_key: str | None = None,
        secret_key: str | None = None,
        endpoint_url: str | None = None,
        region_name: str | None = None,
        signed_url_expire: int = _DEFAULT_SIGNED_URL_EXPIRE,
    ) -> None:
        """Initialize S3StorageProvider.

        Args:
            access_key: Access key, boto3 credential chain when None.
            secret_key: Secret key, boto3 credential chain when None.
            endpoint_url: Custom endpoint for MinIO/R2.
            region_name: Bucket region.
            signed_url_expire: Signed URL lifetime in seconds.
        """
        self.access_key = access_key
        self.secret_key = secret_key
        self.endpoint_url = endpoint_url
        self.region_name = region_name
        self.signed_url_expire = signed_url_expire

    @override
    def upload_data(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        try:
            self._storage(bucket).write_bytes(key, data, content_type)
        except _S3_ERRORS as exc:
            raise StorageProviderError(
                f'Failed to upload {bucket}/{key}',
            ) from exc

    @override
    def generate_download_signed_url(
        self,
        bucket: str,
        key: str,
        display_name: str,
    ) -> str:
        try:
            return self._storage(bucket).signed_url(key, display_name)
        except _S3_ERRORS as exc:
            raise StorageProviderError(
                f'Failed to sign URL for {bucket}/{key}',
            ) from exc

    @override
    def delete_file(self, bucket: str, key: str) -> None:
        try:
            self._storage(bucket).delete(key)
        except _S3_ERRORS as exc:
            raise StorageProviderError(
                f'Failed to delete {bucket}/{key}',
            ) from exc

    def _storage(self, bucket: str) -> BlobStorage:
        return BlobStorage(
            bucket_name=bucket,
            access_key=self.access_key,
            secret_key=self.secret_key,
            endpoint_url=self.endpoint_url,
            region_name=self.region_name,
            querystring_expire=self.signed_url_expire,
            file_overwrite=True,  # keys are never reused
            default_acl=None,  # Inherit bucket ACL
        )


@final
class LocalStorageProvider(StorageProvider):
    """Provider keeping blobs on the local filesystem.

    Each bucket is a directory under ``location``. Download URLs point to
    the ``files:blob-download`` view and carry a signed, timestamped token.
    """

    def __init__(
        self,
        *,
        location: str,
        base_url: str,
        signed_url_expire: int = _DEFAULT_SIGNED_URL_EXPIRE,
    ) -> None:
        """Initialize LocalStorageProvider.

        Args:
            location: Root directory for buckets.
            base_url: Scheme and host the download URLs are built on.
            signed_url_expire: Signed URL lifetime in seconds.
        """
        self.location = Path(location)
        self.base_url = base_url
        self.signed_url_expire = signed_url_expire
        self._signer = signing.TimestampSigner(salt=_LOCAL_SIGNER_SALT)

    @override
    def upload_data(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        logger.info('Writing blob to local storage: %s/%s', bucket, key)
        try:
            self._storage(bucket).save(key, ContentFile(data))
        except OSError as exc:
            raise StorageProviderError(
                f'Failed to write {bucket}/{key}',
            ) from exc

    @override
    def generate_download_signed_url(
        self,
        bucket: str,
        key: str,
        display_name: str,
    ) -> str:
        token = self._signer.sign_object({
            'bucket': bucket,
            'key': key,
            'name': display_name,
        })
        try:
            path = reverse('files:blob-download', kwargs={'token': token})
        except NoReverseMatch as exc:
            raise StorageProviderError(
                'Blob download route is not configured',
            ) from exc
        return urljoin(self.base_url, path)

    @override
    def delete_file(self, bucket: str, key: str) -> None:
        logger.info('Deleting blob from local storage: %s/%s', bucket, key)
        try:
            self._storage(bucket).delete(key)
        except OSError as exc:
            raise StorageProviderError(
                f'Failed to delete {bucket}/{key}',
            ) from exc

    def open_signed(self, token: str) -> tuple[File, str]:
        """Open the blob a signed download token points to.

        Args:
            token: Token taken from a signed URL.

        Returns:
            Open binary file and the filename to offer for download.

        Raises:
            SignedUrlError: If the token is forged, expired or the blob
                is gone.
        """
        try:
            payload = self._signer.unsign_object(
                token,
                max_age=self.signed_url_expire,
            )
        except signing.BadSignature as exc:
            raise SignedUrlError('Invalid or expired download link') from exc

        try:
            blob = self._storage(payload['bucket']).open(payload['key'], 'rb')
        except FileNotFoundError as exc:
            raise SignedUrlError('Blob not found') from exc
        return blob, payload['name']

    def _storage(self, bucket: str) -> FileSystemStorage:
        return FileSystemStorage(
            location=self.location.joinpath(bucket),
            allow_overwrite=True,
        )


@functools.cache
def get_storage_provider() -> StorageProvider:
    """Build the provider configured in ``FILE_STORAGE``.

    The provider is built once per process. ``reset_storage_provider``
    drops it when settings change.

    Returns:
        Configured StorageProvider instance.
    """
    provider_class = import_string(settings.FILE_STORAGE['PROVIDER'])
    options: dict[str, Any] = settings.FILE_STORAGE.get('OPTIONS', {})
    logger.info('Using storage provider: %s', provider_class.__name__)
    return provider_class(**options)


def reset_storage_provider() -> None:
    """Forget the cached provider."""
    get_storage_provider.cache_clear()


def get_bucket_name() -> str:
    """Bucket (or container) all file blobs are stored in."""
    return settings.FILE_STORAGE['BUCKET_NAME']
