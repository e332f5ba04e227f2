"""Business logic for file operations.

Each file is a blob in object storage plus a ``FileRecord`` row. Storage
and database cannot share a transaction, so every operation orders its
steps to keep the worst partial failure visible rather than silent:

- upload: blob first, record second. A failed record write leaves an
  orphaned blob, which is logged.
- update: new blob, then record, then old blob removal. A failed removal
  leaves the old blob orphaned; the record is never left without content.
- delete: blob first, record second. A failed record delete leaves a
  record pointing at a missing blob, which is logged.

Nothing is retried and no orphan is reconciled here.
"""

import logging
from typing import Final

from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from server.apps.files.exceptions import (
    ConcurrentUpdateError,
    FileRecordNotFoundError,
    FileServiceError,
    InternalPersistenceError,
    InternalStorageError,
    InvalidQueryError,
    StorageProviderError,
)
from server.apps.files.infrastructure.metadata import (
    build_blob_key,
    generate_storage_key,
    validate_content_type,
    validate_file_size,
    validate_payload,
)
from server.apps.files.infrastructure.providers import (
    get_bucket_name,
    get_storage_provider,
)
from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)

# Public sort names mapped to model fields
SORT_FIELDS: Final = {
    'uploadedAt': 'uploaded_at',
    'originalName': 'original_name',
    'size': 'size',
    'contentType': 'content_type',
}
SORT_DIRECTIONS: Final = ('asc', 'desc')
MAX_PAGE_LIMIT: Final = 100
MAX_PAGE_NUMBER: Final = 10 ** 6


def upload_file(  # noqa: WPS211
    owner_id: int,
    file_bytes: bytes,
    file_name: str,
    content_type: str,
    size: int,
) -> FileRecord:
    """Store a new file and create its record.

    Args:
        owner_id: ID of the uploading user.
        file_bytes: File content.
        file_name: Filename supplied by the uploader.
        content_type: MIME type supplied by the uploader.
        size: Declared size in bytes.

    Returns:
        Created FileRecord with a fresh signed URL.

    Raises:
        FileValidationError: If the file is missing, mis-sized or of an
            unsupported type.
        FileTooLargeError: If the file exceeds the size limit.
        InternalStorageError: If the blob cannot be written or signed.
        InternalPersistenceError: If the record cannot be created.
    """
    _validate_upload(file_bytes, file_name, content_type, size)

    provider = get_storage_provider()
    bucket = get_bucket_name()
    storage_key = generate_storage_key(file_name)
    blob_key = build_blob_key(owner_id, storage_key)

    # Step 1: Upload to storage first
    try:
        logger.info('Uploading file to storage: %s', blob_key)
        provider.upload_data(bucket, blob_key, file_bytes, content_type)
        signed_url = provider.generate_download_signed_url(
            bucket,
            blob_key,
            file_name,
        )
    except StorageProviderError as exc:
        logger.exception('Failed to store file: %s', blob_key)
        raise InternalStorageError('Failed to upload file') from exc

    # Step 2: Create database record
    try:
        with transaction.atomic():
            file_record = FileRecord.objects.create(
                owner_id=owner_id,
                storage_key=storage_key,
                original_name=file_name,
                content_type=content_type,
                size=size,
                signed_url=signed_url,
            )
    except DatabaseError as exc:
        logger.exception(
            'Failed to create file record, blob orphaned: %s',
            blob_key,
        )
        raise InternalPersistenceError('Failed to upload file') from exc

    logger.info(
        'File uploaded: %s (ID: %d)',
        blob_key,
        file_record.id,
    )
    return file_record


def get_file(file_id: int, owner_id: int) -> FileRecord:
    """Get a file record with a refreshed signed URL.

    Signed URLs expire, so a new one is issued on every read. If that
    fails the record is returned with its last-known URL, which may
    already be expired; the read itself does not fail.

    Args:
        file_id: ID of the file.
        owner_id: ID of the requesting user.

    Returns:
        FileRecord owned by the user.

    Raises:
        FileRecordNotFoundError: If the file is absent or not owned by
            the user.
        InternalPersistenceError: If the lookup fails.
    """
    file_record = _get_owned_record(file_id, owner_id)

    try:
        signed_url = get_storage_provider().generate_download_signed_url(
            get_bucket_name(),
            file_record.blob_key,
            file_record.original_name,
        )
    except StorageProviderError:
        logger.warning(
            'Failed to refresh signed URL, serving last known: ID=%d',
            file_id,
            exc_info=True,
        )
        return file_record

    # Only overwrite the URL of the content it was signed for
    try:
        refreshed = FileRecord.objects.filter(
            pk=file_record.pk,
            version=file_record.version,
        ).update(signed_url=signed_url)
    except DatabaseError:
        logger.warning(
            'Failed to persist refreshed signed URL: ID=%d',
            file_id,
            exc_info=True,
        )
        return file_record

    if not refreshed:
        logger.info('File replaced during read, reloading: ID=%d', file_id)
        return _get_owned_record(file_id, owner_id)

    file_record.signed_url = signed_url
    return file_record


def update_file(  # noqa: WPS211
    file_id: int,
    owner_id: int,
    file_bytes: bytes,
    file_name: str,
    content_type: str,
    size: int,
) -> FileRecord:
    """Replace the content of an existing file.

    The new blob is uploaded under a new key before the record is switched
    to it, and the old blob is deleted last. The record therefore always
    points at a readable blob. The record is only switched if nobody else
    replaced it since it was read (``version`` check).

    Args:
        file_id: ID of the file.
        owner_id: ID of the requesting user.
        file_bytes: New file content.
        file_name: New filename.
        content_type: New MIME type.
        size: Declared new size in bytes.

    Returns:
        Updated FileRecord.

    Raises:
        FileRecordNotFoundError: If the file is absent or not owned by
            the user.
        FileValidationError: If the new file is invalid.
        FileTooLargeError: If the new file exceeds the size limit.
        ConcurrentUpdateError: If another update won the race.
        InternalStorageError: If the new blob cannot be written.
        InternalPersistenceError: If the record cannot be updated.
    """
    file_record = _get_owned_record(file_id, owner_id)
    _validate_upload(file_bytes, file_name, content_type, size)

    provider = get_storage_provider()
    bucket = get_bucket_name()
    old_blob_key = file_record.blob_key
    storage_key = generate_storage_key(file_name)
    new_blob_key = build_blob_key(owner_id, storage_key)

    logger.info(
        'Replacing file content: %s -> %s (ID: %d)',
        old_blob_key,
        new_blob_key,
        file_id,
    )

    # Step 1: Upload new content under a fresh key
    try:
        provider.upload_data(bucket, new_blob_key, file_bytes, content_type)
        signed_url = provider.generate_download_signed_url(
            bucket,
            new_blob_key,
            file_name,
        )
    except StorageProviderError as exc:
        logger.exception('Failed to store new content: %s', new_blob_key)
        raise InternalStorageError('Failed to update file') from exc

    # Step 2: Switch the record if nobody replaced it meanwhile
    updated_at = timezone.now()
    try:
        with transaction.atomic():
            updated = FileRecord.objects.filter(
                pk=file_record.pk,
                owner_id=owner_id,
                version=file_record.version,
            ).update(
                storage_key=storage_key,
                original_name=file_name,
                content_type=content_type,
                size=size,
                signed_url=signed_url,
                updated_at=updated_at,
                version=F('version') + 1,
            )
    except DatabaseError as exc:
        logger.exception('Failed to update file record: ID=%d', file_id)
        _discard_blob(bucket, new_blob_key)
        raise InternalPersistenceError('Failed to update file') from exc

    if not updated:
        _discard_blob(bucket, new_blob_key)
        raise _lost_update_error(file_id, owner_id)

    # Step 3: Delete old content (best effort)
    try:
        provider.delete_file(bucket, old_blob_key)
    except StorageProviderError:
        logger.exception(
            'Failed to delete old content (orphaned): %s',
            old_blob_key,
        )

    # Mirror the row as written, it may be gone again by now
    file_record.storage_key = storage_key
    file_record.original_name = file_name
    file_record.content_type = content_type
    file_record.size = size
    file_record.signed_url = signed_url
    file_record.updated_at = updated_at
    file_record.version += 1
    logger.info('File content replaced: %s (ID: %d)', new_blob_key, file_id)
    return file_record


def delete_file(file_id: int, owner_id: int) -> None:
    """Delete a file from storage and database.

    The blob goes first. If the record delete then fails, the record
    remains and points at a missing blob.

    Args:
        file_id: ID of the file.
        owner_id: ID of the requesting user.

    Raises:
        FileRecordNotFoundError: If the file is absent or not owned by
            the user.
        InternalStorageError: If the blob cannot be deleted.
        InternalPersistenceError: If the record cannot be deleted.
    """
    file_record = _get_owned_record(file_id, owner_id)
    blob_key = file_record.blob_key

    logger.info('Deleting file: ID=%d, key=%s', file_id, blob_key)

    try:
        get_storage_provider().delete_file(get_bucket_name(), blob_key)
    except StorageProviderError as exc:
        logger.exception('Failed to delete blob: %s', blob_key)
        raise InternalStorageError('Failed to delete file') from exc

    try:
        with transaction.atomic():
            file_record.delete()
    except DatabaseError as exc:
        logger.exception(
            'Failed to delete file record, blob already gone: ID=%d',
            file_id,
        )
        raise InternalPersistenceError('Failed to delete file') from exc

    logger.info('File deleted: ID=%d', file_id)


def list_files(  # noqa: WPS211
    owner_id: int,
    page: int = 1,
    limit: int = 10,
    sort_by: str = 'uploadedAt',
    sort_type: str = 'desc',
) -> list[FileRecord]:
    """List one page of the user's files.

    Pagination is offset based, so pages may shift if files are added or
    removed between requests.

    Args:
        owner_id: ID of the requesting user.
        page: Page number, from 1 to ``MAX_PAGE_NUMBER``.
        limit: Page size, at most ``MAX_PAGE_LIMIT``.
        sort_by: One of ``SORT_FIELDS``.
        sort_type: 'asc' or 'desc'.

    Returns:
        FileRecords of the requested page.

    Raises:
        InvalidQueryError: If any parameter is out of range.
        InternalPersistenceError: If the query fails.
    """
    if sort_by not in SORT_FIELDS:
        raise InvalidQueryError(f'Invalid sort field: {sort_by}')
    if sort_type not in SORT_DIRECTIONS:
        raise InvalidQueryError(f'Invalid sort direction: {sort_type}')
    if not 1 <= page <= MAX_PAGE_NUMBER:
        raise InvalidQueryError(f'Invalid page: {page}')
    if not 1 <= limit <= MAX_PAGE_LIMIT:
        raise InvalidQueryError(f'Invalid limit: {limit}')

    field = SORT_FIELDS[sort_by]
    prefix = '-' if sort_type == 'desc' else ''
    offset = (page - 1) * limit

    logger.debug(
        'Listing files: owner=%d, page=%d, limit=%d, order=%s%s',
        owner_id,
        page,
        limit,
        prefix,
        field,
    )

    queryset = FileRecord.objects.owned_by(owner_id).order_by(
        f'{prefix}{field}',
        f'{prefix}id',
    )
    try:
        return list(queryset[offset:offset + limit])
    except DatabaseError as exc:
        logger.exception('Failed to list files: owner=%d', owner_id)
        raise InternalPersistenceError('Failed to list files') from exc


def _validate_upload(
    file_bytes: bytes,
    file_name: str,
    content_type: str,
    size: int,
) -> None:
    validate_payload(file_bytes, file_name)
    validate_content_type(content_type, settings.FILES_ALLOWED_CONTENT_TYPES)
    validate_file_size(file_bytes, size, settings.FILES_MAX_UPLOAD_SIZE)


def _get_owned_record(file_id: int, owner_id: int) -> FileRecord:
    try:
        return FileRecord.objects.owned_by(owner_id).get(pk=file_id)
    except FileRecord.DoesNotExist as exc:
        raise FileRecordNotFoundError() from exc
    except DatabaseError as exc:
        logger.exception('Failed to load file record: ID=%d', file_id)
        raise InternalPersistenceError('Failed to load file') from exc


def _discard_blob(bucket: str, blob_key: str) -> None:
    """Delete a blob no record points to (best effort).

    Args:
        bucket: Bucket name.
        blob_key: Key of the unreferenced blob.
    """
    try:
        logger.warning('Discarding unreferenced blob: %s', blob_key)
        get_storage_provider().delete_file(bucket, blob_key)
    except StorageProviderError:
        # The blob stays in storage without a record
        logger.exception('Failed to discard blob (orphaned): %s', blob_key)


def _lost_update_error(file_id: int, owner_id: int) -> FileServiceError:
    """Explain why a conditional update matched no row.

    Args:
        file_id: ID of the file.
        owner_id: ID of the requesting user.

    Returns:
        FileRecordNotFoundError if the record is gone, otherwise
        ConcurrentUpdateError.
    """
    try:
        still_exists = FileRecord.objects.owned_by(owner_id).filter(
            pk=file_id,
        ).exists()
    except DatabaseError:
        logger.exception('Failed to check file record: ID=%d', file_id)
        return InternalPersistenceError('Failed to update file')

    if not still_exists:
        return FileRecordNotFoundError()
    logger.warning('Concurrent update lost: ID=%d', file_id)
    return ConcurrentUpdateError()
