"""Database models for files app."""

from typing import TYPE_CHECKING, Final, final, override

from django.conf import settings
from django.db import models

from server.apps.files.infrastructure.metadata import (
    MAX_FILENAME_LENGTH,
    build_blob_key,
)

# Constants for field max lengths
_STORAGE_KEY_MAX_LENGTH: Final = 64
_CONTENT_TYPE_MAX_LENGTH: Final = 255


class FileRecordQuerySet(models.QuerySet['FileRecord']):
    """Queries over file records."""

    def owned_by(self, owner_id: int) -> 'FileRecordQuerySet':
        """Restrict records to a single owner.

        Args:
            owner_id: ID of the owning user.

        Returns:
            Filtered queryset.
        """
        return self.filter(owner_id=owner_id)


@final
class FileRecord(models.Model):
    """Metadata of one uploaded file.

    The file content lives in object storage under
    ``files/{owner_id}/{storage_key}``. The storage key is regenerated on
    every replacement, so a key is never reused for different content.
    ``original_name`` is for display only and never addresses storage.
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='file_records',
        db_index=True,
    )

    storage_key = models.CharField(
        max_length=_STORAGE_KEY_MAX_LENGTH,
        unique=True,
        help_text='Generated blob name: {uuid}.{ext}',
    )

    original_name = models.CharField(
        max_length=MAX_FILENAME_LENGTH,
        help_text='Filename supplied by the uploader',
    )

    content_type = models.CharField(
        max_length=_CONTENT_TYPE_MAX_LENGTH,
        help_text='MIME type validated against the allow-list',
    )

    size = models.PositiveBigIntegerField(
        help_text='File size in bytes',
    )

    signed_url = models.TextField(
        blank=True,
        default='',
        help_text='Last issued time-limited download URL',
    )

    # Optimistic concurrency token, bumped on every content replacement
    version = models.PositiveIntegerField(default=1)

    # Timestamps
    uploaded_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = FileRecordQuerySet.as_manager()

    if TYPE_CHECKING:
        owner_id: int

    class Meta:
        """Model metadata."""

        verbose_name = 'File record'  # type: ignore[mutable-override]
        verbose_name_plural = 'File records'  # type: ignore[mutable-override]
        ordering = ['-uploaded_at']

        indexes = [
            # Optimize owner listings sorted by upload time
            models.Index(
                fields=['owner', '-uploaded_at'],
                name='files_owner_recent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.original_name}'

    @property
    def blob_key(self) -> str:
        """Location of the file content in the bucket."""
        return build_blob_key(self.owner_id, self.storage_key)
