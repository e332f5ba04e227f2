"""Django admin configuration for files app."""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest

from server.apps.files.models import FileRecord

_KIB = 1024


@admin.register(FileRecord)
class FileRecordAdmin(admin.ModelAdmin[FileRecord]):
    """Read-only admin interface for FileRecord model.

    Records change only through the file service, which keeps them in
    step with storage.
    """

    list_display = [
        'original_name',
        'owner',
        'size_display',
        'content_type',
        'uploaded_at',
        'updated_at',
    ]

    list_filter = [
        'content_type',
        'uploaded_at',
    ]

    search_fields = [
        'original_name',
        'storage_key',
    ]

    readonly_fields = [
        'owner',
        'storage_key',
        'blob_key',
        'original_name',
        'content_type',
        'size',
        'signed_url',
        'version',
        'uploaded_at',
        'updated_at',
    ]

    fieldsets = (
        ('File Information', {
            'fields': ('original_name', 'owner'),
        }),
        ('Storage', {
            'fields': ('storage_key', 'blob_key', 'signed_url', 'version'),
        }),
        ('Metadata', {
            'fields': ('size', 'content_type'),
        }),
        ('Timestamps', {
            'fields': ('uploaded_at', 'updated_at'),
        }),
    )

    def size_display(self, obj: FileRecord) -> str:
        """Display file size in human-readable format.

        Args:
            obj: FileRecord instance.

        Returns:
            Formatted size string (e.g., '1.5 MB', '234 KB').
        """
        size_bytes = obj.size

        # Convert to appropriate unit
        if size_bytes < _KIB:
            return f'{size_bytes} B'
        if size_bytes < _KIB * _KIB:
            return f'{size_bytes / _KIB:.1f} KB'
        return f'{size_bytes / (_KIB * _KIB):.1f} MB'
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Records are created by uploads only."""
        return False

    def has_change_permission(
        self,
        request: HttpRequest,
        obj: FileRecord | None = None,
    ) -> bool:
        """Records are changed by replacements only."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet[FileRecord]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('owner')
