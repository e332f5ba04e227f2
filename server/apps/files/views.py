"""JSON API for single-file upload, read, replace and delete.

Views only translate HTTP to ``logic.file_operations`` calls. Users are
authenticated upstream; an anonymous request gets 401.
"""

import logging
from http import HTTPStatus
from typing import Any, ClassVar, override

from django.conf import settings
from django.core.files.uploadedfile import UploadedFile
from django.http import (
    FileResponse,
    Http404,
    HttpRequest,
    HttpResponse,
    JsonResponse,
)
from django.utils.datastructures import MultiValueDict
from django.views import View

from server.apps.files.exceptions import (
    FileServiceError,
    FileTooLargeError,
    SignedUrlError,
)
from server.apps.files.forms import FileListQueryForm
from server.apps.files.infrastructure.providers import (
    LocalStorageProvider,
    get_storage_provider,
)
from server.apps.files.logic.file_operations import (
    delete_file,
    get_file,
    list_files,
    update_file,
    upload_file,
)
from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)

_FILE_FIELD = 'file'


def serialize_file_record(file_record: FileRecord) -> dict[str, Any]:
    """Convert a record to its wire representation.

    Args:
        file_record: Record to convert.

    Returns:
        JSON-ready dictionary.
    """
    return {
        'id': str(file_record.id),
        'filename': file_record.original_name,
        'signedUrl': file_record.signed_url,
        'contentType': file_record.content_type,
        'size': file_record.size,
        'uploadedAt': file_record.uploaded_at.isoformat(),
    }


def error_response(status: HTTPStatus, message: str) -> JsonResponse:
    """Build a JSON error body.

    Args:
        status: HTTP status.
        message: Human-readable message.

    Returns:
        JSON response with ``code`` and ``message``.
    """
    return JsonResponse(
        {'code': int(status), 'message': message},
        status=status,
    )


class _FilesApiView(View):
    """Common authentication, permission checks and error mapping.

    ``required_permissions`` maps an HTTP method to the Django permission
    a user needs to call it.
    """

    required_permissions: ClassVar[dict[str, str]] = {}

    @override
    def dispatch(
        self,
        request: HttpRequest,
        *args: Any,
        **kwargs: Any,
    ) -> HttpResponse:
        if not request.user.is_authenticated:
            return error_response(
                HTTPStatus.UNAUTHORIZED,
                'Please authenticate',
            )

        permission = self.required_permissions.get(request.method.lower())
        if permission and not request.user.has_perm(permission):
            logger.info(
                'File request forbidden: %s %s (user: %s)',
                request.method,
                request.path,
                request.user.pk,
            )
            return error_response(HTTPStatus.FORBIDDEN, 'Forbidden')

        try:
            return super().dispatch(request, *args, **kwargs)
        except FileServiceError as exc:
            logger.info(
                'File request failed: %s %s -> %d %s',
                request.method,
                request.path,
                exc.status_code,
                exc.message,
            )
            return error_response(exc.status_code, exc.message)


class FileCollectionView(_FilesApiView):
    """List files or upload a new one."""

    http_method_names = ['get', 'post']
    required_permissions = {
        'get': 'files.view_filerecord',
        'post': 'files.add_filerecord',
    }

    def get(self, request: HttpRequest) -> HttpResponse:
        """List the user's files."""
        form = FileListQueryForm(request.GET)
        if not form.is_valid():
            return JsonResponse(
                {
                    'code': int(HTTPStatus.BAD_REQUEST),
                    'message': 'Invalid query parameters',
                    'errors': form.errors.get_json_data(),
                },
                status=HTTPStatus.BAD_REQUEST,
            )

        file_records = list_files(
            request.user.pk,
            page=form.cleaned_data['page'],
            limit=form.cleaned_data['limit'],
            sort_by=form.cleaned_data['sortBy'],
            sort_type=form.cleaned_data['sortType'],
        )
        return JsonResponse(
            [serialize_file_record(record) for record in file_records],
            safe=False,
        )

    def post(self, request: HttpRequest) -> HttpResponse:
        """Upload a new file from the ``file`` multipart field."""
        uploaded = request.FILES.get(_FILE_FIELD)
        file_record = upload_file(request.user.pk, *read_upload(uploaded))
        return JsonResponse(
            serialize_file_record(file_record),
            status=HTTPStatus.CREATED,
        )


class FileDetailView(_FilesApiView):
    """Read, replace or delete one file."""

    http_method_names = ['get', 'put', 'delete']
    required_permissions = {
        'get': 'files.view_filerecord',
        'put': 'files.change_filerecord',
        'delete': 'files.delete_filerecord',
    }

    def get(self, request: HttpRequest, file_id: int) -> HttpResponse:
        """Return the file with a fresh signed URL."""
        file_record = get_file(file_id, request.user.pk)
        return JsonResponse(serialize_file_record(file_record))

    def put(self, request: HttpRequest, file_id: int) -> HttpResponse:
        """Replace file content from the ``file`` multipart field."""
        uploaded = _parse_put_files(request).get(_FILE_FIELD)
        file_record = update_file(
            file_id,
            request.user.pk,
            *read_upload(uploaded),
        )
        return JsonResponse(serialize_file_record(file_record))

    def delete(self, request: HttpRequest, file_id: int) -> HttpResponse:
        """Delete the file."""
        delete_file(file_id, request.user.pk)
        return HttpResponse(status=HTTPStatus.NO_CONTENT)


def blob_download(request: HttpRequest, token: str) -> HttpResponse:
    """Serve a blob of the local storage provider via a signed token.

    Object stores serve their own signed URLs, so this view only answers
    when the local provider is configured.
    """
    provider = get_storage_provider()
    if not isinstance(provider, LocalStorageProvider):
        raise Http404('Downloads are served by the storage backend')

    try:
        blob, display_name = provider.open_signed(token)
    except SignedUrlError as exc:
        return error_response(HTTPStatus.FORBIDDEN, str(exc))
    return FileResponse(blob, as_attachment=True, filename=display_name)


def _parse_put_files(request: HttpRequest) -> MultiValueDict:
    # Django only parses multipart bodies of POST requests
    if request.content_type != 'multipart/form-data':
        return MultiValueDict()
    _, files = request.parse_file_upload(request.META, request)
    return files


def read_upload(
    uploaded: UploadedFile | None,
) -> tuple[bytes | None, str | None, str, int]:
    """Read an uploaded file into service call arguments.

    Oversized uploads are rejected before their content is read.

    Args:
        uploaded: File from the ``file`` multipart field, if any.

    Returns:
        Content, name, content type and size.

    Raises:
        FileTooLargeError: If the upload exceeds ``FILES_MAX_UPLOAD_SIZE``.
    """
    if uploaded is None:
        return None, None, '', 0
    max_size = settings.FILES_MAX_UPLOAD_SIZE
    if uploaded.size and uploaded.size > max_size:
        raise FileTooLargeError(size=uploaded.size, max_size=max_size)
    return (
        uploaded.read(),
        uploaded.name,
        uploaded.content_type or '',
        uploaded.size or 0,
    )
