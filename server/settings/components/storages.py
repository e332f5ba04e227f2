"""Storage configuration for uploaded files.

User files live in an object store behind a storage provider:
- ``s3``: any S3-compatible backend (AWS S3, MinIO, Cloudflare R2)
- ``local``: the local filesystem, for development without an object store

The provider is picked once per process from ``FILE_STORAGE_PROVIDER``.
"""

from typing import Any, Final

from server.settings.components import BASE_DIR, config

_SIGNED_URL_EXPIRE: Final = config(
    'FILE_STORAGE_SIGNED_URL_EXPIRE',
    cast=int,
    default=3600,
)

_PROVIDERS: Final[dict[str, dict[str, Any]]] = {
    's3': {
        'PROVIDER': (
            'server.apps.files.infrastructure.providers.S3StorageProvider'
        ),
        'OPTIONS': {
            'access_key': config('AWS_ACCESS_KEY_ID', default=None),
            'secret_key': config('AWS_SECRET_ACCESS_KEY', default=None),
            'endpoint_url': config('AWS_S3_ENDPOINT_URL', default=None),
            'region_name': config('AWS_S3_REGION_NAME', default='us-east-1'),
            'signed_url_expire': _SIGNED_URL_EXPIRE,
        },
    },
    'local': {
        'PROVIDER': (
            'server.apps.files.infrastructure.providers.LocalStorageProvider'
        ),
        'OPTIONS': {
            'location': config(
                'FILE_STORAGE_LOCAL_ROOT',
                default=str(BASE_DIR.joinpath('media')),
            ),
            'base_url': config(
                'FILE_STORAGE_BASE_URL',
                default='http://localhost:8000',
            ),
            'signed_url_expire': _SIGNED_URL_EXPIRE,
        },
    },
}

FILE_STORAGE: Final[dict[str, Any]] = {
    **_PROVIDERS[config('FILE_STORAGE_PROVIDER', default='s3')],
    'BUCKET_NAME': config('FILE_STORAGE_BUCKET_NAME', default='file-uploads'),
}

# Upload rules enforced by the files app
FILES_ALLOWED_CONTENT_TYPES: Final = (
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'text/plain',
    'image/png',
    'image/jpeg',
    'image/jpg',
    'image/gif',
)

FILES_MAX_UPLOAD_SIZE: Final = config(
    'FILES_MAX_UPLOAD_SIZE',
    cast=int,
    default=10 * 1024 * 1024,  # 10 MiB
)

STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
