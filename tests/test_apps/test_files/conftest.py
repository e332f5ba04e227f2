"""Shared fixtures for files app tests."""

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

from server.apps.files.models import FileRecord

User = get_user_model()

_LOCAL_PROVIDER = (
    'server.apps.files.infrastructure.providers.LocalStorageProvider'
)


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def bucket_name(settings):
    """Name of the configured bucket."""
    return settings.FILE_STORAGE['BUCKET_NAME']


@pytest.fixture
def mock_s3(bucket_name):
    """Mock S3 service with the uploads bucket.

    Yields:
        boto3 S3 resource with the bucket created.
    """
    with mock_aws():
        # Create S3 resource
        conn = boto3.resource('s3', region_name='us-east-1')

        # Create bucket
        conn.create_bucket(Bucket=bucket_name)

        yield conn


@pytest.fixture
def bucket(mock_s3, bucket_name):
    """Mocked uploads bucket."""
    return mock_s3.Bucket(bucket_name)


@pytest.fixture
def local_storage(settings, tmp_path, bucket_name):
    """Switch the file service to the local filesystem provider.

    Returns:
        Directory holding the bucket's blobs.
    """
    settings.FILE_STORAGE = {
        'PROVIDER': _LOCAL_PROVIDER,
        'BUCKET_NAME': bucket_name,
        'OPTIONS': {
            'location': str(tmp_path),
            'base_url': 'http://testserver',
            'signed_url_expire': 3600,
        },
    }
    return tmp_path / bucket_name


@pytest.fixture
def jpeg_content():
    """Sample JPEG-sized content."""
    return b'\xff\xd8\xff\xe0' + b'a' * 1020


@pytest.fixture
def file_record(user):
    """Create a record without a blob behind it.

    Returns:
        FileRecord instance.
    """
    return FileRecord.objects.create(
        owner=user,
        storage_key='3f1c6a52-4d6b-4f7e-9a39-0c5e2b1d7a10.pdf',
        original_name='Report.PDF',
        content_type='application/pdf',
        size=100,
        signed_url='https://example.com/signed',
    )


@pytest.fixture
def stored_keys(bucket):
    """List keys of blobs stored in the mocked bucket for an owner.

    Returns:
        Function mapping owner ID to a set of blob keys.
    """
    def _stored_keys(owner_id):
        prefix = f'files/{owner_id}/'
        return {obj.key for obj in bucket.objects.filter(Prefix=prefix)}

    return _stored_keys
