"""Tests for file operations business logic."""

import pytest
from django.db import DatabaseError
from django.db.models import F

from server.apps.files.exceptions import (
    ConcurrentUpdateError,
    FileRecordNotFoundError,
    FileTooLargeError,
    InternalPersistenceError,
    InternalStorageError,
    InvalidQueryError,
    MissingFileError,
    StorageProviderError,
    UnsupportedMediaTypeError,
)
from server.apps.files.infrastructure.providers import get_storage_provider
from server.apps.files.logic.file_operations import (
    MAX_PAGE_NUMBER,
    delete_file,
    get_file,
    list_files,
    update_file,
    upload_file,
)
from server.apps.files.models import FileRecord


def _raise_storage_error(*args, **kwargs):
    raise StorageProviderError('backend unavailable')


def _raise_database_error(*args, **kwargs):
    raise DatabaseError('database unavailable')


def _upload(owner, content=b'test file content', name='notes.txt'):
    return upload_file(owner.id, content, name, 'text/plain', len(content))


@pytest.mark.django_db
def test_upload_file_success(user, stored_keys, jpeg_content):
    """Test successful file upload (storage + DB)."""
    file_record = upload_file(
        user.id,
        jpeg_content,
        'holiday.jpg',
        'image/jpeg',
        len(jpeg_content),
    )

    assert file_record.id is not None
    assert file_record.owner_id == user.id
    assert file_record.original_name == 'holiday.jpg'
    assert file_record.content_type == 'image/jpeg'
    assert file_record.size == len(jpeg_content)
    assert file_record.storage_key.endswith('.jpg')
    assert file_record.signed_url
    assert stored_keys(user.id) == {file_record.blob_key}


@pytest.mark.django_db
def test_upload_then_get_returns_same_metadata(user, mock_s3):
    """Test a read returns the uploaded metadata."""
    uploaded = _upload(user)

    fetched = get_file(uploaded.id, user.id)

    assert fetched.id == uploaded.id
    assert fetched.original_name == uploaded.original_name
    assert fetched.content_type == uploaded.content_type
    assert fetched.size == uploaded.size


@pytest.mark.django_db
def test_upload_file_unsupported_type(user, stored_keys):
    """Test upload outside the allow-list creates nothing."""
    with pytest.raises(UnsupportedMediaTypeError):
        upload_file(user.id, b'MZ', 'tool.exe', 'application/x-msdownload', 2)

    assert FileRecord.objects.count() == 0
    assert stored_keys(user.id) == set()


@pytest.mark.django_db
def test_upload_file_too_large(user, stored_keys, settings):
    """Test upload over the size limit creates nothing."""
    settings.FILES_MAX_UPLOAD_SIZE = 10

    with pytest.raises(FileTooLargeError):
        upload_file(user.id, b'a' * 11, 'big.txt', 'text/plain', 11)

    assert FileRecord.objects.count() == 0
    assert stored_keys(user.id) == set()


@pytest.mark.django_db
def test_upload_file_missing(user, mock_s3):
    """Test upload without a file is rejected."""
    with pytest.raises(MissingFileError):
        upload_file(user.id, None, None, '', 0)

    assert FileRecord.objects.count() == 0


@pytest.mark.django_db
def test_upload_file_storage_failure(user, mock_s3, monkeypatch):
    """Test failed blob write creates no record."""
    monkeypatch.setattr(
        get_storage_provider(),
        'upload_data',
        _raise_storage_error,
    )

    with pytest.raises(InternalStorageError):
        _upload(user)

    assert FileRecord.objects.count() == 0


@pytest.mark.django_db
def test_upload_file_database_failure_leaves_blob(
    user,
    stored_keys,
    monkeypatch,
):
    """Test failed record write is reported and the blob stays orphaned."""
    monkeypatch.setattr(FileRecord.objects, 'create', _raise_database_error)

    with pytest.raises(InternalPersistenceError):
        _upload(user)

    assert FileRecord.objects.count() == 0
    assert len(stored_keys(user.id)) == 1


@pytest.mark.django_db
def test_get_file_refreshes_signed_url(user, mock_s3, file_record):
    """Test read issues and persists a new signed URL."""
    fetched = get_file(file_record.id, user.id)

    assert fetched.signed_url != 'https://example.com/signed'
    assert file_record.blob_key in fetched.signed_url

    file_record.refresh_from_db()
    assert file_record.signed_url == fetched.signed_url
    assert file_record.version == 1


@pytest.mark.django_db
def test_get_file_keeps_last_url_on_failure(
    user,
    mock_s3,
    file_record,
    monkeypatch,
):
    """Test read still succeeds when the URL cannot be refreshed."""
    monkeypatch.setattr(
        get_storage_provider(),
        'generate_download_signed_url',
        _raise_storage_error,
    )

    fetched = get_file(file_record.id, user.id)

    assert fetched.signed_url == 'https://example.com/signed'


@pytest.mark.django_db
def test_get_file_keeps_last_url_on_database_failure(
    user,
    mock_s3,
    file_record,
    monkeypatch,
):
    """Test read still succeeds when the new URL cannot be saved."""
    monkeypatch.setattr(FileRecord.objects, 'filter', _raise_database_error)

    fetched = get_file(file_record.id, user.id)

    assert fetched.signed_url == 'https://example.com/signed'
    file_record.refresh_from_db()
    assert file_record.signed_url == 'https://example.com/signed'


@pytest.mark.django_db
def test_get_file_replaced_during_read(user, stored_keys, monkeypatch):
    """Test a URL signed for replaced content does not overwrite the new."""
    file_record = _upload(user, name='old.txt')
    provider = get_storage_provider()
    sign = provider.generate_download_signed_url
    replaced = []

    def racing_sign(*args, **kwargs):
        signed_url = sign(*args, **kwargs)
        if not replaced:
            replaced.append(True)
            # Another request replaces the file while this one signs
            update_file(
                file_record.id,
                user.id,
                b'new',
                'new.txt',
                'text/plain',
                3,
            )
        return signed_url

    monkeypatch.setattr(provider, 'generate_download_signed_url', racing_sign)

    fetched = get_file(file_record.id, user.id)

    current = FileRecord.objects.get(pk=file_record.pk)
    assert current.storage_key != file_record.storage_key
    assert current.blob_key in current.signed_url
    assert fetched.storage_key == current.storage_key
    assert fetched.signed_url == current.signed_url
    assert fetched.original_name == 'new.txt'


@pytest.mark.django_db
def test_get_file_not_found(user):
    """Test reading a non-existent file."""
    with pytest.raises(FileRecordNotFoundError):
        get_file(99999, user.id)


@pytest.mark.django_db
def test_get_file_other_owner(other_user, file_record):
    """Test a foreign file looks exactly like a missing one."""
    with pytest.raises(FileRecordNotFoundError) as foreign:
        get_file(file_record.id, other_user.id)
    with pytest.raises(FileRecordNotFoundError) as missing:
        get_file(99999, other_user.id)

    assert foreign.value.message == missing.value.message


@pytest.mark.django_db
def test_update_file_replaces_blob(user, stored_keys):
    """Test update stores new content under a new key."""
    file_record = _upload(user)
    old_key = file_record.blob_key

    updated = update_file(
        file_record.id,
        user.id,
        b'%PDF-1.7 new',
        'report.pdf',
        'application/pdf',
        12,
    )

    assert updated.id == file_record.id
    assert updated.blob_key != old_key
    assert updated.original_name == 'report.pdf'
    assert updated.content_type == 'application/pdf'
    assert updated.size == 12
    assert updated.version == 2
    assert updated.blob_key in updated.signed_url
    assert updated.updated_at > file_record.updated_at
    assert stored_keys(user.id) == {updated.blob_key}


@pytest.mark.django_db
def test_update_file_other_owner(user, other_user, stored_keys):
    """Test update of a foreign file is rejected without side effects."""
    file_record = _upload(user)

    with pytest.raises(FileRecordNotFoundError):
        update_file(
            file_record.id,
            other_user.id,
            b'new',
            'new.txt',
            'text/plain',
            3,
        )

    assert stored_keys(user.id) == {file_record.blob_key}
    assert stored_keys(other_user.id) == set()


@pytest.mark.django_db
def test_update_file_validates_new_content(user, stored_keys):
    """Test update runs the upload validation."""
    file_record = _upload(user)

    with pytest.raises(UnsupportedMediaTypeError):
        update_file(file_record.id, user.id, b'x', 'x.bin', 'x/unknown', 1)

    file_record.refresh_from_db()
    assert file_record.version == 1
    assert stored_keys(user.id) == {file_record.blob_key}


@pytest.mark.django_db
def test_update_file_storage_failure_keeps_old_blob(
    user,
    stored_keys,
    monkeypatch,
):
    """Test failed upload of new content leaves the file untouched."""
    file_record = _upload(user)
    monkeypatch.setattr(
        get_storage_provider(),
        'upload_data',
        _raise_storage_error,
    )

    with pytest.raises(InternalStorageError):
        update_file(file_record.id, user.id, b'new', 'n.txt', 'text/plain', 3)

    unchanged = FileRecord.objects.get(pk=file_record.pk)
    assert unchanged.storage_key == file_record.storage_key
    assert stored_keys(user.id) == {file_record.blob_key}


@pytest.mark.django_db
def test_update_file_old_blob_delete_failure(user, stored_keys, monkeypatch):
    """Test failed cleanup of old content does not fail the update."""
    file_record = _upload(user)
    monkeypatch.setattr(
        get_storage_provider(),
        'delete_file',
        _raise_storage_error,
    )

    updated = update_file(
        file_record.id,
        user.id,
        b'new',
        'n.txt',
        'text/plain',
        3,
    )

    # Old blob is orphaned, new blob is live
    assert stored_keys(user.id) == {file_record.blob_key, updated.blob_key}


@pytest.mark.django_db
def test_update_file_concurrent_update_loses(user, stored_keys, monkeypatch):
    """Test a stale update is rejected and its blob discarded."""
    file_record = _upload(user)
    provider = get_storage_provider()
    upload_data = provider.upload_data

    def racing_upload(*args, **kwargs):
        upload_data(*args, **kwargs)
        # Another request replaces the file in the meantime
        FileRecord.objects.filter(pk=file_record.pk).update(
            version=F('version') + 1,
        )

    monkeypatch.setattr(provider, 'upload_data', racing_upload)

    with pytest.raises(ConcurrentUpdateError):
        update_file(file_record.id, user.id, b'new', 'n.txt', 'text/plain', 3)

    current = FileRecord.objects.get(pk=file_record.pk)
    assert current.storage_key == file_record.storage_key
    assert stored_keys(user.id) == {file_record.blob_key}


@pytest.mark.django_db
def test_update_file_deleted_meanwhile(user, stored_keys, monkeypatch):
    """Test update of a file deleted mid-way reports not found."""
    file_record = _upload(user)
    provider = get_storage_provider()
    upload_data = provider.upload_data

    def racing_upload(*args, **kwargs):
        upload_data(*args, **kwargs)
        FileRecord.objects.filter(pk=file_record.pk).delete()

    monkeypatch.setattr(provider, 'upload_data', racing_upload)

    with pytest.raises(FileRecordNotFoundError):
        update_file(file_record.id, user.id, b'new', 'n.txt', 'text/plain', 3)

    # Only the blob of the vanished record remains
    assert stored_keys(user.id) == {file_record.blob_key}


@pytest.mark.django_db
def test_update_file_deleted_after_switch(user, stored_keys, monkeypatch):
    """Test update reports the written record even if it is gone now."""
    file_record = _upload(user)
    provider = get_storage_provider()
    delete_blob = provider.delete_file

    def racing_delete(*args, **kwargs):
        # Another request deletes the record while old content is removed
        FileRecord.objects.filter(pk=file_record.pk).delete()
        delete_blob(*args, **kwargs)

    monkeypatch.setattr(provider, 'delete_file', racing_delete)

    updated = update_file(
        file_record.id,
        user.id,
        b'new',
        'new.txt',
        'text/plain',
        3,
    )

    assert updated.original_name == 'new.txt'
    assert updated.storage_key != file_record.storage_key
    assert updated.version == 2
    assert not FileRecord.objects.filter(pk=file_record.pk).exists()


@pytest.mark.django_db
def test_update_file_database_failure_discards_new_blob(
    user,
    stored_keys,
    monkeypatch,
):
    """Test failed record switch keeps the old file and drops the new blob."""
    file_record = _upload(user)
    monkeypatch.setattr(FileRecord.objects, 'filter', _raise_database_error)

    with pytest.raises(InternalPersistenceError):
        update_file(file_record.id, user.id, b'new', 'n.txt', 'text/plain', 3)

    unchanged = FileRecord.objects.get(pk=file_record.pk)
    assert unchanged.storage_key == file_record.storage_key
    assert unchanged.version == 1
    assert stored_keys(user.id) == {file_record.blob_key}


@pytest.mark.django_db
def test_delete_file_success(user, stored_keys):
    """Test successful file deletion (storage + DB)."""
    file_record = _upload(user)

    delete_file(file_record.id, user.id)

    assert not FileRecord.objects.filter(id=file_record.id).exists()
    assert stored_keys(user.id) == set()
    with pytest.raises(FileRecordNotFoundError):
        get_file(file_record.id, user.id)


@pytest.mark.django_db
def test_delete_file_missing_blob(user, mock_s3, file_record):
    """Test delete tolerates an already missing blob."""
    delete_file(file_record.id, user.id)

    assert FileRecord.objects.count() == 0


@pytest.mark.django_db
def test_delete_file_not_found(user):
    """Test deleting non-existent file."""
    with pytest.raises(FileRecordNotFoundError):
        delete_file(99999, user.id)


@pytest.mark.django_db
def test_delete_file_other_owner(other_user, file_record):
    """Test deleting a foreign file is rejected."""
    with pytest.raises(FileRecordNotFoundError):
        delete_file(file_record.id, other_user.id)

    assert FileRecord.objects.filter(pk=file_record.pk).exists()


@pytest.mark.django_db
def test_delete_file_storage_failure_keeps_record(
    user,
    mock_s3,
    file_record,
    monkeypatch,
):
    """Test failed blob delete keeps the record."""
    monkeypatch.setattr(
        get_storage_provider(),
        'delete_file',
        _raise_storage_error,
    )

    with pytest.raises(InternalStorageError):
        delete_file(file_record.id, user.id)

    assert FileRecord.objects.filter(pk=file_record.pk).exists()


@pytest.mark.django_db
def test_delete_file_database_failure_after_blob_removed(
    user,
    stored_keys,
    monkeypatch,
):
    """Test failed record delete is reported after the blob is gone."""
    file_record = _upload(user)
    monkeypatch.setattr(FileRecord, 'delete', _raise_database_error)

    with pytest.raises(InternalPersistenceError):
        delete_file(file_record.id, user.id)

    assert FileRecord.objects.filter(pk=file_record.pk).exists()
    assert stored_keys(user.id) == set()


@pytest.mark.django_db
def test_upload_update_delete_scenario(user, stored_keys):
    """Test the full lifecycle of a single file."""
    image = b'\xff' * 1024000
    file_record = upload_file(
        user.id,
        image,
        'photo.jpg',
        'image/jpeg',
        1024000,
    )

    assert file_record.size == 1024000
    assert file_record.content_type == 'image/jpeg'
    assert file_record.signed_url
    original_key = file_record.blob_key

    document = b'%' * 2048000
    updated = update_file(
        file_record.id,
        user.id,
        document,
        'scan.pdf',
        'application/pdf',
        2048000,
    )

    assert updated.size == 2048000
    assert updated.content_type == 'application/pdf'
    assert original_key not in stored_keys(user.id)

    delete_file(updated.id, user.id)

    with pytest.raises(FileRecordNotFoundError):
        get_file(updated.id, user.id)


def _create_records(owner):
    specs = [
        ('b.txt', 'text/plain', 300),
        ('a.pdf', 'application/pdf', 100),
        ('c.png', 'image/png', 200),
    ]
    return [
        FileRecord.objects.create(
            owner=owner,
            storage_key=f'{owner.id}-{name}',
            original_name=name,
            content_type=content_type,
            size=size,
        )
        for name, content_type, size in specs
    ]


@pytest.mark.django_db
def test_list_files_default_newest_first(user):
    """Test default listing sorts by upload time, newest first."""
    records = _create_records(user)

    listed = list_files(user.id)

    assert listed == list(reversed(records))


@pytest.mark.django_db
@pytest.mark.parametrize(('sort_by', 'sort_type', 'expected'), [
    ('originalName', 'asc', ['a.pdf', 'b.txt', 'c.png']),
    ('originalName', 'desc', ['c.png', 'b.txt', 'a.pdf']),
    ('size', 'asc', ['a.pdf', 'c.png', 'b.txt']),
    ('contentType', 'asc', ['a.pdf', 'c.png', 'b.txt']),
])
def test_list_files_sorting(user, sort_by, sort_type, expected):
    """Test listing sorts by the requested field and direction."""
    _create_records(user)

    listed = list_files(user.id, sort_by=sort_by, sort_type=sort_type)

    assert [record.original_name for record in listed] == expected


@pytest.mark.django_db
def test_list_files_pagination(user):
    """Test page and limit select the right slice."""
    _create_records(user)

    by_size = {'sort_by': 'size', 'sort_type': 'asc'}
    first = list_files(user.id, page=1, limit=2, **by_size)
    second = list_files(user.id, page=2, limit=2, **by_size)
    third = list_files(user.id, page=3, limit=2)

    assert [record.size for record in first] == [100, 200]
    assert [record.size for record in second] == [300]
    assert third == []


@pytest.mark.django_db
def test_list_files_user_isolation(user, other_user):
    """Test listing only returns the user's files."""
    _create_records(user)
    _create_records(other_user)

    listed = list_files(other_user.id, limit=100)

    assert len(listed) == 3
    assert all(record.owner_id == other_user.id for record in listed)


@pytest.mark.django_db
@pytest.mark.parametrize('kwargs', [
    {'sort_by': 'storage_key'},
    {'sort_type': 'sideways'},
    {'page': 0},
    {'page': MAX_PAGE_NUMBER + 1},
    {'limit': 0},
    {'limit': 101},
])
def test_list_files_invalid_query(user, kwargs):
    """Test out-of-range parameters are rejected."""
    with pytest.raises(InvalidQueryError):
        list_files(user.id, **kwargs)
