import re
from unittest import mock

import pytest
from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage

from cores import storage
from cores.exceptions import StorageError


@pytest.fixture
def fs(tmp_path):
    return FileSystemStorage(location=str(tmp_path), base_url='/media/')


def test_build_storage_path_is_stamped_and_sanitised():
    path = storage.build_storage_path('modules', 12, 'Lesson 1 (final).pdf')
    assert re.fullmatch(r'modules/12/\d{13}_Lesson_1_final\.pdf', path)


def test_put_returns_locations(fs, settings):
    settings.STORAGE_BUCKET = 'school-bucket'
    stored = storage.put(
        'modules/1/notes.txt', b'hello', content_type='text/plain', metadata={'moduleId': '1'}, storage=fs,
    )

    assert stored.storage_path == 'modules/1/notes.txt'
    assert stored.gs_uri == f"gs://school-bucket/{stored.storage_path}"
    assert stored.public_url.startswith('https://storage.googleapis.com/school-bucket/')
    assert stored.metadata == {'contentType': 'text/plain', 'moduleId': '1'}


def test_put_into_given_storage(fs):
    stored = storage.put('a/b.txt', b'data', storage=fs)
    assert fs.exists(stored.storage_path)
    assert stored.download_url == f"/media/{stored.storage_path}"


def test_put_failure_raises_storage_error():
    broken = mock.Mock()
    broken.save.side_effect = OSError('disk full')
    with pytest.raises(StorageError):
        storage.put('x.txt', b'1', storage=broken)


def test_delete_missing_object(fs):
    assert storage.delete('nope.txt', storage=fs).ok
    result = storage.delete('nope.txt', ignore_not_found=False, storage=fs)
    assert not result.ok
    assert isinstance(result.error, StorageError)


def test_delete_failure_is_reported_not_raised():
    broken = mock.Mock()
    broken.exists.return_value = True
    broken.delete.side_effect = PermissionError('denied')

    result = storage.delete('x.txt', storage=broken)
    assert not result.ok
    assert 'denied' in str(result.error)
    assert storage.log_failure(result, 'test') is False


def test_delete_by_prefix_walks_nested_folders(fs):
    fs.save('modules/7/a.txt', ContentFile(b'a'))
    fs.save('modules/7/sub/b.txt', ContentFile(b'b'))
    fs.save('modules/8/c.txt', ContentFile(b'c'))

    result = storage.delete_by_prefix('modules/7', storage=fs)

    assert result.ok
    assert result.deleted == 2
    assert fs.exists('modules/8/c.txt')
    assert not fs.exists('modules/7/a.txt')


def test_delete_by_prefix_missing_folder(fs):
    assert storage.delete_by_prefix('modules/404', storage=fs).ok
