"""
Object storage for uploaded files, on top of Django's storage API.

Every call that can fail hands back a StorageResult instead of raising, so
cascading deletes can log the failure and carry on with the record delete.
"""
import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

from .exceptions import StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredObject:
    storage_path: str
    download_url: str
    gs_uri: str
    public_url: str
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class StorageResult:
    ok: bool
    path: str
    deleted: int = 0
    error: Optional[StorageError] = None


def safe_name(name):
    cleaned = re.sub(r'[^\w.\-]+', '_', str(name or ''))
    return cleaned.strip('_')


def build_storage_path(folder_prefix, owner_id, original_name):
    """e.g. ('modules', 12, 'Lesson 1.pdf') -> 'modules/12/1700000000000_Lesson_1.pdf'"""
    base, ext = os.path.splitext(original_name or 'file')
    stamped = f"{int(time.time() * 1000)}_{safe_name(base) or 'file'}{ext}"
    return f"{folder_prefix}/{owner_id}/{stamped}"


def _bucket():
    return getattr(settings, 'STORAGE_BUCKET', 'lms-uploads')


def put(path, data, content_type=None, metadata=None, storage=None):
    storage = storage or default_storage
    content = ContentFile(data)
    content.content_type = content_type or 'application/octet-stream'
    try:
        name = storage.save(path, content)
    except Exception as exc:
        raise StorageError(f"Upload to {path} failed: {exc}") from exc

    try:
        download_url = storage.url(name)
    except NotImplementedError:
        download_url = ''

    return StoredObject(
        storage_path=name,
        download_url=download_url,
        gs_uri=f"gs://{_bucket()}/{name}",
        public_url=f"https://storage.googleapis.com/{_bucket()}/{quote(name)}",
        metadata={'contentType': content.content_type, **(metadata or {})},
    )


def delete(path, ignore_not_found=True, storage=None):
    storage = storage or default_storage
    try:
        if not storage.exists(path):
            if ignore_not_found:
                return StorageResult(ok=True, path=path)
            return StorageResult(ok=False, path=path, error=StorageError(f"Object not found at: {path}"))
        storage.delete(path)
    except Exception as exc:
        return StorageResult(ok=False, path=path, error=StorageError(f"Delete of {path} failed: {exc}"))
    return StorageResult(ok=True, path=path, deleted=1)


def _walk(storage, prefix):
    directories, files = storage.listdir(prefix)
    for name in files:
        yield f"{prefix.rstrip('/')}/{name}"
    for directory in directories:
        yield from _walk(storage, f"{prefix.rstrip('/')}/{directory}")


def delete_by_prefix(prefix, storage=None):
    storage = storage or default_storage
    try:
        paths = list(_walk(storage, prefix))
    except FileNotFoundError:
        return StorageResult(ok=True, path=prefix)
    except Exception as exc:
        return StorageResult(ok=False, path=prefix, error=StorageError(f"Listing {prefix} failed: {exc}"))

    deleted = 0
    first_error = None
    for path in paths:
        result = delete(path, storage=storage)
        deleted += result.deleted
        if not result.ok and first_error is None:
            first_error = result.error
    return StorageResult(ok=first_error is None, path=prefix, deleted=deleted, error=first_error)


def log_failure(result, context=''):
    """Log a failed StorageResult; returns result.ok so callers can branch."""
    if not result.ok:
        logger.warning("Storage cleanup failed%s: %s", f" ({context})" if context else '', result.error)
    return result.ok
