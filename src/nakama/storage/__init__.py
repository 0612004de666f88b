"""Object storage for avatars and post attachments."""

from .store import (
    BlobStore,
    MemoryBlobStore,
    StoredObject,
    create_read_only_bucket,
    read_only_policy,
)
from .uploader import UploadError, UploadFile, Uploader

__all__ = [
    "BlobStore",
    "MemoryBlobStore",
    "StoredObject",
    "UploadError",
    "UploadFile",
    "Uploader",
    "create_read_only_bucket",
    "read_only_policy",
]
