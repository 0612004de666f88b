# src/nakama/storage/store.py
"""Blob store interface and an in-memory implementation.

The interface mirrors the subset of :class:`minio.Minio` the service uses, so a
configured MinIO client can be passed in directly.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from typing import Any, BinaryIO, Protocol


class BlobStore(Protocol):
    def put_object(
        self,
        bucket_name: str,
        object_name: str,
        data: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
    ) -> Any: ...

    def remove_object(self, bucket_name: str, object_name: str) -> None: ...

    def bucket_exists(self, bucket_name: str) -> bool: ...

    def make_bucket(self, bucket_name: str) -> None: ...

    def set_bucket_policy(self, bucket_name: str, policy: str | bytes) -> None: ...


def read_only_policy(bucket: str) -> str:
    """Policy document granting anonymous ``GetObject`` on ``bucket/*``."""
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": "*",
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{bucket}/*"],
                }
            ],
        }
    )


def create_read_only_bucket(store: BlobStore, bucket: str) -> None:
    """Create ``bucket`` if missing and make its objects publicly readable."""
    if not store.bucket_exists(bucket):
        store.make_bucket(bucket)
    store.set_bucket_policy(bucket, read_only_policy(bucket))


@dataclass
class StoredObject:
    data: bytes
    content_type: str


class MemoryBlobStore:
    """Thread-safe :class:`BlobStore` keeping objects in a dict.

    Used by the test suite and for running without MinIO.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.buckets: dict[str, dict[str, StoredObject]] = {}
        self.policies: dict[str, str] = {}

    def put_object(
        self,
        bucket_name: str,
        object_name: str,
        data: BinaryIO,
        length: int,
        content_type: str = "application/octet-stream",
    ) -> StoredObject:
        payload = data.read(length) if length >= 0 else data.read()
        obj = StoredObject(payload, content_type)
        with self._lock:
            if bucket_name not in self.buckets:
                raise KeyError(f"bucket {bucket_name!r} does not exist")
            self.buckets[bucket_name][object_name] = obj
        return obj

    def remove_object(self, bucket_name: str, object_name: str) -> None:
        with self._lock:
            self.buckets.get(bucket_name, {}).pop(object_name, None)

    def bucket_exists(self, bucket_name: str) -> bool:
        with self._lock:
            return bucket_name in self.buckets

    def make_bucket(self, bucket_name: str) -> None:
        with self._lock:
            self.buckets.setdefault(bucket_name, {})

    def set_bucket_policy(self, bucket_name: str, policy: str | bytes) -> None:
        if isinstance(policy, bytes):
            policy = policy.decode("utf-8")
        with self._lock:
            self.policies[bucket_name] = policy

    def get(self, bucket_name: str, object_name: str) -> StoredObject | None:
        with self._lock:
            return self.buckets.get(bucket_name, {}).get(object_name)

    def keys(self, bucket_name: str) -> list[str]:
        with self._lock:
            return sorted(self.buckets.get(bucket_name, {}))
