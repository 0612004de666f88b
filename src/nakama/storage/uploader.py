# src/nakama/storage/uploader.py
"""Batch uploads with compensating deletion."""

from __future__ import annotations

import asyncio
import logging
import queue
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import BinaryIO

from nakama.storage.store import BlobStore

logger = logging.getLogger(__name__)

Cleanup = Callable[[], None]


def _noop() -> None:
    return None


@dataclass
class UploadFile:
    path: str
    file: BinaryIO
    size: int
    content_type: str


class UploadError(RuntimeError):
    """Raised when at least one upload of a batch failed."""


class Uploader:
    """Uploads files to a :class:`BlobStore`.

    :meth:`upload_many` hands back a cleanup callable; call it when a later
    step (usually the database commit) fails so the uploaded objects are
    removed in the background. Removal is bounded by ``cleanup_timeout``
    and its failures are logged and offered to ``errors``.
    """

    def __init__(self, store: BlobStore, *, cleanup_timeout: float = 5.0) -> None:
        self.store = store
        self.cleanup_timeout = cleanup_timeout
        self.errors: queue.Queue[Exception] = queue.Queue(maxsize=1)
        self._tasks: set[asyncio.Task[None]] = set()

    def _report(self, err: Exception) -> None:
        logger.error("blob cleanup failed: %s", err)
        try:
            self.errors.put_nowait(err)
        except queue.Full:
            pass

    async def upload(self, bucket: str, file: UploadFile) -> None:
        file.file.seek(0)
        await asyncio.to_thread(
            self.store.put_object,
            bucket,
            file.path,
            file.file,
            file.size,
            content_type=file.content_type,
        )

    async def upload_many(self, bucket: str, files: Sequence[UploadFile]) -> Cleanup:
        """Upload ``files`` concurrently.

        Waits for every in-flight upload. If any failed, the ones that
        succeeded are removed in the background and :class:`UploadError` is
        raised.
        """
        if not files:
            return _noop

        results = await asyncio.gather(
            *(self.upload(bucket, file) for file in files),
            return_exceptions=True,
        )

        uploaded = [file.path for file, result in zip(files, results) if result is None]
        failures = [
            (file, result) for file, result in zip(files, results) if isinstance(result, BaseException)
        ]

        def cleanup() -> None:
            self._schedule_removal(bucket, uploaded)

        if failures:
            cleanup()
            file, exc = failures[0]
            if not isinstance(exc, Exception):
                raise exc
            raise UploadError(f"upload {file.path} failed: {exc}") from exc

        return cleanup

    def _schedule_removal(self, bucket: str, paths: list[str]) -> None:
        if not paths:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self._remove_all(bucket, paths))
            return
        task = loop.create_task(self._remove_all(bucket, paths))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _remove_all(self, bucket: str, paths: list[str]) -> None:
        try:
            async with asyncio.timeout(self.cleanup_timeout):
                results = await asyncio.gather(
                    *(asyncio.to_thread(self.store.remove_object, bucket, path) for path in paths),
                    return_exceptions=True,
                )
        except TimeoutError:
            self._report(TimeoutError(f"remove objects from {bucket}: cleanup timed out"))
            return
        except Exception as exc:
            self._report(RuntimeError(f"cleanup of {bucket} crashed: {exc}"))
            return

        for path, result in zip(paths, results):
            if isinstance(result, Exception):
                self._report(RuntimeError(f"remove object {path}: {result}"))

    async def close(self) -> None:
        """Wait for pending cleanups."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
