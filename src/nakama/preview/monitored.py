"""Concurrent preview fetching with a best-effort error channel."""

from __future__ import annotations

import asyncio
import logging
import queue
from collections.abc import Sequence
from dataclasses import dataclass, field

from nakama.opengraph import OpenGraph
from nakama.preview.fetcher import Fetcher, PreviewError

logger = logging.getLogger(__name__)


@dataclass
class Result:
    """Outcome of fetching one URL."""

    url: str
    data: OpenGraph = field(default_factory=OpenGraph)
    error: Exception | None = None


class Results(list[Result]):
    def is_empty(self) -> bool:
        return all(result.data.is_empty() for result in self)


class Monitored:
    """Wraps a :class:`Fetcher`, fetching many URLs at once.

    Failures are kept on each :class:`Result` and also offered to
    ``errors``, a one-slot queue that drops when nobody drains it.
    """

    def __init__(self, fetcher: Fetcher) -> None:
        self.fetcher = fetcher
        self.errors: queue.Queue[Exception] = queue.Queue(maxsize=1)

    def _report(self, err: Exception) -> None:
        try:
            self.errors.put_nowait(err)
        except queue.Full:
            pass

    async def _fetch_one(self, url: str, timeout: float | None) -> Result:
        try:
            data = await self.fetcher.get(url, timeout=timeout)
        except PreviewError as exc:
            logger.debug("preview fetch for %s failed: %s", url, exc)
            self._report(PreviewError(f"failed to fetch preview {url}: {exc}"))
            return Result(url=url, error=exc)
        except Exception as exc:
            logger.error("unexpected error fetching preview %s", url, exc_info=True)
            self._report(RuntimeError(f"unexpected error while fetching preview {url!r}: {exc}"))
            return Result(url=url, error=exc)
        return Result(url=url, data=data)

    async def fetch(self, urls: Sequence[str], *, timeout: float | None = None) -> Results:
        """Fetch every URL concurrently; results keep the input order."""
        if not urls:
            return Results()
        results = await asyncio.gather(*(self._fetch_one(url, timeout) for url in urls))
        return Results(results)
