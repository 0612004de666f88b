"""Fetch and cache OpenGraph previews for URLs.

Successful previews and failures are cached separately; a URL that failed
recently is not requested again until its error entry expires.
"""

from __future__ import annotations

import asyncio
import io
import posixpath
import time
from collections.abc import Callable
from urllib.parse import urlsplit

import httpx
from PIL import Image

from nakama.opengraph import OpenGraph, OpenGraphImage, parse
from nakama.preview.cache import ExpiringLRU

USER_AGENT = "Twitterbot/1.0"
ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/*;q=0.8,*/*;q=0.5"
MAX_BYTES = 2 << 20
DEFAULT_CACHE_SIZE = 256


class PreviewError(RuntimeError):
    """Base error for preview fetching failures."""


class BackoffError(PreviewError):
    """A previous attempt failed recently; the URL is not retried yet."""

    def __init__(self) -> None:
        super().__init__("preview fetch backoff due to recent error")


def canonical_url(raw_url: str) -> str:
    """Trim ``raw_url`` and default its scheme to https."""
    url = raw_url.strip()
    lowered = url.lower()
    if not (lowered.startswith("http://") or lowered.startswith("https://")):
        url = "https://" + url
    return url


def _decode_html(body: bytes, charset: str | None) -> str:
    try:
        return body.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def _image_size(data: bytes) -> tuple[int, int] | None:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (OSError, ValueError, Image.DecompressionBombError):
        return None


class Fetcher:
    """Retrieves OpenGraph metadata with positive and negative caching.

    Safe for concurrent use from multiple tasks.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        size: int = DEFAULT_CACHE_SIZE,
        success_ttl: float = 3600.0,
        error_ttl: float = 300.0,
        timeout: float | None = 10.0,
        max_bytes: int = MAX_BYTES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if size <= 0:
            size = DEFAULT_CACHE_SIZE
        self._client = client
        self._ok: ExpiringLRU[str, OpenGraph] = ExpiringLRU(size, success_ttl, clock=clock)
        self._err: ExpiringLRU[str, bool] = ExpiringLRU(size, error_ttl, clock=clock)
        self._timeout = timeout
        self._max_bytes = max_bytes

    async def get(self, raw_url: str, *, timeout: float | None = None) -> OpenGraph:
        """Return the preview for ``raw_url``.

        Raises:
            BackoffError: The URL failed within the error TTL.
            PreviewError: Fetching or parsing failed.
        """
        url = canonical_url(raw_url)

        if url in self._err:
            raise BackoffError()

        cached = self._ok.get(url)
        if cached is not None:
            return cached.model_copy(deep=True)

        try:
            async with asyncio.timeout(timeout if timeout is not None else self._timeout):
                og = await self._fetch(url)
        except PreviewError:
            self._err.add(url, True)
            raise
        except (httpx.HTTPError, httpx.InvalidURL, TimeoutError) as exc:
            self._err.add(url, True)
            raise PreviewError(f"http get {url}: {exc}") from exc

        self._ok.add(url, og)
        return og.model_copy(deep=True)

    async def _fetch(self, url: str) -> OpenGraph:
        headers = {"User-Agent": USER_AGENT, "Accept": ACCEPT}
        async with self._client.stream("GET", url, headers=headers) as resp:
            body = await self._read_limited(resp)
            if not resp.is_success:
                text = body.decode("utf-8", errors="replace")
                raise PreviewError(f"http status: {resp.status_code}, body: {text}")

            content_type = resp.headers.get("content-type", "").split(";", 1)[0].strip().lower()
            if content_type.startswith("image/"):
                return self._image_preview(url, content_type, body)

            html = _decode_html(body, resp.charset_encoding)

        try:
            return parse(html, url)
        except ValueError as exc:
            raise PreviewError(f"parse opengraph: {exc}") from exc

    async def _read_limited(self, resp: httpx.Response) -> bytes:
        buf = bytearray()
        async for chunk in resp.aiter_bytes():
            buf.extend(chunk)
            if len(buf) >= self._max_bytes:
                del buf[self._max_bytes:]
                break
        return bytes(buf)

    @staticmethod
    def _image_preview(url: str, content_type: str, body: bytes) -> OpenGraph:
        parts = urlsplit(url)
        image = OpenGraphImage(url=url, type=content_type)
        size = _image_size(body)
        if size is not None:
            image.width, image.height = size
        return OpenGraph(
            title=posixpath.basename(parts.path),
            url=url,
            type="image",
            site_name=parts.hostname or "",
            images=[image],
        )
