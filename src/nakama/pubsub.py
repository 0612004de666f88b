"""In-process publish/subscribe for realtime streams.

Topics used by the service:

* ``posts``: every new post.
* ``timeline_item_<user_id>``: posts landing on a user's timeline.
* ``comment_<post_id>``: new comments on a post.
* ``notification_<user_id>``: notifications for a user.

Payloads are serialized with MessagePack when published. Each subscription
owns a bounded queue living on the event loop that created it; publishing is
safe from any thread. Slow subscribers lose events instead of blocking
publishers.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

import msgpack

logger = logging.getLogger(__name__)

DEFAULT_BUFFER = 64

_CLOSED = object()


def encode(value: Any) -> bytes:
    """Serialize a payload; pydantic models are dumped in JSON mode."""
    if hasattr(value, "model_dump"):
        value = value.model_dump(mode="json")
    return msgpack.packb(value, use_bin_type=True)


def decode(data: bytes) -> Any:
    return msgpack.unpackb(data, raw=False)


def posts_topic() -> str:
    return "posts"


def timeline_topic(user_id: str) -> str:
    return f"timeline_item_{user_id}"


def comments_topic(post_id: str) -> str:
    return f"comment_{post_id}"


def notifications_topic(user_id: str) -> str:
    return f"notification_{user_id}"


class Subscription:
    """Receiving end of a topic.

    Use as an async context manager and iterate it; leaving the block (or
    cancelling the consuming task) unsubscribes and ends iteration.
    """

    def __init__(self, hub: Hub, topic: str, buffer: int) -> None:
        self.hub = hub
        self.topic = topic
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=buffer)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, data: bytes) -> None:
        if self._closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._put, data)
        except RuntimeError:
            # Event loop already closed.
            self._closed = True

    def _put(self, data: Any) -> None:
        try:
            self._queue.put_nowait(data)
        except asyncio.QueueFull:
            logger.debug("dropping event for slow subscriber on %s", self.topic)

    async def get(self) -> bytes:
        """Wait for the next raw payload.

        Raises:
            StopAsyncIteration: The subscription was closed.
        """
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.hub._unsubscribe(self)
        # Wake a pending ``get``; a full queue means nobody is waiting.
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Any:
        return decode(await self.get())

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class Hub:
    """Topic table guarded by a lock."""

    def __init__(self, *, buffer: int = DEFAULT_BUFFER) -> None:
        self._buffer = buffer
        self._lock = threading.Lock()
        self._topics: dict[str, set[Subscription]] = {}

    def subscribe(self, topic: str) -> Subscription:
        """Subscribe from within a running event loop."""
        sub = Subscription(self, topic, self._buffer)
        with self._lock:
            self._topics.setdefault(topic, set()).add(sub)
        return sub

    def _unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._topics.get(sub.topic)
            if not subs:
                return
            subs.discard(sub)
            if not subs:
                del self._topics[sub.topic]

    def subscribers(self, topic: str) -> int:
        with self._lock:
            return len(self._topics.get(topic, ()))

    def publish(self, topic: str, value: Any) -> None:
        data = encode(value)
        with self._lock:
            subs = list(self._topics.get(topic, ()))
        for sub in subs:
            sub._deliver(data)

    def close(self) -> None:
        """Close every open subscription."""
        with self._lock:
            subs = [sub for topic_subs in self._topics.values() for sub in topic_subs]
        for sub in subs:
            try:
                sub._loop.call_soon_threadsafe(sub.close)
            except RuntimeError:
                self._unsubscribe(sub)
