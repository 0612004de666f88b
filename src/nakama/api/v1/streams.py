# src/nakama/api/v1/streams.py
"""Server-sent event responses fed by hub subscriptions."""

import json
import logging
from collections.abc import AsyncIterator

from fastapi.responses import StreamingResponse

from nakama.pubsub import Subscription

logger = logging.getLogger(__name__)


async def _events(subscription: Subscription) -> AsyncIterator[str]:
    # Client disconnects cancel this generator, which closes the subscription.
    async with subscription:
        async for event in subscription:
            yield f"data: {json.dumps(event)}\n\n"
    logger.debug("stream on %s ended", subscription.topic)


def event_stream(subscription: Subscription) -> StreamingResponse:
    return StreamingResponse(
        _events(subscription),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
