# src/nakama/api/v1/endpoints/timeline.py
"""Home timeline endpoints."""

import asyncio

from fastapi import APIRouter, status
from fastapi.responses import Response, StreamingResponse

from nakama.api.v1.dependencies import PageArgsDep, ServiceDep, UserIdDep
from nakama.api.v1.streams import event_stream
from nakama.schemas import Page, TimelineItem

router = APIRouter(prefix="/timeline", tags=["timeline"])


@router.get("", response_model=Page[TimelineItem])
async def timeline(service: ServiceDep, user_id: UserIdDep, args: PageArgsDep) -> Page[TimelineItem]:
    page = await asyncio.to_thread(service.timeline, user_id, args)
    await service.attach_previews([item.post for item in page.items if item.post is not None])
    return page


@router.get("/stream")
async def stream_timeline(service: ServiceDep, user_id: UserIdDep) -> StreamingResponse:
    return event_stream(service.subscribe_timeline(user_id))


@router.delete("/{timeline_item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_timeline_item(timeline_item_id: str, service: ServiceDep, user_id: UserIdDep) -> Response:
    service.delete_timeline_item(timeline_item_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
