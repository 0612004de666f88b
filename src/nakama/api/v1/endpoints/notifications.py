# src/nakama/api/v1/endpoints/notifications.py
"""Notification inbox endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import Response, StreamingResponse

from nakama.api.v1.dependencies import PageArgsDep, ServiceDep, UserIdDep
from nakama.api.v1.streams import event_stream
from nakama.schemas import Notification, Page
from nakama.schemas.notification import HasUnreadOutput

router = APIRouter(tags=["notifications"])


@router.get("/notifications", response_model=Page[Notification])
def list_notifications(
    service: ServiceDep, user_id: UserIdDep, args: PageArgsDep
) -> Page[Notification]:
    return service.notifications(user_id, args)


@router.get("/notifications/stream")
async def stream_notifications(service: ServiceDep, user_id: UserIdDep) -> StreamingResponse:
    return event_stream(service.subscribe_notifications(user_id))


@router.get("/has_unread_notifications", response_model=HasUnreadOutput)
def has_unread_notifications(service: ServiceDep, user_id: UserIdDep) -> HasUnreadOutput:
    return HasUnreadOutput(has_unread=service.has_unread_notifications(user_id))


@router.post("/notifications/{notification_id}/mark_as_read", status_code=status.HTTP_204_NO_CONTENT)
def read_notification(notification_id: str, service: ServiceDep, user_id: UserIdDep) -> Response:
    service.read_notification(notification_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/mark_notifications_as_read", status_code=status.HTTP_204_NO_CONTENT)
def read_all_notifications(service: ServiceDep, user_id: UserIdDep) -> Response:
    service.read_all_notifications(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
