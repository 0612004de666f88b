# src/nakama/api/v1/endpoints/comments.py
"""Comment endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import Response, StreamingResponse

from nakama.api.v1.dependencies import PageArgsDep, ServiceDep, UserIdDep
from nakama.api.v1.streams import event_stream
from nakama.schemas import Comment, Page, Reaction
from nakama.schemas.comment import CreateCommentRequest, UpdateCommentRequest
from nakama.schemas.post import ReactionRequest

router = APIRouter(tags=["comments"])


@router.post(
    "/posts/{post_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED
)
def create_comment(
    post_id: str, body: CreateCommentRequest, service: ServiceDep, user_id: UserIdDep
) -> Comment:
    return service.create_comment(post_id, body.content, user_id)


@router.get("/posts/{post_id}/comments", response_model=Page[Comment])
def list_comments(
    post_id: str, service: ServiceDep, user_id: UserIdDep, args: PageArgsDep
) -> Page[Comment]:
    return service.comments(post_id, viewer_id=user_id, args=args)


@router.get("/posts/{post_id}/comments/stream")
async def stream_comments(post_id: str, service: ServiceDep) -> StreamingResponse:
    return event_stream(service.subscribe_comments(post_id))


@router.patch("/comments/{comment_id}", response_model=Comment)
def update_comment(
    comment_id: str, body: UpdateCommentRequest, service: ServiceDep, user_id: UserIdDep
) -> Comment:
    return service.update_comment(comment_id, body.content, user_id)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(comment_id: str, service: ServiceDep, user_id: UserIdDep) -> Response:
    service.delete_comment(comment_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/comments/{comment_id}/toggle_reaction", response_model=list[Reaction])
def toggle_comment_reaction(
    comment_id: str, body: ReactionRequest, service: ServiceDep, user_id: UserIdDep
) -> list[Reaction]:
    return service.toggle_comment_reaction(comment_id, body.reaction, user_id)
