# src/nakama/api/v1/endpoints/posts.py
"""Post endpoints, including the realtime stream of new posts."""

import asyncio
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.responses import Response, StreamingResponse

from nakama.api.v1.dependencies import PageArgsDep, ServiceDep, UserIdDep
from nakama.api.v1.streams import event_stream
from nakama.schemas import Page, Post, Reaction
from nakama.schemas.post import ReactionRequest, ToggleSubscriptionOutput, UpdatePostRequest
from nakama.services import CreatePost, UpdatePost

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=Post, status_code=status.HTTP_201_CREATED)
async def create_post(
    service: ServiceDep,
    user_id: UserIdDep,
    content: Annotated[str, Form()] = "",
    is_r18: Annotated[bool, Form()] = False,
    attachments: Annotated[list[UploadFile] | None, File()] = None,
) -> Post:
    """Create a post from a multipart form; attachments are image files."""
    files = attachments or []
    try:
        return await service.create_post(
            CreatePost(content=content, is_r18=is_r18, attachments=[f.file for f in files]),
            user_id,
        )
    finally:
        for f in files:
            await f.close()


@router.get("", response_model=Page[Post])
async def list_posts(
    service: ServiceDep,
    user_id: UserIdDep,
    args: PageArgsDep,
    username: Annotated[str | None, Query()] = None,
    tag: Annotated[str | None, Query()] = None,
) -> Page[Post]:
    """List posts newest first, optionally by author username or tag."""
    page = await asyncio.to_thread(
        service.posts, username=username, tag=tag, viewer_id=user_id, args=args
    )
    await service.attach_previews(page.items)
    return page


@router.get("/search", response_model=Page[Post])
async def search_posts(
    service: ServiceDep,
    user_id: UserIdDep,
    args: PageArgsDep,
    q: Annotated[str, Query()],
) -> Page[Post]:
    page = await asyncio.to_thread(service.search_posts, q, viewer_id=user_id, args=args)
    await service.attach_previews(page.items)
    return page


@router.get("/stream")
async def stream_posts(service: ServiceDep) -> StreamingResponse:
    return event_stream(service.subscribe_posts())


@router.get("/{post_id}", response_model=Post)
async def get_post(post_id: str, service: ServiceDep, user_id: UserIdDep) -> Post:
    post = await asyncio.to_thread(service.post, post_id, viewer_id=user_id)
    await service.attach_previews([post])
    return post


@router.patch("/{post_id}", response_model=Post)
def update_post(
    post_id: str, body: UpdatePostRequest, service: ServiceDep, user_id: UserIdDep
) -> Post:
    return service.update_post(
        post_id, UpdatePost(content=body.content, is_r18=body.is_r18), user_id
    )


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(post_id: str, service: ServiceDep, user_id: UserIdDep) -> Response:
    service.delete_post(post_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/toggle_reaction", response_model=list[Reaction])
def toggle_post_reaction(
    post_id: str, body: ReactionRequest, service: ServiceDep, user_id: UserIdDep
) -> list[Reaction]:
    return service.toggle_post_reaction(post_id, body.reaction, user_id)


@router.post("/{post_id}/toggle_subscription", response_model=ToggleSubscriptionOutput)
def toggle_post_subscription(
    post_id: str, service: ServiceDep, user_id: UserIdDep
) -> ToggleSubscriptionOutput:
    return service.toggle_post_subscription(post_id, user_id)
