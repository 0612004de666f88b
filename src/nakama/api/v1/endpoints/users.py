# src/nakama/api/v1/endpoints/users.py
"""User profiles, search, follows and avatars."""

from typing import Annotated

from fastapi import APIRouter, File, Query, UploadFile

from nakama.api.v1.dependencies import PageArgsDep, ServiceDep, UserIdDep
from nakama.schemas import Page, SimplePage, ToggleFollowOutput, UserProfile

router = APIRouter(tags=["users"])


@router.get("/users", response_model=SimplePage[UserProfile])
def search_users(
    service: ServiceDep,
    user_id: UserIdDep,
    search: Annotated[str, Query()] = "",
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=100)] = 20,
) -> SimplePage[UserProfile]:
    return service.search_users(search, page=page, per_page=per_page, viewer_id=user_id)


@router.get("/users/{username}", response_model=UserProfile)
def user_by_username(username: str, service: ServiceDep, user_id: UserIdDep) -> UserProfile:
    return service.user_by_username(username, viewer_id=user_id)


@router.get("/user_ids/{target_id}", response_model=UserProfile)
def user(target_id: str, service: ServiceDep, user_id: UserIdDep) -> UserProfile:
    return service.user(target_id, viewer_id=user_id)


@router.get("/users/{target_id}/followers", response_model=Page[UserProfile])
def followers(
    target_id: str, service: ServiceDep, user_id: UserIdDep, args: PageArgsDep
) -> Page[UserProfile]:
    return service.followers(target_id, viewer_id=user_id, args=args)


@router.get("/users/{target_id}/followees", response_model=Page[UserProfile])
def followees(
    target_id: str, service: ServiceDep, user_id: UserIdDep, args: PageArgsDep
) -> Page[UserProfile]:
    return service.followees(target_id, viewer_id=user_id, args=args)


@router.post("/users/{target_id}/toggle_follow", response_model=ToggleFollowOutput)
def toggle_follow(target_id: str, service: ServiceDep, user_id: UserIdDep) -> ToggleFollowOutput:
    return service.toggle_follow(target_id, user_id)


@router.put("/auth_user/avatar")
async def update_avatar(
    service: ServiceDep,
    user_id: UserIdDep,
    avatar: Annotated[UploadFile, File()],
) -> dict[str, str]:
    """Replace the caller's avatar; returns the new public URL."""
    try:
        url = await service.update_avatar(avatar.file, user_id)
    finally:
        await avatar.close()
    return {"avatar_url": url}
