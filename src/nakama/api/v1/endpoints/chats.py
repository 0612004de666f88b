# src/nakama/api/v1/endpoints/chats.py
"""Private chat endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from nakama.api.v1.dependencies import PageArgsDep, ServiceDep, UserIdDep
from nakama.schemas import Chat, Message, Page
from nakama.schemas.chat import CreateChatRequest, CreateMessageRequest

router = APIRouter(tags=["chats"])


@router.post("/chats", response_model=Chat, status_code=status.HTTP_201_CREATED)
def create_chat(body: CreateChatRequest, service: ServiceDep, user_id: UserIdDep) -> Chat:
    """Start a chat with another user, sending the first message."""
    return service.create_chat(body.other_user_id, body.content, user_id)


@router.get("/chats", response_model=Page[Chat])
def list_chats(service: ServiceDep, user_id: UserIdDep, args: PageArgsDep) -> Page[Chat]:
    return service.chats(user_id, args)


@router.get("/chat_from_participants", response_model=Chat)
def chat_from_participants(
    service: ServiceDep,
    user_id: UserIdDep,
    other_user_id: Annotated[str, Query()],
) -> Chat:
    return service.chat_from_participants(other_user_id, user_id)


@router.get("/chats/{chat_id}", response_model=Chat)
def get_chat(chat_id: str, service: ServiceDep, user_id: UserIdDep) -> Chat:
    return service.chat(chat_id, user_id)


@router.post(
    "/chats/{chat_id}/messages", response_model=Message, status_code=status.HTTP_201_CREATED
)
def create_message(
    chat_id: str, body: CreateMessageRequest, service: ServiceDep, user_id: UserIdDep
) -> Message:
    return service.create_message(chat_id, body.content, user_id)


@router.get("/chats/{chat_id}/messages", response_model=Page[Message])
def list_messages(
    chat_id: str, service: ServiceDep, user_id: UserIdDep, args: PageArgsDep
) -> Page[Message]:
    """List messages newest first and mark the chat as read."""
    return service.messages(chat_id, user_id, args)
