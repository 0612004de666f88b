# src/nakama/api/v1/endpoints/publications.py
"""Publication and chapter endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from nakama.api.v1.dependencies import PageArgsDep, ServiceDep, UserIdDep
from nakama.models import PublicationKind
from nakama.schemas import Chapter, Page, Publication
from nakama.schemas.publication import (
    CreateChapterRequest,
    CreatePublicationRequest,
    LatestChapterNumberOutput,
    UpdatePublicationRequest,
)
from nakama.services import CreateChapter, CreatePublication, UpdatePublication

router = APIRouter(prefix="/publications", tags=["publications"])


@router.post("", response_model=Publication, status_code=status.HTTP_201_CREATED)
def create_publication(
    body: CreatePublicationRequest, service: ServiceDep, user_id: UserIdDep
) -> Publication:
    return service.create_publication(
        CreatePublication(kind=body.kind, title=body.title, description=body.description),
        user_id,
    )


@router.get("", response_model=Page[Publication])
def list_publications(
    service: ServiceDep,
    args: PageArgsDep,
    kind: Annotated[PublicationKind | None, Query()] = None,
    user_id: Annotated[str | None, Query()] = None,
) -> Page[Publication]:
    return service.publications(kind=kind, user_id=user_id, args=args)


@router.get("/{publication_id}", response_model=Publication)
def get_publication(publication_id: str, service: ServiceDep) -> Publication:
    return service.publication(publication_id)


@router.patch("/{publication_id}", response_model=Publication)
def update_publication(
    publication_id: str, body: UpdatePublicationRequest, service: ServiceDep, user_id: UserIdDep
) -> Publication:
    return service.update_publication(
        publication_id,
        UpdatePublication(title=body.title, description=body.description),
        user_id,
    )


@router.post(
    "/{publication_id}/chapters", response_model=Chapter, status_code=status.HTTP_201_CREATED
)
def create_chapter(
    publication_id: str, body: CreateChapterRequest, service: ServiceDep, user_id: UserIdDep
) -> Chapter:
    return service.create_chapter(
        publication_id,
        CreateChapter(number=body.number, title=body.title, content=body.content),
        user_id,
    )


@router.get("/{publication_id}/chapters", response_model=Page[Chapter])
def list_chapters(publication_id: str, service: ServiceDep, args: PageArgsDep) -> Page[Chapter]:
    return service.chapters(publication_id, args)


@router.get("/{publication_id}/chapters/{number}", response_model=Chapter)
def get_chapter(publication_id: str, number: int, service: ServiceDep) -> Chapter:
    return service.chapter(publication_id, number)


@router.get("/{publication_id}/latest_chapter_number", response_model=LatestChapterNumberOutput)
def latest_chapter_number(publication_id: str, service: ServiceDep) -> LatestChapterNumberOutput:
    return LatestChapterNumberOutput(number=service.latest_chapter_number(publication_id))
