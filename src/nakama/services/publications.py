# src/nakama/services/publications.py
"""Publications (manga, novels, tutorials) and their numbered chapters."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nakama import models, schemas
from nakama.cursor import Cursor
from nakama.db.session import is_unique_violation
from nakama.db.time import utcnow
from nakama.errs import already_exists, invalid_argument, not_found, permission_denied
from nakama.models.publication import PublicationKind
from nakama.pagination import PageArgs, paginate
from nakama.services.base import ServiceBase
from nakama.validator import Validator

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
CHAPTER_CONTENT_MAX_LENGTH = 10_000


def _check_text(v: Validator, value: str, field: str, label: str, max_length: int) -> None:
    if not value:
        v.add_error(field, f"{label} cannot be empty")
    elif len(value) > max_length:
        v.add_error(field, f"{label} cannot exceed {max_length:,} characters")


@dataclass
class CreatePublication:
    kind: PublicationKind | str
    title: str
    description: str

    def validate(self) -> None:
        self.title = self.title.strip()
        self.description = self.description.strip()
        v = Validator()
        try:
            self.kind = PublicationKind(self.kind)
        except ValueError:
            v.add_error("kind", "Invalid publication kind")
        _check_text(v, self.title, "title", "Title", TITLE_MAX_LENGTH)
        _check_text(v, self.description, "description", "Description", DESCRIPTION_MAX_LENGTH)
        v.raise_if_errors()


@dataclass
class UpdatePublication:
    title: str | None = None
    description: str | None = None

    def validate(self) -> None:
        if self.title is None and self.description is None:
            raise invalid_argument("nothing to update")
        v = Validator()
        if self.title is not None:
            self.title = self.title.strip()
            _check_text(v, self.title, "title", "Title", TITLE_MAX_LENGTH)
        if self.description is not None:
            self.description = self.description.strip()
            _check_text(v, self.description, "description", "Description", DESCRIPTION_MAX_LENGTH)
        v.raise_if_errors()


@dataclass
class CreateChapter:
    number: int
    title: str
    content: str

    def validate(self) -> None:
        self.title = self.title.strip()
        self.content = self.content.strip()
        v = Validator()
        _check_text(v, self.title, "title", "Title", TITLE_MAX_LENGTH)
        _check_text(v, self.content, "content", "Content", CHAPTER_CONTENT_MAX_LENGTH)
        v.check(self.number > 0, "number", "Chapter number must be greater than zero")
        v.raise_if_errors()


class PublicationsMixin(ServiceBase):
    def _publication_by_id(self, db: Session, publication_id: str) -> models.Publication:
        publication = db.get(models.Publication, publication_id)
        if publication is None:
            raise not_found("publication not found")
        return publication

    def _publication_out(self, publication: models.Publication) -> schemas.Publication:
        return schemas.Publication(
            id=publication.id,
            user_id=publication.user_id,
            kind=publication.kind,
            title=publication.title,
            description=publication.description,
            created_at=publication.created_at,
            updated_at=publication.updated_at,
            user=self._user_out(publication.user),
        )

    def create_publication(self, params: CreatePublication, user_id: str | None) -> schemas.Publication:
        uid = self._require_user(user_id)
        params.validate()
        with self._tx() as db:
            publication = models.Publication(
                user_id=uid, kind=params.kind, title=params.title, description=params.description
            )
            db.add(publication)
            db.flush()
            db.refresh(publication)
            return self._publication_out(publication)

    def publications(
        self,
        *,
        kind: PublicationKind | str | None = None,
        user_id: str | None = None,
        args: PageArgs = PageArgs(),
    ) -> schemas.Page[schemas.Publication]:
        """List publications newest first, optionally of one kind or author."""
        stmt = select(models.Publication)
        if kind is not None:
            try:
                kind = PublicationKind(kind)
            except ValueError as exc:
                raise invalid_argument("Invalid publication kind", "kind") from exc
            stmt = stmt.where(models.Publication.kind == kind)
        if user_id is not None:
            self._check_id(user_id, "user_id", "Invalid user ID")
            stmt = stmt.where(models.Publication.user_id == user_id)

        with self._read() as db:
            items, info = paginate(
                db, stmt, args, id_column=models.Publication.id, cursor_for=lambda p: Cursor(id=p.id)
            )
            return schemas.Page[schemas.Publication](
                items=[self._publication_out(p) for p in items], page_info=info
            )

    def publication(self, publication_id: str) -> schemas.Publication:
        self._check_id(publication_id, "publication_id", "Invalid publication ID")
        with self._read() as db:
            return self._publication_out(self._publication_by_id(db, publication_id))

    def update_publication(
        self, publication_id: str, params: UpdatePublication, user_id: str | None
    ) -> schemas.Publication:
        uid = self._require_user(user_id)
        self._check_id(publication_id, "publication_id", "Invalid publication ID")
        params.validate()
        with self._tx() as db:
            publication = self._publication_by_id(db, publication_id)
            if publication.user_id != uid:
                raise permission_denied("update publication denied")
            if params.title is not None:
                publication.title = params.title
            if params.description is not None:
                publication.description = params.description
            publication.updated_at = utcnow()
            db.flush()
            db.refresh(publication)
            return self._publication_out(publication)

    def create_chapter(
        self, publication_id: str, params: CreateChapter, user_id: str | None
    ) -> schemas.Chapter:
        """Add a chapter; only the publication's author may do so."""
        uid = self._require_user(user_id)
        self._check_id(publication_id, "publication_id", "Invalid publication ID")
        params.validate()
        try:
            with self._tx() as db:
                publication = self._publication_by_id(db, publication_id)
                if publication.user_id != uid:
                    raise permission_denied("create chapter denied")
                chapter = models.Chapter(
                    publication_id=publication_id,
                    number=params.number,
                    title=params.title,
                    content=params.content,
                )
                db.add(chapter)
                db.flush()
                db.refresh(chapter)
                return schemas.Chapter.model_validate(chapter)
        except IntegrityError as exc:
            if is_unique_violation(exc, "number"):
                raise already_exists("Chapter with this number already exists", "number") from exc
            raise

    def chapters(
        self, publication_id: str, args: PageArgs = PageArgs()
    ) -> schemas.Page[schemas.Chapter]:
        """Chapters of a publication, highest number first."""
        self._check_id(publication_id, "publication_id", "Invalid publication ID")
        stmt = select(models.Chapter).where(models.Chapter.publication_id == publication_id)
        with self._read() as db:
            self._publication_by_id(db, publication_id)
            items, info = paginate(
                db,
                stmt,
                args,
                id_column=models.Chapter.id,
                sort_column=models.Chapter.number,
                cursor_for=lambda c: Cursor(id=c.id, value=c.number),
            )
            return schemas.Page[schemas.Chapter](
                items=[schemas.Chapter.model_validate(c) for c in items], page_info=info
            )

    def chapter(self, publication_id: str, number: int) -> schemas.Chapter:
        self._check_id(publication_id, "publication_id", "Invalid publication ID")
        if number < 1:
            raise invalid_argument("Chapter number must be greater than zero", "number")
        with self._read() as db:
            chapter = db.scalar(
                select(models.Chapter).where(
                    models.Chapter.publication_id == publication_id,
                    models.Chapter.number == number,
                )
            )
            if chapter is None:
                raise not_found("chapter not found")
            return schemas.Chapter.model_validate(chapter)

    def latest_chapter_number(self, publication_id: str) -> int:
        """Highest chapter number of a publication, or 0 without chapters."""
        self._check_id(publication_id, "publication_id", "Invalid publication ID")
        with self._read() as db:
            return db.scalar(
                select(func.coalesce(func.max(models.Chapter.number), 0)).where(
                    models.Chapter.publication_id == publication_id
                )
            ) or 0
