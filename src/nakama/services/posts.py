# src/nakama/services/posts.py
"""Posts: creation with image attachments, listing, editing and reactions."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, BinaryIO

from sqlalchemy import delete, exists, func, select
from sqlalchemy.orm import Session

from nakama import emojis, ffmpeg, models, schemas
from nakama import id as ids
from nakama.cursor import Cursor
from nakama.db.time import as_utc, utcnow
from nakama.errs import invalid_argument, not_found, permission_denied
from nakama.pagination import PageArgs, paginate
from nakama.pubsub import posts_topic
from nakama.services.base import (
    EDIT_WINDOW,
    POST_ATTACHMENT_MAX_RESOLUTION,
    POST_ATTACHMENTS_BUCKET,
    ServiceBase,
)
from nakama.storage import UploadFile
from nakama.textutil import collect_mentions, collect_tags, smart_trim
from nakama.validator import Validator

logger = logging.getLogger(__name__)

POST_CONTENT_MAX_LENGTH = 2048
REACTION_KIND_EMOJI = "emoji"


@dataclass
class CreatePost:
    content: str = ""
    is_r18: bool = False
    attachments: list[BinaryIO] = field(default_factory=list)

    def validate(self) -> None:
        self.content = smart_trim(self.content)
        v = Validator()
        v.check(
            bool(self.content) or bool(self.attachments),
            "content",
            "Content cannot be empty",
        )
        v.check(
            len(self.content) <= POST_CONTENT_MAX_LENGTH,
            "content",
            f"Content cannot exceed {POST_CONTENT_MAX_LENGTH} characters",
        )
        v.raise_if_errors()


@dataclass
class UpdatePost:
    content: str | None = None
    is_r18: bool | None = None

    def validate(self) -> None:
        if self.content is None and self.is_r18 is None:
            raise invalid_argument("nothing to update")
        if self.content is not None:
            self.content = smart_trim(self.content)
            v = Validator()
            v.check(bool(self.content), "content", "Content cannot be empty")
            v.check(
                len(self.content) <= POST_CONTENT_MAX_LENGTH,
                "content",
                f"Content cannot exceed {POST_CONTENT_MAX_LENGTH} characters",
            )
            v.raise_if_errors()


def attachment_path(now: datetime, batch_id: str, index: int, extension: str) -> str:
    """Object key of the ``index``-th attachment of an upload batch."""
    return f"{now:%Y/%m/%d}/{int(now.timestamp())}_{batch_id}_{index}.{extension}"


def insert_tags(db: Session, post_id: str, content: str, comment_id: str | None = None) -> None:
    for tag in collect_tags(content):
        db.add(models.PostTag(post_id=post_id, comment_id=comment_id, tag=tag))


def recount_reactions(counters: list[dict[str, Any]], counts: dict[str, int]) -> list[dict[str, Any]]:
    """Rebuild the counter list from per-emoji ``counts`` read off the reaction rows.

    Known reactions keep their position, emojis without rows are dropped and
    new ones are appended in the order of ``counts``.
    """
    out: list[dict[str, Any]] = []
    for counter in counters:
        count = counts.get(counter["reaction"], 0)
        if count > 0:
            out.append({**counter, "count": count})
    known = {counter["reaction"] for counter in out}
    for reaction, count in counts.items():
        if reaction not in known and count > 0:
            out.append({"kind": REACTION_KIND_EMOJI, "reaction": reaction, "count": count})
    return out


def check_reaction(reaction: str) -> None:
    if not emojis.is_valid(reaction):
        raise invalid_argument("invalid reaction", "reaction")


class PostsMixin(ServiceBase):
    def _post_by_id(self, db: Session, post_id: str, *, for_update: bool = False) -> models.Post:
        post = db.get(models.Post, post_id, with_for_update=for_update)
        if post is None:
            raise not_found("post not found")
        return post

    async def create_post(self, params: CreatePost, user_id: str | None) -> schemas.Post:
        """Publish a post, resizing and uploading its attachments first.

        Uploaded objects are removed again when the insert fails.
        """
        params.validate()
        uid = self._require_user(user_id)

        images: list[ffmpeg.ProcessedImage] = []
        if params.attachments:
            if self.uploader is None:
                raise RuntimeError("post attachments need an object store")
            try:
                images = await ffmpeg.resize_images(POST_ATTACHMENT_MAX_RESOLUTION, params.attachments)
            except ffmpeg.UnsupportedImageError as exc:
                raise invalid_argument("Unsupported image format", "attachments") from exc

        try:
            now = utcnow()
            batch_id = ids.generate()
            attachments = [
                {
                    "path": attachment_path(now, batch_id, i, image.extension),
                    "content_type": image.content_type,
                    "file_size": image.file_size,
                    "width": image.width,
                    "height": image.height,
                }
                for i, image in enumerate(images)
            ]

            cleanup = None
            if images:
                cleanup = await self.uploader.upload_many(
                    POST_ATTACHMENTS_BUCKET,
                    [
                        UploadFile(
                            path=attachment["path"],
                            file=image.file,
                            size=image.file_size,
                            content_type=image.content_type,
                        )
                        for attachment, image in zip(attachments, images)
                    ],
                )

            try:
                post = await asyncio.to_thread(
                    self._insert_post, uid, params.content, params.is_r18, attachments
                )
            except BaseException:
                if cleanup is not None:
                    cleanup()
                raise
        finally:
            for image in images:
                image.close()

        self._go(self._fanout_post, post.id, uid)
        mentions = collect_mentions(post.content)
        if mentions:
            self._go(self._notify_post_mentions, post.id, uid, mentions)
        self._go(self.hub.publish, posts_topic(), post.model_copy(update={"mine": False, "subscribed": False}))

        [post] = await self.attach_previews([post])
        return post

    def _insert_post(
        self, user_id: str, content: str, is_r18: bool, attachments: list[dict[str, Any]]
    ) -> schemas.Post:
        with self._tx() as db:
            post = models.Post(
                user_id=user_id, content=content, is_r18=is_r18, attachments=attachments
            )
            db.add(post)
            db.flush()
            db.add(models.PostSubscription(user_id=user_id, post_id=post.id))
            insert_tags(db, post.id, content)
            db.add(models.TimelineItem(user_id=user_id, post_id=post.id, created_at=post.created_at))
            db.flush()
            db.refresh(post)
            [out] = self._posts_out(db, [post], user_id)
            return out

    def posts(
        self,
        *,
        username: str | None = None,
        tag: str | None = None,
        viewer_id: str | None = None,
        args: PageArgs = PageArgs(),
    ) -> schemas.Page[schemas.Post]:
        """List posts newest first, optionally from one author or with one tag."""
        stmt = select(models.Post)
        if username is not None:
            username = username.strip()
            if not username:
                raise invalid_argument("Username is required", "username")
            stmt = stmt.join(models.User, models.Post.user_id == models.User.id).where(
                func.lower(models.User.username) == username.lower()
            )
        if tag is not None:
            tag = tag.strip().lstrip("#")
            if not tag:
                raise invalid_argument("Tag is required", "tag")
            stmt = stmt.where(
                exists().where(
                    models.PostTag.post_id == models.Post.id,
                    models.PostTag.comment_id.is_(None),
                    func.lower(models.PostTag.tag) == tag.lower(),
                )
            )
        return self._posts_page(stmt, viewer_id, args)

    def search_posts(
        self, query: str, *, viewer_id: str | None = None, args: PageArgs = PageArgs()
    ) -> schemas.Page[schemas.Post]:
        """Case-insensitive substring search over post content."""
        query = query.strip()
        if not query:
            raise invalid_argument("Search query is required", "query")
        pattern = "%" + query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        stmt = select(models.Post).where(models.Post.content.ilike(pattern, escape="\\"))
        return self._posts_page(stmt, viewer_id, args)

    def _posts_page(
        self, stmt: Any, viewer_id: str | None, args: PageArgs
    ) -> schemas.Page[schemas.Post]:
        with self._read() as db:
            posts, info = paginate(
                db,
                stmt,
                args,
                id_column=models.Post.id,
                sort_column=models.Post.created_at,
                cursor_for=lambda p: Cursor(id=p.id, value=as_utc(p.created_at)),
            )
            return schemas.Page[schemas.Post](
                items=self._posts_out(db, posts, viewer_id), page_info=info
            )

    def post(self, post_id: str, *, viewer_id: str | None = None) -> schemas.Post:
        self._check_id(post_id, "post_id", "Invalid post ID")
        with self._read() as db:
            [out] = self._posts_out(db, [self._post_by_id(db, post_id)], viewer_id)
            return out

    def update_post(self, post_id: str, params: UpdatePost, user_id: str | None) -> schemas.Post:
        """Edit content or the R18 flag within the edit window."""
        uid = self._require_user(user_id)
        self._check_id(post_id, "post_id", "Invalid post ID")
        params.validate()

        with self._tx() as db:
            post = self._post_by_id(db, post_id)
            if post.user_id != uid:
                raise permission_denied("update post denied")
            if utcnow() - as_utc(post.created_at) > EDIT_WINDOW:
                raise permission_denied("update post denied")

            if params.content is not None and params.content != post.content:
                post.content = params.content
                db.execute(
                    delete(models.PostTag).where(
                        models.PostTag.post_id == post.id, models.PostTag.comment_id.is_(None)
                    )
                )
                insert_tags(db, post.id, post.content)
            if params.is_r18 is not None:
                post.is_r18 = params.is_r18
            post.updated_at = utcnow()
            db.flush()
            db.refresh(post)
            [out] = self._posts_out(db, [post], uid)
            return out

    def delete_post(self, post_id: str, user_id: str | None) -> None:
        """Delete an own post; attachments stay in the bucket."""
        uid = self._require_user(user_id)
        self._check_id(post_id, "post_id", "Invalid post ID")
        with self._tx() as db:
            post = self._post_by_id(db, post_id)
            if post.user_id != uid:
                raise permission_denied("delete post denied")
            db.delete(post)

    def toggle_post_reaction(
        self, post_id: str, reaction: str, user_id: str | None
    ) -> list[schemas.Reaction]:
        """Add or remove the viewer's reaction; returns the updated counters."""
        uid = self._require_user(user_id)
        self._check_id(post_id, "post_id", "Invalid post ID")
        check_reaction(reaction)

        with self._tx() as db:
            post = self._post_by_id(db, post_id, for_update=True)
            existing = db.get(models.PostReaction, (uid, post_id, reaction))
            if existing is None:
                db.add(models.PostReaction(user_id=uid, post_id=post_id, emoji=reaction))
            else:
                db.delete(existing)
            db.flush()

            counts = db.execute(
                select(models.PostReaction.emoji, func.count())
                .where(models.PostReaction.post_id == post_id)
                .group_by(models.PostReaction.emoji)
                .order_by(func.min(models.PostReaction.created_at))
            )
            post.reactions = recount_reactions(post.reactions, dict(counts.all()))
            db.flush()

            reacted = set(
                db.scalars(
                    select(models.PostReaction.emoji).where(
                        models.PostReaction.user_id == uid,
                        models.PostReaction.post_id == post_id,
                    )
                )
            )
            return self._reactions_out(post.reactions, reacted)

    def toggle_post_subscription(
        self, post_id: str, user_id: str | None
    ) -> schemas.ToggleSubscriptionOutput:
        uid = self._require_user(user_id)
        self._check_id(post_id, "post_id", "Invalid post ID")
        with self._tx() as db:
            self._post_by_id(db, post_id)
            subscription = db.get(models.PostSubscription, (uid, post_id))
            if subscription is None:
                db.add(models.PostSubscription(user_id=uid, post_id=post_id))
                return schemas.ToggleSubscriptionOutput(subscribed=True)
            db.delete(subscription)
            return schemas.ToggleSubscriptionOutput(subscribed=False)
