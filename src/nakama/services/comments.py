# src/nakama/services/comments.py
"""Comments on posts and their reactions."""
from __future__ import annotations

import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nakama import models, schemas
from nakama.cursor import Cursor
from nakama.db.session import is_foreign_key_violation
from nakama.db.time import as_utc, utcnow
from nakama.errs import not_found, permission_denied
from nakama.pagination import PageArgs, paginate
from nakama.pubsub import comments_topic
from nakama.services.base import EDIT_WINDOW, ServiceBase
from nakama.services.posts import check_reaction, insert_tags, recount_reactions
from nakama.textutil import collect_mentions, smart_trim
from nakama.validator import Validator

logger = logging.getLogger(__name__)

COMMENT_CONTENT_MAX_LENGTH = 500


def clean_comment_content(content: str) -> str:
    content = smart_trim(content)
    v = Validator()
    v.check(bool(content), "content", "Content cannot be empty")
    v.check(
        len(content) <= COMMENT_CONTENT_MAX_LENGTH,
        "content",
        f"Content cannot exceed {COMMENT_CONTENT_MAX_LENGTH} characters",
    )
    v.raise_if_errors()
    return content


class CommentsMixin(ServiceBase):
    def _comment_by_id(self, db: Session, comment_id: str, *, for_update: bool = False) -> models.Comment:
        comment = db.get(models.Comment, comment_id, with_for_update=for_update)
        if comment is None:
            raise not_found("comment not found")
        return comment

    def _comments_out(
        self, db: Session, comments: list[models.Comment], viewer_id: str | None
    ) -> list[schemas.Comment]:
        reacted: dict[str, set[str]] = {}
        comment_ids = [comment.id for comment in comments]
        if viewer_id and comment_ids:
            rows = db.execute(
                select(models.CommentReaction.comment_id, models.CommentReaction.emoji).where(
                    models.CommentReaction.user_id == viewer_id,
                    models.CommentReaction.comment_id.in_(comment_ids),
                )
            )
            for comment_id, emoji in rows:
                reacted.setdefault(comment_id, set()).add(emoji)

        return [
            schemas.Comment(
                id=comment.id,
                user_id=comment.user_id,
                post_id=comment.post_id,
                content=comment.content,
                reactions=self._reactions_out(
                    comment.reactions, reacted.get(comment.id, set()) if viewer_id else None
                ),
                created_at=comment.created_at,
                updated_at=comment.updated_at,
                user=self._user_out(comment.user),
                mine=comment.user_id == viewer_id,
            )
            for comment in comments
        ]

    def create_comment(self, post_id: str, content: str, user_id: str | None) -> schemas.Comment:
        """Comment on a post.

        The commenter is subscribed to the post. Subscribers and mentioned
        users are notified in the background.
        """
        uid = self._require_user(user_id)
        self._check_id(post_id, "post_id", "Invalid post ID")
        content = clean_comment_content(content)

        try:
            with self._tx() as db:
                if db.get(models.Post, post_id) is None:
                    raise not_found("post not found")
                comment = models.Comment(user_id=uid, post_id=post_id, content=content)
                db.add(comment)
                db.flush()
                if db.get(models.PostSubscription, (uid, post_id)) is None:
                    db.add(models.PostSubscription(user_id=uid, post_id=post_id))
                insert_tags(db, post_id, content, comment_id=comment.id)
                db.execute(
                    update(models.Post)
                    .where(models.Post.id == post_id)
                    .values(comments_count=models.Post.comments_count + 1)
                )
                db.flush()
                db.refresh(comment)
                [out] = self._comments_out(db, [comment], uid)
        except IntegrityError as exc:
            # The post was deleted concurrently.
            if is_foreign_key_violation(exc):
                raise not_found("post not found") from exc
            raise

        self._go(self.hub.publish, comments_topic(post_id), out.model_copy(update={"mine": False}))
        self._go(self._notify_comment, post_id, uid)
        mentions = collect_mentions(content)
        if mentions:
            self._go(self._notify_comment_mentions, post_id, uid, mentions)
        return out

    def comments(
        self, post_id: str, *, viewer_id: str | None = None, args: PageArgs = PageArgs()
    ) -> schemas.Page[schemas.Comment]:
        """Comments of a post, newest first."""
        self._check_id(post_id, "post_id", "Invalid post ID")
        stmt = select(models.Comment).where(models.Comment.post_id == post_id)
        with self._read() as db:
            comments, info = paginate(
                db,
                stmt,
                args,
                id_column=models.Comment.id,
                cursor_for=lambda c: Cursor(id=c.id),
            )
            return schemas.Page[schemas.Comment](
                items=self._comments_out(db, comments, viewer_id), page_info=info
            )

    def update_comment(self, comment_id: str, content: str, user_id: str | None) -> schemas.Comment:
        uid = self._require_user(user_id)
        self._check_id(comment_id, "comment_id", "Invalid comment ID")
        content = clean_comment_content(content)

        with self._tx() as db:
            comment = self._comment_by_id(db, comment_id)
            if comment.user_id != uid:
                raise permission_denied("update comment denied")
            if utcnow() - as_utc(comment.created_at) > EDIT_WINDOW:
                raise permission_denied("update comment denied")
            if content != comment.content:
                comment.content = content
                db.execute(delete(models.PostTag).where(models.PostTag.comment_id == comment.id))
                insert_tags(db, comment.post_id, content, comment_id=comment.id)
            comment.updated_at = utcnow()
            db.flush()
            db.refresh(comment)
            [out] = self._comments_out(db, [comment], uid)
            return out

    def delete_comment(self, comment_id: str, user_id: str | None) -> None:
        uid = self._require_user(user_id)
        self._check_id(comment_id, "comment_id", "Invalid comment ID")
        with self._tx() as db:
            comment = self._comment_by_id(db, comment_id)
            if comment.user_id != uid:
                raise permission_denied("delete comment denied")
            db.execute(delete(models.PostTag).where(models.PostTag.comment_id == comment.id))
            db.execute(
                update(models.Post)
                .where(models.Post.id == comment.post_id, models.Post.comments_count > 0)
                .values(comments_count=models.Post.comments_count - 1)
            )
            db.delete(comment)

    def toggle_comment_reaction(
        self, comment_id: str, reaction: str, user_id: str | None
    ) -> list[schemas.Reaction]:
        uid = self._require_user(user_id)
        self._check_id(comment_id, "comment_id", "Invalid comment ID")
        check_reaction(reaction)

        with self._tx() as db:
            comment = self._comment_by_id(db, comment_id, for_update=True)
            existing = db.get(models.CommentReaction, (uid, comment_id, reaction))
            if existing is None:
                db.add(models.CommentReaction(user_id=uid, comment_id=comment_id, emoji=reaction))
            else:
                db.delete(existing)
            db.flush()

            counts = db.execute(
                select(models.CommentReaction.emoji, func.count())
                .where(models.CommentReaction.comment_id == comment_id)
                .group_by(models.CommentReaction.emoji)
                .order_by(func.min(models.CommentReaction.created_at))
            )
            comment.reactions = recount_reactions(comment.reactions, dict(counts.all()))
            db.flush()

            reacted = set(
                db.scalars(
                    select(models.CommentReaction.emoji).where(
                        models.CommentReaction.user_id == uid,
                        models.CommentReaction.comment_id == comment_id,
                    )
                )
            )
            return self._reactions_out(comment.reactions, reacted)
