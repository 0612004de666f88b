# src/nakama/services/base.py
"""Shared plumbing for the service layer.

Every domain mixin derives from :class:`ServiceBase`, which owns the
collaborators (database session factory, realtime hub, uploader, preview
fetcher, mail sender, token codec) and the background worker pool used for
fan-out, notifications and broadcasts.
"""
from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from nakama import id as ids
from nakama import models, schemas
from nakama.core.security import TokenCodec
from nakama.db.session import transaction
from nakama.errs import invalid_argument, unauthenticated
from nakama.mailing import Sender
from nakama.preview import Monitored
from nakama.pubsub import Hub
from nakama.storage import Uploader
from nakama.textutil import collect_urls

logger = logging.getLogger(__name__)

POST_ATTACHMENTS_BUCKET = "post-attachments"
AVATARS_BUCKET = "avatars"
POST_ATTACHMENT_MAX_RESOLUTION = 2000
AVATAR_MAX_RESOLUTION = 400
EDIT_WINDOW = timedelta(minutes=15)


class ServiceBase:
    """Collaborators and helpers shared by every domain mixin."""

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session],
        hub: Hub,
        tokens: TokenCodec,
        sender: Sender,
        uploader: Uploader | None = None,
        previews: Monitored | None = None,
        origin: str = "http://localhost:4444",
        allowed_origins: Iterable[str] = (),
        avatar_url_prefix: str = "",
        media_url_prefix: str = "",
        disabled_dev_login: bool = False,
        verification_code_ttl: timedelta = timedelta(hours=2),
        background_workers: int = 4,
        background_timeout: float = 30.0,
    ) -> None:
        self.session_factory = session_factory
        self.hub = hub
        self.tokens = tokens
        self.sender = sender
        self.uploader = uploader
        self.previews = previews
        self.origin = origin.rstrip("/")
        self.allowed_origins = list(allowed_origins)
        self.avatar_url_prefix = avatar_url_prefix
        self.media_url_prefix = media_url_prefix
        self.disabled_dev_login = disabled_dev_login
        self.verification_code_ttl = verification_code_ttl
        self.background_timeout = background_timeout

        self.errors: queue.Queue[BaseException] = queue.Queue(maxsize=1)
        self._executor = ThreadPoolExecutor(
            max_workers=background_workers, thread_name_prefix="nakama-background"
        )
        self._pending: set[Future[Any]] = set()
        self._pending_lock = threading.Lock()

    # -- units of work -----------------------------------------------------

    def _tx(self):
        """Session that commits on success and rolls back on error."""
        return transaction(self.session_factory)

    @contextmanager
    def _read(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    # -- background work ---------------------------------------------------

    def _go(self, fn: Callable[..., Any], *args: Any) -> None:
        """Run ``fn`` detached on the worker pool; failures are only logged."""
        try:
            future = self._executor.submit(fn, *args)
        except RuntimeError:
            logger.error("background task %s rejected: service closed", getattr(fn, "__name__", fn))
            return
        with self._pending_lock:
            self._pending.add(future)
        future.add_done_callback(self._background_done)

    def _background_done(self, future: Future[Any]) -> None:
        with self._pending_lock:
            self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is None:
            return
        logger.error("background task failed: %s", exc, exc_info=exc)
        try:
            self.errors.put_nowait(exc)
        except queue.Full:
            pass

    def wait_background(self, timeout: float | None = None) -> None:
        """Block until every background task submitted so far finished."""
        while True:
            with self._pending_lock:
                pending = list(self._pending)
            if not pending:
                return
            done, not_done = wait(pending, timeout=timeout)
            if not_done:
                logger.warning("%d background tasks still running", len(not_done))
                return

    def close(self) -> None:
        self.wait_background(self.background_timeout)
        self._executor.shutdown(wait=True)

    # -- guards ------------------------------------------------------------

    @staticmethod
    def _require_user(user_id: str | None) -> str:
        if not user_id:
            raise unauthenticated()
        return user_id

    @staticmethod
    def _check_id(value: str, field: str, message: str) -> None:
        if not ids.valid(value):
            raise invalid_argument(message, field)

    # -- output shaping ----------------------------------------------------

    def avatar_url(self, key: str | None) -> str | None:
        return self.avatar_url_prefix + key if key else None

    def media_url(self, path: str) -> str:
        return self.media_url_prefix + path

    def _user_out(self, user: models.User) -> schemas.User:
        return schemas.User(id=user.id, username=user.username, avatar_url=self.avatar_url(user.avatar))

    def _profile_out(
        self, db: Session, user: models.User, viewer_id: str | None
    ) -> schemas.UserProfile:
        return self._profiles_out(db, [user], viewer_id)[0]

    def _profiles_out(
        self, db: Session, users: list[models.User], viewer_id: str | None
    ) -> list[schemas.UserProfile]:
        following: set[str] = set()
        followers: set[str] = set()
        ids_ = [user.id for user in users]
        if viewer_id and ids_:
            following = set(
                db.scalars(
                    select(models.Follow.followee_id).where(
                        models.Follow.follower_id == viewer_id,
                        models.Follow.followee_id.in_(ids_),
                    )
                )
            )
            followers = set(
                db.scalars(
                    select(models.Follow.follower_id).where(
                        models.Follow.followee_id == viewer_id,
                        models.Follow.follower_id.in_(ids_),
                    )
                )
            )

        out = []
        for user in users:
            relationship = None
            if viewer_id:
                relationship = schemas.UserRelationship(
                    follows_you=user.id in followers,
                    followed_by_you=user.id in following,
                    is_me=user.id == viewer_id,
                )
            out.append(
                schemas.UserProfile(
                    id=user.id,
                    username=user.username,
                    avatar_url=self.avatar_url(user.avatar),
                    email=user.email if user.id == viewer_id else None,
                    followers_count=user.followers_count,
                    following_count=user.following_count,
                    created_at=user.created_at,
                    relationship=relationship,
                )
            )
        return out

    @staticmethod
    def _reactions_out(
        counters: list[dict[str, Any]], reacted: set[str] | None
    ) -> list[schemas.Reaction]:
        return [
            schemas.Reaction(
                kind=counter.get("kind", "emoji"),
                reaction=counter["reaction"],
                count=counter["count"],
                reacted=None if reacted is None else counter["reaction"] in reacted,
            )
            for counter in counters
        ]

    def _posts_out(
        self, db: Session, posts: list[models.Post], viewer_id: str | None
    ) -> list[schemas.Post]:
        reacted: dict[str, set[str]] = {}
        subscribed: set[str] = set()
        post_ids = [post.id for post in posts]
        if viewer_id and post_ids:
            rows = db.execute(
                select(models.PostReaction.post_id, models.PostReaction.emoji).where(
                    models.PostReaction.user_id == viewer_id,
                    models.PostReaction.post_id.in_(post_ids),
                )
            )
            for post_id, emoji in rows:
                reacted.setdefault(post_id, set()).add(emoji)
            subscribed = set(
                db.scalars(
                    select(models.PostSubscription.post_id).where(
                        models.PostSubscription.user_id == viewer_id,
                        models.PostSubscription.post_id.in_(post_ids),
                    )
                )
            )

        return [
            schemas.Post(
                id=post.id,
                user_id=post.user_id,
                content=post.content,
                is_r18=post.is_r18,
                attachments=[
                    schemas.Attachment(**attachment, url=self.media_url(attachment["path"]))
                    for attachment in post.attachments
                ],
                comments_count=post.comments_count,
                reactions=self._reactions_out(
                    post.reactions, reacted.get(post.id, set()) if viewer_id else None
                ),
                created_at=post.created_at,
                updated_at=post.updated_at,
                user=self._user_out(post.user),
                mine=post.user_id == viewer_id,
                subscribed=post.id in subscribed,
            )
            for post in posts
        ]

    async def attach_previews(self, posts: list[schemas.Post]) -> list[schemas.Post]:
        """Fill ``previews`` with OpenGraph data for URLs found in each post."""
        if self.previews is None:
            return posts
        for post in posts:
            urls = collect_urls(post.content)
            if not urls:
                continue
            results = await self.previews.fetch(urls)
            post.previews = [result.data for result in results if result.error is None]
        return posts
