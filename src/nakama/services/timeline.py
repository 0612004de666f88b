# src/nakama/services/timeline.py
"""Home timeline built by fan-out on write, and the realtime streams."""
from __future__ import annotations

import logging

from sqlalchemy import delete, select

from nakama import models, schemas
from nakama.cursor import Cursor
from nakama.db.time import as_utc
from nakama.errs import not_found
from nakama.pagination import PageArgs, paginate
from nakama.pubsub import (
    Subscription,
    comments_topic,
    notifications_topic,
    posts_topic,
    timeline_topic,
)
from nakama.services.base import ServiceBase

logger = logging.getLogger(__name__)


class TimelineMixin(ServiceBase):
    def _fanout_post(self, post_id: str, author_id: str) -> None:
        """Copy a new post into the timeline of every follower of its author."""
        with self._tx() as db:
            post = db.get(models.Post, post_id)
            if post is None:
                logger.warning("fan-out skipped: post %s is gone", post_id)
                return
            follower_ids = list(
                db.scalars(
                    select(models.Follow.follower_id).where(models.Follow.followee_id == author_id)
                )
            )
            items = [
                models.TimelineItem(user_id=follower_id, post_id=post_id, created_at=post.created_at)
                for follower_id in follower_ids
            ]
            db.add_all(items)
            db.flush()
            [post_out] = self._posts_out(db, [post], None)
            out = [
                schemas.TimelineItem(
                    id=item.id,
                    user_id=item.user_id,
                    post_id=item.post_id,
                    created_at=item.created_at,
                    post=post_out,
                )
                for item in items
            ]

        for item in out:
            try:
                self.hub.publish(timeline_topic(item.user_id), item)
            except Exception:
                logger.error("broadcast timeline item %s failed", item.id, exc_info=True)

    def timeline(
        self, user_id: str | None, args: PageArgs = PageArgs()
    ) -> schemas.Page[schemas.TimelineItem]:
        """The viewer's feed: own posts and posts of followed users, newest first."""
        uid = self._require_user(user_id)
        stmt = select(models.TimelineItem).where(models.TimelineItem.user_id == uid)
        with self._read() as db:
            items, info = paginate(
                db,
                stmt,
                args,
                id_column=models.TimelineItem.id,
                sort_column=models.TimelineItem.created_at,
                cursor_for=lambda t: Cursor(id=t.id, value=as_utc(t.created_at)),
            )
            posts = self._posts_out(db, [item.post for item in items], uid)
            return schemas.Page[schemas.TimelineItem](
                items=[
                    schemas.TimelineItem(
                        id=item.id,
                        user_id=item.user_id,
                        post_id=item.post_id,
                        created_at=item.created_at,
                        post=post,
                    )
                    for item, post in zip(items, posts)
                ],
                page_info=info,
            )

    def delete_timeline_item(self, timeline_item_id: str, user_id: str | None) -> None:
        """Hide a post from the viewer's timeline only."""
        uid = self._require_user(user_id)
        self._check_id(timeline_item_id, "timeline_item_id", "Invalid timeline item ID")
        with self._tx() as db:
            result = db.execute(
                delete(models.TimelineItem).where(
                    models.TimelineItem.id == timeline_item_id,
                    models.TimelineItem.user_id == uid,
                )
            )
            if result.rowcount == 0:
                raise not_found("timeline item not found")

    # -- realtime ----------------------------------------------------------

    def subscribe_posts(self) -> Subscription:
        return self.hub.subscribe(posts_topic())

    def subscribe_timeline(self, user_id: str | None) -> Subscription:
        return self.hub.subscribe(timeline_topic(self._require_user(user_id)))

    def subscribe_comments(self, post_id: str) -> Subscription:
        self._check_id(post_id, "post_id", "Invalid post ID")
        return self.hub.subscribe(comments_topic(post_id))

    def subscribe_notifications(self, user_id: str | None) -> Subscription:
        return self.hub.subscribe(notifications_topic(self._require_user(user_id)))
