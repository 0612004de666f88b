# src/nakama/services/notifications.py
"""Notification inbox and the coalescing rules that feed it.

* ``follow``: one unread notification per recipient accumulates followers;
  an actor already listed on any follow notification is not added again.
* ``comment`` and ``comment_mention``: one unread notification per
  recipient and post; a repeated actor moves to the front.
* ``post_mention``: one notification per mention, no coalescing.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import delete, exists, func, select, text, update
from sqlalchemy.orm import Session

from nakama import id as ids
from nakama import models, schemas
from nakama.cursor import Cursor
from nakama.db.session import dialect_insert
from nakama.db.time import utcnow
from nakama.models.notification import UNREAD_FOLLOW_WHERE, UNREAD_SUBJECT_WHERE, NotificationKind
from nakama.pagination import PageArgs, paginate
from nakama.pubsub import notifications_topic
from nakama.services.base import ServiceBase

logger = logging.getLogger(__name__)

CLAIM_ATTEMPTS = 3


class NotificationsMixin(ServiceBase):
    def _notification_out(self, notification: models.Notification) -> schemas.Notification:
        return schemas.Notification(
            id=notification.id,
            user_id=notification.user_id,
            kind=notification.kind,
            post_id=notification.post_id,
            actor_user_ids=notification.actor_user_ids,
            actors=[self._user_out(actor.user) for actor in notification.actors],
            read_at=notification.read_at,
            issued_at=notification.issued_at,
        )

    def _attach_actor(self, db: Session, notification: models.Notification, actor_id: str) -> schemas.Notification:
        db.flush()
        db.execute(
            dialect_insert(db, models.NotificationActor.__table__)
            .values(notification_id=notification.id, user_id=actor_id)
            .on_conflict_do_nothing(index_elements=["notification_id", "user_id"])
        )
        db.refresh(notification)
        return self._notification_out(notification)

    def _broadcast_notifications(self, notifications: Iterable[schemas.Notification]) -> None:
        for notification in notifications:
            try:
                self.hub.publish(notifications_topic(notification.user_id), notification)
            except Exception:
                logger.error("broadcast notification %s failed", notification.id, exc_info=True)

    # -- coalescing --------------------------------------------------------

    def _claim_unread(
        self, db: Session, recipient_id: str, kind: NotificationKind, post_id: str | None = None
    ) -> models.Notification:
        """Return the unread notification of ``kind`` for the subject, creating it if missing.

        The insert targets the partial unique index of the kind, so concurrent
        writers end up sharing one row.
        """
        if kind is NotificationKind.FOLLOW:
            target, predicate = ["user_id", "kind"], UNREAD_FOLLOW_WHERE
        else:
            target, predicate = ["user_id", "kind", "post_id"], UNREAD_SUBJECT_WHERE
        lookup = select(models.Notification).where(
            models.Notification.user_id == recipient_id,
            models.Notification.kind == kind,
            models.Notification.read_at.is_(None),
        )
        if post_id is not None:
            lookup = lookup.where(models.Notification.post_id == post_id)

        # A concurrent read_notification can mark the row read between the
        # insert and the lookup; the next insert then succeeds.
        for _ in range(CLAIM_ATTEMPTS):
            db.execute(
                dialect_insert(db, models.Notification.__table__)
                .values(
                    id=ids.generate(),
                    user_id=recipient_id,
                    kind=kind,
                    post_id=post_id,
                    issued_at=utcnow(),
                )
                .on_conflict_do_nothing(index_elements=target, index_where=text(predicate))
            )
            notification = db.scalar(lookup)
            if notification is not None:
                return notification
        raise RuntimeError(f"could not claim unread {kind.value} notification for {recipient_id}")

    def _notify_follow(self, recipient_id: str, actor_id: str) -> None:
        with self._tx() as db:
            listed = db.scalar(
                select(
                    exists()
                    .where(models.NotificationActor.notification_id == models.Notification.id)
                    .where(
                        models.Notification.user_id == recipient_id,
                        models.Notification.kind == NotificationKind.FOLLOW,
                        models.NotificationActor.user_id == actor_id,
                    )
                )
            )
            if listed:
                return

            notification = self._claim_unread(db, recipient_id, NotificationKind.FOLLOW)
            notification.issued_at = utcnow()
            out = self._attach_actor(db, notification, actor_id)

        self._broadcast_notifications([out])

    def _upsert_post_notification(
        self, db: Session, recipient_id: str, kind: NotificationKind, post_id: str, actor_id: str
    ) -> schemas.Notification:
        notification = self._claim_unread(db, recipient_id, kind, post_id)
        db.execute(
            delete(models.NotificationActor).where(
                models.NotificationActor.notification_id == notification.id,
                models.NotificationActor.user_id == actor_id,
            )
        )
        notification.issued_at = utcnow()
        return self._attach_actor(db, notification, actor_id)

    def _notify_comment(self, post_id: str, actor_id: str) -> None:
        """Notify every subscriber of the post except the commenter."""
        with self._tx() as db:
            recipients = db.scalars(
                select(models.PostSubscription.user_id).where(
                    models.PostSubscription.post_id == post_id,
                    models.PostSubscription.user_id != actor_id,
                )
            ).all()
            out = [
                self._upsert_post_notification(db, recipient, NotificationKind.COMMENT, post_id, actor_id)
                for recipient in recipients
            ]
        self._broadcast_notifications(out)

    def _mentioned_user_ids(self, db: Session, usernames: list[str], actor_id: str) -> list[str]:
        if not usernames:
            return []
        lowered = [username.lower() for username in usernames]
        return list(
            db.scalars(
                select(models.User.id).where(
                    func.lower(models.User.username).in_(lowered),
                    models.User.id != actor_id,
                )
            )
        )

    def _notify_post_mentions(self, post_id: str, actor_id: str, usernames: list[str]) -> None:
        with self._tx() as db:
            out = []
            for recipient in self._mentioned_user_ids(db, usernames, actor_id):
                notification = models.Notification(
                    user_id=recipient, kind=NotificationKind.POST_MENTION, post_id=post_id
                )
                db.add(notification)
                db.flush()
                out.append(self._attach_actor(db, notification, actor_id))
        self._broadcast_notifications(out)

    def _notify_comment_mentions(self, post_id: str, actor_id: str, usernames: list[str]) -> None:
        with self._tx() as db:
            out = [
                self._upsert_post_notification(
                    db, recipient, NotificationKind.COMMENT_MENTION, post_id, actor_id
                )
                for recipient in self._mentioned_user_ids(db, usernames, actor_id)
            ]
        self._broadcast_notifications(out)

    # -- inbox -------------------------------------------------------------

    def notifications(
        self, user_id: str | None, args: PageArgs = PageArgs()
    ) -> schemas.Page[schemas.Notification]:
        """List the viewer's notifications, newest first."""
        uid = self._require_user(user_id)
        stmt = select(models.Notification).where(models.Notification.user_id == uid)
        with self._read() as db:
            items, info = paginate(
                db,
                stmt,
                args,
                id_column=models.Notification.id,
                cursor_for=lambda n: Cursor(id=n.id),
            )
            return schemas.Page[schemas.Notification](
                items=[self._notification_out(n) for n in items], page_info=info
            )

    def has_unread_notifications(self, user_id: str | None) -> bool:
        uid = self._require_user(user_id)
        with self._read() as db:
            return bool(
                db.scalar(
                    select(
                        exists().where(
                            models.Notification.user_id == uid,
                            models.Notification.read_at.is_(None),
                        )
                    )
                )
            )

    def read_notification(self, notification_id: str, user_id: str | None) -> None:
        """Mark one notification read; a notification of someone else is left untouched."""
        uid = self._require_user(user_id)
        self._check_id(notification_id, "notification_id", "Invalid notification ID")
        with self._tx() as db:
            db.execute(
                update(models.Notification)
                .where(
                    models.Notification.id == notification_id,
                    models.Notification.user_id == uid,
                    models.Notification.read_at.is_(None),
                )
                .values(read_at=utcnow())
            )

    def read_all_notifications(self, user_id: str | None) -> None:
        uid = self._require_user(user_id)
        with self._tx() as db:
            db.execute(
                update(models.Notification)
                .where(models.Notification.user_id == uid, models.Notification.read_at.is_(None))
                .values(read_at=utcnow())
            )
