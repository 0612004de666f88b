# src/nakama/services/chats.py
"""Private chats between two users.

Whether a participant may write is decided by its status:

* both users follow each other when the chat starts: both ``active``;
* otherwise the creator is ``pending_sender`` and cannot send again until
  the other user, ``pending_receiver``, replies; that reply activates both.
"""
from __future__ import annotations

import logging

from sqlalchemy import exists, select, update
from sqlalchemy.orm import Session

from nakama import id as ids
from nakama import models, schemas
from nakama.cursor import Cursor
from nakama.db.time import as_utc, utcnow
from nakama.errs import already_exists, invalid_argument, not_found, permission_denied
from nakama.models.chat import ParticipantStatus
from nakama.pagination import PageArgs, paginate
from nakama.services.base import ServiceBase
from nakama.textutil import smart_trim
from nakama.validator import Validator

logger = logging.getLogger(__name__)

MESSAGE_CONTENT_MAX_LENGTH = 1000


def clean_message_content(v: Validator, content: str) -> str:
    content = smart_trim(content)
    if not content:
        v.add_error("content", "Content is required")
    elif len(content) > MESSAGE_CONTENT_MAX_LENGTH:
        v.add_error("content", f"Content cannot exceed {MESSAGE_CONTENT_MAX_LENGTH} characters")
    return content


class ChatsMixin(ServiceBase):
    def _participant(self, db: Session, chat_id: str, user_id: str) -> models.Participant | None:
        return db.get(models.Participant, (user_id, chat_id))

    def _chat_out(self, participant: models.Participant) -> schemas.Chat:
        return schemas.Chat(
            id=participant.chat_id,
            created_at=participant.chat.created_at,
            participation=schemas.Participant(
                user_id=participant.user_id,
                chat_id=participant.chat_id,
                other_user_id=participant.other_user_id,
                status=participant.status,
                has_unread=participant.has_unread,
                last_read_at=participant.last_read_at,
                last_activity_at=participant.last_activity_at,
                other_user=self._user_out(participant.other_user),
            ),
        )

    def _message_out(self, message: models.Message, viewer_id: str) -> schemas.Message:
        return schemas.Message(
            id=message.id,
            chat_id=message.chat_id,
            user_id=message.user_id,
            content=message.content,
            created_at=message.created_at,
            user=self._user_out(message.user),
            mine=message.user_id == viewer_id,
        )

    def _follows(self, db: Session, follower_id: str, followee_id: str) -> bool:
        return bool(
            db.scalar(
                select(
                    exists().where(
                        models.Follow.follower_id == follower_id,
                        models.Follow.followee_id == followee_id,
                    )
                )
            )
        )

    def _touch_recipient(self, db: Session, chat_id: str, sender_id: str) -> None:
        db.execute(
            update(models.Participant)
            .where(models.Participant.chat_id == chat_id, models.Participant.user_id != sender_id)
            .values(has_unread=True, last_activity_at=utcnow())
        )

    def create_chat(self, other_user_id: str, content: str, user_id: str | None) -> schemas.Chat:
        """Start a chat with its first message."""
        uid = self._require_user(user_id)
        v = Validator()
        v.check(bool(other_user_id), "other_user_id", "Other user ID is required")
        if other_user_id:
            v.check(ids.valid(other_user_id), "other_user_id", "Other user ID is invalid")
        content = clean_message_content(v, content)
        v.raise_if_errors()
        if other_user_id == uid:
            raise invalid_argument("cannot chat with yourself", "other_user_id")

        with self._tx() as db:
            if db.get(models.User, other_user_id) is None:
                raise not_found("user not found")
            taken = db.scalar(
                select(
                    exists().where(
                        models.Participant.user_id == uid,
                        models.Participant.other_user_id == other_user_id,
                    )
                )
            )
            if taken:
                raise already_exists("chat already exists")

            if self._follows(db, uid, other_user_id) and self._follows(db, other_user_id, uid):
                sender_status = receiver_status = ParticipantStatus.ACTIVE
            else:
                sender_status = ParticipantStatus.PENDING_SENDER
                receiver_status = ParticipantStatus.PENDING_RECEIVER

            now = utcnow()
            chat = models.Chat(created_at=now)
            db.add(chat)
            db.flush()
            sender = models.Participant(
                user_id=uid,
                chat_id=chat.id,
                other_user_id=other_user_id,
                status=sender_status,
                has_unread=False,
                last_read_at=now,
                last_activity_at=now,
            )
            receiver = models.Participant(
                user_id=other_user_id,
                chat_id=chat.id,
                other_user_id=uid,
                status=receiver_status,
                has_unread=True,
                last_activity_at=now,
            )
            db.add_all([sender, receiver])
            db.add(models.Message(chat_id=chat.id, user_id=uid, content=content, created_at=now))
            db.flush()
            db.refresh(sender)
            return self._chat_out(sender)

    def create_message(self, chat_id: str, content: str, user_id: str | None) -> schemas.Message:
        """Send a message, enforcing the participant status gate."""
        uid = self._require_user(user_id)
        v = Validator()
        v.check(ids.valid(chat_id), "chat_id", "Chat ID is invalid")
        content = clean_message_content(v, content)
        v.raise_if_errors()

        with self._tx() as db:
            sender = self._participant(db, chat_id, uid)
            if sender is None:
                raise not_found("participant not found")
            if sender.status == ParticipantStatus.PENDING_SENDER:
                raise permission_denied(
                    "cannot send message: waiting for the other user to reply or accept the conversation"
                )
            if sender.status == ParticipantStatus.PENDING_RECEIVER:
                db.execute(
                    update(models.Participant)
                    .where(
                        models.Participant.chat_id == chat_id,
                        models.Participant.status.in_(
                            [ParticipantStatus.PENDING_SENDER, ParticipantStatus.PENDING_RECEIVER]
                        ),
                    )
                    .values(status=ParticipantStatus.ACTIVE)
                )

            message = models.Message(chat_id=chat_id, user_id=uid, content=content)
            db.add(message)
            self._touch_recipient(db, chat_id, uid)
            db.flush()
            db.refresh(message)
            return self._message_out(message, uid)

    def messages(
        self, chat_id: str, user_id: str | None, args: PageArgs = PageArgs()
    ) -> schemas.Page[schemas.Message]:
        """Messages of a chat, newest first; marks the chat read for the viewer."""
        uid = self._require_user(user_id)
        self._check_id(chat_id, "chat_id", "Chat ID is invalid")
        with self._tx() as db:
            participant = self._participant(db, chat_id, uid)
            if participant is None:
                raise not_found("chat not found")
            participant.has_unread = False
            participant.last_read_at = utcnow()
            db.flush()

            stmt = select(models.Message).where(models.Message.chat_id == chat_id)
            messages, info = paginate(
                db, stmt, args, id_column=models.Message.id, cursor_for=lambda m: Cursor(id=m.id)
            )
            return schemas.Page[schemas.Message](
                items=[self._message_out(message, uid) for message in messages], page_info=info
            )

    def chats(self, user_id: str | None, args: PageArgs = PageArgs()) -> schemas.Page[schemas.Chat]:
        """The viewer's chats, most recent activity first."""
        uid = self._require_user(user_id)
        stmt = select(models.Participant).where(models.Participant.user_id == uid)
        with self._read() as db:
            participants, info = paginate(
                db,
                stmt,
                args,
                id_column=models.Participant.chat_id,
                sort_column=models.Participant.last_activity_at,
                cursor_for=lambda p: Cursor(id=p.chat_id, value=as_utc(p.last_activity_at)),
            )
            return schemas.Page[schemas.Chat](
                items=[self._chat_out(participant) for participant in participants],
                page_info=info,
            )

    def chat(self, chat_id: str, user_id: str | None) -> schemas.Chat:
        uid = self._require_user(user_id)
        self._check_id(chat_id, "chat_id", "Chat ID is invalid")
        with self._read() as db:
            participant = self._participant(db, chat_id, uid)
            if participant is None:
                raise not_found("chat not found")
            return self._chat_out(participant)

    def chat_from_participants(self, other_user_id: str, user_id: str | None) -> schemas.Chat:
        """The viewer's chat with ``other_user_id``, if any."""
        uid = self._require_user(user_id)
        self._check_id(other_user_id, "other_user_id", "Other user ID is invalid")
        with self._read() as db:
            participant = db.scalar(
                select(models.Participant).where(
                    models.Participant.user_id == uid,
                    models.Participant.other_user_id == other_user_id,
                )
            )
            if participant is None:
                raise not_found("chat not found")
            return self._chat_out(participant)
