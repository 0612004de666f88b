# src/nakama/services/users.py
"""User profiles, search, the follow graph and avatars."""
from __future__ import annotations

import asyncio
import logging
import re
from typing import BinaryIO

from sqlalchemy import case, delete, exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nakama import ffmpeg, models, schemas
from nakama import id as ids
from nakama.cursor import Cursor
from nakama.db.session import is_unique_violation
from nakama.errs import already_exists, invalid_argument, not_found, permission_denied
from nakama.pagination import PageArgs, paginate
from nakama.services.base import AVATAR_MAX_RESOLUTION, AVATARS_BUCKET, ServiceBase
from nakama.storage import UploadFile
from nakama.validator import Validator

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]{0,17}$")
MAX_EMAIL_LEN = 254
DEFAULT_SEARCH_PER_PAGE = 20
MAX_SEARCH_PER_PAGE = 100


def normalize_email(email: str) -> str:
    return email.strip().lower()


def valid_email(email: str) -> bool:
    return len(email) <= MAX_EMAIL_LEN and EMAIL_RE.match(email) is not None


def valid_username(username: str) -> bool:
    return USERNAME_RE.match(username) is not None


def check_username(v: Validator, username: str) -> None:
    if not username:
        v.add_error("username", "Username is required")
    elif not valid_username(username):
        v.add_error(
            "username",
            "Username must start with a letter and contain at most 18 letters, numbers, "
            "underscores or dashes",
        )


def translate_user_integrity_error(exc: IntegrityError) -> Exception:
    if is_unique_violation(exc, "email"):
        return already_exists("email taken", "email")
    if is_unique_violation(exc, "username"):
        return already_exists("username taken", "username")
    return exc


class UsersMixin(ServiceBase):
    def _user_by_id(self, db: Session, user_id: str) -> models.User:
        user = db.get(models.User, user_id)
        if user is None:
            raise not_found("user not found")
        return user

    def _user_by_username(self, db: Session, username: str) -> models.User:
        user = db.scalar(
            select(models.User).where(func.lower(models.User.username) == username.lower())
        )
        if user is None:
            raise not_found("user not found")
        return user

    def user(self, user_id: str, *, viewer_id: str | None = None) -> schemas.UserProfile:
        self._check_id(user_id, "user_id", "Invalid user ID")
        with self._read() as db:
            return self._profile_out(db, self._user_by_id(db, user_id), viewer_id)

    def user_by_username(self, username: str, *, viewer_id: str | None = None) -> schemas.UserProfile:
        username = username.strip()
        v = Validator()
        check_username(v, username)
        v.raise_if_errors()
        with self._read() as db:
            return self._profile_out(db, self._user_by_username(db, username), viewer_id)

    def search_users(
        self,
        query: str,
        *,
        page: int = 1,
        per_page: int = DEFAULT_SEARCH_PER_PAGE,
        viewer_id: str | None = None,
    ) -> schemas.SimplePage[schemas.UserProfile]:
        """Case-insensitive username search.

        Exact matches rank first, then prefix matches, then the most followed.
        """
        query = query.strip().lower()
        page = max(page, 1)
        if per_page < 1 or per_page > MAX_SEARCH_PER_PAGE:
            raise invalid_argument(f"per_page must be between 1 and {MAX_SEARCH_PER_PAGE}", "per_page")

        username = func.lower(models.User.username)
        stmt = select(models.User)
        if query:
            pattern = "%" + query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
            stmt = stmt.where(username.like(pattern, escape="\\")).order_by(
                case((username == query, 0), else_=1),
                case((username.startswith(query, autoescape=True), 0), else_=1),
            )
        stmt = stmt.order_by(models.User.followers_count.desc(), models.User.username.asc())
        stmt = stmt.offset((page - 1) * per_page).limit(per_page + 1)

        with self._read() as db:
            users = list(db.scalars(stmt))
            has_next = len(users) > per_page
            items = self._profiles_out(db, users[:per_page], viewer_id)

        return schemas.SimplePage[schemas.UserProfile](
            items=items,
            page_info=schemas.SimplePageInfo(
                has_next_page=has_next,
                has_previous_page=page > 1,
                current_page=page,
                previous_page=page - 1 if page > 1 else None,
                next_page=page + 1 if has_next else None,
            ),
        )

    def _follow_page(
        self, user_id: str, viewer_id: str | None, args: PageArgs, *, followers: bool
    ) -> schemas.Page[schemas.UserProfile]:
        self._check_id(user_id, "user_id", "Invalid user ID")
        if followers:
            join_on = models.Follow.follower_id == models.User.id
            where = models.Follow.followee_id == user_id
        else:
            join_on = models.Follow.followee_id == models.User.id
            where = models.Follow.follower_id == user_id
        stmt = select(models.User).join(models.Follow, join_on).where(where)

        with self._read() as db:
            self._user_by_id(db, user_id)
            users, info = paginate(
                db, stmt, args, id_column=models.User.id, cursor_for=lambda u: Cursor(id=u.id)
            )
            return schemas.Page[schemas.UserProfile](
                items=self._profiles_out(db, users, viewer_id), page_info=info
            )

    def followers(
        self, user_id: str, *, viewer_id: str | None = None, args: PageArgs = PageArgs()
    ) -> schemas.Page[schemas.UserProfile]:
        return self._follow_page(user_id, viewer_id, args, followers=True)

    def followees(
        self, user_id: str, *, viewer_id: str | None = None, args: PageArgs = PageArgs()
    ) -> schemas.Page[schemas.UserProfile]:
        return self._follow_page(user_id, viewer_id, args, followers=False)

    def toggle_follow(self, followee_id: str, user_id: str | None) -> schemas.ToggleFollowOutput:
        """Follow or unfollow ``followee_id``; returns the resulting state."""
        follower_id = self._require_user(user_id)
        self._check_id(followee_id, "followee_id", "Invalid followee ID")
        if followee_id == follower_id:
            raise permission_denied("Cannot follow yourself")

        with self._tx() as db:
            self._user_by_id(db, followee_id)
            following = db.scalar(
                select(
                    exists().where(
                        models.Follow.follower_id == follower_id,
                        models.Follow.followee_id == followee_id,
                    )
                )
            )
            delta = -1 if following else 1
            if following:
                db.execute(
                    delete(models.Follow).where(
                        models.Follow.follower_id == follower_id,
                        models.Follow.followee_id == followee_id,
                    )
                )
            else:
                db.add(models.Follow(follower_id=follower_id, followee_id=followee_id))
                db.flush()

            db.execute(
                update(models.User)
                .where(models.User.id == followee_id)
                .values(followers_count=models.User.followers_count + delta)
            )
            db.execute(
                update(models.User)
                .where(models.User.id == follower_id)
                .values(following_count=models.User.following_count + delta)
            )
            followers_count = db.scalar(
                select(models.User.followers_count).where(models.User.id == followee_id)
            )

        if not following:
            self._go(self._notify_follow, followee_id, follower_id)

        return schemas.ToggleFollowOutput(following=not following, followers_count=followers_count or 0)

    async def update_avatar(self, stream: BinaryIO, user_id: str | None) -> str:
        """Resize and store a new avatar; returns its public URL."""
        uid = self._require_user(user_id)
        if self.uploader is None:
            raise RuntimeError("avatar uploads need an object store")

        try:
            [image] = await ffmpeg.resize_images(AVATAR_MAX_RESOLUTION, [stream])
        except ffmpeg.UnsupportedImageError as exc:
            raise invalid_argument("Unsupported image format", "avatar") from exc

        try:
            key = f"{ids.generate()}.{image.extension}"
            cleanup = await self.uploader.upload_many(
                AVATARS_BUCKET,
                [UploadFile(path=key, file=image.file, size=image.file_size, content_type=image.content_type)],
            )
            try:
                old_key = await asyncio.to_thread(self._set_avatar, uid, key)
            except BaseException:
                cleanup()
                raise
        finally:
            image.close()

        if old_key:
            self._go(self._remove_blob, AVATARS_BUCKET, old_key)
        return self.avatar_url(key) or ""

    def _set_avatar(self, user_id: str, key: str) -> str | None:
        with self._tx() as db:
            user = self._user_by_id(db, user_id)
            old_key = user.avatar
            user.avatar = key
        return old_key

    def _remove_blob(self, bucket: str, key: str) -> None:
        if self.uploader is None:
            return
        self.uploader.store.remove_object(bucket, key)
