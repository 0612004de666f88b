# src/nakama/services/auth.py
"""Passwordless login via magic links, and bearer tokens."""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from urllib.parse import SplitResult, urlencode, urlsplit

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError

from nakama import models, schemas
from nakama.db.time import as_utc, utcnow
from nakama.errs import (
    Error,
    already_exists,
    invalid_argument,
    not_found,
    permission_denied,
    unauthenticated,
)
from nakama.mailing import render_magic_link
from nakama.services.users import (
    UsersMixin,
    check_username,
    normalize_email,
    translate_user_integrity_error,
    valid_email,
)
from nakama.validator import Validator

logger = logging.getLogger(__name__)

VERIFY_MAGIC_LINK_PATH = "/api/verify_magic_link"


def invalid_email() -> Error:
    return invalid_argument("invalid email", "email")


@dataclass
class VerifyMagicLink:
    email: str
    verification_code: str
    username: str | None = None

    def validate(self) -> None:
        self.email = normalize_email(self.email)
        self.verification_code = self.verification_code.strip()
        if self.username is not None:
            self.username = self.username.strip()

        v = Validator()
        v.check(valid_email(self.email), "email", "Email is not valid")
        v.check(bool(self.verification_code), "verification_code", "Verification code is required")
        if self.username is not None:
            check_username(v, self.username)
        v.raise_if_errors()


class AuthMixin(UsersMixin):
    def parse_redirect_uri(self, raw_uri: str) -> SplitResult:
        """Accept absolute URIs on the service host, its subdomains or an allowed origin."""
        try:
            uri = urlsplit(raw_uri)
        except ValueError as exc:
            raise invalid_argument("invalid redirect URI", "redirect_uri") from exc
        if not uri.scheme or not uri.netloc:
            raise invalid_argument("invalid redirect URI", "redirect_uri")

        origin_host = urlsplit(self.origin).netloc
        if uri.netloc == origin_host or uri.netloc.endswith("." + origin_host):
            return uri
        if any(uri.netloc == urlsplit(allowed).netloc for allowed in self.allowed_origins):
            return uri
        raise permission_denied("untrusted redirect URI", "redirect_uri")

    def send_magic_link(
        self,
        email: str,
        redirect_uri: str,
        *,
        update_email: bool = False,
        user_id: str | None = None,
    ) -> None:
        """E-mail a single-use login link.

        With ``update_email`` the link instead confirms ``email`` as the new
        address of the logged-in user.
        """
        email = normalize_email(email)
        if not valid_email(email):
            raise invalid_email()
        self.parse_redirect_uri(redirect_uri)

        owner_id = self._require_user(user_id) if update_email else None
        code = secrets.token_urlsafe(32)
        with self._tx() as db:
            if owner_id is not None:
                taken = db.scalar(
                    select(
                        exists().where(models.User.email == email, models.User.id != owner_id)
                    )
                )
                if taken:
                    raise already_exists("email taken", "email")
            db.add(models.EmailVerificationCode(code=code, email=email, user_id=owner_id))

        link = (
            self.origin
            + VERIFY_MAGIC_LINK_PATH
            + "?"
            + urlencode({"email": email, "verification_code": code, "redirect_uri": redirect_uri})
        )
        subject = "Update email at Nakama" if update_email else "Login to Nakama"
        try:
            html = render_magic_link(
                update_email=update_email,
                origin=self.origin,
                magic_link=link,
                ttl=self.verification_code_ttl,
            )
            self.sender.send(email, subject, html, link)
        except Exception:
            self._go(self._delete_verification_code, email, code)
            raise

    def _delete_verification_code(self, email: str, code: str) -> None:
        with self._tx() as db:
            db.execute(
                delete(models.EmailVerificationCode).where(
                    models.EmailVerificationCode.email == email,
                    models.EmailVerificationCode.code == code,
                )
            )

    def verify_magic_link(self, params: VerifyMagicLink) -> schemas.AuthOutput:
        """Consume a verification code and log the user in.

        A code bound to a user changes that user's e-mail. Otherwise the
        account with the e-mail is used, or created when ``username`` is
        given.
        """
        params.validate()
        with self._tx() as db:
            row = db.scalar(
                select(models.EmailVerificationCode).where(
                    models.EmailVerificationCode.email == params.email,
                    models.EmailVerificationCode.code == params.verification_code,
                )
            )
            if row is None:
                raise not_found("verification code not found")
            if as_utc(row.created_at) + self.verification_code_ttl < utcnow():
                raise unauthenticated("expired token")

            try:
                if row.user_id is not None:
                    user = self._user_by_id(db, row.user_id)
                    user.email = params.email
                    db.flush()
                else:
                    user = db.scalar(select(models.User).where(models.User.email == params.email))
                    if user is None:
                        if params.username is None:
                            raise not_found("user not found")
                        user = models.User(email=params.email, username=params.username)
                        db.add(user)
                        db.flush()
            except IntegrityError as exc:
                raise translate_user_integrity_error(exc) from exc

            db.delete(row)
            return schemas.AuthOutput(
                user=self._user_out(user),
                token=self.tokens.encode(user.id),
                expires_at=self.tokens.expires_at(),
            )

    def dev_login(self, email: str) -> schemas.AuthOutput:
        """Log in as any existing user without e-mail; development only."""
        if self.disabled_dev_login:
            raise permission_denied("dev login is disabled")
        email = normalize_email(email)
        if not valid_email(email):
            raise invalid_email()
        with self._read() as db:
            user = db.scalar(select(models.User).where(models.User.email == email))
            if user is None:
                raise not_found("user not found")
            return schemas.AuthOutput(
                user=self._user_out(user),
                token=self.tokens.encode(user.id),
                expires_at=self.tokens.expires_at(),
            )

    def auth_user_id(self, token: str) -> str:
        """Decode a bearer token into a user id."""
        return self.tokens.decode(token)

    def auth_user(self, user_id: str | None) -> schemas.UserProfile:
        uid = self._require_user(user_id)
        with self._read() as db:
            return self._profile_out(db, self._user_by_id(db, uid), uid)

    def token(self, user_id: str | None) -> schemas.TokenOutput:
        """Issue a fresh token for an authenticated user."""
        uid = self._require_user(user_id)
        return schemas.TokenOutput(token=self.tokens.encode(uid), expires_at=self.tokens.expires_at())
