# src/nakama/api/v1/endpoints/auth.py
"""Authentication endpoints: magic links, dev login and tokens."""

from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Query, status
from fastapi.responses import RedirectResponse, Response

from nakama.api.v1.dependencies import ServiceDep, UserIdDep
from nakama.errs import Error
from nakama.schemas import AuthOutput, TokenOutput, UserProfile
from nakama.schemas.user import DevLoginRequest, SendMagicLinkRequest
from nakama.services import VerifyMagicLink

router = APIRouter(tags=["auth"])


@router.post("/send_magic_link", status_code=status.HTTP_204_NO_CONTENT)
def send_magic_link(
    body: SendMagicLinkRequest,
    service: ServiceDep,
    user_id: UserIdDep,
    update_email: Annotated[bool, Query()] = False,
) -> Response:
    """Mail a login link, or an e-mail change confirmation with ``update_email``."""
    service.send_magic_link(
        body.email, body.redirect_uri, update_email=update_email, user_id=user_id
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _redirect_with_fragment(redirect_uri: str, data: dict[str, str]) -> RedirectResponse:
    base = redirect_uri.split("#", 1)[0]
    return RedirectResponse(f"{base}#{urlencode(data)}", status_code=status.HTTP_302_FOUND)


@router.get("/verify_magic_link")
def verify_magic_link(
    service: ServiceDep,
    email: str,
    verification_code: str,
    redirect_uri: str,
    username: str | None = None,
) -> RedirectResponse:
    """Consume the code and send the browser back with the token in the URL fragment."""
    service.parse_redirect_uri(redirect_uri)
    try:
        out = service.verify_magic_link(
            VerifyMagicLink(email=email, verification_code=verification_code, username=username)
        )
    except Error as exc:
        data = {"error": exc.message}
        if exc.field is not None:
            data["field"] = exc.field
        return _redirect_with_fragment(redirect_uri, data)

    return _redirect_with_fragment(
        redirect_uri,
        {
            "token": out.token,
            "expires_at": out.expires_at.isoformat(),
            "user.id": out.user.id,
            "user.username": out.user.username,
        },
    )


@router.post("/dev_login", response_model=AuthOutput)
def dev_login(body: DevLoginRequest, service: ServiceDep) -> AuthOutput:
    return service.dev_login(body.email)


@router.get("/auth_user", response_model=UserProfile)
def auth_user(service: ServiceDep, user_id: UserIdDep) -> UserProfile:
    return service.auth_user(user_id)


@router.get("/token", response_model=TokenOutput)
def token(service: ServiceDep, user_id: UserIdDep) -> TokenOutput:
    return service.token(user_id)
