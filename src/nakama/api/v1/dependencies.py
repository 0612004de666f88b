# src/nakama/api/v1/dependencies.py
"""Shared API dependencies for authentication and pagination."""

from typing import Annotated

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from nakama.pagination import PageArgs
from nakama.services import Service

# Logging in is optional for most reads; services decide when a user is required.
bearer_scheme = HTTPBearer(auto_error=False)


def get_service(request: Request) -> Service:
    """Return the service built at application startup."""
    return request.app.state.service


ServiceDep = Annotated[Service, Depends(get_service)]


def get_user_id(
    service: ServiceDep,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Resolve the bearer token into the caller's user id.

    Returns:
        The user id, or ``None`` for anonymous requests.

    Raises:
        nakama.errs.Error: The token is malformed, forged or expired.
    """
    if credentials is None:
        return None
    return service.auth_user_id(credentials.credentials)


UserIdDep = Annotated[str | None, Depends(get_user_id)]


def get_page_args(
    first: Annotated[int | None, Query()] = None,
    after: Annotated[str | None, Query()] = None,
    last: Annotated[int | None, Query()] = None,
    before: Annotated[str | None, Query()] = None,
) -> PageArgs:
    return PageArgs(first=first, after=after, last=last, before=before)


PageArgsDep = Annotated[PageArgs, Depends(get_page_args)]
