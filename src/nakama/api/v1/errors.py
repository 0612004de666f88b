# src/nakama/api/v1/errors.py
"""Translate domain errors into HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from nakama.errs import Error, ErrorKind
from nakama.validator import ValidationErrors

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.INVALID_ARGUMENT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
}


async def handle_domain_error(request: Request, exc: Error) -> JSONResponse:
    status_code = STATUS_BY_KIND[exc.kind]
    if isinstance(exc, ValidationErrors):
        return JSONResponse(status_code=status_code, content={"errors": exc.errors})
    if exc.field is not None:
        return JSONResponse(status_code=status_code, content={"errors": {exc.field: [exc.message]}})
    return JSONResponse(status_code=status_code, content={"error": exc.message})


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s: %s", request.method, request.url, exc, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal server error"},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Error, handle_domain_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
