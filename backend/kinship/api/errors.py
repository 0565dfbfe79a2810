"""Error mapping and global handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

import asyncpg
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kinship.api.request_id import get_request_id
from kinship.infra.rate_limit import RateLimitExceeded
from kinship.infra.storage import InvalidAttachment
from kinship.realtime.errors import (
    Conflict,
    Forbidden,
    MutationFailed,
    NotFound,
    TopicForbidden,
    Unauthenticated,
    ValidationFailed,
)

KNOWN_ERRORS = (
    Unauthenticated,
    ValidationFailed,
    TopicForbidden,
    MutationFailed,
    RateLimitExceeded,
    InvalidAttachment,
)


def map_error(exc: Exception) -> HTTPException:
    reason = getattr(exc, "reason", None) or str(exc)
    if isinstance(exc, RateLimitExceeded):
        return HTTPException(status.HTTP_429_TOO_MANY_REQUESTS, detail=reason)
    if isinstance(exc, Unauthenticated):
        return HTTPException(status.HTTP_401_UNAUTHORIZED, detail=reason)
    if isinstance(exc, (Forbidden, TopicForbidden)):
        return HTTPException(status.HTTP_403_FORBIDDEN, detail=reason)
    if isinstance(exc, NotFound):
        return HTTPException(status.HTTP_404_NOT_FOUND, detail=reason)
    if isinstance(exc, Conflict):
        return HTTPException(status.HTTP_409_CONFLICT, detail=reason)
    if isinstance(exc, MutationFailed):
        return HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail=reason)
    return HTTPException(status.HTTP_400_BAD_REQUEST, detail=reason)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        rid = get_request_id(request)
        payload = {"detail": exc.detail, "request_id": rid}
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        rid = get_request_id(request)
        payload = {"detail": "validation_error", "errors": exc.errors(), "request_id": rid}
        return JSONResponse(status_code=422, content=jsonable_encoder(payload))

    @app.exception_handler(asyncpg.UniqueViolationError)
    async def unique_violation_handler(request: Request, exc: asyncpg.UniqueViolationError):  # type: ignore[override]
        rid = get_request_id(request)
        return JSONResponse(status_code=409, content={"detail": "conflict", "request_id": rid})
