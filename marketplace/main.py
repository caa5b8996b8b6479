"""FastAPI entrypoint for the multi-role delivery marketplace."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.api.v1.api import api_router
from marketplace.core.config import settings
from marketplace.core.errors import (
    ERROR_INTERNAL,
    ERROR_NOT_FOUND,
    ERROR_UNAUTHORIZED,
    ERROR_VALIDATION,
    ConsistencyError,
    MarketplaceError,
)
from marketplace.db.base import Base
from marketplace.db.session import SessionLocal, engine
from marketplace.services.account_service import ensure_default_admin

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.include_router(api_router, prefix="/api/v1")

ERROR_KIND_BY_HTTP_STATUS: dict[int, str] = {
    400: ERROR_VALIDATION,
    401: ERROR_UNAUTHORIZED,
    403: ERROR_UNAUTHORIZED,
    404: ERROR_NOT_FOUND,
}


def error_envelope(
    status_code: int,
    message: str,
    kind: str,
    reason: str | None = None,
    data: Any = None,
    retryable: bool = False,
) -> JSONResponse:
    """Render a failure in the same ``{success, data, message}`` shape as successes."""
    content: dict[str, Any] = {"success": False, "data": data, "message": message, "error": kind}
    if reason is not None:
        content["reason"] = reason
    if retryable:
        content["retryable"] = True
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    data = {"problems": exc.problems} if isinstance(exc, ConsistencyError) else None
    if exc.status_code >= 500:
        logger.error("[API] %s %s failed: %s", request.method, request.url.path, exc.message)
    return error_envelope(exc.status_code, exc.message, exc.kind, exc.reason, data, exc.retryable)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ())[1:]) or 'body'}: {error.get('msg')}" for error in errors
    )
    return error_envelope(400, message or "Invalid request", ERROR_VALIDATION)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = ERROR_KIND_BY_HTTP_STATUS.get(exc.status_code, ERROR_INTERNAL)
    return error_envelope(exc.status_code, str(exc.detail), kind)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("[API] Database error on %s %s", request.method, request.url.path)
    return error_envelope(500, "Internal server error", ERROR_INTERNAL)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[API] Unhandled error on %s %s", request.method, request.url.path)
    return error_envelope(500, "Internal server error", ERROR_INTERNAL)


@app.on_event("startup")
def startup() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        try:
            admin_present = ensure_default_admin(session)
            logger.info("[BOOTSTRAP] default admin present: %s", "yes" if admin_present else "no")
        except SQLAlchemyError:
            logger.exception("[BOOTSTRAP] Admin bootstrap failed; continuing startup.")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.app_env}
