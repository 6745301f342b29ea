"""Application errors and their HTTP translation.

Learn: Services and auth dependencies raise these instead of building
HTTP responses themselves. Each error carries its status code and any
extra fields the client needs (e.g. lockUntil for a locked account).
The handlers registered in main.create_app() turn them — and FastAPI's
own HTTPException / validation errors — into the single wire shape
{"error": "<message>", ...extra}.
"""

from datetime import datetime
from typing import Any

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class CrossfunError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra


class BadRequestError(CrossfunError):
    status_code = 400


class AuthenticationError(CrossfunError):
    """Missing, invalid or expired credentials (401)."""

    status_code = 401


class AuthenticationFault(CrossfunError):
    """Unexpected failure inside the auth chain (500)."""

    status_code = 500


class ForbiddenError(CrossfunError):
    status_code = 403


class NotFoundError(CrossfunError):
    status_code = 404


class ConflictError(CrossfunError):
    """Duplicate unique field (username, email, wallet, token, tx hash)."""

    status_code = 409


class AccountLockedError(CrossfunError):
    status_code = 423

    def __init__(self, lock_until: datetime):
        super().__init__(
            "Account is temporarily locked due to too many failed login attempts",
            lockUntil=lock_until.isoformat(),
        )
        self.lock_until = lock_until


# ─── Handlers ────────────────────────────────────────────


async def crossfun_error_handler(request: Request, exc: CrossfunError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, **exc.extra},
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Input validation failures are 400 with per-field detail."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "")})
    logger.info("request.validation_failed", path=request.url.path, errors=errors)
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "errors": errors},
    )
