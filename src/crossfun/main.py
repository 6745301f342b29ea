"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown: the database engine is
built and checked (a dead database is fatal), Redis is attached if
reachable, and both are released on shutdown.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from crossfun import __version__
from crossfun.api import api_router
from crossfun.cache import close_redis, init_redis
from crossfun.config import settings
from crossfun.db.engine import build_engine, build_session_factory, check_connection
from crossfun.errors import (
    CrossfunError,
    crossfun_error_handler,
    http_error_handler,
    validation_error_handler,
)
from crossfun.logging_config import configure_logging
from crossfun.middleware.rate_limit import RateLimitMiddleware
from crossfun.middleware.request_id import RequestIdMiddleware
from crossfun.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    """
    logger.info(
        "crossfun.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    engine = build_engine(settings.database_url, echo=settings.debug)
    try:
        await check_connection(engine)
    except Exception:
        logger.exception("crossfun.database_unreachable")
        await engine.dispose()
        raise
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    logger.info("crossfun.database_connected")

    try:
        await init_redis()
        logger.info("crossfun.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional — only rate limiting depends on it
        logger.warning("crossfun.redis_unavailable", error=str(e))

    yield

    logger.info("crossfun.shutdown")
    await close_redis()
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="CrossFun API",
        description="Accounts, wallets and the token catalogue behind the CrossFun launchpad",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_exception_handler(CrossfunError, crossfun_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: crossfun.main:app)
app = create_app()
