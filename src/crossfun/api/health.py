"""Health check endpoint.

Learn: Reports whether the database (required) and Redis (optional) are
reachable. A missing Redis only degrades; a missing database is an error.
"""

from fastapi import APIRouter, Request

from crossfun import __version__
from crossfun.cache import get_redis
from crossfun.db.engine import check_connection

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    checks = {"server": "ok", "version": __version__}

    engine = getattr(request.app.state, "engine", None)
    try:
        if engine is None:
            raise RuntimeError("engine not initialized")
        await check_connection(engine)
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"unavailable: {e}"

    if checks["database"] != "ok":
        status = "unhealthy"
    elif checks["redis"] != "ok":
        status = "degraded"
    else:
        status = "healthy"
    return {"status": status, **checks}
