"""API route aggregation.

All routers registered here get mounted under /api in main.py.

Learn: Unlike a blanket include_router(dependencies=[...]), auth here is
per route: most of the catalogue is public, and each write route names
the guard it needs (authenticated, owner-or-admin, moderator, admin).
"""

from fastapi import APIRouter

from crossfun.api.analytics import router as analytics_router
from crossfun.api.auth import router as auth_router
from crossfun.api.chat import router as chat_router
from crossfun.api.health import router as health_router
from crossfun.api.liquidity import router as liquidity_router
from crossfun.api.tokens import router as tokens_router
from crossfun.api.transactions import router as transactions_router
from crossfun.api.users import router as users_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(tokens_router, tags=["tokens"])
api_router.include_router(transactions_router, tags=["transactions"])
api_router.include_router(liquidity_router, tags=["liquidity"])
api_router.include_router(chat_router, tags=["chat"])
api_router.include_router(analytics_router, tags=["analytics"])
