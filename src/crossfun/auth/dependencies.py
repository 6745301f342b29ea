"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the caller's account from the request.

Two variants:
1. get_current_account — mandatory; any problem fails the request
2. get_optional_account — soft; any problem means "anonymous"

Both resolve: Authorization header → bearer token → account id →
Account row (with wallets) → request.state.account. Nothing is written
to the database while authenticating.
"""

import uuid
from typing import Optional

import structlog
from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth.jwt import TokenExpired, TokenMalformed, validate_token
from crossfun.db.engine import get_db
from crossfun.db.models import Account
from crossfun.errors import AuthenticationError, AuthenticationFault

logger = structlog.get_logger()


def extract_bearer(authorization: Optional[str]) -> Optional[str]:
    """Pull the token out of "Bearer <token>". None if absent or empty."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def load_account(db: AsyncSession, account_id: str) -> Optional[Account]:
    """Fetch an account by the id embedded in a token."""
    try:
        key = uuid.UUID(account_id)
    except ValueError:
        raise TokenMalformed("Invalid token: subject is not an account id")
    result = await db.execute(select(Account).where(Account.id == key))
    return result.scalars().first()


async def _resolve(token: str, db: AsyncSession) -> Account:
    """Token → active account. Raises AuthenticationError on any rejection."""
    try:
        account_id = validate_token(token)
        account = await load_account(db, account_id)
    except TokenExpired:
        raise AuthenticationError("Token expired")
    except TokenMalformed:
        raise AuthenticationError("Invalid token")

    if account is None or not account.is_active:
        raise AuthenticationError("Invalid or inactive user")
    return account


async def get_current_account(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Account:
    """Mandatory authentication (401 if no valid token)."""
    token = extract_bearer(authorization)
    if token is None:
        raise AuthenticationError("Access token required")

    try:
        account = await _resolve(token, db)
    except AuthenticationError:
        raise
    except Exception:
        logger.exception("auth.unexpected_failure", path=request.url.path)
        raise AuthenticationFault("Authentication failed")

    request.state.account = account
    structlog.contextvars.bind_contextvars(account_id=str(account.id))
    return account


async def get_optional_account(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Optional[Account]:
    """Soft authentication — returns None instead of failing.

    Learn: Used by public read endpoints that show more to the owner
    (e.g. inactive tokens on a creator page). A bad or expired token is
    treated exactly like no token.
    """
    token = extract_bearer(authorization)
    if token is None:
        return None
    try:
        account = await _resolve(token, db)
    except Exception as e:
        logger.debug("auth.optional_rejected", reason=str(e))
        return None

    request.state.account = account
    return account
