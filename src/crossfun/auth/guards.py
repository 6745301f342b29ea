"""Authorization guards.

Learn: Guards are FastAPI dependencies layered on top of
get_current_account. A route lists the guards it needs and FastAPI runs
them in order; the first one that raises ends the request. For example:

    @router.patch("/{address}")
    async def update(
        account: Account = Depends(require_ownership_or_admin(token_creator())),
    ): ...

Three kinds:
- require_role(min_role): role rank must be >= min_role (user < moderator < admin)
- require_ownership_or_admin(extractor): admin, or one of the caller's
  wallets equals the resource owner's address
- require_wallet_ownership: the body's walletAddress is one of the
  caller's wallets

All address comparisons are case-insensitive.
"""

from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth.dependencies import get_current_account
from crossfun.db.engine import get_db
from crossfun.db.models import Account, Token
from crossfun.errors import BadRequestError, ForbiddenError, NotFoundError
from crossfun.values import Role

OwnerExtractor = Callable[[Request, AsyncSession], Awaitable[Optional[str]]]


# ─── Pure checks ────────────────────────────────────────


def role_of(account: Account) -> Role:
    try:
        return Role(account.role)
    except ValueError:
        return Role.USER


def has_role(account: Account, min_role: Role) -> bool:
    return role_of(account).at_least(min_role)


def owns_wallet(account: Account, address: Optional[str]) -> bool:
    if not address or not isinstance(address, str):
        return False
    wanted = address.strip().lower()
    return any(wallet.address.lower() == wanted for wallet in account.wallets)


def check_ownership_or_admin(account: Account, owner_address: Optional[str]) -> None:
    """Raise unless account is admin or holds owner_address."""
    if role_of(account) is Role.ADMIN:
        return
    if not owner_address:
        raise BadRequestError("Resource identifier required")
    if not owns_wallet(account, owner_address):
        raise ForbiddenError("Access denied")


# ─── Role guard ─────────────────────────────────────────


def require_role(min_role: Role):
    """Dependency factory: caller's role must be at least min_role."""
    message = f"{min_role.value.capitalize()} access required"

    async def guard(account: Account = Depends(get_current_account)) -> Account:
        if not has_role(account, min_role):
            raise ForbiddenError(message)
        return account

    return guard


require_moderator = require_role(Role.MODERATOR)
require_admin = require_role(Role.ADMIN)


# ─── Ownership guard ────────────────────────────────────


async def _json_body(request: Request) -> dict:
    """The request's JSON object body, or {} (cached by Starlette)."""
    if request.method in ("GET", "HEAD", "DELETE"):
        return {}
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def from_request_field(field: str = "creator_address") -> OwnerExtractor:
    """Extractor: path parameter first, then JSON body.

    The camelCase key wins over the snake_case one, the same precedence
    the request schemas use, so the guard checks the value the handler
    will actually receive.
    """

    async def extract(request: Request, db: AsyncSession) -> Optional[str]:
        value = request.path_params.get(field)
        if value:
            return value
        body = await _json_body(request)
        return body.get(_camel(field)) or body.get(field)

    return extract


def token_creator(param: str = "address") -> OwnerExtractor:
    """Extractor: the creator of the token whose address is in the path."""

    async def extract(request: Request, db: AsyncSession) -> Optional[str]:
        address = request.path_params.get(param)
        if not address:
            return None
        result = await db.execute(
            select(Token.creator_address).where(Token.address == address.lower())
        )
        creator = result.scalars().first()
        if creator is None:
            raise NotFoundError("Token not found")
        return creator

    return extract


def require_ownership_or_admin(extractor: Optional[OwnerExtractor] = None):
    """Dependency factory: admin, or owner of the extracted address."""
    extract = extractor or from_request_field()

    async def guard(
        request: Request,
        account: Account = Depends(get_current_account),
        db: AsyncSession = Depends(get_db),
    ) -> Account:
        if role_of(account) is not Role.ADMIN:
            owner = await extract(request, db)
            check_ownership_or_admin(account, owner)
        return account

    return guard


# ─── Wallet-ownership guard ─────────────────────────────


async def require_wallet_ownership(
    request: Request,
    account: Account = Depends(get_current_account),
) -> Account:
    """The body's walletAddress must belong to the caller."""
    body = await _json_body(request)
    address = body.get("walletAddress") or body.get("wallet_address")
    if not address:
        raise BadRequestError("Wallet address required")
    if not owns_wallet(account, address):
        raise ForbiddenError("Wallet address not associated with your account")
    return account
