"""Tokens API — catalogue, search, creator views and curation.

Learn: Read routes are public. Writes layer the guards:
- POST / → authenticated, and the body's creatorAddress must be one of
  the caller's wallets (admins may create for anyone)
- PATCH /{address} → same rule against the stored token's creator
- POST /{address}/verify → moderators
- PUT /{address}/market, PUT /{address}/holders/{holder} → admins (indexer
  ingestion)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth.dependencies import get_optional_account
from crossfun.auth.guards import (
    check_ownership_or_admin,
    from_request_field,
    has_role,
    owns_wallet,
    require_admin,
    require_moderator,
    require_ownership_or_admin,
    token_creator,
)
from crossfun.db.engine import get_db
from crossfun.db.models import Account
from crossfun.schemas.base import DataResponse, Page, PageParams, page_params
from crossfun.schemas.liquidity import HolderUpdate, TokenHolderRead
from crossfun.schemas.token import (
    MarketUpdate,
    SortOrder,
    TokenCount,
    TokenCreate,
    TokenRead,
    TokenSortField,
    TokenUpdate,
)
from crossfun.services.liquidity_service import LiquidityService
from crossfun.services.token_service import TokenService
from crossfun.values import Address, Role

router = APIRouter(prefix="/tokens")


def _svc(db: AsyncSession = Depends(get_db)) -> TokenService:
    return TokenService(db)


def _liquidity(db: AsyncSession = Depends(get_db)) -> LiquidityService:
    return LiquidityService(db)


# ─── Catalogue ──────────────────────────────────────────


@router.get("", response_model=Page[TokenRead])
async def list_tokens(
    params: PageParams = Depends(page_params),
    sort_by: TokenSortField = Query(TokenSortField.CREATED_AT, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    chain_id: Optional[int] = Query(None, ge=1, alias="chainId"),
    verified: Optional[bool] = None,
    active: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    svc: TokenService = Depends(_svc),
):
    items, total = await svc.list_tokens(
        params, sort_by, sort_order, chain_id, verified, active, search
    )
    return Page.build(items, total, params)


@router.get("/trending", response_model=DataResponse[list[TokenRead]])
async def trending_tokens(
    limit: int = Query(10, ge=1, le=50),
    svc: TokenService = Depends(_svc),
):
    return {"data": await svc.trending(limit)}


@router.get("/recent", response_model=DataResponse[list[TokenRead]])
async def recent_tokens(
    limit: int = Query(10, ge=1, le=50),
    svc: TokenService = Depends(_svc),
):
    return {"data": await svc.recent(limit)}


@router.get("/search", response_model=Page[TokenRead])
async def search_tokens(
    q: str = Query(..., min_length=1, max_length=100),
    params: PageParams = Depends(page_params),
    svc: TokenService = Depends(_svc),
):
    items, total = await svc.search(q, params)
    return Page.build(items, total, params)


@router.get("/count", response_model=TokenCount)
async def count_tokens(svc: TokenService = Depends(_svc)):
    return {"total_count": await svc.count_active()}


@router.get("/with-liquidity", response_model=Page[TokenRead])
async def tokens_with_liquidity(
    params: PageParams = Depends(page_params),
    min_liquidity: float = Query(0.0, ge=0, alias="minLiquidity"),
    svc: TokenService = Depends(_svc),
):
    items, total = await svc.with_liquidity(params, min_liquidity)
    return Page.build(items, total, params)


@router.get("/without-liquidity", response_model=Page[TokenRead])
async def tokens_without_liquidity(
    params: PageParams = Depends(page_params),
    svc: TokenService = Depends(_svc),
):
    items, total = await svc.without_liquidity(params)
    return Page.build(items, total, params)


@router.get("/address/{address}", response_model=DataResponse[TokenRead])
async def get_token(address: Address, svc: TokenService = Depends(_svc)):
    return {"data": await svc.get_by_address(address)}


@router.get("/creator/{creator_address}", response_model=Page[TokenRead])
async def creator_tokens(
    creator_address: Address,
    params: PageParams = Depends(page_params),
    caller: Optional[Account] = Depends(get_optional_account),
    svc: TokenService = Depends(_svc),
):
    """Anonymous callers see active tokens; the creator and staff see all."""
    include_inactive = caller is not None and (
        owns_wallet(caller, creator_address) or has_role(caller, Role.MODERATOR)
    )
    items, total = await svc.by_creator(creator_address, params, include_inactive)
    return Page.build(items, total, params)


# ─── Writes ─────────────────────────────────────────────


@router.post("", response_model=DataResponse[TokenRead], status_code=201)
async def create_token(
    body: TokenCreate,
    caller: Account = Depends(require_ownership_or_admin(from_request_field("creator_address"))),
    svc: TokenService = Depends(_svc),
):
    # Re-check against the parsed body: the guard only saw raw JSON.
    check_ownership_or_admin(caller, body.creator_address)
    token = await svc.create(body.model_dump())
    return {"data": token}


@router.patch("/{address}", response_model=DataResponse[TokenRead])
async def update_token(
    address: Address,
    body: TokenUpdate,
    _: Account = Depends(require_ownership_or_admin(token_creator())),
    svc: TokenService = Depends(_svc),
):
    token = await svc.update(address, body.model_dump(exclude_unset=True))
    return {"data": token}


@router.post("/{address}/verify", response_model=DataResponse[TokenRead])
async def verify_token(
    address: Address,
    _: Account = Depends(require_moderator),
    svc: TokenService = Depends(_svc),
):
    return {"data": await svc.verify(address)}


@router.put("/{address}/market", response_model=DataResponse[TokenRead])
async def update_market(
    address: Address,
    body: MarketUpdate,
    _: Account = Depends(require_admin),
    svc: TokenService = Depends(_svc),
):
    token = await svc.update_market(address, body.model_dump(exclude_unset=True))
    return {"data": token}


# ─── Holders ────────────────────────────────────────────


@router.get("/{address}/holders", response_model=Page[TokenHolderRead])
async def token_holders(
    address: Address,
    params: PageParams = Depends(page_params),
    svc: LiquidityService = Depends(_liquidity),
):
    items, total = await svc.holders(address, params)
    return Page.build(items, total, params)


@router.put("/{address}/holders/{holder_address}", response_model=DataResponse[TokenHolderRead])
async def update_holder(
    address: Address,
    holder_address: Address,
    body: HolderUpdate,
    _: Account = Depends(require_admin),
    svc: LiquidityService = Depends(_liquidity),
):
    holder = await svc.upsert_holder(address, holder_address, **body.model_dump())
    return {"data": holder}
