"""Liquidity API — pool add/remove history and indexer ingestion."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth.guards import require_admin
from crossfun.db.engine import get_db
from crossfun.db.models import Account
from crossfun.schemas.base import DataResponse, Page, PageParams, page_params
from crossfun.schemas.liquidity import LiquidityEventCreate, LiquidityEventRead
from crossfun.services.liquidity_service import LiquidityService
from crossfun.values import Address

router = APIRouter(prefix="/liquidity")


def _svc(db: AsyncSession = Depends(get_db)) -> LiquidityService:
    return LiquidityService(db)


@router.get("/recent", response_model=DataResponse[list[LiquidityEventRead]])
async def recent_events(
    limit: int = Query(20, ge=1, le=100),
    svc: LiquidityService = Depends(_svc),
):
    return {"data": await svc.recent(limit)}


@router.get("/token/{address}", response_model=Page[LiquidityEventRead])
async def token_events(
    address: Address,
    params: PageParams = Depends(page_params),
    svc: LiquidityService = Depends(_svc),
):
    items, total = await svc.for_token(address, params)
    return Page.build(items, total, params)


@router.get("/provider/{address}", response_model=Page[LiquidityEventRead])
async def provider_events(
    address: Address,
    params: PageParams = Depends(page_params),
    svc: LiquidityService = Depends(_svc),
):
    items, total = await svc.for_provider(address, params)
    return Page.build(items, total, params)


@router.post("", response_model=DataResponse[LiquidityEventRead], status_code=201)
async def record_event(
    body: LiquidityEventCreate,
    _: Account = Depends(require_admin),
    svc: LiquidityService = Depends(_svc),
):
    fields = body.model_dump()
    fields["type"] = body.type.value
    fields["status"] = body.status.value
    return {"data": await svc.record(fields)}
