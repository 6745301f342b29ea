"""Transactions API — trade history and indexer ingestion."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth.guards import require_admin
from crossfun.db.engine import get_db
from crossfun.db.models import Account, as_utc
from crossfun.errors import BadRequestError
from crossfun.schemas.base import DataResponse, Page, PageParams, page_params
from crossfun.schemas.transaction import (
    StatsPeriod,
    TransactionCreate,
    TransactionRead,
    TransactionStats,
    TransactionStatus,
    TransactionType,
    VolumeRange,
)
from crossfun.services.transaction_service import TransactionService
from crossfun.values import Address, TransactionHash

router = APIRouter(prefix="/transactions")


def _svc(db: AsyncSession = Depends(get_db)) -> TransactionService:
    return TransactionService(db)


@router.get("", response_model=Page[TransactionRead])
async def list_transactions(
    params: PageParams = Depends(page_params),
    type: Optional[TransactionType] = None,
    chain_id: Optional[int] = Query(None, ge=1, alias="chainId"),
    status: Optional[TransactionStatus] = None,
    svc: TransactionService = Depends(_svc),
):
    items, total = await svc.list_transactions(params, type, chain_id, status)
    return Page.build(items, total, params)


@router.get("/recent", response_model=DataResponse[list[TransactionRead]])
async def recent_transactions(
    limit: int = Query(20, ge=1, le=100),
    svc: TransactionService = Depends(_svc),
):
    return {"data": await svc.recent(limit)}


@router.get("/stats", response_model=DataResponse[TransactionStats])
async def transaction_stats(
    period: StatsPeriod = StatsPeriod.DAY,
    chain_id: Optional[int] = Query(None, ge=1, alias="chainId"),
    svc: TransactionService = Depends(_svc),
):
    """Confirmed transactions in the window: count, volume, per-type split."""
    return {"data": await svc.stats(period, chain_id)}


@router.get("/volume-range", response_model=VolumeRange)
async def volume_range(
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    chain_id: Optional[int] = Query(None, ge=1, alias="chainId"),
    svc: TransactionService = Depends(_svc),
):
    """Daily confirmed volume; both ends of the range are inclusive."""
    start_date, end_date = as_utc(start_date), as_utc(end_date)
    if end_date < start_date:
        raise BadRequestError("endDate must not be before startDate")
    return await svc.volume_range(start_date, end_date, chain_id)


@router.get("/token/{address}", response_model=Page[TransactionRead])
async def token_transactions(
    address: Address,
    params: PageParams = Depends(page_params),
    svc: TransactionService = Depends(_svc),
):
    items, total = await svc.for_token(address, params)
    return Page.build(items, total, params)


@router.get("/address/{address}", response_model=Page[TransactionRead])
async def address_transactions(
    address: Address,
    params: PageParams = Depends(page_params),
    svc: TransactionService = Depends(_svc),
):
    items, total = await svc.for_address(address, params)
    return Page.build(items, total, params)


@router.get("/hash/{tx_hash}", response_model=DataResponse[TransactionRead])
async def get_transaction(tx_hash: TransactionHash, svc: TransactionService = Depends(_svc)):
    return {"data": await svc.get_by_hash(tx_hash)}


@router.post("", response_model=DataResponse[TransactionRead], status_code=201)
async def record_transaction(
    body: TransactionCreate,
    _: Account = Depends(require_admin),
    svc: TransactionService = Depends(_svc),
):
    fields = body.model_dump()
    fields["type"] = body.type.value
    fields["status"] = body.status.value
    return {"data": await svc.create(fields)}
