"""Analytics API — platform-wide figures for the dashboard.

Learn: Every route is public and read-only. Windowed routes take
?period=24h|7d|30d|all (default all); /performance takes an explicit
startDate/endDate range instead.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.db.engine import get_db
from crossfun.db.models import as_utc
from crossfun.errors import BadRequestError
from crossfun.schemas.analytics import (
    ChainAnalytics,
    Overview,
    Performance,
    TokenAnalytics,
    TransactionAnalytics,
    Trends,
    UserAnalytics,
)
from crossfun.schemas.base import DataResponse
from crossfun.schemas.transaction import StatsPeriod, TransactionType
from crossfun.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/analytics")


def _svc(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db)


@router.get("/overview", response_model=DataResponse[Overview])
async def overview(svc: AnalyticsService = Depends(_svc)):
    return {"data": await svc.overview()}


@router.get("/tokens", response_model=DataResponse[TokenAnalytics])
async def token_analytics(
    period: StatsPeriod = StatsPeriod.ALL,
    chain_id: Optional[int] = Query(None, ge=1, alias="chainId"),
    svc: AnalyticsService = Depends(_svc),
):
    return {"data": await svc.tokens(period, chain_id)}


@router.get("/transactions", response_model=DataResponse[TransactionAnalytics])
async def transaction_analytics(
    period: StatsPeriod = StatsPeriod.ALL,
    chain_id: Optional[int] = Query(None, ge=1, alias="chainId"),
    type: Optional[TransactionType] = None,
    svc: AnalyticsService = Depends(_svc),
):
    tx_type = type.value if type is not None else None
    return {"data": await svc.transactions(period, chain_id, tx_type)}


@router.get("/users", response_model=DataResponse[UserAnalytics])
async def user_analytics(
    period: StatsPeriod = StatsPeriod.ALL,
    svc: AnalyticsService = Depends(_svc),
):
    return {"data": await svc.users(period)}


@router.get("/trends", response_model=DataResponse[Trends])
async def trends(
    limit: int = Query(10, ge=1, le=50),
    svc: AnalyticsService = Depends(_svc),
):
    return {"data": await svc.trends(limit)}


@router.get("/chains", response_model=DataResponse[ChainAnalytics])
async def chain_analytics(svc: AnalyticsService = Depends(_svc)):
    return {"data": await svc.chains()}


@router.get("/performance", response_model=DataResponse[Performance])
async def performance(
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    svc: AnalyticsService = Depends(_svc),
):
    start_date, end_date = as_utc(start_date), as_utc(end_date)
    if end_date < start_date:
        raise BadRequestError("endDate must not be before startDate")
    return {"data": await svc.performance(start_date, end_date)}
