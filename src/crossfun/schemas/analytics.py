"""Pydantic schemas for platform analytics.

Learn: to_camel turns "new_tokens_24h" into "newTokens24H". The frontend
expects a lower-case "h", so every *_24h field names its alias explicitly.
"""

from datetime import datetime
from typing import Union

from pydantic import Field

from crossfun.schemas.account import PublicAccountRead
from crossfun.schemas.base import ApiModel
from crossfun.schemas.token import TokenRead
from crossfun.schemas.transaction import StatsPeriod


class Overview(ApiModel):
    total_tokens: int
    total_users: int
    total_transactions: int
    new_tokens_24h: int = Field(alias="newTokens24h")
    new_users_24h: int = Field(alias="newUsers24h")
    new_transactions_24h: int = Field(alias="newTransactions24h")
    total_market_cap: float
    total_volume_24h: float = Field(alias="totalVolume24h")
    total_liquidity: float


# ─── Tokens ─────────────────────────────────────────────


class TokenAggregate(ApiModel):
    total_tokens: int
    verified_tokens: int
    total_market_cap: float
    total_volume_24h: float = Field(alias="totalVolume24h")
    total_liquidity: float
    avg_price_change: float


class TokenAnalytics(ApiModel):
    period: StatsPeriod
    chain_id: Union[int, str]
    stats: TokenAggregate
    top_tokens: list[TokenRead]
    new_tokens: list[TokenRead]


# ─── Transactions ───────────────────────────────────────


class TransactionAggregate(ApiModel):
    total_transactions: int
    total_volume: float
    total_volume_usd: float = Field(alias="totalVolumeUSD")


class TypeCount(ApiModel):
    type: str
    count: int


class DailyVolume(ApiModel):
    date: str
    count: int
    volume: float


class TransactionAnalytics(ApiModel):
    period: StatsPeriod
    chain_id: Union[int, str]
    type: str
    stats: TransactionAggregate
    type_distribution: list[TypeCount]
    volume_by_day: list[DailyVolume]


# ─── Users ──────────────────────────────────────────────


class UserAggregate(ApiModel):
    total_users: int
    verified_users: int
    total_tokens_created: int
    avg_tokens_per_user: float


class DailyUsers(ApiModel):
    date: str
    new_users: int


class UserAnalytics(ApiModel):
    period: StatsPeriod
    stats: UserAggregate
    top_creators: list[PublicAccountRead]
    user_growth: list[DailyUsers]


# ─── Trends / chains / performance ──────────────────────


class Trends(ApiModel):
    trending_tokens: list[TokenRead]
    top_gainers: list[TokenRead]
    top_losers: list[TokenRead]
    most_active: list[TokenRead]


class ChainTokenStats(ApiModel):
    chain_id: int
    token_count: int
    total_market_cap: float
    total_volume_24h: float = Field(alias="totalVolume24h")
    total_liquidity: float
    verified_tokens: int


class ChainTransactionStats(ApiModel):
    chain_id: int
    transaction_count: int
    total_volume: float


class ChainAnalytics(ApiModel):
    chain_stats: list[ChainTokenStats]
    tx_volume_by_chain: list[ChainTransactionStats]


class DailyTokens(ApiModel):
    date: str
    new_tokens: int
    total_market_cap: float
    total_volume: float


class DailyTransactions(ApiModel):
    date: str
    transaction_count: int
    total_volume: float


class PerformanceWindow(ApiModel):
    start_date: datetime
    end_date: datetime


class Performance(ApiModel):
    period: PerformanceWindow
    daily_metrics: list[DailyTokens]
    user_growth: list[DailyUsers]
    tx_volume: list[DailyTransactions]
