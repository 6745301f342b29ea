"""Pydantic schemas for on-chain transactions."""

import enum
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from pydantic import Field

from crossfun.schemas.base import ApiModel
from crossfun.values import Address, TransactionHash

AMOUNT_PATTERN = r"^\d+(\.\d+)?$"


class TransactionType(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    TRANSFER = "transfer"
    MINT = "mint"
    BURN = "burn"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class StatsPeriod(str, enum.Enum):
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"
    ALL = "all"

    def since(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """Start of the window ending at now; None for "all"."""
        window = _PERIOD_WINDOWS.get(self)
        if window is None:
            return None
        return (now or datetime.now(timezone.utc)) - window


_PERIOD_WINDOWS = {
    StatsPeriod.DAY: timedelta(hours=24),
    StatsPeriod.WEEK: timedelta(days=7),
    StatsPeriod.MONTH: timedelta(days=30),
}


class TransactionCreate(ApiModel):
    tx_hash: TransactionHash
    token_address: Address
    type: TransactionType
    sender_address: Address
    recipient_address: Address
    eth_amount: str = Field(..., pattern=AMOUNT_PATTERN)
    token_amount: str = Field(..., pattern=AMOUNT_PATTERN)
    token_price: str = Field(default="0", pattern=AMOUNT_PATTERN)
    token_price_usd: float = Field(default=0.0, ge=0, alias="tokenPriceUSD")
    block_number: int = Field(..., ge=1)
    block_timestamp: datetime
    chain_id: int = Field(default=1, ge=1)
    status: TransactionStatus = TransactionStatus.CONFIRMED


class TransactionRead(ApiModel):
    id: uuid.UUID
    tx_hash: str
    token_id: uuid.UUID
    token_address: str
    type: str
    sender_address: str
    recipient_address: str
    eth_amount: str
    token_amount: str
    token_price: str
    token_price_usd: float = Field(alias="tokenPriceUSD")
    block_number: int
    block_timestamp: datetime
    chain_id: int
    status: str
    created_at: datetime


class TransactionStats(ApiModel):
    total_transactions: int
    total_volume: float
    type_distribution: dict[str, int]
    period: StatsPeriod
    chain_id: Union[int, str]


class VolumeDay(ApiModel):
    date: str
    total_volume: float
    total_volume_usd: float = Field(alias="totalVolumeUSD")
    transaction_count: int


class VolumeRange(ApiModel):
    """Per-day buckets over [startDate, endDate] plus the range totals."""
    data: list[VolumeDay]
    total_transactions: int
    total_volume: float
    total_volume_usd: float = Field(alias="totalVolumeUSD")
