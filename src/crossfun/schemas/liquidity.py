"""Pydantic schemas for liquidity events and token holders."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from crossfun.schemas.base import ApiModel
from crossfun.schemas.transaction import AMOUNT_PATTERN, TransactionStatus
from crossfun.values import Address, TransactionHash


class LiquidityEventType(str, enum.Enum):
    ADD = "add"
    REMOVE = "remove"


class LiquidityEventCreate(ApiModel):
    tx_hash: TransactionHash
    token_address: Address
    type: LiquidityEventType
    provider_address: Address
    eth_amount: str = Field(..., pattern=AMOUNT_PATTERN)
    token_amount: str = Field(..., pattern=AMOUNT_PATTERN)
    token_price: str = Field(default="0", pattern=AMOUNT_PATTERN)
    token_price_usd: float = Field(default=0.0, ge=0, alias="tokenPriceUSD")
    liquidity_pool_address: Optional[Address] = None
    block_number: int = Field(..., ge=1)
    block_timestamp: datetime
    chain_id: int = Field(default=1, ge=1)
    status: TransactionStatus = TransactionStatus.CONFIRMED


class LiquidityEventRead(ApiModel):
    id: uuid.UUID
    tx_hash: str
    token_id: uuid.UUID
    token_address: str
    type: str
    provider_address: str
    eth_amount: str
    token_amount: str
    token_price: str
    token_price_usd: float = Field(alias="tokenPriceUSD")
    value_usd: float = Field(alias="valueUSD")
    liquidity_pool_address: str
    block_number: int
    block_timestamp: datetime
    chain_id: int
    status: str
    created_at: datetime


# ─── Holders ────────────────────────────────────────────


class HolderUpdate(ApiModel):
    """A holder position pushed by the indexer; percentage is derived."""
    balance: str = Field(..., pattern=r"^\d+$")
    value_usd: float = Field(default=0.0, ge=0, alias="valueUSD")
    value_eth: float = Field(default=0.0, ge=0, alias="valueETH")
    buy_count: int = Field(default=0, ge=0)
    sell_count: int = Field(default=0, ge=0)
    tx_hash: Optional[TransactionHash] = None
    tx_at: Optional[datetime] = None


class TokenHolderRead(ApiModel):
    token_address: str
    holder_address: str
    balance: str
    percentage_of_supply: float
    value_usd: float = Field(alias="valueUSD")
    value_eth: float = Field(alias="valueETH")
    holder_type: str
    buy_count: int
    sell_count: int
    first_tx_hash: str
    last_tx_hash: str
    first_tx_at: Optional[datetime] = None
    last_tx_at: Optional[datetime] = None
    chain_id: int
    updated_at: datetime
