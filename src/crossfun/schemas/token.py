"""Pydantic schemas for tokens."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from crossfun.schemas.base import ApiModel, Link
from crossfun.values import Address


class TokenSortField(str, enum.Enum):
    """Wire names accepted by ?sortBy= on the token list."""

    CREATED_AT = "createdAt"
    CURRENT_PRICE_USD = "currentPriceUSD"
    MARKET_CAP_USD = "marketCapUSD"
    VOLUME_24H_USD = "volume24hUSD"
    PRICE_CHANGE_24H_PERCENT = "priceChange24hPercent"


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class TokenCreate(ApiModel):
    address: Address
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(..., min_length=1, max_length=10)
    creator_address: Address
    chain_id: int = Field(default=1, ge=1)
    logo: Optional[str] = Field(None, max_length=500)
    description: str = Field(default="", max_length=1000)
    website: Link = ""
    youtube: Link = ""
    discord: Link = ""
    twitter: Link = ""
    telegram: Link = ""
    total_supply: str = Field(default="0", pattern=r"^\d+$")
    tags: list[str] = []
    deployment_tx_hash: str = Field(default="", max_length=66)


class TokenUpdate(ApiModel):
    """PATCH body. Address, creator and chain are immutable."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    logo: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)
    website: Optional[Link] = None
    youtube: Optional[Link] = None
    discord: Optional[Link] = None
    twitter: Optional[Link] = None
    telegram: Optional[Link] = None
    tags: Optional[list[str]] = None


class MarketUpdate(ApiModel):
    """Cached market figures pushed by the indexer."""
    current_price_usd: Optional[float] = Field(None, ge=0, alias="currentPriceUSD")
    market_cap_usd: Optional[float] = Field(None, ge=0, alias="marketCapUSD")
    volume_24h_usd: Optional[float] = Field(None, ge=0, alias="volume24hUSD")
    price_change_24h_percent: Optional[float] = Field(None, alias="priceChange24hPercent")
    total_liquidity_usd: Optional[float] = Field(None, ge=0, alias="totalLiquidityUSD")


class TokenRead(ApiModel):
    id: uuid.UUID
    address: str
    name: str
    symbol: str
    chain_id: int
    creator_address: str
    logo: str
    description: str
    website: str
    youtube: str
    discord: str
    twitter: str
    telegram: str
    total_supply: str
    current_price_usd: float = Field(alias="currentPriceUSD")
    market_cap_usd: float = Field(alias="marketCapUSD")
    volume_24h_usd: float = Field(alias="volume24hUSD")
    price_change_24h_percent: float = Field(alias="priceChange24hPercent")
    total_liquidity_usd: float = Field(alias="totalLiquidityUSD")
    is_verified: bool
    is_active: bool
    tags: list[str]
    deployment_tx_hash: str
    latest_transaction_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TokenCount(ApiModel):
    total_count: int
