"""Liquidity service — pool events and per-wallet holder positions.

Learn: Both tables are written by the indexer through admin routes and
read publicly. A holder row is an upsert keyed by (token, holder); its
percentage_of_supply is recomputed from the balance and the token's
total_supply on every write, in Decimal since both are base-unit
strings that overflow a float's precision.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.db.models import LiquidityEvent, Token, TokenHolder, utcnow
from crossfun.errors import ConflictError, NotFoundError
from crossfun.schemas.base import PageParams
from crossfun.schemas.transaction import TransactionStatus
from crossfun.services.pagination import paginate
from crossfun.values import normalize_address

logger = structlog.get_logger()


def share_of_supply(balance: str, total_supply: str) -> float:
    """balance / total_supply as a percentage; 0 when supply is unknown."""
    supply = Decimal(total_supply or "0")
    if supply == 0:
        return 0.0
    return float(Decimal(balance or "0") * 100 / supply)


class LiquidityService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _token(self, address: str) -> Token:
        result = await self.db.execute(
            select(Token).where(Token.address == normalize_address(address))
        )
        token = result.scalars().first()
        if token is None:
            raise NotFoundError("Token not found")
        return token

    def _newest_first(self, stmt):
        return stmt.order_by(LiquidityEvent.block_timestamp.desc(), LiquidityEvent.id)

    # ─── Events ─────────────────────────────────────────

    async def for_token(self, address: str, params: PageParams) -> tuple[list[LiquidityEvent], int]:
        token = await self._token(address)
        stmt = select(LiquidityEvent).where(LiquidityEvent.token_address == token.address)
        return await paginate(self.db, self._newest_first(stmt), params)

    async def for_provider(
        self, address: str, params: PageParams
    ) -> tuple[list[LiquidityEvent], int]:
        stmt = select(LiquidityEvent).where(
            LiquidityEvent.provider_address == normalize_address(address)
        )
        return await paginate(self.db, self._newest_first(stmt), params)

    async def recent(self, limit: int = 20) -> list[LiquidityEvent]:
        result = await self.db.execute(
            self._newest_first(
                select(LiquidityEvent).where(
                    LiquidityEvent.status == TransactionStatus.CONFIRMED.value
                )
            ).limit(limit)
        )
        return list(result.scalars().all())

    async def record(self, fields: dict) -> LiquidityEvent:
        existing = await self.db.execute(
            select(LiquidityEvent.id).where(LiquidityEvent.tx_hash == fields["tx_hash"])
        )
        if existing.scalars().first() is not None:
            raise ConflictError("Liquidity event already exists")

        token = await self._token(fields["token_address"])
        block_ts = fields["block_timestamp"]
        if block_ts.tzinfo is None:
            fields["block_timestamp"] = block_ts.replace(tzinfo=timezone.utc)
        if fields.get("liquidity_pool_address") is None:
            fields["liquidity_pool_address"] = ""

        event = LiquidityEvent(token_id=token.id, **fields)
        self.db.add(event)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Liquidity event already exists")
        await self.db.commit()
        logger.info(
            "liquidity.recorded",
            tx_hash=event.tx_hash,
            token=event.token_address,
            type=event.type,
        )
        return event

    # ─── Holders ────────────────────────────────────────

    async def holders(self, address: str, params: PageParams) -> tuple[list[TokenHolder], int]:
        """Largest positions first."""
        token = await self._token(address)
        stmt = (
            select(TokenHolder)
            .where(TokenHolder.token_address == token.address)
            .order_by(
                TokenHolder.percentage_of_supply.desc(),
                TokenHolder.value_usd.desc(),
                TokenHolder.id,
            )
        )
        return await paginate(self.db, stmt, params)

    async def upsert_holder(
        self,
        address: str,
        holder_address: str,
        balance: str,
        value_usd: float = 0.0,
        value_eth: float = 0.0,
        buy_count: int = 0,
        sell_count: int = 0,
        tx_hash: Optional[str] = None,
        tx_at: Optional[datetime] = None,
    ) -> TokenHolder:
        token = await self._token(address)
        holder_address = normalize_address(holder_address)
        result = await self.db.execute(
            select(TokenHolder).where(
                TokenHolder.token_id == token.id,
                TokenHolder.holder_address == holder_address,
            )
        )
        holder = result.scalars().first()
        if holder is None:
            holder = TokenHolder(
                token_id=token.id,
                token_address=token.address,
                holder_address=holder_address,
                chain_id=token.chain_id,
                first_tx_hash=tx_hash or "",
                first_tx_at=tx_at,
            )
            self.db.add(holder)

        holder.balance = balance
        holder.percentage_of_supply = share_of_supply(balance, token.total_supply)
        holder.value_usd = value_usd
        holder.value_eth = value_eth
        holder.buy_count = buy_count
        holder.sell_count = sell_count
        if tx_hash:
            holder.last_tx_hash = tx_hash
            holder.last_tx_at = tx_at
        holder.updated_at = utcnow()
        await self.db.commit()
        return holder
