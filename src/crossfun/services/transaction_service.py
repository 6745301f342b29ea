"""Transaction service — ingestion and queries over on-chain trades.

Learn: Amounts are stored as decimal strings, so SQL can't sum them
exactly. Stats that need a volume pull the confirmed amounts for the
window and add them up as Decimal in Python.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.db.models import Token, Transaction, as_utc
from crossfun.errors import ConflictError, NotFoundError
from crossfun.schemas.base import PageParams
from crossfun.schemas.transaction import StatsPeriod, TransactionStatus, TransactionType
from crossfun.services.pagination import paginate
from crossfun.values import normalize_address, normalize_tx_hash

logger = structlog.get_logger()


def day_of(ts: datetime) -> str:
    """UTC calendar day of a timestamp, as YYYY-MM-DD."""
    return as_utc(ts).date().isoformat()


def amount(value: str) -> Decimal:
    return Decimal(value or "0")


class TransactionService:
    """Business logic for transactions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _newest_first(self, stmt):
        return stmt.order_by(Transaction.block_timestamp.desc(), Transaction.id)

    async def list_transactions(
        self,
        params: PageParams,
        type: Optional[TransactionType] = None,
        chain_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
    ) -> tuple[list[Transaction], int]:
        stmt = select(Transaction)
        if type is not None:
            stmt = stmt.where(Transaction.type == type.value)
        if chain_id is not None:
            stmt = stmt.where(Transaction.chain_id == chain_id)
        if status is not None:
            stmt = stmt.where(Transaction.status == status.value)
        return await paginate(self.db, self._newest_first(stmt), params)

    async def recent(self, limit: int = 20) -> list[Transaction]:
        result = await self.db.execute(
            self._newest_first(
                select(Transaction).where(Transaction.status == TransactionStatus.CONFIRMED.value)
            ).limit(limit)
        )
        return list(result.scalars().all())

    async def for_token(self, address: str, params: PageParams) -> tuple[list[Transaction], int]:
        stmt = select(Transaction).where(Transaction.token_address == normalize_address(address))
        return await paginate(self.db, self._newest_first(stmt), params)

    async def for_address(self, address: str, params: PageParams) -> tuple[list[Transaction], int]:
        """Transactions where the address is sender or recipient."""
        normalized = normalize_address(address)
        stmt = select(Transaction).where(
            or_(
                Transaction.sender_address == normalized,
                Transaction.recipient_address == normalized,
            )
        )
        return await paginate(self.db, self._newest_first(stmt), params)

    async def get_by_hash(self, tx_hash: str) -> Transaction:
        result = await self.db.execute(
            select(Transaction).where(Transaction.tx_hash == normalize_tx_hash(tx_hash))
        )
        tx = result.scalars().first()
        if tx is None:
            raise NotFoundError("Transaction not found")
        return tx

    async def stats(
        self,
        period: StatsPeriod = StatsPeriod.DAY,
        chain_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        conditions = [Transaction.status == TransactionStatus.CONFIRMED.value]
        if chain_id is not None:
            conditions.append(Transaction.chain_id == chain_id)
        since = period.since(now)
        if since is not None:
            conditions.append(Transaction.block_timestamp >= since)

        by_type = await self.db.execute(
            select(Transaction.type, func.count())
            .where(*conditions)
            .group_by(Transaction.type)
            .order_by(func.count().desc())
        )
        distribution = {tx_type: n for tx_type, n in by_type.all()}

        amounts = await self.db.execute(select(Transaction.eth_amount).where(*conditions))
        volume = sum((amount(a) for a in amounts.scalars().all()), Decimal(0))

        return {
            "total_transactions": sum(distribution.values()),
            "total_volume": float(volume),
            "type_distribution": distribution,
            "period": period,
            "chain_id": chain_id if chain_id is not None else "all",
        }

    async def volume_range(
        self, start: datetime, end: datetime, chain_id: Optional[int] = None
    ) -> dict:
        """Confirmed volume between start and end, bucketed by UTC day.

        USD volume per trade is token_price * token_amount.
        """
        conditions = [
            Transaction.status == TransactionStatus.CONFIRMED.value,
            Transaction.block_timestamp >= as_utc(start),
            Transaction.block_timestamp <= as_utc(end),
        ]
        if chain_id is not None:
            conditions.append(Transaction.chain_id == chain_id)

        result = await self.db.execute(
            select(
                Transaction.block_timestamp,
                Transaction.eth_amount,
                Transaction.token_amount,
                Transaction.token_price,
            )
            .where(*conditions)
            .order_by(Transaction.block_timestamp)
        )

        days: dict[str, dict] = {}
        for ts, eth_amount, token_amount, token_price in result.all():
            day = days.setdefault(
                day_of(ts),
                {"volume": Decimal(0), "volume_usd": Decimal(0), "count": 0},
            )
            day["volume"] += amount(eth_amount)
            day["volume_usd"] += amount(token_price) * amount(token_amount)
            day["count"] += 1

        buckets = [
            {
                "date": date,
                "total_volume": float(day["volume"]),
                "total_volume_usd": float(day["volume_usd"]),
                "transaction_count": day["count"],
            }
            for date, day in days.items()
        ]
        return {
            "data": buckets,
            "total_transactions": sum(day["count"] for day in days.values()),
            "total_volume": float(sum((d["volume"] for d in days.values()), Decimal(0))),
            "total_volume_usd": float(sum((d["volume_usd"] for d in days.values()), Decimal(0))),
        }

    async def create(self, fields: dict) -> Transaction:
        existing = await self.db.execute(
            select(Transaction.id).where(Transaction.tx_hash == fields["tx_hash"])
        )
        if existing.scalars().first() is not None:
            raise ConflictError("Transaction already exists")

        result = await self.db.execute(
            select(Token).where(Token.address == fields["token_address"])
        )
        token = result.scalars().first()
        if token is None:
            raise NotFoundError("Token not found")

        block_ts = fields["block_timestamp"]
        if block_ts.tzinfo is None:
            fields["block_timestamp"] = block_ts.replace(tzinfo=timezone.utc)

        tx = Transaction(token_id=token.id, **fields)
        self.db.add(tx)
        token.latest_transaction_at = tx.block_timestamp
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Transaction already exists")
        await self.db.commit()
        logger.info(
            "transaction.recorded",
            tx_hash=tx.tx_hash,
            token=tx.token_address,
            type=tx.type,
        )
        return tx
