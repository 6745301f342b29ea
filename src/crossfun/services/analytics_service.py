"""Platform-wide analytics.

Learn: Token and account figures are floats and ints, so SQL aggregates
them. Transaction amounts are decimal strings; anything that sums them
or buckets them by day pulls the rows and works in Python (see
transaction_service.amount / day_of), which keeps the queries portable
between PostgreSQL and SQLite.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.db.models import Account, Token, Transaction, as_utc
from crossfun.schemas.transaction import StatsPeriod, TransactionStatus
from crossfun.services.transaction_service import amount, day_of

_CONFIRMED = Transaction.status == TransactionStatus.CONFIRMED.value
_ACTIVE_TOKEN = Token.is_active.is_(True)


class AnalyticsService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, model, *conditions) -> int:
        result = await self.db.execute(select(func.count()).select_from(model).where(*conditions))
        return result.scalar_one()

    async def _tokens(self, *conditions, order_by=(), limit: Optional[int] = None) -> list[Token]:
        stmt = select(Token).where(_ACTIVE_TOKEN, *conditions).order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def overview(self, now: Optional[datetime] = None) -> dict:
        since = (now or datetime.now(timezone.utc)) - timedelta(hours=24)

        totals = await self.db.execute(
            select(
                func.coalesce(func.sum(Token.market_cap_usd), 0.0),
                func.coalesce(func.sum(Token.volume_24h_usd), 0.0),
                func.coalesce(func.sum(Token.total_liquidity_usd), 0.0),
            ).where(_ACTIVE_TOKEN)
        )
        market_cap, volume, liquidity = totals.one()

        return {
            "total_tokens": await self._count(Token, _ACTIVE_TOKEN),
            "total_users": await self._count(
                Account, Account.is_active.is_(True), Account.is_banned.is_(False)
            ),
            "total_transactions": await self._count(Transaction, _CONFIRMED),
            "new_tokens_24h": await self._count(Token, Token.created_at >= since),
            "new_users_24h": await self._count(Account, Account.created_at >= since),
            "new_transactions_24h": await self._count(
                Transaction, _CONFIRMED, Transaction.created_at >= since
            ),
            "total_market_cap": float(market_cap),
            "total_volume_24h": float(volume),
            "total_liquidity": float(liquidity),
        }

    # ─── Tokens ─────────────────────────────────────────────

    async def tokens(
        self,
        period: StatsPeriod = StatsPeriod.ALL,
        chain_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """Aggregates over active tokens launched in the window."""
        conditions = []
        if chain_id is not None:
            conditions.append(Token.chain_id == chain_id)
        since = period.since(now)
        if since is not None:
            conditions.append(Token.created_at >= since)

        row = (
            await self.db.execute(
                select(
                    func.count(),
                    func.coalesce(func.sum(Token.market_cap_usd), 0.0),
                    func.coalesce(func.sum(Token.volume_24h_usd), 0.0),
                    func.coalesce(func.sum(Token.total_liquidity_usd), 0.0),
                    func.coalesce(func.avg(Token.price_change_24h_percent), 0.0),
                ).where(_ACTIVE_TOKEN, *conditions)
            )
        ).one()
        total, market_cap, volume, liquidity, avg_change = row

        return {
            "period": period,
            "chain_id": chain_id if chain_id is not None else "all",
            "stats": {
                "total_tokens": total,
                "verified_tokens": await self._count(
                    Token, _ACTIVE_TOKEN, Token.is_verified.is_(True), *conditions
                ),
                "total_market_cap": float(market_cap),
                "total_volume_24h": float(volume),
                "total_liquidity": float(liquidity),
                "avg_price_change": float(avg_change),
            },
            "top_tokens": await self._tokens(
                *conditions, order_by=(Token.volume_24h_usd.desc(),), limit=10
            ),
            "new_tokens": await self._tokens(
                *conditions, order_by=(Token.created_at.desc(),), limit=10
            ),
        }

    # ─── Transactions ───────────────────────────────────────

    async def transactions(
        self,
        period: StatsPeriod = StatsPeriod.ALL,
        chain_id: Optional[int] = None,
        type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """Confirmed transactions in the window, with a per-day volume series."""
        conditions = [_CONFIRMED]
        if chain_id is not None:
            conditions.append(Transaction.chain_id == chain_id)
        if type is not None:
            conditions.append(Transaction.type == type)
        since = period.since(now)
        if since is not None:
            conditions.append(Transaction.block_timestamp >= since)

        by_type = await self.db.execute(
            select(Transaction.type, func.count())
            .where(*conditions)
            .group_by(Transaction.type)
            .order_by(func.count().desc(), Transaction.type)
        )
        distribution = [{"type": t, "count": n} for t, n in by_type.all()]

        rows = await self.db.execute(
            select(
                Transaction.block_timestamp,
                Transaction.eth_amount,
                Transaction.token_price_usd,
            ).where(*conditions)
        )

        total_volume = Decimal(0)
        total_usd = 0.0
        days: dict[str, dict] = {}
        for ts, eth_amount, price_usd in rows.all():
            value = amount(eth_amount)
            total_volume += value
            total_usd += price_usd or 0.0
            day = days.setdefault(day_of(ts), {"count": 0, "volume": Decimal(0)})
            day["count"] += 1
            day["volume"] += value

        return {
            "period": period,
            "chain_id": chain_id if chain_id is not None else "all",
            "type": type or "all",
            "stats": {
                "total_transactions": sum(d["count"] for d in distribution),
                "total_volume": float(total_volume),
                "total_volume_usd": total_usd,
            },
            "type_distribution": distribution,
            "volume_by_day": [
                {"date": date, "count": day["count"], "volume": float(day["volume"])}
                for date, day in sorted(days.items())
            ],
        }

    # ─── Users ──────────────────────────────────────────────

    async def _user_growth(self, *conditions) -> list[dict]:
        result = await self.db.execute(select(Account.created_at).where(*conditions))
        days: dict[str, int] = {}
        for (created_at,) in result.all():
            key = day_of(created_at)
            days[key] = days.get(key, 0) + 1
        return [{"date": date, "new_users": n} for date, n in sorted(days.items())]

    async def users(
        self, period: StatsPeriod = StatsPeriod.ALL, now: Optional[datetime] = None
    ) -> dict:
        conditions = [Account.is_active.is_(True), Account.is_banned.is_(False)]
        since = period.since(now)
        if since is not None:
            conditions.append(Account.created_at >= since)

        total, tokens_created = (
            await self.db.execute(
                select(func.count(), func.coalesce(func.sum(Account.tokens_created), 0)).where(
                    *conditions
                )
            )
        ).one()

        top = await self.db.execute(
            select(Account)
            .where(*conditions)
            .order_by(Account.tokens_created.desc(), Account.total_volume_usd.desc())
            .limit(10)
        )

        return {
            "period": period,
            "stats": {
                "total_users": total,
                "verified_users": await self._count(
                    Account, Account.is_verified.is_(True), *conditions
                ),
                "total_tokens_created": int(tokens_created),
                "avg_tokens_per_user": (tokens_created / total) if total else 0.0,
            },
            "top_creators": list(top.scalars().all()),
            "user_growth": await self._user_growth(*conditions),
        }

    # ─── Trends ─────────────────────────────────────────────

    async def trends(self, limit: int = 10) -> dict:
        return {
            "trending_tokens": await self._tokens(
                order_by=(Token.volume_24h_usd.desc(), Token.price_change_24h_percent.desc()),
                limit=limit,
            ),
            "top_gainers": await self._tokens(
                Token.price_change_24h_percent > 0,
                order_by=(Token.price_change_24h_percent.desc(),),
                limit=limit,
            ),
            "top_losers": await self._tokens(
                Token.price_change_24h_percent < 0,
                order_by=(Token.price_change_24h_percent.asc(),),
                limit=limit,
            ),
            "most_active": await self._tokens(
                order_by=(Token.volume_24h_usd.desc(),), limit=limit
            ),
        }

    # ─── Chains ─────────────────────────────────────────────

    async def chains(self) -> dict:
        token_rows = await self.db.execute(
            select(
                Token.chain_id,
                func.count(),
                func.coalesce(func.sum(Token.market_cap_usd), 0.0),
                func.coalesce(func.sum(Token.volume_24h_usd), 0.0),
                func.coalesce(func.sum(Token.total_liquidity_usd), 0.0),
            )
            .where(_ACTIVE_TOKEN)
            .group_by(Token.chain_id)
            .order_by(func.count().desc(), Token.chain_id)
        )
        verified = dict(
            (
                await self.db.execute(
                    select(Token.chain_id, func.count())
                    .where(_ACTIVE_TOKEN, Token.is_verified.is_(True))
                    .group_by(Token.chain_id)
                )
            ).all()
        )
        chain_stats = [
            {
                "chain_id": chain_id,
                "token_count": count,
                "total_market_cap": float(market_cap),
                "total_volume_24h": float(volume),
                "total_liquidity": float(liquidity),
                "verified_tokens": verified.get(chain_id, 0),
            }
            for chain_id, count, market_cap, volume, liquidity in token_rows.all()
        ]

        tx_rows = await self.db.execute(
            select(Transaction.chain_id, Transaction.eth_amount).where(_CONFIRMED)
        )
        by_chain: dict[int, dict] = {}
        for chain_id, eth_amount in tx_rows.all():
            entry = by_chain.setdefault(chain_id, {"count": 0, "volume": Decimal(0)})
            entry["count"] += 1
            entry["volume"] += amount(eth_amount)
        tx_volume = [
            {
                "chain_id": chain_id,
                "transaction_count": entry["count"],
                "total_volume": float(entry["volume"]),
            }
            for chain_id, entry in sorted(
                by_chain.items(), key=lambda item: (-item[1]["count"], item[0])
            )
        ]

        return {"chain_stats": chain_stats, "tx_volume_by_chain": tx_volume}

    # ─── Performance ────────────────────────────────────────

    async def performance(self, start: datetime, end: datetime) -> dict:
        """Day-by-day launches, sign-ups and confirmed volume in [start, end]."""
        start, end = as_utc(start), as_utc(end)
        token_rows = await self.db.execute(
            select(Token.created_at, Token.market_cap_usd, Token.volume_24h_usd).where(
                _ACTIVE_TOKEN, Token.created_at >= start, Token.created_at <= end
            )
        )
        launches: dict[str, dict] = {}
        for created_at, market_cap, volume in token_rows.all():
            day = launches.setdefault(
                day_of(created_at), {"new_tokens": 0, "market_cap": 0.0, "volume": 0.0}
            )
            day["new_tokens"] += 1
            day["market_cap"] += market_cap or 0.0
            day["volume"] += volume or 0.0

        tx_rows = await self.db.execute(
            select(Transaction.block_timestamp, Transaction.eth_amount).where(
                _CONFIRMED,
                Transaction.block_timestamp >= start,
                Transaction.block_timestamp <= end,
            )
        )
        trades: dict[str, dict] = {}
        for ts, eth_amount in tx_rows.all():
            day = trades.setdefault(day_of(ts), {"count": 0, "volume": Decimal(0)})
            day["count"] += 1
            day["volume"] += amount(eth_amount)

        return {
            "period": {"start_date": start, "end_date": end},
            "daily_metrics": [
                {
                    "date": date,
                    "new_tokens": day["new_tokens"],
                    "total_market_cap": day["market_cap"],
                    "total_volume": day["volume"],
                }
                for date, day in sorted(launches.items())
            ],
            "user_growth": await self._user_growth(
                Account.is_active.is_(True),
                Account.created_at >= start,
                Account.created_at <= end,
            ),
            "tx_volume": [
                {
                    "date": date,
                    "transaction_count": day["count"],
                    "total_volume": float(day["volume"]),
                }
                for date, day in sorted(trades.items())
            ],
        }
