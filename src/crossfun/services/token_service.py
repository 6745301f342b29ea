"""Token service — the token catalogue and its cached market data.

Learn: Tokens are keyed by contract address, always lower-case. The
service never computes prices; market figures arrive through
update_market from whatever indexes the chain. Creating a token bumps
the creator account's tokens_created counter in the same transaction.
"""

from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.db.models import Account, Token, Wallet, utcnow
from crossfun.errors import ConflictError, NotFoundError
from crossfun.schemas.base import PageParams
from crossfun.schemas.token import SortOrder, TokenSortField
from crossfun.services.pagination import paginate
from crossfun.values import normalize_address

logger = structlog.get_logger()

_SORT_COLUMNS = {
    TokenSortField.CREATED_AT: Token.created_at,
    TokenSortField.CURRENT_PRICE_USD: Token.current_price_usd,
    TokenSortField.MARKET_CAP_USD: Token.market_cap_usd,
    TokenSortField.VOLUME_24H_USD: Token.volume_24h_usd,
    TokenSortField.PRICE_CHANGE_24H_PERCENT: Token.price_change_24h_percent,
}


def _text_filter(term: str, *columns):
    pattern = f"%{term}%"
    return or_(*(column.ilike(pattern) for column in columns))


class TokenService:
    """Business logic for tokens."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Reads ──────────────────────────────────────────

    async def get_by_address(self, address: str) -> Token:
        result = await self.db.execute(
            select(Token).where(Token.address == normalize_address(address))
        )
        token = result.scalars().first()
        if token is None:
            raise NotFoundError("Token not found")
        return token

    async def list_tokens(
        self,
        params: PageParams,
        sort_by: TokenSortField = TokenSortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
        chain_id: Optional[int] = None,
        verified: Optional[bool] = None,
        active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Token], int]:
        stmt = select(Token)
        if chain_id is not None:
            stmt = stmt.where(Token.chain_id == chain_id)
        if verified is not None:
            stmt = stmt.where(Token.is_verified == verified)
        if active is not None:
            stmt = stmt.where(Token.is_active == active)
        if search:
            stmt = stmt.where(
                _text_filter(search, Token.name, Token.symbol, Token.description)
            )
        column = _SORT_COLUMNS[sort_by]
        ordering = column.asc() if sort_order is SortOrder.ASC else column.desc()
        stmt = stmt.order_by(ordering, Token.id)
        return await paginate(self.db, stmt, params)

    async def trending(self, limit: int = 10) -> list[Token]:
        result = await self.db.execute(
            select(Token)
            .where(Token.is_active.is_(True))
            .order_by(Token.volume_24h_usd.desc(), Token.price_change_24h_percent.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def recent(self, limit: int = 10) -> list[Token]:
        result = await self.db.execute(
            select(Token)
            .where(Token.is_active.is_(True))
            .order_by(Token.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def search(self, q: str, params: PageParams) -> tuple[list[Token], int]:
        stmt = (
            select(Token)
            .where(
                Token.is_active.is_(True),
                _text_filter(q, Token.name, Token.symbol, Token.description, Token.address),
            )
            .order_by(Token.market_cap_usd.desc(), Token.volume_24h_usd.desc(), Token.id)
        )
        return await paginate(self.db, stmt, params)

    async def count_active(self) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Token).where(Token.is_active.is_(True))
        )
        return result.scalar_one()

    async def by_creator(
        self, creator_address: str, params: PageParams, include_inactive: bool = False
    ) -> tuple[list[Token], int]:
        stmt = select(Token).where(Token.creator_address == normalize_address(creator_address))
        if not include_inactive:
            stmt = stmt.where(Token.is_active.is_(True))
        stmt = stmt.order_by(Token.created_at.desc(), Token.id)
        return await paginate(self.db, stmt, params)

    async def without_liquidity(self, params: PageParams) -> tuple[list[Token], int]:
        """Active tokens nobody has seeded a pool for yet, newest first."""
        stmt = (
            select(Token)
            .where(Token.is_active.is_(True), Token.total_liquidity_usd == 0)
            .order_by(Token.created_at.desc(), Token.id)
        )
        return await paginate(self.db, stmt, params)

    async def with_liquidity(
        self, params: PageParams, min_liquidity: float = 0.0
    ) -> tuple[list[Token], int]:
        stmt = (
            select(Token)
            .where(Token.is_active.is_(True), Token.total_liquidity_usd > min_liquidity)
            .order_by(Token.total_liquidity_usd.desc(), Token.volume_24h_usd.desc(), Token.id)
        )
        return await paginate(self.db, stmt, params)

    # ─── Writes ─────────────────────────────────────────

    async def create(self, fields: dict) -> Token:
        address = fields["address"]
        existing = await self.db.execute(select(Token.id).where(Token.address == address))
        if existing.scalars().first() is not None:
            raise ConflictError("Token already exists")

        if fields.get("logo") is None:
            fields.pop("logo", None)
        token = Token(**fields)
        self.db.add(token)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Token already exists")

        creator = await self.db.execute(
            select(Account).join(Wallet).where(Wallet.address == token.creator_address)
        )
        account = creator.scalars().first()
        if account is not None:
            account.tokens_created += 1

        await self.db.commit()
        logger.info(
            "token.created",
            address=token.address,
            symbol=token.symbol,
            creator=token.creator_address,
        )
        return token

    async def update(self, address: str, changes: dict) -> Token:
        token = await self.get_by_address(address)
        for field, value in changes.items():
            if value is not None:
                setattr(token, field, value)
        token.updated_at = utcnow()
        await self.db.commit()
        return token

    async def verify(self, address: str) -> Token:
        token = await self.get_by_address(address)
        token.is_verified = True
        token.updated_at = utcnow()
        await self.db.commit()
        logger.info("token.verified", address=token.address)
        return token

    async def update_market(self, address: str, figures: dict) -> Token:
        return await self.update(address, figures)
