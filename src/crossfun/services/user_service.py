"""User administration — listing, moderation and per-user statistics.

Learn: Kept apart from AccountService, which owns credentials. Everything
here is driven by another account (a moderator or admin) acting on a
target, so each mutation records the actor in the audit event metadata.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth.guards import role_of
from crossfun.db.models import Account, Event, Token, Wallet, utcnow
from crossfun.errors import BadRequestError, ForbiddenError, NotFoundError
from crossfun.events import types as ev
from crossfun.events.store import EventStore
from crossfun.schemas.base import PageParams
from crossfun.services.pagination import paginate
from crossfun.values import Role, normalize_address

logger = structlog.get_logger()


class UserService:
    """Moderator/admin operations on accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventStore(db)

    async def get(self, account_id: uuid.UUID) -> Account:
        result = await self.db.execute(select(Account).where(Account.id == account_id))
        account = result.scalars().first()
        if account is None:
            raise NotFoundError("User not found")
        return account

    async def get_by_address(self, address: str) -> Account:
        result = await self.db.execute(
            select(Account).join(Wallet).where(Wallet.address == normalize_address(address))
        )
        account = result.scalars().first()
        if account is None:
            raise NotFoundError("User not found")
        return account

    async def list_accounts(
        self,
        params: PageParams,
        role: Optional[Role] = None,
        verified: Optional[bool] = None,
        active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> tuple[list[Account], int]:
        stmt = select(Account)
        if role is not None:
            stmt = stmt.where(Account.role == role.value)
        if verified is not None:
            stmt = stmt.where(Account.is_verified == verified)
        if active is not None:
            stmt = stmt.where(Account.is_active == active)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(Account.username.ilike(pattern), Account.email.ilike(pattern))
            )
        stmt = stmt.order_by(Account.created_at.desc(), Account.id)
        return await paginate(self.db, stmt, params)

    async def top_creators(self, limit: int = 10) -> list[Account]:
        result = await self.db.execute(
            select(Account)
            .where(Account.is_active.is_(True), Account.is_banned.is_(False))
            .order_by(Account.tokens_created.desc(), Account.total_volume_usd.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # ─── Mutations ──────────────────────────────────────

    async def update(self, target: Account, actor: Account, changes: dict) -> Account:
        """Apply profile/status changes. Only admins may change role."""
        actor_role = role_of(actor)
        new_role = changes.pop("role", None)
        if actor_role is not Role.ADMIN:
            new_role = None
            if actor_role is Role.USER:
                changes.pop("is_verified", None)

        for field, value in changes.items():
            if value is not None:
                setattr(target, field, value)

        if new_role is not None and new_role.value != target.role:
            await self.events.append(
                stream_id=ev.account_stream(target.id),
                event_type=ev.ACCOUNT_ROLE_CHANGED,
                data={"from": target.role, "to": new_role.value},
                metadata={"actor_id": str(actor.id)},
            )
            logger.info(
                "account.role_changed",
                account_id=str(target.id),
                role=new_role.value,
                actor_id=str(actor.id),
            )
            target.role = new_role.value

        target.updated_at = utcnow()
        await self.db.commit()
        return target

    async def set_role(self, target: Account, role: Role, actor_id: Optional[str] = None) -> Account:
        if target.role != role.value:
            await self.events.append(
                stream_id=ev.account_stream(target.id),
                event_type=ev.ACCOUNT_ROLE_CHANGED,
                data={"from": target.role, "to": role.value},
                metadata={"actor_id": actor_id} if actor_id else None,
            )
            target.role = role.value
            target.updated_at = utcnow()
        await self.db.commit()
        return target

    async def deactivate(self, target_id: uuid.UUID, actor: Account) -> Account:
        if target_id == actor.id:
            raise BadRequestError("Cannot delete your own account")
        target = await self.get(target_id)
        target.is_active = False
        target.is_banned = True
        target.updated_at = utcnow()
        await self.events.append(
            stream_id=ev.account_stream(target.id),
            event_type=ev.ACCOUNT_DEACTIVATED,
            data={},
            metadata={"actor_id": str(actor.id)},
        )
        await self.db.commit()
        logger.info("account.deactivated", account_id=str(target.id), actor_id=str(actor.id))
        return target

    async def ban(self, target_id: uuid.UUID, actor: Account) -> Account:
        target = await self.get(target_id)
        if role_of(actor) is Role.MODERATOR and role_of(target) is Role.ADMIN:
            raise ForbiddenError("Moderators cannot ban administrators")
        target.is_banned = True
        target.is_active = False
        target.updated_at = utcnow()
        await self.events.append(
            stream_id=ev.account_stream(target.id),
            event_type=ev.ACCOUNT_BANNED,
            data={},
            metadata={"actor_id": str(actor.id)},
        )
        await self.db.commit()
        logger.info("account.banned", account_id=str(target.id), actor_id=str(actor.id))
        return target

    async def unban(self, target_id: uuid.UUID, actor: Account) -> Account:
        # No admin-target check here; see DESIGN.md
        target = await self.get(target_id)
        target.is_banned = False
        target.is_active = True
        target.updated_at = utcnow()
        await self.events.append(
            stream_id=ev.account_stream(target.id),
            event_type=ev.ACCOUNT_UNBANNED,
            data={},
            metadata={"actor_id": str(actor.id)},
        )
        await self.db.commit()
        logger.info("account.unbanned", account_id=str(target.id), actor_id=str(actor.id))
        return target

    # ─── Per-user reads ─────────────────────────────────

    async def tokens(self, target_id: uuid.UUID, params: PageParams) -> tuple[list[Token], int]:
        target = await self.get(target_id)
        addresses = [w.address for w in target.wallets]
        stmt = (
            select(Token)
            .where(Token.creator_address.in_(addresses))
            .order_by(Token.created_at.desc(), Token.id)
        )
        return await paginate(self.db, stmt, params)

    async def stats(self, target_id: uuid.UUID) -> dict:
        target = await self.get(target_id)
        addresses = [w.address for w in target.wallets]
        result = await self.db.execute(
            select(func.count(Token.id), func.coalesce(func.sum(Token.volume_24h_usd), 0.0))
            .where(Token.creator_address.in_(addresses))
        )
        token_count, volume = result.one()
        return {
            "tokens_created": token_count,
            "total_volume_usd": float(volume),
            "wallet_addresses": len(addresses),
            "primary_wallet": target.primary_wallet,
        }

    async def events_for(self, target_id: uuid.UUID) -> list[Event]:
        target = await self.get(target_id)
        return await self.events.read_stream(ev.account_stream(target.id))
