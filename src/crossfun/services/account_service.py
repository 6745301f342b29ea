"""Account service — registration, login, profile and wallet management.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. Every rule about
credentials lives here: uniqueness checks, password hashing, the lockout
state machine around login, and wallet-list changes. Audit events are
appended in the same transaction as the change they describe.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth import lockout
from crossfun.auth.jwt import create_access_token
from crossfun.auth.password import hash_password, verify_password
from crossfun.auth.wallet_signature import verify_wallet_signature
from crossfun.db.models import Account, Wallet, utcnow
from crossfun.errors import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
)
from crossfun.events import types as ev
from crossfun.events.store import EventStore
from crossfun.services import wallets
from crossfun.values import WalletAddress

logger = structlog.get_logger()


class AccountService:
    """Business logic for accounts and their credentials."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventStore(db)

    # ─── Lookups ────────────────────────────────────────

    async def get(self, account_id: uuid.UUID) -> Optional[Account]:
        result = await self.db.execute(select(Account).where(Account.id == account_id))
        return result.scalars().first()

    async def find_by_identifier(self, identifier: str) -> Optional[Account]:
        """Username (exact) or email (case-insensitive)."""
        ident = identifier.strip()
        result = await self.db.execute(
            select(Account).where(
                or_(Account.username == ident, Account.email == ident.lower())
            )
        )
        return result.scalars().first()

    async def find_by_wallet(self, address: str) -> Optional[Account]:
        normalized = str(WalletAddress(address))
        result = await self.db.execute(
            select(Account).join(Wallet).where(Wallet.address == normalized)
        )
        return result.scalars().first()

    async def username_taken(self, username: str) -> bool:
        result = await self.db.execute(
            select(func.count()).select_from(Account).where(Account.username == username)
        )
        return result.scalar_one() > 0

    async def email_taken(self, email: str) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(Account)
            .where(Account.email == email.strip().lower())
        )
        return result.scalar_one() > 0

    async def wallet_taken(self, address: str) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(Wallet)
            .where(Wallet.address == str(WalletAddress(address)))
        )
        return result.scalar_one() > 0

    # ─── Registration ───────────────────────────────────

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        wallet_address: str,
        chain_id: int = 1,
    ) -> tuple[Account, str]:
        """Create an account with one primary wallet. Returns (account, token)."""
        if await self.username_taken(username):
            raise ConflictError("Username already taken")
        if await self.email_taken(email):
            raise ConflictError("Email already registered")
        if await self.wallet_taken(wallet_address):
            raise ConflictError("Wallet address already associated with another account")

        now = utcnow()
        account = Account(
            username=username,
            email=email.strip().lower(),
            password_hash=hash_password(password),
            last_login_at=now,
            created_at=now,
            updated_at=now,
            wallets=[],
        )
        wallets.add_wallet(account, wallet_address, chain_id)
        self.db.add(account)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration
            await self.db.rollback()
            raise ConflictError("Username, email or wallet address already registered")

        await self.events.append(
            stream_id=ev.account_stream(account.id),
            event_type=ev.ACCOUNT_REGISTERED,
            data={"username": username, "wallet": account.wallets[0].address},
        )
        await self.db.commit()
        logger.info("account.registered", account_id=str(account.id), username=username)
        return account, create_access_token(str(account.id))

    # ─── Login ──────────────────────────────────────────

    def _ensure_unlocked(self, account: Account, now: datetime) -> None:
        state = lockout.state_of(account)
        if lockout.is_locked(state, now):
            logger.info(
                "auth.login_rejected_locked",
                account_id=str(account.id),
                lock_until=state.lock_until.isoformat(),
            )
            raise AccountLockedError(state.lock_until)

    async def login(self, identifier: str, password: str) -> tuple[Account, str]:
        """Password login guarded by the lockout governor."""
        account = await self.find_by_identifier(identifier)
        if account is None:
            logger.info("auth.login_unknown_identifier")
            raise AuthenticationError("Invalid credentials")
        if not account.is_active:
            raise AuthenticationError("Account is deactivated")

        now = datetime.now(timezone.utc)
        self._ensure_unlocked(account, now)

        if not verify_password(password, account.password_hash):
            await self._record_failed_login(account, now)
            raise AuthenticationError("Invalid credentials")

        return await self._complete_login(account, now)

    async def wallet_login(
        self, wallet_address: str, message: str, signature: str
    ) -> tuple[Account, str]:
        """Login by proving control of a registered wallet."""
        account = await self.find_by_wallet(wallet_address)
        if account is None:
            raise AuthenticationError("Wallet address not associated with any account")
        if not account.is_active:
            raise AuthenticationError("Account is deactivated")

        now = datetime.now(timezone.utc)
        self._ensure_unlocked(account, now)

        if not verify_wallet_signature(wallet_address, message, signature):
            logger.info("auth.wallet_signature_invalid", account_id=str(account.id))
            raise AuthenticationError("Invalid wallet signature")

        return await self._complete_login(account, now)

    async def _record_failed_login(self, account: Account, now: datetime) -> None:
        before = lockout.state_of(account)
        after = lockout.record_failure(before, now)
        lockout.apply(account, after)

        await self.events.append(
            stream_id=ev.account_stream(account.id),
            event_type=ev.ACCOUNT_LOGIN_FAILED,
            data={"attempts": after.failed_attempts},
        )
        if lockout.is_locked(after, now):
            await self.events.append(
                stream_id=ev.account_stream(account.id),
                event_type=ev.ACCOUNT_LOCKED,
                data={"lock_until": after.lock_until.isoformat()},
            )
            logger.warning(
                "account.locked",
                account_id=str(account.id),
                attempts=after.failed_attempts,
                lock_until=after.lock_until.isoformat(),
            )
        else:
            logger.info(
                "auth.login_failed",
                account_id=str(account.id),
                attempts=after.failed_attempts,
            )
        await self.db.commit()

    async def _complete_login(self, account: Account, now: datetime) -> tuple[Account, str]:
        lockout.apply(account, lockout.record_success(lockout.state_of(account)))
        account.last_login_at = now
        await self.db.commit()
        logger.info("auth.login_succeeded", account_id=str(account.id))
        return account, create_access_token(str(account.id))

    async def unlock(self, account: Account, actor_id: Optional[str] = None) -> Account:
        lockout.apply(account, lockout.LockoutState())
        await self.events.append(
            stream_id=ev.account_stream(account.id),
            event_type=ev.ACCOUNT_UNLOCKED,
            data={},
            metadata={"actor_id": actor_id} if actor_id else None,
        )
        await self.db.commit()
        return account

    async def touch_session(self, account: Account) -> None:
        """Logout bookkeeping: tokens are stateless, only last_login_at moves."""
        account.last_login_at = utcnow()
        await self.db.commit()

    # ─── Profile ────────────────────────────────────────

    async def update_profile(self, account: Account, changes: dict) -> Account:
        username = changes.get("username")
        if username and username != account.username:
            if await self.username_taken(username):
                raise ConflictError("Username already taken")

        email = changes.get("email")
        if email:
            email = email.strip().lower()
            if email != account.email and await self.email_taken(email):
                raise ConflictError("Email already registered")
            changes["email"] = email

        for field, value in changes.items():
            if value is not None:
                setattr(account, field, value)
        account.updated_at = utcnow()

        await self.events.append(
            stream_id=ev.account_stream(account.id),
            event_type=ev.ACCOUNT_PROFILE_UPDATED,
            data={"fields": sorted(k for k, v in changes.items() if v is not None)},
        )
        await self.db.commit()
        return account

    async def change_password(
        self, account: Account, current_password: str, new_password: str
    ) -> None:
        if not verify_password(current_password, account.password_hash):
            raise AuthenticationError("Current password is incorrect")
        account.password_hash = hash_password(new_password)
        account.updated_at = utcnow()
        await self.events.append(
            stream_id=ev.account_stream(account.id),
            event_type=ev.ACCOUNT_PASSWORD_CHANGED,
            data={},
        )
        await self.db.commit()

    # ─── Wallets ────────────────────────────────────────

    async def add_wallet(self, account: Account, address: str, chain_id: int = 1) -> Wallet:
        if await self.wallet_taken(address):
            raise ConflictError("Wallet address already associated with another account")
        wallet = wallets.add_wallet(account, address, chain_id)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Wallet address already associated with another account")
        await self.events.append(
            stream_id=ev.account_stream(account.id),
            event_type=ev.WALLET_ADDED,
            data={"address": wallet.address, "chain_id": chain_id},
        )
        await self.db.commit()
        return wallet

    async def remove_wallet(self, account: Account, address: str) -> Wallet:
        wallet = wallets.remove_wallet(account, address)
        await self.events.append(
            stream_id=ev.account_stream(account.id),
            event_type=ev.WALLET_REMOVED,
            data={"address": wallet.address},
        )
        await self.db.commit()
        return wallet

    async def set_primary_wallet(self, account: Account, address: str) -> Wallet:
        wallet = wallets.set_primary_wallet(account, address)
        await self.events.append(
            stream_id=ev.account_stream(account.id),
            event_type=ev.WALLET_PRIMARY_CHANGED,
            data={"address": wallet.address},
        )
        await self.db.commit()
        return wallet

    async def verify_wallet(
        self, account: Account, address: str, message: str, signature: str
    ) -> Wallet:
        if not verify_wallet_signature(address, message, signature):
            raise AuthenticationError("Invalid wallet signature")
        wallet = wallets.mark_verified(account, address)
        await self.events.append(
            stream_id=ev.account_stream(account.id),
            event_type=ev.WALLET_VERIFIED,
            data={"address": wallet.address},
        )
        await self.db.commit()
        return wallet
