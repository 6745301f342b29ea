"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Relationships, constraints, and indexes defined here.
Alembic migrations mirror these models.

Key concepts:
- UUID primary keys for accounts, tokens and messages
- Generic Uuid / JSON column types so the same models run on PostgreSQL
  in production and SQLite in the test suite
- Python-side defaults (default=utcnow) so timestamps are populated on the
  instance without a refresh round-trip in async code
- Addresses and hashes are always stored lower-case; unique constraints on
  them are therefore case-insensitive
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ══════════════════════════════════════════════════════════════
# Accounts and wallets
# ══════════════════════════════════════════════════════════════


class Account(Base):
    """A registered user identity.

    Learn: The credential store. An account holds a bcrypt password hash,
    an ordered list of wallets, a role, and the lockout counters the login
    flow reads and writes. Accounts are never deleted — deactivation flips
    is_active, bans flip is_banned.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        Index("idx_accounts_created", "created_at"),
        Index("idx_accounts_active", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    username: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    avatar: Mapped[str] = mapped_column(
        String(500), nullable=False, default="/chats/noimg.svg"
    )
    bio: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    website: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    twitter: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    telegram: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    discord: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    github: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    # Stats (maintained by the token service)
    tokens_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_volume_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Status
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="user"
    )  # user, moderator, admin

    # Login tracking / lockout
    login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    wallets: Mapped[list["Wallet"]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="Wallet.id",
        lazy="selectin",
    )

    @property
    def primary_wallet(self) -> Optional[str]:
        for wallet in self.wallets:
            if wallet.is_primary:
                return wallet.address
        return None


class Wallet(Base):
    """A blockchain address attached to an account.

    Learn: The address column is globally unique, so one wallet can never
    be claimed by two accounts. Integer ids give the wallet list a stable
    insertion order ("the first remaining wallet" after a removal).
    """

    __tablename__ = "wallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    account: Mapped["Account"] = relationship(back_populates="wallets")


# ══════════════════════════════════════════════════════════════
# Tokens, transactions, chat
# ══════════════════════════════════════════════════════════════


class Token(Base):
    """A token launched on the bonding-curve contract.

    Learn: Keyed by its contract address. The market fields are a cache
    written by the admin ingestion endpoint; nothing here computes them.
    """

    __tablename__ = "tokens"
    __table_args__ = (
        Index("idx_tokens_creator", "creator_address"),
        Index("idx_tokens_chain", "chain_id"),
        Index("idx_tokens_created", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    symbol: Mapped[str] = mapped_column(String(10), nullable=False)
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    creator_address: Mapped[str] = mapped_column(String(42), nullable=False)

    logo: Mapped[str] = mapped_column(
        String(500), nullable=False, default="/chats/noimg.svg"
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    website: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    youtube: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    discord: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    twitter: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    telegram: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    # Supply is kept in base units as a decimal string (exceeds float precision)
    total_supply: Mapped[str] = mapped_column(String(80), nullable=False, default="0")

    # Cached market data
    current_price_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    market_cap_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    volume_24h_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    price_change_24h_percent: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0
    )
    total_liquidity_usd: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0
    )

    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    deployment_tx_hash: Mapped[str] = mapped_column(
        String(66), nullable=False, default=""
    )
    latest_transaction_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Transaction(Base):
    """An on-chain trade or transfer of a platform token."""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_token", "token_address", "block_timestamp"),
        Index("idx_transactions_sender", "sender_address"),
        Index("idx_transactions_recipient", "recipient_address"),
        Index("idx_transactions_block_ts", "block_timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    tx_hash: Mapped[str] = mapped_column(String(66), unique=True, nullable=False)
    token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tokens.id"), nullable=False
    )
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="buy"
    )  # buy, sell, add_liquidity, remove_liquidity, transfer, mint, burn
    sender_address: Mapped[str] = mapped_column(String(42), nullable=False)
    recipient_address: Mapped[str] = mapped_column(String(42), nullable=False)

    # Amounts in base units as decimal strings
    eth_amount: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    token_amount: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    token_price: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    token_price_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    block_number: Mapped[int] = mapped_column(Integer, nullable=False)
    block_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="confirmed"
    )  # pending, confirmed, failed

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ChatMessage(Base):
    """A message in a token's chat room.

    Learn: Deletion and moderation are soft — the row stays, flags hide it
    from the public feed. Replies point at a message in the same room.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("idx_chat_token_created", "token_address", "created_at"),
        Index("idx_chat_user", "user_address"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tokens.id"), nullable=False
    )
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id"), nullable=False
    )
    user_address: Mapped[str] = mapped_column(String(42), nullable=False)
    username: Mapped[str] = mapped_column(String(30), nullable=False)

    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    message_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default="text"
    )  # text, image, link, system
    media_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    reply_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("chat_messages.id"), nullable=True
    )

    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_moderated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    moderation_reason: Mapped[str] = mapped_column(
        String(500), nullable=False, default=""
    )
    moderated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("accounts.id"), nullable=True
    )
    moderated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ChatReaction(Base):
    """A like or dislike on a chat message. One per (message, account)."""

    __tablename__ = "chat_reactions"
    __table_args__ = (
        UniqueConstraint("message_id", "account_id", name="uq_chat_reaction_author"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("chat_messages.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id"), nullable=False
    )
    user_address: Mapped[str] = mapped_column(String(42), nullable=False)
    kind: Mapped[str] = mapped_column(String(10), nullable=False)  # like, dislike
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


# ══════════════════════════════════════════════════════════════
# Liquidity and holders
# ══════════════════════════════════════════════════════════════


class LiquidityEvent(Base):
    """A liquidity add or remove on a token's pool, as reported by the indexer."""

    __tablename__ = "liquidity_events"
    __table_args__ = (
        Index("idx_liquidity_token", "token_address", "block_timestamp"),
        Index("idx_liquidity_provider", "provider_address"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    tx_hash: Mapped[str] = mapped_column(String(66), unique=True, nullable=False)
    token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tokens.id"), nullable=False
    )
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # add, remove
    provider_address: Mapped[str] = mapped_column(String(42), nullable=False)

    eth_amount: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    token_amount: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    token_price: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    token_price_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    liquidity_pool_address: Mapped[str] = mapped_column(
        String(42), nullable=False, default=""
    )

    block_number: Mapped[int] = mapped_column(Integer, nullable=False)
    block_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="confirmed"
    )  # pending, confirmed, failed

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def value_usd(self) -> float:
        return self.token_price_usd * float(self.token_amount or 0)


class TokenHolder(Base):
    """A wallet's position in a token.

    Learn: Balances stay decimal strings like every other on-chain amount.
    percentage_of_supply is derived from the balance and the token's
    total_supply whenever the position is written.
    """

    __tablename__ = "token_holders"
    __table_args__ = (
        UniqueConstraint("token_id", "holder_address", name="uq_token_holder"),
        Index("idx_holders_token_pct", "token_address", "percentage_of_supply"),
        Index("idx_holders_holder", "holder_address"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tokens.id"), nullable=False
    )
    token_address: Mapped[str] = mapped_column(String(42), nullable=False)
    holder_address: Mapped[str] = mapped_column(String(42), nullable=False)

    balance: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    percentage_of_supply: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    value_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    value_eth: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    buy_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sell_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    first_tx_hash: Mapped[str] = mapped_column(String(66), nullable=False, default="")
    last_tx_hash: Mapped[str] = mapped_column(String(66), nullable=False, default="")
    first_tx_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_tx_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def holder_type(self) -> str:
        pct = self.percentage_of_supply or 0.0
        if pct >= 1:
            return "whale"
        if pct >= 0.1:
            return "large_holder"
        if pct >= 0.01:
            return "medium_holder"
        return "small_holder"


# ══════════════════════════════════════════════════════════════
# Audit log
# ══════════════════════════════════════════════════════════════


class Event(Base):
    """Append-only audit log.

    Learn: Security-relevant account changes (registration, lockouts,
    bans, role changes, wallet changes) are recorded as immutable events.
    Admins read them per account via GET /users/{id}/events.

    stream_id examples: "account:<uuid>"
    type examples: "account.registered", "account.locked", "account.banned"
    """

    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_stream", "stream_id", "id"),
        Index("idx_events_type", "type"),
        Index("idx_events_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stream_id: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    meta: Mapped[dict] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )  # actor_id
    # Note: Python attr is "meta" because "metadata" is reserved by SQLAlchemy.
    # DB column is still "metadata" via the first positional arg.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
