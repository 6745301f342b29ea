"""Initial schema: accounts, wallets, tokens, transactions, chat, events

Learn: Mirrors db/models.py as of the first release. Addresses and hashes
are stored lower-case, so the plain UNIQUE constraints on them are
effectively case-insensitive.

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-16 09:12:44.510203
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _link(name: str) -> sa.Column:
    return sa.Column(name, sa.String(500), nullable=False, server_default="")


def upgrade() -> None:
    # ─── Accounts & wallets ──────────────────────────────
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(30), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("avatar", sa.String(500), nullable=False, server_default="/chats/noimg.svg"),
        sa.Column("bio", sa.String(500), nullable=False, server_default=""),
        _link("website"),
        _link("twitter"),
        _link("telegram"),
        _link("discord"),
        _link("github"),
        sa.Column("tokens_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_volume_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("login_attempts", sa.Integer(), nullable=False, server_default="0"),
        _ts("lock_until", nullable=True),
        _ts("last_login_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_accounts_created", "accounts", ["created_at"])
    op.create_index("idx_accounts_active", "accounts", ["is_active"])

    op.create_table(
        "wallets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.Uuid(),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("address", sa.String(42), nullable=False, unique=True),
        sa.Column("chain_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("verified_at", nullable=True),
        _ts("created_at"),
    )
    op.create_index("ix_wallets_account_id", "wallets", ["account_id"])

    # ─── Tokens ──────────────────────────────────────────
    op.create_table(
        "tokens",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("address", sa.String(42), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("symbol", sa.String(10), nullable=False),
        sa.Column("chain_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("creator_address", sa.String(42), nullable=False),
        sa.Column("logo", sa.String(500), nullable=False, server_default="/chats/noimg.svg"),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        _link("website"),
        _link("youtube"),
        _link("discord"),
        _link("twitter"),
        _link("telegram"),
        sa.Column("total_supply", sa.String(80), nullable=False, server_default="0"),
        sa.Column("current_price_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("market_cap_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("volume_24h_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("price_change_24h_percent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_liquidity_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("deployment_tx_hash", sa.String(66), nullable=False, server_default=""),
        _ts("latest_transaction_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_tokens_creator", "tokens", ["creator_address"])
    op.create_index("idx_tokens_chain", "tokens", ["chain_id"])
    op.create_index("idx_tokens_created", "tokens", ["created_at"])

    # ─── Transactions ────────────────────────────────────
    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tx_hash", sa.String(66), nullable=False, unique=True),
        sa.Column("token_id", sa.Uuid(), sa.ForeignKey("tokens.id"), nullable=False),
        sa.Column("token_address", sa.String(42), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="buy"),
        sa.Column("sender_address", sa.String(42), nullable=False),
        sa.Column("recipient_address", sa.String(42), nullable=False),
        sa.Column("eth_amount", sa.String(80), nullable=False, server_default="0"),
        sa.Column("token_amount", sa.String(80), nullable=False, server_default="0"),
        sa.Column("token_price", sa.String(80), nullable=False, server_default="0"),
        sa.Column("token_price_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("block_number", sa.Integer(), nullable=False),
        _ts("block_timestamp"),
        sa.Column("chain_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="confirmed"),
        _ts("created_at"),
    )
    op.create_index("idx_transactions_token", "transactions", ["token_address", "block_timestamp"])
    op.create_index("idx_transactions_sender", "transactions", ["sender_address"])
    op.create_index("idx_transactions_recipient", "transactions", ["recipient_address"])
    op.create_index("idx_transactions_block_ts", "transactions", ["block_timestamp"])

    # ─── Chat ────────────────────────────────────────────
    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("token_id", sa.Uuid(), sa.ForeignKey("tokens.id"), nullable=False),
        sa.Column("token_address", sa.String(42), nullable=False),
        sa.Column("account_id", sa.Uuid(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("user_address", sa.String(42), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("message", sa.String(1000), nullable=False),
        sa.Column("message_type", sa.String(10), nullable=False, server_default="text"),
        sa.Column("media_url", sa.String(500), nullable=False, server_default=""),
        sa.Column("reply_to_id", sa.Uuid(), sa.ForeignKey("chat_messages.id"), nullable=True),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_moderated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("moderation_reason", sa.String(500), nullable=False, server_default=""),
        sa.Column("moderated_by", sa.Uuid(), sa.ForeignKey("accounts.id"), nullable=True),
        _ts("moderated_at", nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_chat_token_created", "chat_messages", ["token_address", "created_at"])
    op.create_index("idx_chat_user", "chat_messages", ["user_address"])

    # ─── Audit log ───────────────────────────────────────
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("stream_id", sa.String(200), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        _ts("created_at"),
    )
    op.create_index("idx_events_stream", "events", ["stream_id", "id"])
    op.create_index("idx_events_type", "events", ["type"])
    op.create_index("idx_events_created", "events", ["created_at"])


def downgrade() -> None:
    op.drop_table("events")
    op.drop_table("chat_messages")
    op.drop_table("transactions")
    op.drop_table("tokens")
    op.drop_table("wallets")
    op.drop_table("accounts")
