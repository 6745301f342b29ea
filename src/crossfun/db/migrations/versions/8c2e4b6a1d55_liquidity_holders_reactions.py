"""Liquidity events, token holders and chat reactions

Revision ID: 8c2e4b6a1d55
Revises: 3f1c2a9d7b10
Create Date: 2026-10-16 15:40:02.118734
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c2e4b6a1d55'
down_revision: Union[str, None] = '3f1c2a9d7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _amount(name: str) -> sa.Column:
    return sa.Column(name, sa.String(80), nullable=False, server_default="0")


def upgrade() -> None:
    # ─── Chat reactions ──────────────────────────────────
    op.create_table(
        "chat_reactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "message_id",
            sa.Uuid(),
            sa.ForeignKey("chat_messages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("account_id", sa.Uuid(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("user_address", sa.String(42), nullable=False),
        sa.Column("kind", sa.String(10), nullable=False),
        _ts("created_at"),
        sa.UniqueConstraint("message_id", "account_id", name="uq_chat_reaction_author"),
    )
    op.create_index("ix_chat_reactions_message_id", "chat_reactions", ["message_id"])

    # ─── Liquidity events ────────────────────────────────
    op.create_table(
        "liquidity_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tx_hash", sa.String(66), nullable=False, unique=True),
        sa.Column("token_id", sa.Uuid(), sa.ForeignKey("tokens.id"), nullable=False),
        sa.Column("token_address", sa.String(42), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("provider_address", sa.String(42), nullable=False),
        _amount("eth_amount"),
        _amount("token_amount"),
        _amount("token_price"),
        sa.Column("token_price_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("liquidity_pool_address", sa.String(42), nullable=False, server_default=""),
        sa.Column("block_number", sa.Integer(), nullable=False),
        _ts("block_timestamp"),
        sa.Column("chain_id", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="confirmed"),
        _ts("created_at"),
    )
    op.create_index(
        "idx_liquidity_token", "liquidity_events", ["token_address", "block_timestamp"]
    )
    op.create_index("idx_liquidity_provider", "liquidity_events", ["provider_address"])

    # ─── Token holders ───────────────────────────────────
    op.create_table(
        "token_holders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("token_id", sa.Uuid(), sa.ForeignKey("tokens.id"), nullable=False),
        sa.Column("token_address", sa.String(42), nullable=False),
        sa.Column("holder_address", sa.String(42), nullable=False),
        _amount("balance"),
        sa.Column("percentage_of_supply", sa.Float(), nullable=False, server_default="0"),
        sa.Column("value_usd", sa.Float(), nullable=False, server_default="0"),
        sa.Column("value_eth", sa.Float(), nullable=False, server_default="0"),
        sa.Column("buy_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sell_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("first_tx_hash", sa.String(66), nullable=False, server_default=""),
        sa.Column("last_tx_hash", sa.String(66), nullable=False, server_default=""),
        _ts("first_tx_at", nullable=True),
        _ts("last_tx_at", nullable=True),
        sa.Column("chain_id", sa.Integer(), nullable=False, server_default="1"),
        _ts("created_at"),
        _ts("updated_at"),
        sa.UniqueConstraint("token_id", "holder_address", name="uq_token_holder"),
    )
    op.create_index(
        "idx_holders_token_pct", "token_holders", ["token_address", "percentage_of_supply"]
    )
    op.create_index("idx_holders_holder", "token_holders", ["holder_address"])


def downgrade() -> None:
    op.drop_table("token_holders")
    op.drop_table("liquidity_events")
    op.drop_table("chat_reactions")
