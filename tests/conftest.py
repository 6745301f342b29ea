"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite). StaticPool
   keeps the single connection alive, so every session sees the same
   database, and create_all builds the schema from the models.
2. The app's get_db dependency is overridden to yield the test session,
   so requests and assertions share one unit of work.
3. Auth is NOT mocked: helpers register real accounts and send real
   bearer tokens, so the guard pipeline is exercised end to end.

bcrypt is slowed down on purpose in production; the rounds are lowered
here before crossfun.config is first imported.
"""

import os

os.environ.setdefault("CROSSFUN_BCRYPT_ROUNDS", "4")

import uuid

import pytest_asyncio
from eth_account import Account as EthAccount
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from crossfun.db.engine import get_db
from crossfun.db.models import Account, Base
from crossfun.main import app

TEST_DB_URL = "sqlite+aiosqlite://"
PASSWORD = "hunter22"


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(engine):
    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture()
async def client(engine, db_session):
    """HTTP client against the real app with get_db pointed at the test DB."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.engine = engine

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    del app.state.engine


# ─── Account helpers ────────────────────────────────────


def random_wallet() -> str:
    """A fresh, valid lower-case address."""
    return "0x" + uuid.uuid4().hex + uuid.uuid4().hex[:8]


def new_signer():
    """An eth_account LocalAccount; .address is checksummed."""
    return EthAccount.create()


def sign(signer, message: str) -> str:
    from eth_account.messages import encode_defunct

    signature = signer.sign_message(encode_defunct(text=message)).signature.hex()
    return signature if signature.startswith("0x") else "0x" + signature


async def register(client, username=None, wallet=None, password=PASSWORD, email=None) -> dict:
    """Register through the API. Returns the JSON body plus auth headers."""
    username = username or f"user_{uuid.uuid4().hex[:8]}"
    r = await client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
            "walletAddress": wallet or random_wallet(),
        },
    )
    assert r.status_code == 201, r.text
    body = r.json()
    body["headers"] = {"Authorization": f"Bearer {body['token']}"}
    return body


async def promote(db_session, account_id: str, role: str) -> None:
    result = await db_session.execute(
        select(Account).where(Account.id == uuid.UUID(account_id))
    )
    account = result.scalars().one()
    account.role = role
    await db_session.commit()


@pytest_asyncio.fixture()
async def user(client):
    return await register(client)


@pytest_asyncio.fixture()
async def moderator(client, db_session):
    body = await register(client)
    await promote(db_session, body["user"]["id"], "moderator")
    return body


@pytest_asyncio.fixture()
async def admin(client, db_session):
    body = await register(client)
    await promote(db_session, body["user"]["id"], "admin")
    return body
