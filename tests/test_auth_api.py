"""Auth API tests.

Learn: Tests cover:
1. Registration + duplicate prevention + input validation
2. Password login, including the lockout governor (5 misses → 423)
3. Wallet-signature login
4. Bearer-token authentication failures
5. Wallet management (add / remove / set primary / verify)
6. Profile, password change, refresh, logout
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest
from conftest import PASSWORD, new_signer, random_wallet, register, sign
from sqlalchemy import select

from crossfun.auth.jwt import create_access_token
from crossfun.config import settings
from crossfun.db.engine import get_db
from crossfun.db.models import Account, Event
from crossfun.main import app


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_returns_token_and_user(client):
    wallet = "0x" + "AB" * 20
    body = await register(client, username="alice", wallet=wallet, email="Alice@Example.com")

    assert body["message"] == "User registered successfully"
    assert body["token"]
    user = body["user"]
    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert user["role"] == "user"
    assert user["primaryWallet"] == wallet.lower()
    assert user["wallets"] == [
        {"address": wallet.lower(), "chainId": 1, "isPrimary": True, "verifiedAt": None}
    ]
    assert "password" not in user and "passwordHash" not in user


@pytest.mark.asyncio
async def test_register_records_audit_event(client, db_session):
    body = await register(client)
    result = await db_session.execute(
        select(Event).where(Event.stream_id == f"account:{body['user']['id']}")
    )
    assert [e.type for e in result.scalars()] == ["account.registered"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "field,value,message",
    [
        ("username", "taken", "Username already taken"),
        ("email", "TAKEN@example.com", "Email already registered"),
        (
            "walletAddress",
            "0x" + "EF" * 20,
            "Wallet address already associated with another account",
        ),
    ],
)
async def test_register_duplicates_conflict(client, field, value, message):
    await register(client, username="taken", email="taken@example.com", wallet="0x" + "ef" * 20)

    body = {
        "username": "fresh",
        "email": "fresh@example.com",
        "password": PASSWORD,
        "walletAddress": random_wallet(),
        field: value,
    }
    r = await client.post("/api/auth/register", json=body)
    assert r.status_code == 409
    assert r.json() == {"error": message}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "override",
    [
        {"username": "ab"},
        {"username": "has space"},
        {"email": "not-an-email"},
        {"password": "12345"},
        {"walletAddress": "0x1234"},
    ],
)
async def test_register_validation_is_400(client, override):
    body = {
        "username": "valid_name",
        "email": "valid@example.com",
        "password": PASSWORD,
        "walletAddress": random_wallet(),
        **override,
    }
    r = await client.post("/api/auth/register", json=body)
    assert r.status_code == 400
    data = r.json()
    assert data["error"] == "Validation failed"
    assert data["errors"][0]["field"] == next(iter(override))


# ═══════════════════════════════════════════════════════════
# Password login + lockout
# ═══════════════════════════════════════════════════════════


async def _login(client, identifier, password=PASSWORD):
    return await client.post(
        "/api/auth/login", json={"identifier": identifier, "password": password}
    )


@pytest.mark.asyncio
async def test_login_by_username_or_email(client):
    await register(client, username="bob", email="bob@example.com")

    r1 = await _login(client, "bob")
    r2 = await _login(client, "BOB@example.com")
    assert r1.status_code == 200
    assert r2.status_code == 200
    assert r1.json()["message"] == "Login successful"
    assert r1.json()["user"]["username"] == "bob"


@pytest.mark.asyncio
async def test_login_unknown_identifier(client):
    r = await _login(client, "nobody")
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid credentials"}


@pytest.mark.asyncio
async def test_wrong_password_increments_counter(client, db_session):
    body = await register(client, username="carol")
    r = await _login(client, "carol", "wrong-password")
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid credentials"}

    account = await db_session.get(Account, uuid.UUID(body["user"]["id"]))
    assert account.login_attempts == 1
    assert account.lock_until is None


@pytest.mark.asyncio
async def test_five_failures_lock_the_account(client, db_session):
    await register(client, username="dave")
    for _ in range(settings.max_login_attempts):
        r = await _login(client, "dave", "wrong-password")
        assert r.status_code == 401

    # Correct password is refused while locked
    r = await _login(client, "dave")
    assert r.status_code == 423
    data = r.json()
    assert data["error"] == "Account is temporarily locked due to too many failed login attempts"
    lock_until = datetime.fromisoformat(data["lockUntil"])
    assert lock_until > datetime.now(timezone.utc)
    assert lock_until <= datetime.now(timezone.utc) + timedelta(minutes=settings.lockout_minutes)

    result = await db_session.execute(select(Event.type).where(Event.type == "account.locked"))
    assert result.scalars().all() == ["account.locked"]


@pytest.mark.asyncio
async def test_locked_account_counter_not_incremented(client, db_session):
    await register(client, username="erin")
    for _ in range(settings.max_login_attempts + 2):
        await _login(client, "erin", "wrong-password")

    result = await db_session.execute(select(Account).where(Account.username == "erin"))
    assert result.scalars().one().login_attempts == settings.max_login_attempts


@pytest.mark.asyncio
async def test_successful_login_resets_counter(client, db_session):
    await register(client, username="frank")
    for _ in range(settings.max_login_attempts - 1):
        await _login(client, "frank", "wrong-password")

    r = await _login(client, "frank")
    assert r.status_code == 200

    result = await db_session.execute(select(Account).where(Account.username == "frank"))
    account = result.scalars().one()
    assert account.login_attempts == 0
    assert account.lock_until is None
    assert account.last_login_at is not None


@pytest.mark.asyncio
async def test_expired_lock_allows_login(client, db_session):
    await register(client, username="gina")
    result = await db_session.execute(select(Account).where(Account.username == "gina"))
    account = result.scalars().one()
    account.login_attempts = 5
    account.lock_until = datetime.now(timezone.utc) - timedelta(seconds=1)
    await db_session.commit()

    r = await _login(client, "gina")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_deactivated_account_cannot_login(client, db_session):
    await register(client, username="hank")
    result = await db_session.execute(select(Account).where(Account.username == "hank"))
    result.scalars().one().is_active = False
    await db_session.commit()

    r = await _login(client, "hank")
    assert r.status_code == 401
    assert r.json() == {"error": "Account is deactivated"}


# ═══════════════════════════════════════════════════════════
# Wallet login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_wallet_login_with_valid_signature(client):
    signer = new_signer()
    await register(client, username="ivy", wallet=signer.address)

    message = "Sign in to CrossFun"
    r = await client.post(
        "/api/auth/wallet-login",
        json={"walletAddress": signer.address, "message": message, "signature": sign(signer, message)},
    )
    assert r.status_code == 200
    assert r.json()["user"]["username"] == "ivy"


@pytest.mark.asyncio
async def test_wallet_login_rejects_foreign_signature(client):
    owner, attacker = new_signer(), new_signer()
    await register(client, wallet=owner.address)

    r = await client.post(
        "/api/auth/wallet-login",
        json={"walletAddress": owner.address, "message": "hi", "signature": sign(attacker, "hi")},
    )
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid wallet signature"}


@pytest.mark.asyncio
async def test_wallet_login_unknown_wallet(client):
    signer = new_signer()
    r = await client.post(
        "/api/auth/wallet-login",
        json={"walletAddress": signer.address, "message": "hi", "signature": sign(signer, "hi")},
    )
    assert r.status_code == 401
    assert r.json() == {"error": "Wallet address not associated with any account"}


# ═══════════════════════════════════════════════════════════
# Bearer authentication
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_profile_requires_token(client):
    r = await client.get("/api/auth/profile")
    assert r.status_code == 401
    assert r.json() == {"error": "Access token required"}


@pytest.mark.asyncio
async def test_non_bearer_scheme_is_missing_token(client, user):
    r = await client.get("/api/auth/profile", headers={"Authorization": f"Basic {user['token']}"})
    assert r.status_code == 401
    assert r.json() == {"error": "Access token required"}


@pytest.mark.asyncio
async def test_garbage_token_is_invalid(client):
    r = await client.get("/api/auth/profile", headers={"Authorization": "Bearer nonsense"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token"}


@pytest.mark.asyncio
async def test_expired_token(client, user):
    token = create_access_token(
        user["user"]["id"],
        now=datetime.now(timezone.utc) - timedelta(days=30),
    )
    r = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json() == {"error": "Token expired"}


@pytest.mark.asyncio
async def test_token_for_missing_account(client):
    token = create_access_token("00000000-0000-0000-0000-000000000000")
    r = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid or inactive user"}


@pytest.mark.asyncio
async def test_token_with_non_uuid_subject(client):
    token = pyjwt.encode(
        {"sub": "not-a-uuid", "exp": datetime.now(timezone.utc) + timedelta(hours=1)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    r = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token"}


@pytest.mark.asyncio
async def test_deactivated_account_token_rejected(client, db_session, user):
    result = await db_session.execute(select(Account).where(Account.username == user["user"]["username"]))
    result.scalars().one().is_active = False
    await db_session.commit()

    r = await client.get("/api/auth/profile", headers=user["headers"])
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid or inactive user"}


@pytest.mark.asyncio
async def test_unexpected_lookup_failure_is_500(client, user):
    """A database fault while loading the account is not a credentials problem."""

    class BrokenSession:
        async def execute(self, *args, **kwargs):
            raise RuntimeError("connection reset")

        async def close(self):
            pass

    async def broken_db():
        yield BrokenSession()

    previous = app.dependency_overrides[get_db]
    app.dependency_overrides[get_db] = broken_db
    try:
        r = await client.get("/api/auth/profile", headers=user["headers"])
    finally:
        app.dependency_overrides[get_db] = previous
    assert r.status_code == 500
    assert r.json() == {"error": "Authentication failed"}


# ═══════════════════════════════════════════════════════════
# Wallet management
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_add_wallet(client, user):
    wallet = random_wallet()
    r = await client.post("/api/auth/add-wallet", headers=user["headers"], json={"walletAddress": wallet, "chainId": 56})
    assert r.status_code == 200
    assert r.json()["walletAddress"] == wallet

    profile = (await client.get("/api/auth/profile", headers=user["headers"])).json()["user"]
    assert [w["address"] for w in profile["wallets"]] == [user["user"]["primaryWallet"], wallet]
    assert profile["wallets"][1] == {"address": wallet, "chainId": 56, "isPrimary": False, "verifiedAt": None}


@pytest.mark.asyncio
async def test_add_wallet_owned_by_someone_else(client, user):
    other = await register(client)
    r = await client.post(
        "/api/auth/add-wallet",
        headers=user["headers"],
        json={"walletAddress": other["user"]["primaryWallet"]},
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_cannot_remove_only_wallet(client, user):
    r = await client.post(
        "/api/auth/remove-wallet",
        headers=user["headers"],
        json={"walletAddress": user["user"]["primaryWallet"]},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "Cannot remove the only wallet address"}


@pytest.mark.asyncio
async def test_removing_primary_promotes_next_wallet(client, user):
    second = random_wallet()
    await client.post("/api/auth/add-wallet", headers=user["headers"], json={"walletAddress": second})

    r = await client.post(
        "/api/auth/remove-wallet",
        headers=user["headers"],
        json={"walletAddress": user["user"]["primaryWallet"]},
    )
    assert r.status_code == 200

    profile = (await client.get("/api/auth/profile", headers=user["headers"])).json()["user"]
    assert profile["primaryWallet"] == second
    assert [w["address"] for w in profile["wallets"]] == [second]


@pytest.mark.asyncio
async def test_remove_wallet_not_owned(client, user):
    r = await client.post(
        "/api/auth/remove-wallet",
        headers=user["headers"],
        json={"walletAddress": random_wallet()},
    )
    assert r.status_code == 403
    assert r.json() == {"error": "Wallet address not associated with your account"}


@pytest.mark.asyncio
async def test_set_primary_wallet(client, user):
    second = random_wallet()
    await client.post("/api/auth/add-wallet", headers=user["headers"], json={"walletAddress": second})

    r = await client.post(
        "/api/auth/set-primary-wallet",
        headers=user["headers"],
        json={"walletAddress": second.upper().replace("0X", "0x")},
    )
    assert r.status_code == 200

    profile = (await client.get("/api/auth/profile", headers=user["headers"])).json()["user"]
    assert profile["primaryWallet"] == second
    assert sum(w["isPrimary"] for w in profile["wallets"]) == 1


@pytest.mark.asyncio
async def test_verify_wallet_sets_verified_at(client):
    signer = new_signer()
    body = await register(client, wallet=signer.address)

    r = await client.post(
        "/api/auth/verify-wallet",
        headers=body["headers"],
        json={"walletAddress": signer.address, "message": "verify", "signature": sign(signer, "verify")},
    )
    assert r.status_code == 200

    profile = (await client.get("/api/auth/profile", headers=body["headers"])).json()["user"]
    assert profile["wallets"][0]["verifiedAt"] is not None


# ═══════════════════════════════════════════════════════════
# Profile, password, session
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_update_profile(client, user):
    r = await client.put(
        "/api/auth/profile",
        headers=user["headers"],
        json={"bio": "gm", "twitter": "https://x.com/me"},
    )
    assert r.status_code == 200
    assert r.json()["user"]["bio"] == "gm"
    assert r.json()["user"]["twitter"] == "https://x.com/me"


@pytest.mark.asyncio
async def test_update_profile_rejects_bad_link(client, user):
    r = await client.put("/api/auth/profile", headers=user["headers"], json={"website": "javascript:alert(1)"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_update_profile_username_conflict(client, user):
    await register(client, username="popular")
    r = await client.put("/api/auth/profile", headers=user["headers"], json={"username": "popular"})
    assert r.status_code == 409
    assert r.json() == {"error": "Username already taken"}


@pytest.mark.asyncio
async def test_change_password(client, user):
    username = user["user"]["username"]
    r = await client.post(
        "/api/auth/change-password",
        headers=user["headers"],
        json={"currentPassword": PASSWORD, "newPassword": "new-secret"},
    )
    assert r.status_code == 200
    assert (await _login(client, username)).status_code == 401
    assert (await _login(client, username, "new-secret")).status_code == 200


@pytest.mark.asyncio
async def test_change_password_wrong_current(client, user):
    r = await client.post(
        "/api/auth/change-password",
        headers=user["headers"],
        json={"currentPassword": "nope", "newPassword": "new-secret"},
    )
    assert r.status_code == 401
    assert r.json() == {"error": "Current password is incorrect"}


@pytest.mark.asyncio
async def test_refresh_issues_working_token(client, user):
    r = await client.post("/api/auth/refresh", headers=user["headers"])
    assert r.status_code == 200
    token = r.json()["token"]
    me = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["user"]["id"] == user["user"]["id"]


@pytest.mark.asyncio
async def test_logout(client, user):
    r = await client.post("/api/auth/logout", headers=user["headers"])
    assert r.status_code == 200
    assert r.json() == {"message": "Logged out successfully"}
