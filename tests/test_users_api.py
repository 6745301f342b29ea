"""Users API tests — directory, self/staff access, moderation."""

import pytest
from conftest import random_wallet, register


@pytest.mark.asyncio
async def test_list_users_admin_only(client, user, admin):
    r = await client.get("/api/users", headers=user["headers"])
    assert r.status_code == 403
    assert r.json() == {"error": "Admin access required"}

    r = await client.get("/api/users", headers=admin["headers"])
    assert r.status_code == 200
    page = r.json()
    assert page["totalCount"] == 2
    assert page["currentPage"] == 1
    assert page["hasPrevPage"] is False


@pytest.mark.asyncio
async def test_list_users_filters_and_paginates(client, admin):
    for i in range(3):
        await register(client, username=f"filter_me_{i}")

    r = await client.get(
        "/api/users",
        headers=admin["headers"],
        params={"search": "filter_me", "pageSize": 2, "page": 2},
    )
    page = r.json()
    assert page["totalCount"] == 3
    assert page["totalPages"] == 2
    assert len(page["data"]) == 1
    assert page["hasNextPage"] is False
    assert page["hasPrevPage"] is True

    r = await client.get("/api/users", headers=admin["headers"], params={"role": "admin"})
    assert [u["id"] for u in r.json()["data"]] == [admin["user"]["id"]]


@pytest.mark.asyncio
async def test_page_size_over_limit_is_rejected(client, admin):
    r = await client.get("/api/users", headers=admin["headers"], params={"pageSize": 101})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_user_by_address_is_public_and_hides_email(client, user):
    wallet = user["user"]["primaryWallet"]
    r = await client.get(f"/api/users/address/0x{wallet[2:].upper()}")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["id"] == user["user"]["id"]
    assert "email" not in data


@pytest.mark.asyncio
async def test_user_by_unknown_address(client):
    r = await client.get(f"/api/users/address/{random_wallet()}")
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}


@pytest.mark.asyncio
async def test_get_user_self_or_staff(client, user, moderator):
    other = await register(client)
    uid = user["user"]["id"]

    assert (await client.get(f"/api/users/{uid}", headers=user["headers"])).status_code == 200
    assert (await client.get(f"/api/users/{uid}", headers=moderator["headers"])).status_code == 200

    r = await client.get(f"/api/users/{uid}", headers=other["headers"])
    assert r.status_code == 403
    assert r.json() == {"error": "Access denied"}


@pytest.mark.asyncio
async def test_user_cannot_promote_self(client, user):
    uid = user["user"]["id"]
    r = await client.put(f"/api/users/{uid}", headers=user["headers"], json={"role": "admin", "bio": "hi"})
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "user"
    assert r.json()["data"]["bio"] == "hi"


@pytest.mark.asyncio
async def test_moderator_cannot_change_roles(client, user, moderator):
    r = await client.put(
        f"/api/users/{user['user']['id']}",
        headers=moderator["headers"],
        json={"role": "moderator", "isVerified": True},
    )
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "user"
    assert r.json()["data"]["isVerified"] is True


@pytest.mark.asyncio
async def test_admin_changes_role_and_it_is_audited(client, user, admin):
    uid = user["user"]["id"]
    r = await client.put(f"/api/users/{uid}", headers=admin["headers"], json={"role": "moderator"})
    assert r.json()["data"]["role"] == "moderator"

    events = (await client.get(f"/api/users/{uid}/events", headers=admin["headers"])).json()["data"]
    changed = [e for e in events if e["type"] == "account.role_changed"]
    assert changed[0]["data"] == {"from": "user", "to": "moderator"}
    assert changed[0]["meta"] == {"actor_id": admin["user"]["id"]}


@pytest.mark.asyncio
async def test_events_admin_only(client, user):
    r = await client.get(f"/api/users/{user['user']['id']}/events", headers=user["headers"])
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_deactivates_user(client, user, admin):
    r = await client.delete(f"/api/users/{user['user']['id']}", headers=admin["headers"])
    assert r.status_code == 200
    assert r.json() == {"message": "User deactivated successfully"}

    # The deactivated account's token no longer works
    r = await client.get("/api/auth/profile", headers=user["headers"])
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client, admin):
    r = await client.delete(f"/api/users/{admin['user']['id']}", headers=admin["headers"])
    assert r.status_code == 400
    assert r.json() == {"error": "Cannot delete your own account"}


@pytest.mark.asyncio
async def test_moderator_bans_and_unbans(client, user, moderator):
    uid = user["user"]["id"]
    r = await client.post(f"/api/users/{uid}/ban", headers=moderator["headers"])
    assert r.status_code == 200
    assert r.json()["data"]["isBanned"] is True
    assert r.json()["data"]["isActive"] is False

    r = await client.post(f"/api/users/{uid}/unban", headers=moderator["headers"])
    assert r.json()["data"]["isBanned"] is False
    assert r.json()["data"]["isActive"] is True


@pytest.mark.asyncio
async def test_moderator_cannot_ban_admin(client, moderator, admin):
    r = await client.post(f"/api/users/{admin['user']['id']}/ban", headers=moderator["headers"])
    assert r.status_code == 403
    assert r.json() == {"error": "Moderators cannot ban administrators"}


@pytest.mark.asyncio
async def test_user_cannot_ban(client, user):
    other = await register(client)
    r = await client.post(f"/api/users/{other['user']['id']}/ban", headers=user["headers"])
    assert r.status_code == 403
    assert r.json() == {"error": "Moderator access required"}


@pytest.mark.asyncio
async def test_invalid_user_id_is_400(client, admin):
    r = await client.get("/api/users/not-a-uuid", headers=admin["headers"])
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_stats_and_tokens_for_user(client, user):
    wallet = user["user"]["primaryWallet"]
    for i in range(2):
        r = await client.post(
            "/api/tokens",
            headers=user["headers"],
            json={
                "address": random_wallet(),
                "name": f"Token {i}",
                "symbol": f"TK{i}",
                "creatorAddress": wallet,
            },
        )
        assert r.status_code == 201

    uid = user["user"]["id"]
    stats = (await client.get(f"/api/users/{uid}/stats")).json()["data"]
    assert stats == {
        "tokensCreated": 2,
        "totalVolumeUSD": 0.0,
        "walletAddresses": 1,
        "primaryWallet": wallet,
    }

    tokens = (await client.get(f"/api/users/{uid}/tokens")).json()
    assert tokens["totalCount"] == 2


@pytest.mark.asyncio
async def test_top_creators(client, user):
    await client.post(
        "/api/tokens",
        headers=user["headers"],
        json={
            "address": random_wallet(),
            "name": "Top",
            "symbol": "TOP",
            "creatorAddress": user["user"]["primaryWallet"],
        },
    )
    await register(client)

    data = (await client.get("/api/users/top-creators", params={"limit": 1})).json()["data"]
    assert len(data) == 1
    assert data[0]["id"] == user["user"]["id"]
    assert data[0]["tokensCreated"] == 1
