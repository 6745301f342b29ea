"""Analytics API tests — overview, breakdowns, trends and performance."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from conftest import random_wallet, register


@pytest.mark.asyncio
async def test_overview_empty_platform(client):
    r = await client.get("/api/analytics/overview")
    assert r.status_code == 200
    assert r.json()["data"] == {
        "totalTokens": 0,
        "totalUsers": 0,
        "totalTransactions": 0,
        "newTokens24h": 0,
        "newUsers24h": 0,
        "newTransactions24h": 0,
        "totalMarketCap": 0,
        "totalVolume24h": 0,
        "totalLiquidity": 0,
    }


@pytest.mark.asyncio
async def test_overview_counts(client, user, admin):
    banned = await register(client)
    await client.post(f"/api/users/{banned['user']['id']}/ban", headers=admin["headers"])

    token = random_wallet()
    r = await client.post(
        "/api/tokens",
        headers=user["headers"],
        json={
            "address": token,
            "name": "Counted",
            "symbol": "CNT",
            "creatorAddress": user["user"]["primaryWallet"],
        },
    )
    assert r.status_code == 201
    await client.put(
        f"/api/tokens/{token}/market",
        headers=admin["headers"],
        json={"marketCapUSD": 1000, "volume24hUSD": 250, "totalLiquidityUSD": 75},
    )

    for status, digit in (("confirmed", "c"), ("pending", "a")):
        r = await client.post(
            "/api/transactions",
            headers=admin["headers"],
            json={
                "txHash": "0x" + digit * 64,
                "tokenAddress": token,
                "type": "buy",
                "senderAddress": random_wallet(),
                "recipientAddress": random_wallet(),
                "ethAmount": "1",
                "tokenAmount": "10",
                "blockNumber": 7,
                "blockTimestamp": datetime.now(timezone.utc).isoformat(),
                "status": status,
            },
        )
        assert r.status_code == 201, r.text

    data = (await client.get("/api/analytics/overview")).json()["data"]
    assert data["totalTokens"] == 1
    assert data["newTokens24h"] == 1
    assert data["totalUsers"] == 2
    assert data["newUsers24h"] == 3
    assert data["totalTransactions"] == 1
    assert data["newTransactions24h"] == 1
    assert data["totalMarketCap"] == 1000
    assert data["totalVolume24h"] == 250
    assert data["totalLiquidity"] == 75


# ─── Helpers ────────────────────────────────────────────


def iso(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


async def launch(client, owner, admin, symbol, chain_id=1, verify_by=None, **market) -> str:
    address = random_wallet()
    r = await client.post(
        "/api/tokens",
        headers=owner["headers"],
        json={
            "address": address,
            "name": f"Token {symbol}",
            "symbol": symbol,
            "chainId": chain_id,
            "creatorAddress": owner["user"]["primaryWallet"],
        },
    )
    assert r.status_code == 201, r.text
    if market:
        r = await client.put(f"/api/tokens/{address}/market", headers=admin["headers"], json=market)
        assert r.status_code == 200, r.text
    if verify_by is not None:
        await client.post(f"/api/tokens/{address}/verify", headers=verify_by["headers"])
    return address


async def trade(client, admin, token, when, eth="1", type="buy", chain_id=1, **fields) -> None:
    r = await client.post(
        "/api/transactions",
        headers=admin["headers"],
        json={
            "txHash": "0x" + uuid.uuid4().hex + uuid.uuid4().hex,
            "tokenAddress": token,
            "type": type,
            "senderAddress": random_wallet(),
            "recipientAddress": random_wallet(),
            "ethAmount": eth,
            "tokenAmount": "10",
            "blockNumber": 7,
            "blockTimestamp": iso(when),
            "chainId": chain_id,
            **fields,
        },
    )
    assert r.status_code == 201, r.text


# ─── Breakdowns ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_token_analytics(client, user, admin):
    await launch(client, user, admin, "AAA", verify_by=admin,
                 marketCapUSD=100, volume24hUSD=10, priceChange24hPercent=4)
    await launch(client, user, admin, "BBB",
                 marketCapUSD=300, volume24hUSD=90, priceChange24hPercent=-2)
    await launch(client, user, admin, "BSC", chain_id=56, volume24hUSD=5)

    r = await client.get("/api/analytics/tokens")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["period"] == "all"
    assert data["chainId"] == "all"
    assert data["stats"]["totalTokens"] == 3
    assert data["stats"]["verifiedTokens"] == 1
    assert data["stats"]["totalMarketCap"] == 400
    assert data["stats"]["totalVolume24h"] == 105
    assert [t["symbol"] for t in data["topTokens"]] == ["BBB", "AAA", "BSC"]
    assert len(data["newTokens"]) == 3

    data = (await client.get("/api/analytics/tokens", params={"chainId": 1, "period": "24h"})).json()["data"]
    assert data["chainId"] == 1
    assert data["stats"]["totalTokens"] == 2
    assert data["stats"]["avgPriceChange"] == 1


@pytest.mark.asyncio
async def test_transaction_analytics(client, user, admin):
    token = await launch(client, user, admin, "TRD")
    now = datetime.now(timezone.utc)
    yesterday = now - timedelta(days=1)
    await trade(client, admin, token, yesterday, eth="1.5", tokenPriceUSD=2)
    await trade(client, admin, token, now, eth="2", type="sell", tokenPriceUSD=3)
    await trade(client, admin, token, now, eth="0.5")
    await trade(client, admin, token, now, eth="100", status="failed")

    data = (await client.get("/api/analytics/transactions")).json()["data"]
    assert data["type"] == "all"
    assert data["stats"] == {"totalTransactions": 3, "totalVolume": 4, "totalVolumeUSD": 5}
    assert data["typeDistribution"] == [
        {"type": "buy", "count": 2},
        {"type": "sell", "count": 1},
    ]
    days = data["volumeByDay"]
    assert [d["date"] for d in days] == [yesterday.date().isoformat(), now.date().isoformat()]
    assert days[0] == {"date": yesterday.date().isoformat(), "count": 1, "volume": 1.5}
    assert days[1]["volume"] == 2.5

    data = (await client.get("/api/analytics/transactions", params={"type": "sell"})).json()["data"]
    assert data["type"] == "sell"
    assert data["stats"]["totalTransactions"] == 1


@pytest.mark.asyncio
async def test_user_analytics(client, user, admin):
    await launch(client, user, admin, "ONE")
    await launch(client, user, admin, "TWO")
    banned = await register(client)
    await client.post(f"/api/users/{banned['user']['id']}/ban", headers=admin["headers"])

    r = await client.get("/api/analytics/users", params={"period": "7d"})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["period"] == "7d"
    assert data["stats"]["totalUsers"] == 2
    assert data["stats"]["totalTokensCreated"] == 2
    assert data["stats"]["avgTokensPerUser"] == 1
    assert data["topCreators"][0]["id"] == user["user"]["id"]
    assert "email" not in data["topCreators"][0]
    assert sum(day["newUsers"] for day in data["userGrowth"]) == 2


@pytest.mark.asyncio
async def test_user_analytics_empty(client):
    data = (await client.get("/api/analytics/users")).json()["data"]
    assert data["stats"]["totalUsers"] == 0
    assert data["stats"]["avgTokensPerUser"] == 0
    assert data["topCreators"] == []
    assert data["userGrowth"] == []


# ─── Trends and chains ──────────────────────────────────


@pytest.mark.asyncio
async def test_trends(client, user, admin):
    await launch(client, user, admin, "UP", volume24hUSD=10, priceChange24hPercent=12)
    await launch(client, user, admin, "DOWN", volume24hUSD=50, priceChange24hPercent=-8)
    await launch(client, user, admin, "FLAT", volume24hUSD=30)

    data = (await client.get("/api/analytics/trends", params={"limit": 2})).json()["data"]
    assert [t["symbol"] for t in data["trendingTokens"]] == ["DOWN", "FLAT"]
    assert [t["symbol"] for t in data["topGainers"]] == ["UP"]
    assert [t["symbol"] for t in data["topLosers"]] == ["DOWN"]
    assert [t["symbol"] for t in data["mostActive"]] == ["DOWN", "FLAT"]


@pytest.mark.asyncio
async def test_trends_limit_bounds(client):
    r = await client.get("/api/analytics/trends", params={"limit": 51})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_chain_analytics(client, user, admin):
    eth_token = await launch(client, user, admin, "ETH1", verify_by=admin, marketCapUSD=10)
    await launch(client, user, admin, "ETH2", marketCapUSD=20)
    bsc_token = await launch(client, user, admin, "BSC1", chain_id=56, totalLiquidityUSD=7)
    now = datetime.now(timezone.utc)
    await trade(client, admin, eth_token, now, eth="1")
    await trade(client, admin, bsc_token, now, eth="2", chain_id=56)
    await trade(client, admin, bsc_token, now, eth="3", chain_id=56)

    data = (await client.get("/api/analytics/chains")).json()["data"]
    assert data["chainStats"] == [
        {
            "chainId": 1,
            "tokenCount": 2,
            "totalMarketCap": 30,
            "totalVolume24h": 0,
            "totalLiquidity": 0,
            "verifiedTokens": 1,
        },
        {
            "chainId": 56,
            "tokenCount": 1,
            "totalMarketCap": 0,
            "totalVolume24h": 0,
            "totalLiquidity": 7,
            "verifiedTokens": 0,
        },
    ]
    assert data["txVolumeByChain"] == [
        {"chainId": 56, "transactionCount": 2, "totalVolume": 5},
        {"chainId": 1, "transactionCount": 1, "totalVolume": 1},
    ]


# ─── Performance ────────────────────────────────────────


@pytest.mark.asyncio
async def test_performance_window(client, user, admin):
    token = await launch(client, user, admin, "PERF", marketCapUSD=40, volume24hUSD=4)
    now = datetime.now(timezone.utc)
    await trade(client, admin, token, now, eth="1.25")
    await trade(client, admin, token, now - timedelta(days=30), eth="9")

    r = await client.get(
        "/api/analytics/performance",
        params={"startDate": iso(now - timedelta(days=1)), "endDate": iso(now + timedelta(days=1))},
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    today = now.date().isoformat()
    assert data["dailyMetrics"] == [
        {"date": today, "newTokens": 1, "totalMarketCap": 40, "totalVolume": 4}
    ]
    assert data["userGrowth"] == [{"date": today, "newUsers": 2}]
    assert data["txVolume"] == [{"date": today, "transactionCount": 1, "totalVolume": 1.25}]


@pytest.mark.asyncio
async def test_performance_requires_ordered_range(client):
    now = datetime.now(timezone.utc)
    r = await client.get(
        "/api/analytics/performance",
        params={"startDate": iso(now), "endDate": iso(now - timedelta(days=1))},
    )
    assert r.status_code == 400
    assert r.json() == {"error": "endDate must not be before startDate"}

    r = await client.get("/api/analytics/performance")
    assert r.status_code == 400
