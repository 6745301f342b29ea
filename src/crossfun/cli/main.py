"""CrossFun CLI — run the API and administer accounts.

Usage:
    crossfun serve                               # Run the API under uvicorn
    crossfun init-db                             # Create tables (development)
    crossfun create-admin alice a@x.io 0xabc...  # Create an admin account
    crossfun set-role alice moderator            # Promote / demote
    crossfun unlock alice                        # Clear a login lockout
    crossfun users --role admin                  # List accounts
    crossfun health                              # Ping a running API
"""

from __future__ import annotations

import asyncio
import os
import sys
from typing import Optional

import click
import httpx

from crossfun import __version__

DEFAULT_API_URL = "http://localhost:5000"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous click handler."""
    return asyncio.run(coro)


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "-"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


async def _with_session(fn):
    """Open an engine for one command, hand fn a session, dispose after."""
    from crossfun.config import settings
    from crossfun.db.engine import build_engine, build_session_factory

    engine = build_engine(settings.database_url)
    try:
        async with build_session_factory(engine)() as session:
            return await fn(session)
    finally:
        await engine.dispose()


async def _account_by_username(session, username: str):
    from sqlalchemy import select

    from crossfun.db.models import Account

    result = await session.execute(select(Account).where(Account.username == username))
    account = result.scalars().first()
    if account is None:
        _fail(f"no account named {username!r}")
    return account


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="crossfun")
def main():
    """CrossFun — token launchpad API and account administration."""
    from crossfun.logging_config import configure_logging

    configure_logging()


@main.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from crossfun.config import settings

    uvicorn.run(
        "crossfun.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,
    )


@main.command("init-db")
def init_db():
    """Create all tables directly from the models.

    Production databases should use `alembic upgrade head` instead.
    """

    async def _impl():
        from crossfun.config import settings
        from crossfun.db.engine import build_engine
        from crossfun.db.models import Base

        engine = build_engine(settings.database_url)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        finally:
            await engine.dispose()

    _run(_impl())
    click.secho("Tables created.", fg="green")


@main.command("create-admin")
@click.argument("username")
@click.argument("email")
@click.argument("wallet_address")
@click.option("--chain-id", default=1, show_default=True, help="Chain of the wallet")
@click.password_option(help="Password (prompted if omitted)")
def create_admin(username: str, email: str, wallet_address: str, chain_id: int, password: str):
    """Register an account and grant it the admin role."""
    from crossfun.errors import CrossfunError
    from crossfun.services.account_service import AccountService
    from crossfun.services.user_service import UserService
    from crossfun.values import Role

    async def _impl(session):
        account, _ = await AccountService(session).register(
            username=username,
            email=email,
            password=password,
            wallet_address=wallet_address,
            chain_id=chain_id,
        )
        await UserService(session).set_role(account, Role.ADMIN)
        return account

    try:
        account = _run(_with_session(_impl))
    except (CrossfunError, ValueError) as e:
        _fail(str(e))
    click.secho(f"Admin {account.username} created ({account.id}).", fg="green")


@main.command("set-role")
@click.argument("username")
@click.argument("role", type=click.Choice(["user", "moderator", "admin"]))
def set_role(username: str, role: str):
    """Change an account's role."""
    from crossfun.services.user_service import UserService
    from crossfun.values import Role

    async def _impl(session):
        account = await _account_by_username(session, username)
        return await UserService(session).set_role(account, Role(role))

    account = _run(_with_session(_impl))
    click.secho(f"{account.username} is now {account.role}.", fg="green")


@main.command()
@click.argument("username")
def unlock(username: str):
    """Clear failed-login counters and any active lock."""
    from crossfun.services.account_service import AccountService

    async def _impl(session):
        account = await _account_by_username(session, username)
        return await AccountService(session).unlock(account)

    account = _run(_with_session(_impl))
    click.secho(f"{account.username} unlocked.", fg="green")


@main.command()
@click.option("--role", type=click.Choice(["user", "moderator", "admin"]), help="Filter by role")
@click.option("--search", "-s", help="Username or email contains")
@click.option("--limit", "-l", default=50, help="Max results")
def users(role: Optional[str], search: Optional[str], limit: int):
    """List accounts."""
    from crossfun.schemas.base import PageParams
    from crossfun.services.user_service import UserService
    from crossfun.values import Role

    async def _impl(session):
        items, total = await UserService(session).list_accounts(
            PageParams(page=1, page_size=limit),
            role=Role(role) if role else None,
            search=search,
        )
        return items, total

    items, total = _run(_with_session(_impl))
    rows = [
        {
            "username": a.username,
            "email": a.email,
            "role": a.role,
            "wallet": a.primary_wallet or "-",
            "status": "banned" if a.is_banned else ("active" if a.is_active else "inactive"),
        }
        for a in items
    ]
    _print_table(
        rows,
        [
            ("USERNAME", "username", 20),
            ("EMAIL", "email", 28),
            ("ROLE", "role", 10),
            ("WALLET", "wallet", 42),
            ("STATUS", "status", 8),
        ],
    )
    click.echo(f"\n{len(rows)} of {total} account(s)")


@main.command()
@click.option("--api-url", default=None, help="Base URL (or set CROSSFUN_API_URL)")
def health(api_url: Optional[str]):
    """Query /api/health on a running server."""
    base = (api_url or os.environ.get("CROSSFUN_API_URL", DEFAULT_API_URL)).rstrip("/")
    try:
        resp = httpx.get(f"{base}/api/health", timeout=10.0)
    except httpx.HTTPError as e:
        _fail(f"cannot reach {base}: {e}")
    data = resp.json()
    color = {"healthy": "green", "degraded": "yellow"}.get(data.get("status"), "red")
    click.secho(f"status: {data.get('status')}", fg=color, bold=True)
    for key in ("version", "database", "redis"):
        click.echo(f"  {key}: {data.get(key)}")
