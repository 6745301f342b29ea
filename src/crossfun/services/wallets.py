"""Wallet-list operations on an account.

Learn: These functions keep the primary-wallet invariant — if an account
has wallets, exactly one is primary — while adding, removing and
re-pointing wallets. They mutate the in-session Account; the caller
commits. Address arguments may be any casing.
"""

from datetime import datetime
from typing import Optional

from crossfun.db.models import Account, Wallet, utcnow
from crossfun.errors import BadRequestError, ConflictError, NotFoundError
from crossfun.values import WalletAddress


def find_wallet(account: Account, address: str) -> Optional[Wallet]:
    wanted = WalletAddress(address)
    for wallet in account.wallets:
        if wanted.matches(wallet.address):
            return wallet
    return None


def add_wallet(account: Account, address: str, chain_id: int = 1) -> Wallet:
    """Append a wallet. The first wallet on an account becomes primary."""
    normalized = str(WalletAddress(address))
    if find_wallet(account, normalized) is not None:
        raise ConflictError("Wallet address already exists")
    wallet = Wallet(
        address=normalized,
        chain_id=chain_id,
        is_primary=len(account.wallets) == 0,
    )
    account.wallets.append(wallet)
    return wallet


def remove_wallet(account: Account, address: str) -> Wallet:
    """Remove a wallet; the first remaining wallet inherits primary."""
    wallet = find_wallet(account, address)
    if wallet is None:
        raise NotFoundError("Wallet address not found")
    if len(account.wallets) <= 1:
        raise BadRequestError("Cannot remove the only wallet address")

    account.wallets.remove(wallet)
    if not any(w.is_primary for w in account.wallets):
        account.wallets[0].is_primary = True
    return wallet


def set_primary_wallet(account: Account, address: str) -> Wallet:
    wallet = find_wallet(account, address)
    if wallet is None:
        raise NotFoundError("Wallet address not found")
    for w in account.wallets:
        w.is_primary = w is wallet
    return wallet


def mark_verified(account: Account, address: str, when: Optional[datetime] = None) -> Wallet:
    wallet = find_wallet(account, address)
    if wallet is None:
        raise NotFoundError("Wallet address not found")
    wallet.verified_at = when or utcnow()
    return wallet
