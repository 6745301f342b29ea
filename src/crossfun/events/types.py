"""Event type constants.

Learn: Centralizing event types as constants prevents typos and
makes it easy to discover all event types in the system.
"""

# ─── Account lifecycle ───────────────────────────────────

ACCOUNT_REGISTERED = "account.registered"
ACCOUNT_LOGIN_FAILED = "account.login_failed"
ACCOUNT_LOCKED = "account.locked"
ACCOUNT_PASSWORD_CHANGED = "account.password_changed"
ACCOUNT_PROFILE_UPDATED = "account.profile_updated"

# ─── Wallets ─────────────────────────────────────────────

WALLET_ADDED = "wallet.added"
WALLET_REMOVED = "wallet.removed"
WALLET_PRIMARY_CHANGED = "wallet.primary_changed"
WALLET_VERIFIED = "wallet.verified"

# ─── Moderation / administration ─────────────────────────

ACCOUNT_ROLE_CHANGED = "account.role_changed"
ACCOUNT_BANNED = "account.banned"
ACCOUNT_UNBANNED = "account.unbanned"
ACCOUNT_DEACTIVATED = "account.deactivated"
ACCOUNT_UNLOCKED = "account.unlocked"


def account_stream(account_id) -> str:
    return f"account:{account_id}"
