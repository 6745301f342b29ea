"""Account lockout governor.

Learn: A two-state machine per account, computed from two columns:

    Unlocked  (lock_until is null or in the past)
    Locked    (lock_until in the future)

- A failed password while Unlocked increments login_attempts; once the
  counter reaches the threshold, lock_until = now + lock duration.
- A successful login resets both fields, whatever the state.
- While Locked, login is refused before the password is even checked,
  and the counter is left alone.

The counter is not cleared when a lock expires, so the first failure
after expiry locks the account again straight away.

The functions here are pure: they take a LockoutState and return a new
one. The account service reads the state off the row (state_of), decides,
writes the result back (apply) and commits. That read-modify-write is not
atomic across concurrent requests; two simultaneous failures may count once.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from crossfun.config import settings
from crossfun.db.models import Account, as_utc


@dataclass(frozen=True)
class LockoutState:
    failed_attempts: int = 0
    lock_until: Optional[datetime] = None

    def __post_init__(self):
        if self.failed_attempts < 0:
            raise ValueError("failed_attempts cannot be negative")


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def default_lock_duration() -> timedelta:
    return timedelta(minutes=settings.lockout_minutes)


def is_locked(state: LockoutState, now: Optional[datetime] = None) -> bool:
    until = as_utc(state.lock_until)
    return until is not None and until > _now(now)


def remaining(state: LockoutState, now: Optional[datetime] = None) -> timedelta:
    """Time left on the lock (zero when unlocked)."""
    if not is_locked(state, now):
        return timedelta(0)
    return as_utc(state.lock_until) - _now(now)


def record_failure(
    state: LockoutState,
    now: Optional[datetime] = None,
    max_attempts: Optional[int] = None,
    lock_duration: Optional[timedelta] = None,
) -> LockoutState:
    """State after a wrong password. A locked state is returned unchanged."""
    current = _now(now)
    if is_locked(state, current):
        return state

    threshold = max_attempts or settings.max_login_attempts
    attempts = state.failed_attempts + 1
    lock_until = state.lock_until
    if attempts >= threshold:
        lock_until = current + (lock_duration or default_lock_duration())
    return LockoutState(failed_attempts=attempts, lock_until=lock_until)


def record_success(state: LockoutState) -> LockoutState:
    return LockoutState()


def state_of(account: Account) -> LockoutState:
    return LockoutState(
        failed_attempts=account.login_attempts or 0,
        lock_until=as_utc(account.lock_until),
    )


def apply(account: Account, state: LockoutState) -> None:
    account.login_attempts = state.failed_attempts
    account.lock_until = state.lock_until
