"""Validated value types shared by models, schemas and guards.

Learn: Instead of re-checking "is this a valid address?" at every call
site, these types refuse to construct from bad input. WalletAddress and
TxHash normalize to lower-case on construction, so two instances compare
equal regardless of the casing the client sent. The Annotated aliases at
the bottom plug the same checks into pydantic request schemas.
"""

import enum
import re
from dataclasses import dataclass
from typing import Annotated

from pydantic import AfterValidator

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
_TX_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")


@dataclass(frozen=True)
class WalletAddress:
    """An EVM account or contract address, stored lower-case."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str):
            raise ValueError("Wallet address must be a string")
        candidate = self.value.strip()
        if not _ADDRESS_RE.match(candidate):
            raise ValueError("Invalid wallet address")
        object.__setattr__(self, "value", candidate.lower())

    def matches(self, other: str) -> bool:
        """Case-insensitive comparison against a raw string."""
        return isinstance(other, str) and self.value == other.strip().lower()

    def truncated(self) -> str:
        return f"{self.value[:6]}...{self.value[-4:]}"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TxHash:
    """A 32-byte transaction hash, stored lower-case."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not _TX_HASH_RE.match(self.value.strip()):
            raise ValueError("Invalid transaction hash")
        object.__setattr__(self, "value", self.value.strip().lower())

    def __str__(self) -> str:
        return self.value


class Role(str, enum.Enum):
    """Privilege tiers. Each tier includes everything below it."""

    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def at_least(self, other: "Role") -> bool:
        return self.rank >= Role(other).rank


_ROLE_RANK = {Role.USER: 0, Role.MODERATOR: 1, Role.ADMIN: 2}


def normalize_address(value: str) -> str:
    return str(WalletAddress(value))


def normalize_tx_hash(value: str) -> str:
    return str(TxHash(value))


# Pydantic field types — validate and lower-case on the way in.
Address = Annotated[str, AfterValidator(normalize_address)]
TransactionHash = Annotated[str, AfterValidator(normalize_tx_hash)]
