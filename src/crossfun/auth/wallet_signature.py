"""Wallet signature verification (EIP-191 personal_sign).

Learn: The client asks the wallet to sign a human-readable message
(e.g. "Sign in to CrossFun: <nonce>"). eth_account recovers the signing
address from (message, signature); if it equals the claimed wallet
address, the caller controls that wallet's private key.
"""

from typing import Optional

import structlog
from eth_account import Account as EthAccount
from eth_account.messages import encode_defunct

from crossfun.values import WalletAddress

logger = structlog.get_logger()


def recover_signer(message: str, signature: str) -> Optional[str]:
    """Return the lower-case address that signed message, or None."""
    try:
        signer = EthAccount.recover_message(
            encode_defunct(text=message), signature=signature
        )
    except Exception as e:  # eth_account raises several unrelated types
        logger.debug("wallet.signature_unrecoverable", error=str(e))
        return None
    return signer.lower()


def verify_wallet_signature(address: str, message: str, signature: str) -> bool:
    """True when signature over message was produced by address's key."""
    signer = recover_signer(message, signature)
    return signer is not None and WalletAddress(address).matches(signer)
