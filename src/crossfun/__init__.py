"""CrossFun — token-launch and trading platform backend.

REST API for accounts and their wallets, launched tokens, on-chain
trades, and per-token chat. Authentication is stateless (signed
session tokens); authorization is role- and wallet-ownership-based.
"""

__version__ = "0.1.0"
