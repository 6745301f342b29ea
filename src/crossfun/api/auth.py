"""Auth API — registration, login, wallets and the caller's own profile.

Learn: Routes for account authentication and credential lifecycle:
- POST /auth/register → create an account with one primary wallet → token
- POST /auth/login → username-or-email + password → token (lockout applies)
- POST /auth/wallet-login → signed message from a registered wallet → token
- POST /auth/verify-wallet, /add-wallet, /remove-wallet, /set-primary-wallet
- GET/PUT /auth/profile, POST /auth/change-password
- POST /auth/refresh → fresh token, POST /auth/logout

Tokens are stateless. Logout only records activity; the client drops
the token.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth.dependencies import get_current_account
from crossfun.auth.guards import require_wallet_ownership
from crossfun.auth.jwt import create_access_token
from crossfun.db.engine import get_db
from crossfun.db.models import Account
from crossfun.schemas.account import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    ProfileResponse,
    ProfileUpdate,
    ProfileUpdateResponse,
    RegisterRequest,
    TokenRefreshResponse,
    WalletAddressRequest,
    WalletChangeResponse,
    WalletLoginRequest,
    WalletRequest,
    WalletSignatureRequest,
)
from crossfun.schemas.base import MessageResponse
from crossfun.services.account_service import AccountService

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> AccountService:
    return AccountService(db)


# ─── Sign-up / sign-in ──────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, svc: AccountService = Depends(_svc)):
    account, token = await svc.register(
        username=body.username,
        email=body.email,
        password=body.password,
        wallet_address=body.wallet_address,
        chain_id=body.chain_id,
    )
    return {"message": "User registered successfully", "token": token, "user": account}


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, svc: AccountService = Depends(_svc)):
    """Username or email plus password. Five misses lock the account for 15 minutes."""
    account, token = await svc.login(body.identifier, body.password)
    return {"message": "Login successful", "token": token, "user": account}


@router.post("/wallet-login", response_model=AuthResponse)
async def wallet_login(body: WalletLoginRequest, svc: AccountService = Depends(_svc)):
    account, token = await svc.wallet_login(
        body.wallet_address, body.message, body.signature
    )
    return {"message": "Wallet login successful", "token": token, "user": account}


# ─── Wallets ────────────────────────────────────────────


@router.post("/verify-wallet", response_model=WalletChangeResponse)
async def verify_wallet(
    body: WalletSignatureRequest,
    account: Account = Depends(require_wallet_ownership),
    svc: AccountService = Depends(_svc),
):
    wallet = await svc.verify_wallet(account, body.wallet_address, body.message, body.signature)
    return {
        "message": "Wallet verified successfully",
        "wallet_address": wallet.address,
        "chain_id": wallet.chain_id,
    }


@router.post("/add-wallet", response_model=WalletChangeResponse)
async def add_wallet(
    body: WalletRequest,
    account: Account = Depends(get_current_account),
    svc: AccountService = Depends(_svc),
):
    wallet = await svc.add_wallet(account, body.wallet_address, body.chain_id)
    return {
        "message": "Wallet address added successfully",
        "wallet_address": wallet.address,
        "chain_id": wallet.chain_id,
    }


@router.post("/remove-wallet", response_model=WalletChangeResponse)
async def remove_wallet(
    body: WalletAddressRequest,
    account: Account = Depends(require_wallet_ownership),
    svc: AccountService = Depends(_svc),
):
    wallet = await svc.remove_wallet(account, body.wallet_address)
    return {"message": "Wallet address removed successfully", "wallet_address": wallet.address}


@router.post("/set-primary-wallet", response_model=WalletChangeResponse)
async def set_primary_wallet(
    body: WalletAddressRequest,
    account: Account = Depends(require_wallet_ownership),
    svc: AccountService = Depends(_svc),
):
    wallet = await svc.set_primary_wallet(account, body.wallet_address)
    return {
        "message": "Primary wallet updated successfully",
        "wallet_address": wallet.address,
        "chain_id": wallet.chain_id,
    }


# ─── Profile ────────────────────────────────────────────


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(account: Account = Depends(get_current_account)):
    return {"user": account}


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    body: ProfileUpdate,
    account: Account = Depends(get_current_account),
    svc: AccountService = Depends(_svc),
):
    account = await svc.update_profile(account, body.model_dump(exclude_unset=True))
    return {"message": "Profile updated successfully", "user": account}


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    account: Account = Depends(get_current_account),
    svc: AccountService = Depends(_svc),
):
    await svc.change_password(account, body.current_password, body.new_password)
    return {"message": "Password changed successfully"}


# ─── Session ────────────────────────────────────────────


@router.post("/refresh", response_model=TokenRefreshResponse)
async def refresh(account: Account = Depends(get_current_account)):
    return {"message": "Token refreshed successfully", "token": create_access_token(str(account.id))}


@router.post("/logout", response_model=MessageResponse)
async def logout(
    account: Account = Depends(get_current_account),
    svc: AccountService = Depends(_svc),
):
    await svc.touch_session(account)
    return {"message": "Logged out successfully"}
