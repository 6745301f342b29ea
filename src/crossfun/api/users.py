"""Users API — account directory and moderation.

Learn: Route order matters. /top-creators and /address/{address} are
declared before /{id} so the literal segments win; {id} is typed
uuid.UUID, so anything else falls through to a 400 validation error.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth.dependencies import get_current_account
from crossfun.auth.guards import has_role, require_admin, require_moderator
from crossfun.db.engine import get_db
from crossfun.db.models import Account
from crossfun.errors import ForbiddenError
from crossfun.schemas.account import (
    AccountRead,
    AccountStats,
    AccountUpdate,
    EventRead,
    PublicAccountRead,
)
from crossfun.schemas.base import DataResponse, MessageResponse, Page, PageParams, page_params
from crossfun.schemas.token import TokenRead
from crossfun.services.user_service import UserService
from crossfun.values import Address, Role

router = APIRouter(prefix="/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


def _ensure_self_or_staff(caller: Account, target_id: uuid.UUID) -> None:
    if caller.id != target_id and not has_role(caller, Role.MODERATOR):
        raise ForbiddenError("Access denied")


class UserChangeResponse(DataResponse[AccountRead]):
    message: str


@router.get("", response_model=Page[AccountRead])
async def list_users(
    params: PageParams = Depends(page_params),
    role: Optional[Role] = None,
    verified: Optional[bool] = None,
    active: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    _: Account = Depends(require_admin),
    svc: UserService = Depends(_svc),
):
    items, total = await svc.list_accounts(params, role, verified, active, search)
    return Page.build(items, total, params)


@router.get("/top-creators", response_model=DataResponse[list[PublicAccountRead]])
async def top_creators(
    limit: int = Query(10, ge=1, le=50),
    svc: UserService = Depends(_svc),
):
    return {"data": await svc.top_creators(limit)}


@router.get("/address/{address}", response_model=DataResponse[PublicAccountRead])
async def get_user_by_address(address: Address, svc: UserService = Depends(_svc)):
    return {"data": await svc.get_by_address(address)}


@router.get("/{user_id}", response_model=DataResponse[AccountRead])
async def get_user(
    user_id: uuid.UUID,
    caller: Account = Depends(get_current_account),
    svc: UserService = Depends(_svc),
):
    _ensure_self_or_staff(caller, user_id)
    return {"data": await svc.get(user_id)}


@router.put("/{user_id}", response_model=UserChangeResponse)
async def update_user(
    user_id: uuid.UUID,
    body: AccountUpdate,
    caller: Account = Depends(get_current_account),
    svc: UserService = Depends(_svc),
):
    """Self, moderator or admin. Role changes from non-admins are dropped."""
    _ensure_self_or_staff(caller, user_id)
    target = await svc.get(user_id)
    target = await svc.update(target, caller, body.model_dump(exclude_unset=True))
    return {"message": "User updated successfully", "data": target}


@router.delete("/{user_id}", response_model=MessageResponse)
async def deactivate_user(
    user_id: uuid.UUID,
    caller: Account = Depends(require_admin),
    svc: UserService = Depends(_svc),
):
    await svc.deactivate(user_id, caller)
    return {"message": "User deactivated successfully"}


@router.post("/{user_id}/ban", response_model=UserChangeResponse)
async def ban_user(
    user_id: uuid.UUID,
    caller: Account = Depends(require_moderator),
    svc: UserService = Depends(_svc),
):
    target = await svc.ban(user_id, caller)
    return {"message": "User banned successfully", "data": target}


@router.post("/{user_id}/unban", response_model=UserChangeResponse)
async def unban_user(
    user_id: uuid.UUID,
    caller: Account = Depends(require_moderator),
    svc: UserService = Depends(_svc),
):
    target = await svc.unban(user_id, caller)
    return {"message": "User unbanned successfully", "data": target}


@router.get("/{user_id}/tokens", response_model=Page[TokenRead])
async def user_tokens(
    user_id: uuid.UUID,
    params: PageParams = Depends(page_params),
    svc: UserService = Depends(_svc),
):
    items, total = await svc.tokens(user_id, params)
    return Page.build(items, total, params)


@router.get("/{user_id}/stats", response_model=DataResponse[AccountStats])
async def user_stats(user_id: uuid.UUID, svc: UserService = Depends(_svc)):
    return {"data": await svc.stats(user_id)}


@router.get("/{user_id}/events", response_model=DataResponse[list[EventRead]])
async def user_events(
    user_id: uuid.UUID,
    _: Account = Depends(require_admin),
    svc: UserService = Depends(_svc),
):
    """Audit log for one account, oldest first."""
    return {"data": await svc.events_for(user_id)}
