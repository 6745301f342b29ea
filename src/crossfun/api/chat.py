"""Chat API — one message room per token.

Learn: /messages/{id} routes sit under their own literal segment so a
message id can never be mistaken for a token address. Authors may edit
or delete their own messages; moderators and admins may touch any.
Any signed-in account may like or dislike a message, once.
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.auth.dependencies import get_current_account
from crossfun.auth.guards import require_moderator
from crossfun.db.engine import get_db
from crossfun.db.models import Account
from crossfun.schemas.base import DataResponse, MessageResponse, Page, PageParams
from crossfun.schemas.chat import (
    ChatMessageCreate,
    ChatMessageEdit,
    ChatMessageRead,
    ChatSort,
    ModerationRequest,
    ReactionCounts,
    ReactionKind,
)
from crossfun.services.chat_service import ChatService
from crossfun.values import Address

router = APIRouter(prefix="/chat")


def _svc(db: AsyncSession = Depends(get_db)) -> ChatService:
    return ChatService(db)


def chat_page_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100, alias="pageSize"),
) -> PageParams:
    """Chat rooms default to 50 messages a page."""
    return PageParams(page=page, page_size=page_size)


class ChatMessageResponse(DataResponse[ChatMessageRead]):
    message: str


class ReactionResponse(DataResponse[ReactionCounts]):
    message: str


@router.get("/user/{user_address}", response_model=Page[ChatMessageRead])
async def user_messages(
    user_address: Address,
    params: PageParams = Depends(chat_page_params),
    svc: ChatService = Depends(_svc),
):
    items, total = await svc.by_user(user_address, params)
    return Page.build(items, total, params)


@router.put("/messages/{message_id}", response_model=ChatMessageResponse)
async def edit_message(
    message_id: uuid.UUID,
    body: ChatMessageEdit,
    account: Account = Depends(get_current_account),
    svc: ChatService = Depends(_svc),
):
    message = await svc.edit(message_id, account, body.message)
    return {"message": "Message updated successfully", "data": message}


@router.delete("/messages/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: uuid.UUID,
    account: Account = Depends(get_current_account),
    svc: ChatService = Depends(_svc),
):
    await svc.delete(message_id, account)
    return {"message": "Message deleted successfully"}


@router.post("/messages/{message_id}/moderate", response_model=ChatMessageResponse)
async def moderate_message(
    message_id: uuid.UUID,
    body: ModerationRequest,
    moderator: Account = Depends(require_moderator),
    svc: ChatService = Depends(_svc),
):
    message = await svc.moderate(message_id, moderator, body.reason)
    return {"message": "Message moderated successfully", "data": message}


@router.post("/messages/{message_id}/like", response_model=ReactionResponse)
async def like_message(
    message_id: uuid.UUID,
    account: Account = Depends(get_current_account),
    svc: ChatService = Depends(_svc),
):
    counts = await svc.react(message_id, account, ReactionKind.LIKE)
    return {"message": "Message liked successfully", "data": counts}


@router.post("/messages/{message_id}/dislike", response_model=ReactionResponse)
async def dislike_message(
    message_id: uuid.UUID,
    account: Account = Depends(get_current_account),
    svc: ChatService = Depends(_svc),
):
    counts = await svc.react(message_id, account, ReactionKind.DISLIKE)
    return {"message": "Message disliked successfully", "data": counts}


@router.delete("/messages/{message_id}/reaction", response_model=ReactionResponse)
async def remove_reaction(
    message_id: uuid.UUID,
    account: Account = Depends(get_current_account),
    svc: ChatService = Depends(_svc),
):
    counts = await svc.remove_reaction(message_id, account)
    return {"message": "Reaction removed successfully", "data": counts}


@router.get("/{token_address}", response_model=Page[ChatMessageRead])

async def token_messages(
    token_address: Address,
    params: PageParams = Depends(chat_page_params),
    sort: ChatSort = ChatSort.NEWEST,
    svc: ChatService = Depends(_svc),
):
    items, total = await svc.room(token_address, params, sort)
    return Page.build(items, total, params)


@router.post("/{token_address}", response_model=ChatMessageResponse, status_code=201)
async def post_message(
    token_address: Address,
    body: ChatMessageCreate,
    account: Account = Depends(get_current_account),
    svc: ChatService = Depends(_svc),
):
    message = await svc.post(
        account,
        token_address,
        body.message,
        body.message_type,
        body.media_url,
        body.reply_to,
    )
    return {"message": "Chat message added successfully", "data": message}
