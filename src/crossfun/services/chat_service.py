"""Chat service — per-token message rooms.

Learn: Messages are never removed. Deleting sets is_deleted, moderation
sets is_moderated with a reason; both hide the message from the room
feed. A user's own history still shows moderated messages so they can
see what was taken down.

Each account holds at most one reaction per message (like or dislike).
The "popular" room order ranks by likes - dislikes + 2 * replies.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from crossfun.auth.guards import has_role
from crossfun.db.models import Account, ChatMessage, ChatReaction, Token, utcnow
from crossfun.errors import BadRequestError, ForbiddenError, NotFoundError
from crossfun.schemas.base import PageParams
from crossfun.schemas.chat import ChatSort, MessageType, ReactionKind
from crossfun.services.pagination import paginate
from crossfun.values import Role, normalize_address

logger = structlog.get_logger()


def _reaction_count(kind: ReactionKind):
    return (
        select(func.count())
        .select_from(ChatReaction)
        .where(ChatReaction.message_id == ChatMessage.id, ChatReaction.kind == kind.value)
        .correlate(ChatMessage)
        .scalar_subquery()
    )


def popularity():
    """likes - dislikes + 2 * visible replies, as a correlated SQL expression."""
    reply = aliased(ChatMessage)
    replies = (
        select(func.count())
        .select_from(reply)
        .where(reply.reply_to_id == ChatMessage.id, reply.is_deleted.is_(False))
        .correlate(ChatMessage)
        .scalar_subquery()
    )
    return (
        _reaction_count(ReactionKind.LIKE)
        - _reaction_count(ReactionKind.DISLIKE)
        + 2 * replies
    )


class ChatService:
    """Business logic for chat messages."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _token(self, address: str) -> Token:
        result = await self.db.execute(
            select(Token).where(Token.address == normalize_address(address))
        )
        token = result.scalars().first()
        if token is None:
            raise NotFoundError("Token not found")
        return token

    async def get_message(self, message_id: uuid.UUID) -> ChatMessage:
        result = await self.db.execute(select(ChatMessage).where(ChatMessage.id == message_id))
        message = result.scalars().first()
        if message is None:
            raise NotFoundError("Message not found")
        return message

    async def room(
        self, token_address: str, params: PageParams, sort: ChatSort = ChatSort.NEWEST
    ) -> tuple[list[ChatMessage], int]:
        token = await self._token(token_address)
        if sort is ChatSort.POPULAR:
            ordering = (popularity().desc(), ChatMessage.created_at.desc())
        elif sort is ChatSort.OLDEST:
            ordering = (ChatMessage.created_at.asc(),)
        else:
            ordering = (ChatMessage.created_at.desc(),)
        stmt = (
            select(ChatMessage)
            .where(
                ChatMessage.token_address == token.address,
                ChatMessage.is_deleted.is_(False),
                ChatMessage.is_moderated.is_(False),
            )
            .order_by(*ordering, ChatMessage.id)
        )
        return await paginate(self.db, stmt, params)

    async def by_user(self, user_address: str, params: PageParams) -> tuple[list[ChatMessage], int]:
        stmt = (
            select(ChatMessage)
            .where(
                ChatMessage.user_address == normalize_address(user_address),
                ChatMessage.is_deleted.is_(False),
            )
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id)
        )
        return await paginate(self.db, stmt, params)

    async def post(
        self,
        author: Account,
        token_address: str,
        message: str,
        message_type: MessageType = MessageType.TEXT,
        media_url: str = "",
        reply_to: Optional[uuid.UUID] = None,
    ) -> ChatMessage:
        token = await self._token(token_address)
        if reply_to is not None:
            result = await self.db.execute(select(ChatMessage).where(ChatMessage.id == reply_to))
            parent = result.scalars().first()
            if parent is None or parent.token_address != token.address:
                raise BadRequestError("Invalid reply message")

        user_address = author.primary_wallet or (
            author.wallets[0].address if author.wallets else ""
        )
        chat = ChatMessage(
            token_id=token.id,
            token_address=token.address,
            account_id=author.id,
            user_address=user_address,
            username=author.username,
            message=message,
            message_type=message_type.value,
            media_url=media_url,
            reply_to_id=reply_to,
        )
        self.db.add(chat)
        await self.db.commit()
        logger.info("chat.message_posted", token=token.address, account_id=str(author.id))
        return chat

    def _ensure_author_or_staff(self, message: ChatMessage, account: Account, verb: str) -> None:
        if message.account_id != account.id and not has_role(account, Role.MODERATOR):
            raise ForbiddenError(f"You can only {verb} your own messages")

    async def edit(self, message_id: uuid.UUID, account: Account, text: str) -> ChatMessage:
        message = await self.get_message(message_id)
        self._ensure_author_or_staff(message, account, "edit")
        message.message = text
        message.is_edited = True
        message.updated_at = utcnow()
        await self.db.commit()
        return message

    async def delete(self, message_id: uuid.UUID, account: Account) -> ChatMessage:
        message = await self.get_message(message_id)
        self._ensure_author_or_staff(message, account, "delete")
        message.is_deleted = True
        message.updated_at = utcnow()
        await self.db.commit()
        return message

    async def moderate(self, message_id: uuid.UUID, moderator: Account, reason: str) -> ChatMessage:
        message = await self.get_message(message_id)
        now = utcnow()
        message.is_moderated = True
        message.moderation_reason = reason
        message.moderated_by = moderator.id
        message.moderated_at = now
        message.updated_at = now
        await self.db.commit()
        logger.info(
            "chat.message_moderated",
            message_id=str(message.id),
            moderator_id=str(moderator.id),
        )
        return message

    # ─── Reactions ──────────────────────────────────────

    async def reaction_counts(self, message_id: uuid.UUID) -> dict:
        result = await self.db.execute(
            select(ChatReaction.kind, func.count())
            .where(ChatReaction.message_id == message_id)
            .group_by(ChatReaction.kind)
        )
        counts = dict(result.all())
        return {
            "like_count": counts.get(ReactionKind.LIKE.value, 0),
            "dislike_count": counts.get(ReactionKind.DISLIKE.value, 0),
        }

    async def _reaction_of(self, message_id: uuid.UUID, account: Account) -> Optional[ChatReaction]:
        result = await self.db.execute(
            select(ChatReaction).where(
                ChatReaction.message_id == message_id,
                ChatReaction.account_id == account.id,
            )
        )
        return result.scalars().first()

    async def react(self, message_id: uuid.UUID, account: Account, kind: ReactionKind) -> dict:
        """Like or dislike. Reacting again with the other kind switches it."""
        message = await self.get_message(message_id)
        reaction = await self._reaction_of(message.id, account)
        if reaction is None:
            self.db.add(
                ChatReaction(
                    message_id=message.id,
                    account_id=account.id,
                    user_address=account.primary_wallet or "",
                    kind=kind.value,
                )
            )
        elif reaction.kind != kind.value:
            reaction.kind = kind.value
        await self.db.commit()
        return await self.reaction_counts(message.id)

    async def remove_reaction(self, message_id: uuid.UUID, account: Account) -> dict:
        message = await self.get_message(message_id)
        reaction = await self._reaction_of(message.id, account)
        if reaction is not None:
            await self.db.delete(reaction)
            await self.db.commit()
        return await self.reaction_counts(message.id)
