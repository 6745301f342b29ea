"""Pydantic schemas for token chat rooms."""

import enum
import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from crossfun.schemas.base import ApiModel, Link


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    LINK = "link"
    SYSTEM = "system"


class ChatSort(str, enum.Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    POPULAR = "popular"


class ReactionKind(str, enum.Enum):
    LIKE = "like"
    DISLIKE = "dislike"


class _MessageBody(ApiModel):
    message: str = Field(..., min_length=1, max_length=1000)

    @field_validator("message")
    @classmethod
    def strip_message(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message must be between 1 and 1000 characters")
        return v


class ChatMessageCreate(_MessageBody):
    message_type: MessageType = MessageType.TEXT
    media_url: Link = ""
    reply_to: Optional[uuid.UUID] = None


class ChatMessageEdit(_MessageBody):
    pass


class ModerationRequest(ApiModel):
    reason: str = Field(..., min_length=1, max_length=500)


class ChatMessageRead(ApiModel):
    id: uuid.UUID
    token_address: str
    account_id: uuid.UUID
    user_address: str
    username: str
    message: str
    message_type: str
    media_url: str
    reply_to_id: Optional[uuid.UUID] = Field(None, alias="replyTo")
    is_edited: bool
    is_deleted: bool
    is_moderated: bool
    moderation_reason: str
    created_at: datetime
    updated_at: datetime


class ReactionCounts(ApiModel):
    like_count: int
    dislike_count: int
