"""Shared schema plumbing: camelCase wire format and paginated responses.

Learn: The frontend speaks camelCase (walletAddress, isPrimary,
lockUntil). ApiModel generates those aliases from snake_case field
names; populate_by_name lets callers send either spelling, and FastAPI
serializes response_model output by alias.
"""

from math import ceil
from typing import Annotated, Generic, TypeVar

from fastapi import Query
from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _check_link(value: str) -> str:
    value = value.strip()
    if value and not value.lower().startswith(("http://", "https://")):
        raise ValueError("Must be an http(s) URL")
    return value


# Optional social/profile link: "" clears it.
Link = Annotated[str, AfterValidator(_check_link)]


class MessageResponse(ApiModel):
    message: str


# ─── Pagination ─────────────────────────────────────────


class PageParams(BaseModel):
    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def page_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
) -> PageParams:
    """FastAPI dependency for ?page=&pageSize= (1-based, max 100)."""
    return PageParams(page=page, page_size=page_size)


class Page(ApiModel, Generic[T]):
    data: list[T]
    total_count: int
    current_page: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, items: list, total: int, params: PageParams) -> dict:
        total_pages = ceil(total / params.page_size) if total else 0
        return {
            "data": items,
            "total_count": total,
            "current_page": params.page,
            "total_pages": total_pages,
            "has_next_page": params.page < total_pages,
            "has_prev_page": params.page > 1,
        }


class DataResponse(ApiModel, Generic[T]):
    data: T
