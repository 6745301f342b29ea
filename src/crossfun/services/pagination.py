"""Offset pagination over a SELECT.

Learn: The count runs over the filtered statement wrapped as a subquery,
so it matches whatever WHERE clauses the caller added. Ordering is left
to the caller; a page without a stable ORDER BY is not repeatable.
"""

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crossfun.schemas.base import PageParams


async def count(db: AsyncSession, stmt: Select) -> int:
    result = await db.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    )
    return result.scalar_one()


async def paginate(db: AsyncSession, stmt: Select, params: PageParams) -> tuple[list, int]:
    """Return (items on the requested page, total matching rows)."""
    total = await count(db, stmt)
    result = await db.execute(stmt.offset(params.offset).limit(params.page_size))
    return list(result.scalars().all()), total
