"""Paged query execution.

Runs a count over the filtered statement, then the same statement with
OFFSET/LIMIT from the paginator's window. The caller supplies the ORDER BY;
without a stable order, pages can overlap.
"""

from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import Page, PaginationParams, paginate


async def fetch_page(
    db: AsyncSession,
    stmt: Select[Any],
    params: PaginationParams,
) -> Page[Any]:
    """Execute one page of a select statement.

    Args:
        db: Async database session.
        stmt: Filtered and ordered select of a single ORM entity.
        params: Clamped page request.

    Returns:
        Page with the window's rows and its metadata. A page past the end
        has no items but correct totals.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    meta = paginate(
        total,
        params.page_number,
        params.page_size,
        default_page_size=params.page_size,
        max_page_size=None,
    )
    start, stop = meta.window
    if start == stop:
        return Page(items=[], meta=meta)

    result = await db.execute(stmt.offset(start).limit(stop - start))
    return Page(items=list(result.scalars().all()), meta=meta)
