"""
Pagination utilities
"""

from typing import List, Any
from pydantic import BaseModel
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

class Page(BaseModel):
    """One page of results plus its metadata"""
    items: List[Any]
    total: int
    page: int
    limit: int
    page_count: int

async def paginate(
    db: AsyncSession,
    query: Select,
    page: int = 1,
    limit: int = 10
) -> Page:
    """
    Paginate query results

    Args:
        db: Database session
        query: SQLAlchemy query, already ordered
        page: Page number (1-based)
        limit: Page size

    Returns:
        Page with the rows of the requested page and the total count
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = await db.scalar(count_query) or 0

    page_count = (total + limit - 1) // limit

    offset = (page - 1) * limit
    result = await db.execute(query.offset(offset).limit(limit))
    items = list(result.scalars().all())

    return Page(
        items=items,
        total=total,
        page=page,
        limit=limit,
        page_count=page_count,
    )
