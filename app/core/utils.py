"""
Shared query helpers for the registry API.
"""

from typing import Any, Callable, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from app.core.exceptions import NotFound
from app.schemas.common import PaginatedResponse

T = TypeVar("T")


def apply_search_filter(query, count_query, search: Optional[str], *fields):
    """
    Apply ilike search filter to multiple fields.

    Args:
        query: The main SQLAlchemy query
        count_query: The count query for pagination
        search: The search term (can be None)
        *fields: SQLAlchemy column objects to search

    Returns:
        Tuple of (filtered_query, filtered_count_query)

    Example:
        query, count_query = apply_search_filter(
            query, count_query, name,
            Student.first_name, Student.last_name
        )
    """
    if not search or not fields:
        return query, count_query

    search_filter = f"%{search.lower()}%"

    # Build OR condition for all fields
    conditions = [field.ilike(search_filter) for field in fields]
    combined = conditions[0]
    for condition in conditions[1:]:
        combined = combined | condition

    return query.where(combined), count_query.where(combined)


def apply_filter(query, count_query, condition):
    """Add the same WHERE clause to both queries."""
    return query.where(condition), count_query.where(condition)


async def paginate(
    db: AsyncSession,
    query: Select,
    count_query: Select,
    page: int,
    limit: int,
    to_response: Callable[[Any], Any],
) -> PaginatedResponse:
    """
    Run a list query with its count query and wrap the page.

    ``query`` must already carry its ORDER BY.
    """
    result = await db.execute(count_query)
    total = result.scalar() or 0

    result = await db.execute(query.offset((page - 1) * limit).limit(limit))
    items = [to_response(row) for row in result.scalars().all()]

    return PaginatedResponse.create(items=items, total=total, page=page, limit=limit)


def count_of(model: Type[T]) -> Select:
    """``SELECT count(*) FROM model``, to be narrowed with WHERE clauses."""
    return select(func.count()).select_from(model)


async def get_or_404(db: AsyncSession, model: Type[T], entity: str, **criteria) -> T:
    """
    Fetch exactly one row matching ``criteria`` or raise NotFound.

    Example:
        student = await get_or_404(db, Student, "Student", id=student_id)
    """
    query = select(model).filter_by(**criteria)
    result = await db.execute(query)
    obj = result.scalar_one_or_none()
    if obj is None:
        raise NotFound(entity)
    return obj


async def exists(db: AsyncSession, query: Select) -> bool:
    """True if ``query`` returns at least one row."""
    result = await db.execute(query.limit(1))
    return result.first() is not None
