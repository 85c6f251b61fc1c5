"""
Common schemas used across the API.
"""

from typing import Any, Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


def strip_text(v: Optional[str]) -> Optional[str]:
    """Trim surrounding whitespace. A supplied value must not end up blank."""
    if v is None:
        return None
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


def reject_null(v: Any) -> Any:
    """Explicit null for a field whose column cannot be cleared."""
    if v is None:
        raise ValueError("must not be null")
    return v


class CamelModel(BaseModel):
    """
    Base for API bodies.

    Serialized with camelCase keys (``roleName``, ``createdAt``); requests
    accept either camelCase or snake_case. Builds from ORM objects.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: List[T]
    total: int = Field(description="Total number of items matching filters")
    page: int = Field(description="Current page number")
    limit: int = Field(description="Items per page")
    pages: int = Field(description="Total number of pages")

    @classmethod
    def create(
        cls,
        items: List[T],
        total: int,
        page: int,
        limit: int,
    ) -> "PaginatedResponse[T]":
        """Factory method to create paginated response."""
        pages = (total + limit - 1) // limit if limit > 0 else 0
        return cls(
            items=items,
            total=total,
            page=page,
            limit=limit,
            pages=pages,
        )


class MessageResponse(BaseModel):
    """Generic acknowledgement."""

    message: str = "Operation completed successfully"

