"""
Paginated list envelope.
"""
import math
from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of items plus the counts a client needs to page through them."""
    items: List[T]
    total: int
    page: int
    size: int
    pages: int

    @classmethod
    def create(cls, items: List[T], total: int, page: int, size: int) -> "PaginatedResponse[T]":
        # An empty result still reports a single (empty) page
        pages = max(1, math.ceil(total / size)) if size > 0 else 1
        return cls(items=items, total=total, page=page, size=size, pages=pages)
