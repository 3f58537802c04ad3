"""Offset pagination value objects."""

from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

from ..exceptions import ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    """1-based page number and page size."""

    page: int = 1
    page_size: int = 20

    def __post_init__(self):
        if self.page < 1:
            raise ValidationError(f"page must be >= 1, got {self.page}")
        if self.page_size < 1:
            raise ValidationError(f"page_size must be > 0, got {self.page_size}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the total row count."""

    items: List[T] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def pages(self) -> int:
        return -(-self.total // self.page_size) if self.total else 0
