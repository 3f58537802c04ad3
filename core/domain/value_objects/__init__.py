"""Domain value objects."""

from .page import Page, PageRequest

__all__ = ["Page", "PageRequest"]
