"""Domain entities."""

from .operation import Channel, Operation

__all__ = ["Channel", "Operation"]
