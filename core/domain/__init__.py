"""Domain layer - pure domain models and interfaces."""

from .entities import Channel, Operation
from .enums import ChannelKind, OperationStatus, OperationType
from .exceptions import (
    ConflictError,
    NotFoundError,
    OpflowError,
    StoreError,
    ValidationError,
)
from .repositories import ChannelRepository, OperationRepository
from .value_objects import Page, PageRequest

__all__ = [
    "Channel",
    "ChannelKind",
    "ChannelRepository",
    "ConflictError",
    "NotFoundError",
    "Operation",
    "OperationRepository",
    "OperationStatus",
    "OperationType",
    "OpflowError",
    "Page",
    "PageRequest",
    "StoreError",
    "ValidationError",
]
