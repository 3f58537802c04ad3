"""Domain enumerations."""

from .operation_status import OperationStatus
from .operation_type import ChannelKind, OperationType

__all__ = ["ChannelKind", "OperationStatus", "OperationType"]
