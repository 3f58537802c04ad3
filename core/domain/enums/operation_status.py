"""
Operation Status Enum.

Lifecycle values shared by operations and their channels.
"""
from enum import Enum


class OperationStatus(str, Enum):
    """Lifecycle status values."""

    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OperationStatus.DONE, OperationStatus.FAILED})
ACTIVE_STATUSES = frozenset({OperationStatus.PENDING, OperationStatus.RUNNING})
