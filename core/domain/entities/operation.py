"""
Operation aggregate and its Channel sub-tasks.

CRITICAL: This file must contain ZERO imports from:
- sqlalchemy
- pydantic
- fastapi
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from opflow_sdk.utils.datetime import utc_now

from ..enums import ChannelKind, OperationStatus, OperationType


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Channel:
    """A single delivery/execution sub-task of an Operation."""

    operation_id: str
    channel: ChannelKind
    id: str = field(default_factory=new_id)
    status: OperationStatus = OperationStatus.PENDING
    error_message: Optional[str] = None
    attempts: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass
class Operation:
    """
    Top-level unit of work submitted by a caller.

    Status is the aggregate of its channels and is only ever changed through
    the store's compare-and-set update.
    """

    operation_type: OperationType
    is_async: bool = False
    metadata: Optional[Dict[str, Any]] = None
    id: str = field(default_factory=new_id)
    status: OperationStatus = OperationStatus.PENDING
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None
    channels: List[Channel] = field(default_factory=list)

    def __post_init__(self):
        if self.updated_at is None:
            self.updated_at = self.created_at

    @classmethod
    def create(
        cls,
        operation_type: OperationType,
        targets: List[ChannelKind],
        is_async: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "Operation":
        """
        Build a pending operation with one pending channel per target.

        An empty target list yields the operation type's default channel.
        """
        operation = cls(operation_type=operation_type, is_async=is_async, metadata=metadata)
        kinds = targets or [operation_type.default_channel]
        operation.channels = [
            Channel(
                operation_id=operation.id,
                channel=kind,
                created_at=operation.created_at,
            )
            for kind in kinds
        ]
        return operation

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
