"""Application layer interfaces."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core.domain.enums import ChannelKind, OperationType


@dataclass(frozen=True)
class ChannelContext:
    """Everything an executor needs to perform one delivery attempt."""

    operation_id: str
    channel_id: str
    operation_type: OperationType
    channel: ChannelKind
    attempt: int
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ChannelResult:
    """Outcome of one attempt: success, or failure with a reason."""

    ok: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "ChannelResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "ChannelResult":
        return cls(ok=False, reason=reason or "unknown error")


class ChannelExecutor(ABC):
    """
    Interface for channel executors.

    Implementations deliver one channel (send an email, render a PDF, ...)
    and report the outcome as a ChannelResult instead of raising. They may be
    invoked again for the same channel on retry, so they must tolerate
    repeated delivery.
    """

    kind: ChannelKind

    @abstractmethod
    async def execute(self, ctx: ChannelContext) -> ChannelResult:
        """
        Perform one delivery attempt.

        Args:
            ctx: Channel context with the operation metadata

        Returns:
            ChannelResult.success() or ChannelResult.failure(reason)
        """
        pass

    def validate(self, metadata: Dict[str, Any]) -> None:
        """
        Check that the metadata carries what this channel needs.

        Default implementation accepts everything; override to raise
        ValidationError for missing recipients or payload.
        """
        return None


__all__ = ["ChannelContext", "ChannelExecutor", "ChannelResult"]
