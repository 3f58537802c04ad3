"""Orchestration models - SubmitResult, ChannelOutcome, RunResult."""

from dataclasses import dataclass, field

from core.domain.enums import ChannelKind, OperationStatus


@dataclass
class SubmitResult:
    """What the submitting caller gets back."""

    operation_id: str
    status: OperationStatus
    error_message: str | None = None


@dataclass
class ChannelOutcome:
    """Result of driving one channel until it settles or parks for a retry."""

    channel_id: str
    channel: ChannelKind
    status: OperationStatus
    attempts: int
    error: str | None = None


@dataclass
class RunResult:
    """Result of one coordinator run over an operation."""

    operation_id: str
    status: OperationStatus
    error_message: str | None = None
    channels: list[ChannelOutcome] = field(default_factory=list)
