"""Orchestration events - Event, EventMetadata."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class EventMetadata:
    """Metadata for an event."""

    operation_id: str
    operation_type: str
    timestamp: datetime
    channel_id: str | None = None


@dataclass
class Event:
    """Lifecycle event emitted by the coordinator and retry scheduler."""

    name: str
    payload: dict[str, object]
    metadata: EventMetadata


OPERATION_CREATED = "operation.created"
OPERATION_STARTED = "operation.started"
OPERATION_FINISHED = "operation.finished"
CHANNEL_ATTEMPT_STARTED = "channel.attempt.started"
CHANNEL_SUCCEEDED = "channel.succeeded"
CHANNEL_ATTEMPT_FAILED = "channel.attempt.failed"
CHANNEL_RETRY_SCHEDULED = "channel.retry.scheduled"
CHANNEL_FAILED = "channel.failed"
