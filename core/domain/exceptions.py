"""
Domain exceptions.

Execution failures reported by channel executors are not exceptions; they
are recorded on the channel as a ChannelResult.
"""


class OpflowError(Exception):
    """Base class for engine errors."""


class ValidationError(OpflowError):
    """Malformed request, rejected before any record is created."""


class NotFoundError(OpflowError):
    """Unknown operation or channel id."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConflictError(OpflowError):
    """Transition rejected: the record is terminal or the edge is not allowed."""

    def __init__(self, entity: str, entity_id: str, current: str, target: str):
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move {entity} {entity_id} from '{current}' to '{target}'"
        )


class StoreError(OpflowError):
    """Persistence layer unavailable. Safe to retry."""
