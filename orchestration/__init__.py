"""Orchestration layer - coordinator, retry scheduling and eventing."""

from typing import TYPE_CHECKING

from .bus import EventBusProtocol, InMemoryEventBus
from .coordinator import ExecutionCoordinator
from .events import Event, EventMetadata
from .models import ChannelOutcome, RunResult, SubmitResult
from .registry import ExecutorRegistry
from .retry import RetryDecision, RetryPolicy, RetryScheduler
from .worker import BackgroundWorker

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from core.settings.modules.engine_settings import EngineSettings

__all__ = [
    "BackgroundWorker",
    "ChannelOutcome",
    "Event",
    "EventBusProtocol",
    "EventMetadata",
    "ExecutionCoordinator",
    "ExecutorRegistry",
    "InMemoryEventBus",
    "RetryDecision",
    "RetryPolicy",
    "RetryScheduler",
    "RunResult",
    "SubmitResult",
]


def create_default_coordinator(
    session_factory: "async_sessionmaker[AsyncSession]",
    registry: ExecutorRegistry,
    settings: "EngineSettings | None" = None,
) -> ExecutionCoordinator:
    """Create a coordinator with an in-memory event bus and a fresh worker.

    Args:
        session_factory: Async session factory for the operation store
        registry: Executors by channel kind
        settings: Engine settings (defaults to EngineSettings())

    Returns:
        ExecutionCoordinator instance
    """
    from core.settings.modules.engine_settings import EngineSettings

    settings = settings or EngineSettings()
    return ExecutionCoordinator(
        session_factory=session_factory,
        registry=registry,
        retry_policy=RetryPolicy.from_settings(settings),
        event_bus=InMemoryEventBus(),
        worker=BackgroundWorker(max_concurrency=settings.worker_concurrency),
    )
