"""Shared fixtures: a file-backed SQLite store per test."""

from typing import AsyncGenerator, Iterable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.application.dtos import CreateOperationRequest
from core.domain.enums import ChannelKind
from core.infrastructure.adapters.channels import MockChannelExecutor
from core.infrastructure.database.lifecycle import build_engine, build_session_factory, create_schema
from core.settings.modules.database_settings import DatabaseSettings
from orchestration import BackgroundWorker, ExecutionCoordinator, ExecutorRegistry, RetryPolicy


class RecordingSleep:
    """Stands in for asyncio.sleep; records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_registry(executors: Iterable[MockChannelExecutor] = ()) -> ExecutorRegistry:
    """Registry with a succeeding mock for every kind, overridden by ``executors``."""
    registry = ExecutorRegistry(MockChannelExecutor(kind) for kind in ChannelKind)
    for executor in executors:
        registry.register(executor)
    return registry


def make_request(**kwargs) -> CreateOperationRequest:
    return CreateOperationRequest(**kwargs)


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'opflow-test.db'}"


@pytest_asyncio.fixture
async def test_engine(db_url) -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine with the schema in place."""
    engine = build_engine(DatabaseSettings(url=db_url, busy_timeout_seconds=10))
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Create test session factory."""
    return build_session_factory(test_engine)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def build_coordinator(session_factory, recording_sleep):
    """Factory for coordinators sharing the test store."""
    def _build(executors=(), max_attempts: int = 3, worker: BackgroundWorker | None = None):
        coordinator = ExecutionCoordinator(
            session_factory=session_factory,
            registry=make_registry(executors),
            retry_policy=RetryPolicy(max_attempts=max_attempts, backoff_seconds=1.0),
            worker=worker or BackgroundWorker(max_concurrency=4),
            sleep=recording_sleep,
        )
        return coordinator

    return _build


@pytest.fixture
def registry_factory():
    return make_registry
