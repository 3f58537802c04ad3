"""Retry policy and the recovery scheduler for unfinished channels."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.data.uow import create_uow
from core.domain.entities import Channel
from core.domain.enums import OperationStatus
from core.domain.exceptions import StoreError
from opflow_sdk.logging import get_logger
from opflow_sdk.utils.datetime import seconds_since, utc_now

if TYPE_CHECKING:
    from core.settings.modules.engine_settings import EngineSettings

    from .coordinator import ExecutionCoordinator


@dataclass(frozen=True)
class RetryDecision:
    """Whether a failed attempt gets another try, and after how long."""

    retry: bool
    delay_seconds: float = 0.0


@dataclass(frozen=True)
class RetryPolicy:
    """Retry policy for channel attempts.

    Attributes:
        max_attempts: Attempts allowed before a channel is failed for good
        backoff_seconds: Delay before the second attempt
        multiplier: Growth factor applied per further attempt
        max_backoff_seconds: Upper bound on any single delay
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    multiplier: float = 2.0
    max_backoff_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff_seconds < 0 or self.max_backoff_seconds < 0:
            raise ValueError("backoff must be non-negative")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")

    @classmethod
    def from_settings(cls, settings: "EngineSettings") -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            backoff_seconds=settings.backoff_seconds,
            multiplier=settings.backoff_multiplier,
            max_backoff_seconds=settings.max_backoff_seconds,
        )

    def delay_for(self, attempts: int) -> float:
        """Delay to wait after ``attempts`` completed attempts.

        ``delay_for(0)`` is zero: a channel that never ran is due at once.
        """
        if attempts <= 0:
            return 0.0
        delay = self.backoff_seconds * (self.multiplier ** (attempts - 1))
        return min(delay, self.max_backoff_seconds)

    def decide(self, attempts: int) -> RetryDecision:
        """Decide what happens after ``attempts`` failed attempts."""
        if attempts < self.max_attempts:
            return RetryDecision(retry=True, delay_seconds=self.delay_for(attempts))
        return RetryDecision(retry=False)


class RetryScheduler:
    """Finds channels left unfinished by a crash or a pending retry and
    hands their operations back to the coordinator.

    A pending channel is due once its backoff has elapsed since its last
    update. A running channel is due once it has not been touched for
    ``stale_after_seconds``, which means the process that claimed it died.
    An operation whose channels are all terminal but which is itself still
    active is resumed so its final status gets written.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy: RetryPolicy,
        coordinator: "ExecutionCoordinator",
        stale_after_seconds: float = 300.0,
    ) -> None:
        self._session_factory = session_factory
        self._policy = policy
        self._coordinator = coordinator
        self._stale_after_seconds = stale_after_seconds
        self._stopping: asyncio.Event | None = None
        self._logger = get_logger("orchestration.retry")

    def _is_due(self, channel: Channel, now: datetime) -> bool:
        if channel.status == OperationStatus.PENDING:
            ready_at = channel.updated_at + timedelta(
                seconds=self._policy.delay_for(channel.attempts)
            )
            return ready_at <= now
        if channel.status == OperationStatus.RUNNING:
            return seconds_since(channel.updated_at, now) >= self._stale_after_seconds
        return False

    async def due_channels(self, now: datetime | None = None) -> list[Channel]:
        """Non-terminal channels of non-terminal operations that should run now."""
        now = now or utc_now()
        async with create_uow(self._session_factory) as uow:
            channels = await uow.channels.list_recoverable()
        return [channel for channel in channels if self._is_due(channel, now)]

    async def unsettled_operations(self) -> list[str]:
        """Non-terminal operations whose channels have all finished."""
        async with create_uow(self._session_factory) as uow:
            return await uow.operations.list_unsettled()

    async def resume(self, now: datetime | None = None) -> list[str]:
        """Dispatch every operation that owns a due channel or only awaits
        its final status.

        Operations already running in this process are skipped.

        Returns:
            Ids of the operations handed to the worker
        """
        candidates = [channel.operation_id for channel in await self.due_channels(now)]
        candidates.extend(await self.unsettled_operations())

        resumed: list[str] = []
        for operation_id in candidates:
            if operation_id in resumed or self._coordinator.is_active(operation_id):
                continue
            self._coordinator.dispatch(operation_id)
            resumed.append(operation_id)

        if resumed:
            self._logger.info(f"Resumed {len(resumed)} operation(s): {', '.join(resumed)}")
        return resumed

    async def run_forever(self, interval: float) -> None:
        """Scan every ``interval`` seconds until ``stop()`` is called."""
        self._stopping = asyncio.Event()
        self._logger.info(f"Recovery loop started (interval={interval}s)")

        while not self._stopping.is_set():
            try:
                await self.resume()
            except StoreError as exc:
                self._logger.warning(f"Recovery scan failed, will retry: {exc}")

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        self._logger.info("Recovery loop stopped")

    def stop(self) -> None:
        if self._stopping is not None:
            self._stopping.set()
