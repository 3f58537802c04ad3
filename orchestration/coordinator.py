"""Execution coordinator - drives operations and their channels to a terminal state."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.application.dtos import CreateOperationRequest
from core.application.interfaces import ChannelContext, ChannelExecutor, ChannelResult
from core.data.uow import create_uow
from core.domain import state_machine
from core.domain.entities import Channel, Operation
from core.domain.enums import OperationStatus
from core.domain.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from opflow_sdk.logging import get_logger
from opflow_sdk.utils.datetime import seconds_since, utc_now

from . import events
from .bus import EventBusProtocol, InMemoryEventBus
from .events import Event, EventMetadata
from .models import ChannelOutcome, RunResult, SubmitResult
from .registry import ExecutorRegistry
from .retry import RetryPolicy
from .worker import BackgroundWorker

Sleep = Callable[[float], Awaitable[None]]


class ExecutionCoordinator:
    """Coordinator for submitting and running operations.

    Each channel of an operation is driven independently: claim, invoke the
    executor, write the result and the attempt counter in one guarded update,
    then recompute the operation status from the fresh channel rows. Failed
    attempts are retried according to the RetryPolicy.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: ExecutorRegistry,
        retry_policy: RetryPolicy | None = None,
        event_bus: EventBusProtocol | None = None,
        worker: BackgroundWorker | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize coordinator.

        Args:
            session_factory: Async session factory for the operation store
            registry: Executors by channel kind
            retry_policy: Retry policy (defaults to RetryPolicy())
            event_bus: Event bus for lifecycle events
            worker: Background worker used for asynchronous operations
            sleep: Awaitable used to wait out the backoff between attempts
        """
        self._session_factory = session_factory
        self._registry = registry
        self._retry_policy = retry_policy or RetryPolicy()
        self._event_bus = event_bus or InMemoryEventBus()
        self._worker = worker or BackgroundWorker()
        self._sleep = sleep
        self._locks: dict[str, asyncio.Lock] = {}
        self._runs: dict[str, asyncio.Future] = {}
        self._logger = get_logger("orchestration.coordinator")

    @property
    def worker(self) -> BackgroundWorker:
        return self._worker

    @property
    def event_bus(self) -> EventBusProtocol:
        return self._event_bus

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def is_active(self, operation_id: str) -> bool:
        """True if this process is running or has queued ``operation_id``."""
        return operation_id in self._runs or operation_id in self._worker

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def _validate(self, request: CreateOperationRequest) -> list:
        metadata = request.metadata if request.metadata is not None else {}
        if not isinstance(metadata, dict):
            raise ValidationError("metadata must be a JSON object")

        kinds = list(request.channels) or [request.operation_type.default_channel]
        seen = set()
        for kind in kinds:
            if kind in seen:
                raise ValidationError(f"Duplicate channel: {kind.value}")
            seen.add(kind)

        executors = [self._registry.get(kind) for kind in kinds]
        for executor in executors:
            executor.validate(metadata)
        return kinds

    async def submit(self, request: CreateOperationRequest) -> SubmitResult:
        """Validate, persist and start an operation.

        Synchronous operations are run to completion before returning.
        Asynchronous ones are handed to the worker and reported as pending.

        Raises:
            ValidationError: Malformed request; nothing is persisted
            StoreError: Store unavailable
        """
        kinds = self._validate(request)
        operation = Operation.create(
            operation_type=request.operation_type,
            targets=kinds,
            is_async=request.is_async,
            metadata=request.metadata,
        )

        async with create_uow(self._session_factory) as uow:
            await uow.operations.create(operation)
            for channel in operation.channels:
                await uow.channels.create_channel(channel)
            await uow.commit()

        self._logger.info(
            f"Operation {operation.id} created "
            f"({operation.operation_type.value}, channels={[k.value for k in kinds]}, "
            f"async={operation.is_async})"
        )
        await self._publish(
            events.OPERATION_CREATED,
            operation,
            {"channels": [k.value for k in kinds], "is_async": operation.is_async},
        )

        if operation.is_async:
            self.dispatch(operation.id)
            return SubmitResult(operation_id=operation.id, status=OperationStatus.PENDING)

        result = await self.run(operation.id)
        return SubmitResult(
            operation_id=operation.id,
            status=result.status,
            error_message=result.error_message,
        )

    def dispatch(self, operation_id: str) -> asyncio.Task:
        """Run ``operation_id`` on the background worker."""
        return self._worker.submit(operation_id, lambda: self._run_in_background(operation_id))

    async def _run_in_background(self, operation_id: str) -> RunResult | None:
        try:
            return await self.run(operation_id)
        except StoreError as exc:
            self._logger.error(
                f"Store unavailable while running operation {operation_id}, "
                f"left for recovery: {exc}"
            )
        except NotFoundError as exc:
            self._logger.warning(f"Background run skipped: {exc}")
        return None

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run(self, operation_id: str) -> RunResult:
        """Drive every unfinished channel of an operation.

        Safe to call on an operation that is already running (recovery) or
        terminal (returns its current state). A second call for an operation
        this process is already running waits for the first to finish and
        then picks up whatever it left.

        Raises:
            NotFoundError: Unknown operation id
            StoreError: Store unavailable
        """
        while operation_id in self._runs:
            await asyncio.shield(self._runs[operation_id])

        finished = asyncio.get_running_loop().create_future()
        self._runs[operation_id] = finished
        try:
            return await self._run(operation_id)
        finally:
            del self._runs[operation_id]
            self._locks.pop(operation_id, None)
            finished.set_result(None)

    async def _run(self, operation_id: str) -> RunResult:
        operation = await self._start(operation_id)
        if operation.is_terminal:
            return self._result(operation)

        unfinished = [ch for ch in operation.channels if not ch.is_terminal]
        outcomes = await asyncio.gather(
            *(self._drive_channel(operation, channel) for channel in unfinished),
            return_exceptions=True,
        )
        errors = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        if errors:
            raise errors[0]

        final = await self._recompute(operation_id)
        if not final.is_terminal:
            self._logger.info(
                f"Operation {operation_id} still {final.status.value}, waiting for recovery"
            )
        return self._result(final, outcomes)

    async def _start(self, operation_id: str) -> Operation:
        async with create_uow(self._session_factory) as uow:
            operation = await uow.operations.get(operation_id)
            if operation.status != OperationStatus.PENDING:
                return operation
            try:
                operation = await uow.operations.update_status(
                    operation_id, OperationStatus.RUNNING
                )
            except ConflictError:
                # Another runner moved it first
                await uow.rollback()
                return await uow.operations.get(operation_id)
            await uow.commit()

        self._logger.info(f"Operation {operation_id} started")
        await self._publish(events.OPERATION_STARTED, operation, {})
        return operation

    async def _drive_channel(self, operation: Operation, channel: Channel) -> ChannelOutcome:
        executor = self._registry.get(channel.channel)
        await self._wait_out_backoff(channel)

        while True:
            claimed = await self._claim(channel)
            if claimed is None or claimed.is_terminal:
                return self._outcome(claimed or channel)

            attempt = claimed.attempts + 1
            await self._publish(
                events.CHANNEL_ATTEMPT_STARTED,
                operation,
                {"channel": claimed.channel.value, "attempt": attempt},
                channel_id=claimed.id,
            )

            ctx = ChannelContext(
                operation_id=operation.id,
                channel_id=claimed.id,
                operation_type=operation.operation_type,
                channel=claimed.channel,
                attempt=attempt,
                metadata=dict(operation.metadata or {}),
            )
            result = await self._invoke(executor, ctx)

            if result.ok:
                target = OperationStatus.DONE
                decision = None
            else:
                decision = self._retry_policy.decide(attempt)
                target = OperationStatus.PENDING if decision.retry else OperationStatus.FAILED

            applied = await self._apply(claimed, target, result.reason)
            if applied is None:
                return self._outcome(await self._reload(channel.id))

            await self._announce(operation, applied, result, decision)
            await self._recompute(operation.id)

            if applied.status != OperationStatus.PENDING:
                return self._outcome(applied)

            await self._sleep(decision.delay_seconds)
            channel = applied

    async def _wait_out_backoff(self, channel: Channel) -> None:
        """Sleep whatever is left of a pending channel's backoff window."""
        if channel.status != OperationStatus.PENDING or channel.attempts == 0:
            return
        remaining = self._retry_policy.delay_for(channel.attempts) - seconds_since(
            channel.updated_at
        )
        if remaining > 0:
            await self._sleep(remaining)

    async def _claim(self, channel: Channel) -> Channel | None:
        async with create_uow(self._session_factory) as uow:
            try:
                claimed = await uow.channels.update_status(channel.id, OperationStatus.RUNNING)
            except ConflictError:
                # Already terminal
                return None
            await uow.commit()
        return claimed

    async def _apply(
        self, channel: Channel, target: OperationStatus, reason: str | None
    ) -> Channel | None:
        async with create_uow(self._session_factory) as uow:
            try:
                applied = await uow.channels.update_status(
                    channel.id,
                    target,
                    error_message=reason if target != OperationStatus.DONE else None,
                    increment_attempts=True,
                )
            except ConflictError as exc:
                self._logger.warning(f"Result for channel {channel.id} discarded: {exc}")
                return None
            await uow.commit()
        return applied

    async def _reload(self, channel_id: str) -> Channel:
        async with create_uow(self._session_factory) as uow:
            return await uow.channels.get_channel(channel_id)

    async def _invoke(self, executor: ChannelExecutor, ctx: ChannelContext) -> ChannelResult:
        """Run one attempt; any exception becomes a failed result."""
        try:
            result = await executor.execute(ctx)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._logger.warning(
                f"Executor {ctx.channel.value} raised on operation {ctx.operation_id}: {exc!r}"
            )
            return ChannelResult.failure(str(exc) or exc.__class__.__name__)

        if not isinstance(result, ChannelResult):
            return ChannelResult.failure(
                f"executor returned {type(result).__name__}, expected ChannelResult"
            )
        return result

    async def _announce(
        self,
        operation: Operation,
        channel: Channel,
        result: ChannelResult,
        decision,
    ) -> None:
        payload: dict[str, Any] = {
            "channel": channel.channel.value,
            "attempts": channel.attempts,
        }
        if result.ok:
            self._logger.info(
                f"Channel {channel.channel.value} of operation {operation.id} done "
                f"after {channel.attempts} attempt(s)"
            )
            await self._publish(events.CHANNEL_SUCCEEDED, operation, payload, channel.id)
            return

        payload["error"] = result.reason
        self._logger.warning(
            f"Channel {channel.channel.value} of operation {operation.id} failed "
            f"attempt {channel.attempts}/{self._retry_policy.max_attempts}: {result.reason}"
        )
        await self._publish(events.CHANNEL_ATTEMPT_FAILED, operation, payload, channel.id)

        if channel.status == OperationStatus.PENDING:
            payload["delay_seconds"] = decision.delay_seconds
            await self._publish(events.CHANNEL_RETRY_SCHEDULED, operation, payload, channel.id)
        else:
            await self._publish(events.CHANNEL_FAILED, operation, payload, channel.id)

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def _lock_for(self, operation_id: str) -> asyncio.Lock:
        return self._locks.setdefault(operation_id, asyncio.Lock())

    async def _recompute(self, operation_id: str) -> Operation:
        """Re-derive the operation status from its persisted channels."""
        async with self._lock_for(operation_id):
            async with create_uow(self._session_factory) as uow:
                operation = await uow.operations.get(operation_id)
                if operation.is_terminal:
                    return operation

                derived = state_machine.aggregate(
                    operation.channels,
                    started=operation.status != OperationStatus.PENDING,
                )
                if derived is None or derived.status == operation.status:
                    return operation
                if not state_machine.can_transition(
                    state_machine.OPERATION, operation.status, derived.status
                ):
                    return operation

                try:
                    updated = await uow.operations.update_status(
                        operation_id, derived.status, derived.error_message
                    )
                except ConflictError:
                    await uow.rollback()
                    return await uow.operations.get(operation_id)
                await uow.commit()

        if updated.is_terminal:
            self._logger.info(
                f"Operation {operation_id} finished: {updated.status.value}"
                + (f" ({updated.error_message})" if updated.error_message else "")
            )
            await self._publish(
                events.OPERATION_FINISHED,
                updated,
                {"status": updated.status.value, "error_message": updated.error_message},
            )
        return updated

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _outcome(channel: Channel) -> ChannelOutcome:
        return ChannelOutcome(
            channel_id=channel.id,
            channel=channel.channel,
            status=channel.status,
            attempts=channel.attempts,
            error=channel.error_message,
        )

    @staticmethod
    def _result(operation: Operation, outcomes=()) -> RunResult:
        return RunResult(
            operation_id=operation.id,
            status=operation.status,
            error_message=operation.error_message,
            channels=list(outcomes) or [ExecutionCoordinator._outcome(ch) for ch in operation.channels],
        )

    async def _publish(
        self,
        name: str,
        operation: Operation,
        payload: dict[str, Any],
        channel_id: str | None = None,
    ) -> None:
        """Publish an event to the event bus."""
        metadata = EventMetadata(
            operation_id=operation.id,
            operation_type=operation.operation_type.value,
            timestamp=utc_now(),
            channel_id=channel_id,
        )
        await self._event_bus.publish(Event(name=name, payload=payload, metadata=metadata))
