"""Tests for ExecutionCoordinator - asynchronous operations and the worker."""

import asyncio

import pytest

from core.application.dtos import CreateOperationRequest
from core.application.interfaces import ChannelResult
from core.data.uow import create_uow
from core.domain.enums import ChannelKind, OperationStatus, OperationType
from core.infrastructure.adapters.channels import MockChannelExecutor
from orchestration import BackgroundWorker

S = OperationStatus


async def _load(session_factory, operation_id):
    async with create_uow(session_factory) as uow:
        return await uow.operations.get(operation_id)


@pytest.mark.asyncio
async def test_async_notification_with_flaky_sms_completes(build_coordinator, session_factory, recording_sleep):
    """Email succeeds, SMS fails twice then succeeds within three attempts."""
    email = MockChannelExecutor(ChannelKind.EMAIL)
    sms = MockChannelExecutor(
        ChannelKind.SMS,
        [ChannelResult.failure("gateway 502"), ChannelResult.failure("gateway 502")],
    )
    coordinator = build_coordinator([email, sms], max_attempts=3)

    result = await coordinator.submit(
        CreateOperationRequest(
            operation_type=OperationType.SEND_NOTIFICATION,
            channels=[ChannelKind.EMAIL, ChannelKind.SMS],
            is_async=True,
        )
    )
    assert result.status == S.PENDING

    await coordinator.worker.drain()

    operation = await _load(session_factory, result.operation_id)
    by_kind = {ch.channel: ch for ch in operation.channels}
    assert operation.status == S.DONE
    assert operation.error_message is None
    assert (by_kind[ChannelKind.SMS].status, by_kind[ChannelKind.SMS].attempts) == (S.DONE, 3)
    assert (by_kind[ChannelKind.EMAIL].status, by_kind[ChannelKind.EMAIL].attempts) == (S.DONE, 1)
    assert recording_sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_async_failure_stops_at_max_attempts(build_coordinator, session_factory):
    sms = MockChannelExecutor.failing(ChannelKind.SMS, "invalid number")
    coordinator = build_coordinator([sms], max_attempts=3)

    result = await coordinator.submit(
        CreateOperationRequest(
            operation_type=OperationType.SEND_NOTIFICATION,
            channels=[ChannelKind.SMS],
            is_async=True,
        )
    )
    await coordinator.worker.drain()

    operation = await _load(session_factory, result.operation_id)
    assert operation.status == S.FAILED
    assert operation.error_message == "sms: invalid number"
    assert operation.channels[0].attempts == 3
    assert len(sms.calls) == 3


@pytest.mark.asyncio
async def test_submit_returns_before_channel_runs(build_coordinator, session_factory):
    email = MockChannelExecutor(ChannelKind.EMAIL, delay_seconds=0.05)
    coordinator = build_coordinator([email])

    result = await coordinator.submit(
        CreateOperationRequest(operation_type=OperationType.SEND_EMAIL, is_async=True)
    )

    assert result.status == S.PENDING
    assert email.calls == []
    assert coordinator.is_active(result.operation_id)

    await coordinator.worker.drain()
    assert (await _load(session_factory, result.operation_id)).status == S.DONE
    assert not coordinator.is_active(result.operation_id)


@pytest.mark.asyncio
async def test_dispatch_returns_future_with_run_result(build_coordinator):
    coordinator = build_coordinator()
    result = await coordinator.submit(
        CreateOperationRequest(operation_type=OperationType.SEND_EMAIL, is_async=True)
    )

    task = coordinator.dispatch(result.operation_id)
    run_result = await task

    assert run_result.operation_id == result.operation_id
    assert run_result.status == S.DONE


@pytest.mark.asyncio
async def test_background_run_of_unknown_operation_is_logged(build_coordinator):
    coordinator = build_coordinator()
    assert await coordinator.dispatch("missing") is None


@pytest.mark.asyncio
async def test_worker_deduplicates_in_flight_operation():
    worker = BackgroundWorker(max_concurrency=2)
    started = asyncio.Event()
    release = asyncio.Event()

    async def job():
        started.set()
        await release.wait()
        return "finished"

    first = worker.submit("op-1", job)
    second = worker.submit("op-1", job)
    assert first is second
    assert "op-1" in worker

    await started.wait()
    release.set()
    assert await first == "finished"
    await worker.drain()
    assert "op-1" not in worker
    assert len(worker) == 0


@pytest.mark.asyncio
async def test_worker_limits_concurrency():
    worker = BackgroundWorker(max_concurrency=2)
    running = 0
    peak = 0

    async def job():
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    for i in range(6):
        worker.submit(f"op-{i}", job)
    await worker.drain()

    assert peak == 2


@pytest.mark.asyncio
async def test_worker_cancel_hook():
    worker = BackgroundWorker()
    release = asyncio.Event()

    async def job():
        await release.wait()

    task = worker.submit("op-1", job)
    await asyncio.sleep(0)

    assert worker.cancel("op-1") is True
    with pytest.raises(asyncio.CancelledError):
        await task
    assert worker.cancel("op-1") is False


@pytest.mark.asyncio
async def test_worker_shutdown_cancels_everything():
    worker = BackgroundWorker()

    async def job():
        await asyncio.sleep(60)

    tasks = [worker.submit(f"op-{i}", job) for i in range(3)]
    await worker.shutdown()

    assert all(task.cancelled() for task in tasks)


@pytest.mark.asyncio
async def test_overlapping_runs_execute_each_channel_once(build_coordinator, session_factory):
    """An explicit run while the worker holds the same operation joins it."""
    email = MockChannelExecutor(ChannelKind.EMAIL, delay_seconds=0.05)
    coordinator = build_coordinator([email])

    submitted = await coordinator.submit(
        CreateOperationRequest(operation_type=OperationType.SEND_EMAIL, is_async=True)
    )
    first, second = await asyncio.gather(
        coordinator.run(submitted.operation_id),
        coordinator.run(submitted.operation_id),
    )
    await coordinator.worker.drain()

    assert first.status == second.status == S.DONE
    assert len(email.calls) == 1
    assert not coordinator.is_active(submitted.operation_id)

    operation = await _load(session_factory, submitted.operation_id)
    assert operation.status == S.DONE
    assert operation.channels[0].attempts == 1
