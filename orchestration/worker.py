"""Background worker - runs operations as asyncio tasks with bounded concurrency."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import partial

from opflow_sdk.logging import get_logger

Job = Callable[[], Awaitable[object]]


class BackgroundWorker:
    """In-process pool of asyncio tasks, one per operation.

    At most ``max_concurrency`` jobs execute at once; the rest wait on a
    semaphore. Submitting an operation that is already in flight returns
    the existing task.
    """

    def __init__(self, max_concurrency: int = 8) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: dict[str, asyncio.Task] = {}
        self._logger = get_logger("orchestration.worker")

    def submit(self, operation_id: str, job: Job) -> asyncio.Task:
        """Schedule ``job`` for ``operation_id``.

        Must be called from a running event loop.

        Returns:
            Task that completes with the job's result
        """
        existing = self._tasks.get(operation_id)
        if existing is not None and not existing.done():
            return existing

        task = asyncio.create_task(self._run(job), name=f"operation-{operation_id}")
        self._tasks[operation_id] = task
        task.add_done_callback(partial(self._on_done, operation_id))
        self._logger.debug(f"Queued operation {operation_id}")
        return task

    async def _run(self, job: Job) -> object:
        async with self._semaphore:
            return await job()

    def _on_done(self, operation_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(operation_id) is task:
            del self._tasks[operation_id]

        if task.cancelled():
            self._logger.info(f"Operation {operation_id} cancelled")
            return

        exc = task.exception()
        if exc is not None:
            self._logger.error(
                f"Background run of operation {operation_id} crashed: {exc}",
                exc_info=exc,
            )

    def __contains__(self, operation_id: object) -> bool:
        task = self._tasks.get(operation_id)
        return task is not None and not task.done()

    def __len__(self) -> int:
        return len(self._tasks)

    def cancel(self, operation_id: str) -> bool:
        """Cancel the in-flight task for ``operation_id``.

        Persisted state is left as is; the recovery scan picks it up later.

        Returns:
            True if a running task was cancelled
        """
        task = self._tasks.get(operation_id)
        if task is None or task.done():
            return False
        return task.cancel()

    async def drain(self) -> None:
        """Wait until every submitted task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel all in-flight tasks and wait for them to unwind."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._logger.info(f"Worker stopped ({len(tasks)} task(s) cancelled)")
