"""
Mock Channel Executor.

This simulates a channel for testing and demos.
"""
import asyncio
import logging
from typing import Iterable, List, Optional, Union

from core.application.interfaces import ChannelContext, ChannelExecutor, ChannelResult
from core.domain.enums import ChannelKind

logger = logging.getLogger(__name__)

Scripted = Union[ChannelResult, Exception]


class MockChannelExecutor(ChannelExecutor):
    """
    Mock implementation of a channel executor.

    Plays back ``script`` one entry per attempt (a ChannelResult, or an
    exception to raise) and succeeds once the script is exhausted.
    Every context it was called with is kept in ``calls``.
    """

    def __init__(
        self,
        kind: ChannelKind,
        script: Iterable[Scripted] = (),
        delay_seconds: float = 0.0,
    ):
        """
        Initialize mock executor.

        Args:
            kind: Channel served by this executor
            script: Results to return in order
            delay_seconds: Simulated latency per attempt
        """
        self.kind = ChannelKind(kind)
        self.script: List[Scripted] = list(script)
        self.delay_seconds = delay_seconds
        self.calls: List[ChannelContext] = []
        logger.info(f"MockChannelExecutor initialized for '{self.kind.value}' (no real delivery)")

    @classmethod
    def failing(cls, kind: ChannelKind, reason: str, times: Optional[int] = None) -> "MockChannelExecutor":
        """Executor that fails ``times`` attempts (or forever) with ``reason``."""
        if times is None:
            return _AlwaysFailing(kind, reason)
        return cls(kind, [ChannelResult.failure(reason)] * times)

    async def execute(self, ctx: ChannelContext) -> ChannelResult:
        self.calls.append(ctx)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        outcome = self.script.pop(0) if self.script else ChannelResult.success()
        if isinstance(outcome, Exception):
            raise outcome

        logger.info(
            f"[mock {self.kind.value}] operation {ctx.operation_id} attempt {ctx.attempt}: "
            f"{'ok' if outcome.ok else outcome.reason}"
        )
        return outcome


class _AlwaysFailing(MockChannelExecutor):
    def __init__(self, kind: ChannelKind, reason: str):
        super().__init__(kind)
        self.reason = reason

    async def execute(self, ctx: ChannelContext) -> ChannelResult:
        self.calls.append(ctx)
        return ChannelResult.failure(self.reason)
