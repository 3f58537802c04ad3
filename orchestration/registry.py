"""Executor registry - maps channel tags to executors."""

from collections.abc import Iterable

from core.application.interfaces import ChannelExecutor
from core.domain.enums import ChannelKind
from core.domain.exceptions import ValidationError
from opflow_sdk.logging import get_logger


class ExecutorRegistry:
    """Registry of channel executors keyed by ChannelKind.

    New channel kinds are added by registering an executor; the state
    machine never needs to know about them.
    """

    def __init__(self, executors: Iterable[ChannelExecutor] = ()) -> None:
        self._executors: dict[ChannelKind, ChannelExecutor] = {}
        self._logger = get_logger("orchestration.registry")
        for executor in executors:
            self.register(executor)

    def register(self, executor: ChannelExecutor) -> None:
        """Register (or replace) the executor for ``executor.kind``."""
        kind = ChannelKind(executor.kind)
        if kind in self._executors:
            self._logger.warning(f"Replacing executor for channel '{kind.value}'")
        self._executors[kind] = executor

    def get(self, kind: ChannelKind) -> ChannelExecutor:
        """Return the executor for ``kind``.

        Raises:
            ValidationError: If no executor is registered for ``kind``
        """
        try:
            return self._executors[ChannelKind(kind)]
        except (KeyError, ValueError):
            raise ValidationError(f"Unsupported channel: {kind}") from None

    def kinds(self) -> list[ChannelKind]:
        return list(self._executors)

    def __contains__(self, kind: object) -> bool:
        try:
            return ChannelKind(kind) in self._executors
        except ValueError:
            return False
