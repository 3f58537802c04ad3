"""
Operation and Channel state machine.

Pure transition rules and the aggregation policy that derives an
operation's status from its channels. No I/O happens here; the store uses
``allowed_sources`` to build its compare-and-set predicate.

Transitions:
    operation: pending -> running | failed, running -> done | failed
    channel:   pending -> running, running -> running | pending | done | failed

``running -> pending`` re-queues a channel for a retry. ``running -> running``
re-claims an attempt that a crashed process never finished applying.
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional

from .entities import Channel
from .enums import OperationStatus
from .exceptions import ConflictError

OPERATION = "operation"
CHANNEL = "channel"

_S = OperationStatus

OPERATION_TRANSITIONS: Dict[OperationStatus, FrozenSet[OperationStatus]] = {
    _S.PENDING: frozenset({_S.RUNNING, _S.FAILED}),
    _S.RUNNING: frozenset({_S.DONE, _S.FAILED}),
    _S.DONE: frozenset(),
    _S.FAILED: frozenset(),
}

CHANNEL_TRANSITIONS: Dict[OperationStatus, FrozenSet[OperationStatus]] = {
    _S.PENDING: frozenset({_S.RUNNING}),
    _S.RUNNING: frozenset({_S.RUNNING, _S.PENDING, _S.DONE, _S.FAILED}),
    _S.DONE: frozenset(),
    _S.FAILED: frozenset(),
}

_TABLES = {OPERATION: OPERATION_TRANSITIONS, CHANNEL: CHANNEL_TRANSITIONS}


def is_terminal(status: OperationStatus) -> bool:
    return OperationStatus(status).is_terminal


def can_transition(entity: str, current: OperationStatus, target: OperationStatus) -> bool:
    """Return True if ``entity`` may move from ``current`` to ``target``."""
    return OperationStatus(target) in _TABLES[entity][OperationStatus(current)]


def allowed_sources(entity: str, target: OperationStatus) -> FrozenSet[OperationStatus]:
    """All statuses from which ``target`` is reachable in one step."""
    target = OperationStatus(target)
    return frozenset(
        source for source, targets in _TABLES[entity].items() if target in targets
    )


def validate_transition(
    entity: str,
    current: OperationStatus,
    target: OperationStatus,
    entity_id: str = "",
) -> None:
    """
    Check a single transition.

    Raises:
        ConflictError: If ``current`` is terminal or the edge is not allowed
    """
    if not can_transition(entity, current, target):
        raise ConflictError(
            entity, entity_id, OperationStatus(current).value, OperationStatus(target).value
        )


@dataclass(frozen=True)
class Aggregate:
    """Operation-level status derived from its channels."""

    status: OperationStatus
    error_message: Optional[str] = None


def aggregate(channels: Iterable[Channel], started: bool) -> Optional[Aggregate]:
    """
    Derive the operation status from its channels.

    - any channel pending/running: running if started, else pending
    - all channels done: done
    - otherwise failed, with the failed channels' errors joined as
      ``"<kind>: <error>"`` in the given order, separated by ``"; "``

    Args:
        channels: Latest persisted channel states
        started: Whether the operation has already left pending

    Returns:
        Aggregate, or None for an operation without channels
    """
    channels = list(channels)
    if not channels:
        return None

    if any(not is_terminal(ch.status) for ch in channels):
        return Aggregate(_S.RUNNING if started else _S.PENDING)

    failed = [ch for ch in channels if ch.status == _S.FAILED]
    if not failed:
        return Aggregate(_S.DONE)

    message = "; ".join(
        f"{ch.channel.value}: {ch.error_message or 'unknown error'}" for ch in failed
    )
    return Aggregate(_S.FAILED, message)
