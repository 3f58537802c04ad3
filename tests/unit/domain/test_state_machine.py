"""Tests for the state machine and channel aggregation."""

import pytest

from core.domain import state_machine
from core.domain.entities import Channel, Operation
from core.domain.enums import ChannelKind, OperationStatus, OperationType
from core.domain.exceptions import ConflictError

S = OperationStatus


def _channel(kind: ChannelKind, status: OperationStatus, error: str | None = None) -> Channel:
    return Channel(operation_id="op-1", channel=kind, status=status, error_message=error)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PENDING, S.RUNNING),
        (S.PENDING, S.FAILED),
        (S.RUNNING, S.DONE),
        (S.RUNNING, S.FAILED),
    ],
)
def test_operation_allowed_transitions(current, target):
    assert state_machine.can_transition(state_machine.OPERATION, current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.PENDING, S.DONE),
        (S.RUNNING, S.PENDING),
        (S.DONE, S.FAILED),
        (S.FAILED, S.RUNNING),
        (S.DONE, S.DONE),
    ],
)
def test_operation_rejected_transitions(current, target):
    assert not state_machine.can_transition(state_machine.OPERATION, current, target)
    with pytest.raises(ConflictError):
        state_machine.validate_transition(state_machine.OPERATION, current, target, "op-1")


def test_channel_can_requeue_and_reclaim():
    """running -> pending is a retry, running -> running a re-claim after a crash."""
    assert state_machine.can_transition(state_machine.CHANNEL, S.RUNNING, S.PENDING)
    assert state_machine.can_transition(state_machine.CHANNEL, S.RUNNING, S.RUNNING)
    assert not state_machine.can_transition(state_machine.CHANNEL, S.PENDING, S.DONE)


@pytest.mark.parametrize("terminal", [S.DONE, S.FAILED])
def test_terminal_states_have_no_exits(terminal):
    assert state_machine.is_terminal(terminal)
    for target in S:
        assert not state_machine.can_transition(state_machine.CHANNEL, terminal, target)
        assert not state_machine.can_transition(state_machine.OPERATION, terminal, target)


def test_allowed_sources_for_channel_running():
    assert state_machine.allowed_sources(state_machine.CHANNEL, S.RUNNING) == {S.PENDING, S.RUNNING}


def test_conflict_error_carries_states():
    with pytest.raises(ConflictError) as exc_info:
        state_machine.validate_transition(state_machine.OPERATION, S.DONE, S.FAILED, "op-9")
    assert exc_info.value.current == "done"
    assert exc_info.value.target == "failed"
    assert "op-9" in str(exc_info.value)


def test_aggregate_all_done():
    channels = [_channel(ChannelKind.EMAIL, S.DONE), _channel(ChannelKind.SMS, S.DONE)]
    assert state_machine.aggregate(channels, started=True) == state_machine.Aggregate(S.DONE)


def test_aggregate_stays_running_while_any_channel_active():
    channels = [_channel(ChannelKind.EMAIL, S.FAILED, "smtp down"), _channel(ChannelKind.SMS, S.PENDING)]
    assert state_machine.aggregate(channels, started=True).status == S.RUNNING
    assert state_machine.aggregate(channels, started=False).status == S.PENDING


def test_aggregate_failed_concatenates_errors_in_order():
    channels = [
        _channel(ChannelKind.EMAIL, S.FAILED, "smtp down"),
        _channel(ChannelKind.WHATSAPP, S.DONE),
        _channel(ChannelKind.SMS, S.FAILED, "gateway 502"),
    ]
    result = state_machine.aggregate(channels, started=True)
    assert result.status == S.FAILED
    assert result.error_message == "email: smtp down; sms: gateway 502"


def test_aggregate_without_channels():
    assert state_machine.aggregate([], started=True) is None


@pytest.mark.parametrize(
    "operation_type,expected",
    [
        (OperationType.SEND_EMAIL, ChannelKind.EMAIL),
        (OperationType.GENERATE_PDF, ChannelKind.PDF),
        (OperationType.SEND_NOTIFICATION, ChannelKind.EMAIL),
    ],
)
def test_empty_target_list_creates_implicit_channel(operation_type, expected):
    operation = Operation.create(operation_type, targets=[])
    assert [ch.channel for ch in operation.channels] == [expected]
    assert operation.channels[0].operation_id == operation.id
    assert operation.status == S.PENDING


def test_create_keeps_target_order():
    operation = Operation.create(
        OperationType.SEND_NOTIFICATION,
        targets=[ChannelKind.SMS, ChannelKind.EMAIL],
        is_async=True,
    )
    assert [ch.channel for ch in operation.channels] == [ChannelKind.SMS, ChannelKind.EMAIL]
    assert all(ch.attempts == 0 and ch.status == S.PENDING for ch in operation.channels)
    assert operation.is_async
