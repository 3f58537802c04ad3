"""Tests for EventBus."""

from datetime import datetime, timezone

import pytest

from orchestration.bus import InMemoryEventBus
from orchestration.events import Event, EventMetadata


def _event(name: str = "operation.started") -> Event:
    metadata = EventMetadata(
        operation_id="op-test-123",
        operation_type="send_email",
        timestamp=datetime.now(timezone.utc),
    )
    return Event(name=name, payload={"channels": ["email"]}, metadata=metadata)


@pytest.mark.asyncio
async def test_event_bus_subscribe_and_publish():
    """Test subscribing and publishing events."""
    bus = InMemoryEventBus()

    events_received: list[Event] = []

    async def handler(event: Event) -> None:
        events_received.append(event)

    bus.subscribe("operation.started", handler)
    await bus.publish(_event())

    assert len(events_received) == 1
    assert events_received[0].name == "operation.started"
    assert events_received[0].payload == {"channels": ["email"]}
    assert events_received[0].metadata.operation_id == "op-test-123"
    assert events_received[0].metadata.channel_id is None


@pytest.mark.asyncio
async def test_event_bus_multiple_handlers():
    """Test multiple handlers for the same event."""
    bus = InMemoryEventBus()

    events_1: list[Event] = []
    events_2: list[Event] = []

    async def handler1(event: Event) -> None:
        events_1.append(event)

    async def handler2(event: Event) -> None:
        events_2.append(event)

    bus.subscribe("operation.started", handler1)
    bus.subscribe("operation.started", handler2)

    await bus.publish(_event())

    assert len(events_1) == 1
    assert len(events_2) == 1


@pytest.mark.asyncio
async def test_event_bus_wildcard_and_unrelated_events():
    """Wildcard handlers see everything, named handlers only their event."""
    bus = InMemoryEventBus()
    seen_all: list[str] = []
    seen_started: list[str] = []

    async def all_handler(event: Event) -> None:
        seen_all.append(event.name)

    async def started_handler(event: Event) -> None:
        seen_started.append(event.name)

    bus.subscribe("*", all_handler)
    bus.subscribe("operation.started", started_handler)

    await bus.publish(_event("operation.started"))
    await bus.publish(_event("operation.finished"))

    assert seen_all == ["operation.started", "operation.finished"]
    assert seen_started == ["operation.started"]


@pytest.mark.asyncio
async def test_event_bus_handler_error_does_not_propagate():
    """A failing handler is logged and the next handler still runs."""
    bus = InMemoryEventBus()
    received: list[Event] = []

    async def broken(event: Event) -> None:
        raise RuntimeError("subscriber bug")

    async def healthy(event: Event) -> None:
        received.append(event)

    bus.subscribe("operation.started", broken)
    bus.subscribe("operation.started", healthy)

    await bus.publish(_event())

    assert len(received) == 1


@pytest.mark.asyncio
async def test_event_bus_no_handlers():
    """Publishing with no subscribers is a no-op."""
    bus = InMemoryEventBus()
    await bus.publish(_event())
