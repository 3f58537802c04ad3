"""Mapping between ORM models and domain entities."""

from core.domain.entities import Channel, Operation
from core.domain.enums import ChannelKind, OperationStatus, OperationType

from .models import ChannelModel, OperationModel


def channel_to_entity(model: ChannelModel) -> Channel:
    return Channel(
        id=model.id,
        operation_id=model.operation_id,
        channel=ChannelKind(model.channel),
        status=OperationStatus(model.status),
        error_message=model.error_message,
        attempts=model.attempts,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def operation_to_entity(model: OperationModel, with_channels: bool = False) -> Operation:
    """Convert an operation row; channels are only mapped when eagerly loaded."""
    operation = Operation(
        id=model.id,
        operation_type=OperationType(model.operation_type),
        status=OperationStatus(model.status),
        error_message=model.error_message,
        is_async=bool(model.is_async),
        metadata=model.operation_metadata,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
    if with_channels:
        operation.channels = [channel_to_entity(ch) for ch in model.channels]
    return operation


def operation_to_model(operation: Operation) -> OperationModel:
    return OperationModel(
        id=operation.id,
        operation_type=operation.operation_type.value,
        status=operation.status.value,
        error_message=operation.error_message,
        is_async=operation.is_async,
        operation_metadata=operation.metadata,
        created_at=operation.created_at,
        updated_at=operation.updated_at,
    )


def channel_to_model(channel: Channel) -> ChannelModel:
    return ChannelModel(
        id=channel.id,
        operation_id=channel.operation_id,
        channel=channel.channel.value,
        status=channel.status.value,
        error_message=channel.error_message,
        attempts=channel.attempts,
        created_at=channel.created_at,
        updated_at=channel.updated_at,
    )
