"""Application DTOs for Operation requests and responses."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.domain.entities import Channel, Operation
from core.domain.enums import ChannelKind, OperationStatus, OperationType
from core.domain.value_objects import Page


class CreateOperationRequest(BaseModel):
    """Request DTO for submitting an operation."""

    operation_type: OperationType = Field(..., description="Kind of work to perform")
    channels: List[ChannelKind] = Field(
        default_factory=list,
        description="Delivery targets; empty means the type's single implicit channel",
    )
    is_async: bool = Field(default=False, description="Run in the background and return immediately")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Opaque payload passed to executors")

    model_config = {"frozen": True}


class CreateOperationResponse(BaseModel):
    """Response DTO for a submitted operation."""

    id: str = Field(..., description="Operation id")
    status: OperationStatus = Field(..., description="Terminal status (sync) or pending (async)")
    error_message: Optional[str] = Field(None, description="Aggregated failure reason")
    message: str = Field(..., description="Human readable summary")

    model_config = {"frozen": True}


class ChannelDTO(BaseModel):
    """DTO for one channel of an operation."""

    id: str
    channel: ChannelKind
    status: OperationStatus
    error_message: Optional[str] = None
    attempts: int = Field(..., ge=0)
    created_at: datetime
    updated_at: datetime

    model_config = {"frozen": True}

    @classmethod
    def from_entity(cls, channel: Channel) -> "ChannelDTO":
        return cls(
            id=channel.id,
            channel=channel.channel,
            status=channel.status,
            error_message=channel.error_message,
            attempts=channel.attempts,
            created_at=channel.created_at,
            updated_at=channel.updated_at,
        )


class OperationDTO(BaseModel):
    """Response DTO for operation details."""

    id: str
    operation_type: OperationType
    status: OperationStatus
    error_message: Optional[str] = None
    is_async: bool
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime
    channels: List[ChannelDTO] = Field(default_factory=list)

    model_config = {"frozen": True}

    @classmethod
    def from_entity(cls, operation: Operation) -> "OperationDTO":
        return cls(
            id=operation.id,
            operation_type=operation.operation_type,
            status=operation.status,
            error_message=operation.error_message,
            is_async=operation.is_async,
            metadata=operation.metadata,
            created_at=operation.created_at,
            updated_at=operation.updated_at,
            channels=[ChannelDTO.from_entity(ch) for ch in operation.channels],
        )


class OperationListDTO(BaseModel):
    """DTO for one page of operations."""

    total: int = Field(..., ge=0, description="Total matching operations")
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    pages: int = Field(0, ge=0, description="Total number of pages")
    items: List[OperationDTO] = Field(default_factory=list)

    model_config = {"frozen": True}

    @classmethod
    def from_page(cls, page: Page[Operation]) -> "OperationListDTO":
        return cls(
            total=page.total,
            page=page.page,
            page_size=page.page_size,
            pages=page.pages,
            items=[OperationDTO.from_entity(op) for op in page.items],
        )
