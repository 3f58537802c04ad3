"""Application DTOs."""

from .operation_dto import (
    ChannelDTO,
    CreateOperationRequest,
    CreateOperationResponse,
    OperationDTO,
    OperationListDTO,
)

__all__ = [
    "ChannelDTO",
    "CreateOperationRequest",
    "CreateOperationResponse",
    "OperationDTO",
    "OperationListDTO",
]
