"""Application service for Operation requests and queries."""

from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.application.dtos import (
    ChannelDTO,
    CreateOperationRequest,
    CreateOperationResponse,
    OperationDTO,
    OperationListDTO,
)
from core.data.uow import create_uow
from core.domain.enums import ChannelKind, OperationStatus, OperationType
from core.domain.exceptions import NotFoundError
from core.domain.value_objects import PageRequest
from orchestration.coordinator import ExecutionCoordinator


class OperationApplicationService:
    """
    Application service for submitting and querying operations.

    Responsibilities:
    - Hand new operations to the ExecutionCoordinator
    - Read operations and channels through the UoW
    - Transform between domain entities and DTOs
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        coordinator: ExecutionCoordinator,
    ) -> None:
        """Initialize operation application service.

        Args:
            session_factory: SQLAlchemy async session factory
            coordinator: Coordinator that runs submitted operations
        """
        self._session_factory = session_factory
        self._coordinator = coordinator

    async def create_operation(self, request: CreateOperationRequest) -> CreateOperationResponse:
        """Submit a new operation.

        Args:
            request: CreateOperationRequest DTO

        Returns:
            Terminal status for synchronous requests, pending for asynchronous ones
        """
        result = await self._coordinator.submit(request)

        if result.status == OperationStatus.PENDING:
            message = "Operation accepted"
        elif result.status == OperationStatus.DONE:
            message = "Operation completed"
        else:
            message = "Operation failed"

        return CreateOperationResponse(
            id=result.operation_id,
            status=result.status,
            error_message=result.error_message,
            message=message,
        )

    async def get_operation(self, operation_id: str) -> OperationDTO:
        """Get an operation and its channels.

        Raises:
            NotFoundError: Unknown operation id
        """
        async with create_uow(self._session_factory) as uow:
            operation = await uow.operations.get(operation_id)
            return OperationDTO.from_entity(operation)

    async def get_channel(self, operation_id: str, kind: ChannelKind) -> ChannelDTO:
        """Get the channel of ``kind`` that belongs to an operation.

        Raises:
            NotFoundError: Unknown operation id, or no such channel on it
        """
        async with create_uow(self._session_factory) as uow:
            operation = await uow.operations.get(operation_id)

        for channel in operation.channels:
            if channel.channel == kind:
                return ChannelDTO.from_entity(channel)
        raise NotFoundError(f"{kind.value} channel of operation", operation_id)

    async def list_operations(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[OperationStatus] = None,
        operation_type: Optional[OperationType] = None,
    ) -> OperationListDTO:
        """List operations newest first.

        Args:
            page: 1-based page number
            page_size: Items per page
            status: Optional status filter
            operation_type: Optional type filter

        Returns:
            OperationListDTO (items are returned without channels)
        """
        page_request = PageRequest(page=page, page_size=page_size)
        async with create_uow(self._session_factory) as uow:
            result = await uow.operations.list(
                page_request, status=status, operation_type=operation_type
            )
            return OperationListDTO.from_page(result)
