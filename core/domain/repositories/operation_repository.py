"""Repository interfaces for the Operation aggregate."""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..entities import Channel, Operation
from ..enums import OperationStatus, OperationType
from ..value_objects import Page, PageRequest


class OperationRepository(ABC):
    """Durable table of operations keyed by identifier."""

    @abstractmethod
    async def create(self, operation: Operation) -> str:
        """Persist a new operation (without its channels).

        Args:
            operation: Operation in pending state

        Returns:
            Operation id
        """
        pass

    @abstractmethod
    async def get(self, operation_id: str) -> Operation:
        """Retrieve an operation by id.

        Raises:
            NotFoundError: If no such operation exists
        """
        pass

    @abstractmethod
    async def update_status(
        self,
        operation_id: str,
        status: OperationStatus,
        error_message: Optional[str] = None,
    ) -> Operation:
        """Atomically move an operation to ``status`` and bump ``updated_at``.

        Raises:
            NotFoundError: If no such operation exists
            ConflictError: If the current status does not allow the move
        """
        pass

    @abstractmethod
    async def list(
        self,
        page_request: PageRequest,
        status: Optional[OperationStatus] = None,
        operation_type: Optional[OperationType] = None,
    ) -> Page[Operation]:
        """List operations newest first.

        Args:
            page_request: Page number and size
            status: Optional status filter
            operation_type: Optional type filter

        Returns:
            One page of operations
        """
        pass

    @abstractmethod
    async def list_unsettled(self) -> List[str]:
        """Ids of non-terminal operations none of whose channels is still active.

        Such an operation only lacks its final status recomputation, which a
        crash or a store failure between the last channel write and the
        recomputation can leave undone.
        """
        pass


class ChannelRepository(ABC):
    """Durable table of per-channel sub-tasks."""

    @abstractmethod
    async def create_channel(self, channel: Channel) -> str:
        """Persist a new channel linked to an existing operation."""
        pass

    @abstractmethod
    async def get_channel(self, channel_id: str) -> Channel:
        """Retrieve a channel by id.

        Raises:
            NotFoundError: If no such channel exists
        """
        pass

    @abstractmethod
    async def list_for_operation(self, operation_id: str) -> List[Channel]:
        """All channels of an operation in creation order."""
        pass

    @abstractmethod
    async def update_status(
        self,
        channel_id: str,
        status: OperationStatus,
        error_message: Optional[str] = None,
        increment_attempts: bool = False,
    ) -> Channel:
        """Atomically move a channel to ``status``.

        When ``increment_attempts`` is set the attempt counter is advanced in
        the same write.

        Raises:
            NotFoundError: If no such channel exists
            ConflictError: If the current status does not allow the move
        """
        pass

    @abstractmethod
    async def list_recoverable(self) -> List[Channel]:
        """Non-terminal channels whose operation is not terminal, oldest first."""
        pass
