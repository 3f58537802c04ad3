"""
SQLAlchemy Operation and Channel repositories.

Every status change is a single UPDATE guarded by the set of statuses the
state machine allows as a source, so concurrent writers cannot interleave
partial updates or move a record out of a terminal state.
"""
import logging
from typing import List, Optional

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.domain import state_machine
from core.domain.entities import Channel, Operation
from core.domain.enums import OperationStatus, OperationType
from core.domain.enums.operation_status import ACTIVE_STATUSES
from core.domain.exceptions import ConflictError, NotFoundError
from core.domain.repositories import ChannelRepository, OperationRepository
from core.domain.value_objects import Page, PageRequest
from opflow_sdk.utils.datetime import utc_now

from ..mappers import (
    channel_to_entity,
    channel_to_model,
    operation_to_entity,
    operation_to_model,
)
from ..models import ChannelModel, OperationModel

logger = logging.getLogger(__name__)

_ACTIVE = [status.value for status in ACTIVE_STATUSES]


def _sources(entity: str, target: OperationStatus) -> List[str]:
    return [status.value for status in state_machine.allowed_sources(entity, target)]


class SqlAlchemyOperationRepository(OperationRepository):
    """
    SQLAlchemy implementation of OperationRepository.

    Commit is handled by the Unit of Work.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self._session = session

    async def create(self, operation: Operation) -> str:
        self._session.add(operation_to_model(operation))
        await self._session.flush()
        logger.debug(f"Created operation {operation.id} ({operation.operation_type.value})")
        return operation.id

    async def get(self, operation_id: str) -> Operation:
        result = await self._session.execute(
            select(OperationModel)
            .options(selectinload(OperationModel.channels))
            .where(OperationModel.id == operation_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            raise NotFoundError("operation", operation_id)
        return operation_to_entity(model, with_channels=True)

    async def update_status(
        self,
        operation_id: str,
        status: OperationStatus,
        error_message: Optional[str] = None,
    ) -> Operation:
        status = OperationStatus(status)
        result = await self._session.execute(
            update(OperationModel)
            .where(
                and_(
                    OperationModel.id == operation_id,
                    OperationModel.status.in_(_sources(state_machine.OPERATION, status)),
                )
            )
            .values(
                status=status.value,
                error_message=error_message if status == OperationStatus.FAILED else None,
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            current = await self.get(operation_id)
            state_machine.validate_transition(
                state_machine.OPERATION, current.status, status, operation_id
            )
            # Legal edge, so the row changed between the write and the read
            raise ConflictError("operation", operation_id, current.status.value, status.value)

        logger.info(f"Operation {operation_id} -> {status.value}")
        return await self.get(operation_id)

    async def list(
        self,
        page_request: PageRequest,
        status: Optional[OperationStatus] = None,
        operation_type: Optional[OperationType] = None,
    ) -> Page[Operation]:
        filters = []
        if status is not None:
            filters.append(OperationModel.status == OperationStatus(status).value)
        if operation_type is not None:
            filters.append(OperationModel.operation_type == OperationType(operation_type).value)

        count_query = select(func.count()).select_from(OperationModel)
        query = select(OperationModel)
        if filters:
            count_query = count_query.where(and_(*filters))
            query = query.where(and_(*filters))

        total = (await self._session.execute(count_query)).scalar_one()

        result = await self._session.execute(
            query.order_by(OperationModel.created_at.desc(), OperationModel.id.desc())
            .limit(page_request.page_size)
            .offset(page_request.offset)
        )
        items = [operation_to_entity(model) for model in result.scalars().all()]

        return Page(
            items=items,
            total=total,
            page=page_request.page,
            page_size=page_request.page_size,
        )

    async def list_unsettled(self) -> List[str]:
        active_channel = (
            select(ChannelModel.id)
            .where(
                and_(
                    ChannelModel.operation_id == OperationModel.id,
                    ChannelModel.status.in_(_ACTIVE),
                )
            )
            .exists()
        )
        result = await self._session.execute(
            select(OperationModel.id)
            .where(and_(OperationModel.status.in_(_ACTIVE), ~active_channel))
            .order_by(OperationModel.updated_at, OperationModel.id)
        )
        return list(result.scalars().all())


class SqlAlchemyChannelRepository(ChannelRepository):
    """SQLAlchemy implementation of ChannelRepository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self._session = session

    async def create_channel(self, channel: Channel) -> str:
        exists = await self._session.execute(
            select(OperationModel.id).where(OperationModel.id == channel.operation_id)
        )
        if exists.scalar_one_or_none() is None:
            raise NotFoundError("operation", channel.operation_id)

        self._session.add(channel_to_model(channel))
        await self._session.flush()
        return channel.id

    async def get_channel(self, channel_id: str) -> Channel:
        result = await self._session.execute(
            select(ChannelModel)
            .where(ChannelModel.id == channel_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        if model is None:
            raise NotFoundError("channel", channel_id)
        return channel_to_entity(model)

    async def list_for_operation(self, operation_id: str) -> List[Channel]:
        result = await self._session.execute(
            select(ChannelModel)
            .where(ChannelModel.operation_id == operation_id)
            .order_by(ChannelModel.created_at, ChannelModel.id)
            .execution_options(populate_existing=True)
        )
        return [channel_to_entity(model) for model in result.scalars().all()]

    async def update_status(
        self,
        channel_id: str,
        status: OperationStatus,
        error_message: Optional[str] = None,
        increment_attempts: bool = False,
    ) -> Channel:
        status = OperationStatus(status)
        values = {"status": status.value, "updated_at": utc_now()}
        if error_message is not None:
            # Last failure reason is kept across retries
            values["error_message"] = error_message
        if increment_attempts:
            values["attempts"] = ChannelModel.attempts + 1

        result = await self._session.execute(
            update(ChannelModel)
            .where(
                and_(
                    ChannelModel.id == channel_id,
                    ChannelModel.status.in_(_sources(state_machine.CHANNEL, status)),
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            current = await self.get_channel(channel_id)
            state_machine.validate_transition(
                state_machine.CHANNEL, current.status, status, channel_id
            )
            # Legal edge, so the row changed between the write and the read
            raise ConflictError("channel", channel_id, current.status.value, status.value)

        return await self.get_channel(channel_id)

    async def list_recoverable(self) -> List[Channel]:
        result = await self._session.execute(
            select(ChannelModel)
            .join(OperationModel, OperationModel.id == ChannelModel.operation_id)
            .where(
                and_(
                    ChannelModel.status.in_(_ACTIVE),
                    OperationModel.status.in_(_ACTIVE),
                )
            )
            .order_by(ChannelModel.updated_at, ChannelModel.id)
        )
        return [channel_to_entity(model) for model in result.scalars().all()]
