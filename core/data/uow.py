"""Unit of Work pattern for atomic transactions."""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.domain.exceptions import StoreError

from .repositories import SqlAlchemyChannelRepository, SqlAlchemyOperationRepository

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Unit of Work pattern for atomic transactions.

    Responsibilities:
    1. Manage SQLAlchemy session lifecycle
    2. Atomic commit/rollback of all repository operations
    3. Lazy initialization of repositories
    4. Translate driver failures into StoreError

    Usage:
        async with create_uow(session_factory) as uow:
            await uow.operations.update_status(op_id, OperationStatus.RUNNING)
            await uow.commit()
    """

    def __init__(self, session_factory: async_sessionmaker) -> None:
        """Initialize Unit of Work.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

        # Lazy-loaded repositories
        self._operations: Optional[SqlAlchemyOperationRepository] = None
        self._channels: Optional[SqlAlchemyChannelRepository] = None

    async def __aenter__(self) -> "UnitOfWork":
        """Start transaction scope."""
        try:
            self._session = self._session_factory()
        except SQLAlchemyError as exc:
            raise StoreError(f"Could not open session: {exc}") from exc
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Rollback on exception, always close the session."""
        try:
            if exc_type is not None:
                await self._session.rollback()
        except SQLAlchemyError as exc:
            logger.error(f"Rollback failed: {exc}")
        finally:
            await self._session.close()

        if exc_type is not None and issubclass(exc_type, SQLAlchemyError):
            logger.error(f"Transaction failed: {exc_val}")
            raise StoreError(str(exc_val)) from exc_val
        return False

    def _require_session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("UnitOfWork not initialized. Use async context manager.")
        return self._session

    @property
    def operations(self) -> SqlAlchemyOperationRepository:
        """Lazy-load operation repository."""
        if self._operations is None:
            self._operations = SqlAlchemyOperationRepository(self._require_session())
        return self._operations

    @property
    def channels(self) -> SqlAlchemyChannelRepository:
        """Lazy-load channel repository."""
        if self._channels is None:
            self._channels = SqlAlchemyChannelRepository(self._require_session())
        return self._channels

    async def commit(self) -> None:
        """Commit all pending changes."""
        try:
            await self._require_session().commit()
        except SQLAlchemyError as exc:
            logger.error(f"Commit failed: {exc}")
            await self.rollback()
            raise StoreError(f"Commit failed: {exc}") from exc

    async def rollback(self) -> None:
        """Rollback all pending changes."""
        await self._require_session().rollback()


def create_uow(session_factory: async_sessionmaker) -> UnitOfWork:
    """Create a new Unit of Work instance.

    Args:
        session_factory: SQLAlchemy async session factory

    Returns:
        UnitOfWork instance
    """
    return UnitOfWork(session_factory)
