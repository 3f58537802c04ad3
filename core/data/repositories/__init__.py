"""Repository implementations."""

from .operation_repository_impl import SqlAlchemyChannelRepository, SqlAlchemyOperationRepository

__all__ = ["SqlAlchemyChannelRepository", "SqlAlchemyOperationRepository"]
