"""Repository interfaces."""

from .operation_repository import ChannelRepository, OperationRepository

__all__ = ["ChannelRepository", "OperationRepository"]
