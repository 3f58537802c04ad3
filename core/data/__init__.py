"""Data layer - infrastructure persistence and mapping."""

from .models import Base, ChannelModel, OperationModel
from .repositories import SqlAlchemyChannelRepository, SqlAlchemyOperationRepository
from .uow import UnitOfWork, create_uow

__all__ = [
    "Base",
    "ChannelModel",
    "create_uow",
    "OperationModel",
    "SqlAlchemyChannelRepository",
    "SqlAlchemyOperationRepository",
    "UnitOfWork",
]
