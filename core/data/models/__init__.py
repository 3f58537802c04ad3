"""Database models."""

from .base import Base
from .operation_model import ChannelModel, OperationModel

__all__ = ["Base", "ChannelModel", "OperationModel"]
