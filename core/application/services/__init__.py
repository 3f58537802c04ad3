"""Application services."""
from .operation_service import OperationApplicationService

__all__ = ["OperationApplicationService"]
