"""FastAPI dependencies for dependency injection."""

from pathlib import Path

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.application.services.operation_service import OperationApplicationService
from orchestration.coordinator import ExecutionCoordinator


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Get the session factory created by the application lifespan.

    Returns:
        async_sessionmaker instance
    """
    return request.app.state.session_factory


def get_coordinator(request: Request) -> ExecutionCoordinator:
    """Get the ExecutionCoordinator created by the application lifespan.

    Returns:
        ExecutionCoordinator instance
    """
    return request.app.state.coordinator


def get_operation_service(request: Request) -> OperationApplicationService:
    """Get OperationApplicationService instance.

    Returns:
        OperationApplicationService instance
    """
    return OperationApplicationService(
        get_session_factory(request),
        get_coordinator(request),
    )


def get_pdf_output_dir(request: Request) -> Path:
    """Directory the PDF channel writes rendered documents to."""
    return request.app.state.pdf_output_dir
