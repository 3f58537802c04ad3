"""Operation endpoints for REST API."""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import FileResponse

from core.application.dtos import (
    CreateOperationRequest,
    CreateOperationResponse,
    OperationDTO,
    OperationListDTO,
)
from core.application.services.operation_service import OperationApplicationService
from core.domain.enums import ChannelKind, OperationStatus, OperationType
from core.infrastructure.adapters.channels.pdf_executor import pdf_output_path

from apps.api.deps import get_operation_service, get_pdf_output_dir

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/operations", tags=["operations"])


@router.post(
    "",
    response_model=CreateOperationResponse,
    status_code=status.HTTP_200_OK,
    responses={201: {"model": CreateOperationResponse, "description": "Accepted for background run"}},
)
async def create_operation(
    request: CreateOperationRequest,
    response: Response,
    service: OperationApplicationService = Depends(get_operation_service),
) -> CreateOperationResponse:
    """Submit an operation.

    Synchronous requests answer 200 with the terminal status. Asynchronous
    requests answer 201 with ``pending`` and run in the background.

    Args:
        request: CreateOperationRequest DTO
        response: Outgoing response, used to set the status code
        service: OperationApplicationService instance

    Returns:
        CreateOperationResponse
    """
    result = await service.create_operation(request)
    if request.is_async:
        response.status_code = status.HTTP_201_CREATED
    return result


@router.get("/{operation_id}", response_model=OperationDTO)
async def get_operation(
    operation_id: str,
    service: OperationApplicationService = Depends(get_operation_service),
) -> OperationDTO:
    """Get an operation with its channels.

    Raises:
        NotFoundError: Mapped to 404 by the application
    """
    return await service.get_operation(operation_id)


@router.get("", response_model=OperationListDTO)
async def list_operations(
    page: int = Query(default=1, ge=1, description="1-based page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    status_filter: Optional[OperationStatus] = Query(default=None, alias="status"),
    operation_type: Optional[OperationType] = Query(default=None),
    service: OperationApplicationService = Depends(get_operation_service),
) -> OperationListDTO:
    """List operations newest first.

    Args:
        page: Page number
        page_size: Maximum number of operations per page
        status_filter: Optional status filter
        operation_type: Optional operation type filter
        service: OperationApplicationService instance

    Returns:
        OperationListDTO
    """
    return await service.list_operations(
        page=page,
        page_size=page_size,
        status=status_filter,
        operation_type=operation_type,
    )


@router.get(
    "/{operation_id}/pdf",
    response_class=FileResponse,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "Rendered document"},
        404: {"description": "Unknown operation, no pdf channel, or file missing"},
        409: {"description": "PDF channel has not finished successfully"},
    },
)
async def download_pdf(
    operation_id: str,
    service: OperationApplicationService = Depends(get_operation_service),
    output_dir: Path = Depends(get_pdf_output_dir),
) -> FileResponse:
    """Download the document rendered by an operation's pdf channel.

    Raises:
        HTTPException: 409 until the pdf channel is done, 404 if the file is gone
    """
    channel = await service.get_channel(operation_id, ChannelKind.PDF)
    if channel.status != OperationStatus.DONE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"PDF not available, channel is {channel.status.value}",
        )

    path = pdf_output_path(output_dir, operation_id)
    if not path.is_file():
        logger.warning(f"PDF channel of operation {operation_id} is done but {path} is missing")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"PDF for operation {operation_id} not found",
        )
    return FileResponse(path, media_type="application/pdf", filename=f"{operation_id}.pdf")
