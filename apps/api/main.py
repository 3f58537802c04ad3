"""FastAPI application main entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.domain.exceptions import ConflictError, NotFoundError, StoreError, ValidationError
from core.infrastructure.adapters.channels import build_registry
from core.infrastructure.database.lifecycle import build_engine, build_session_factory, create_schema
from core.settings.modules.app_settings import AppSettings, get_app_settings
from opflow_sdk.logging import configure_logging
from orchestration import ExecutorRegistry, RetryScheduler, create_default_coordinator

from apps.api.v1.endpoints import operations

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_PROJECT_ROOT / ".env")

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[AppSettings] = None,
    registry: Optional[ExecutorRegistry] = None,
) -> FastAPI:
    """Build the API application.

    Args:
        settings: Application settings (defaults to get_app_settings())
        registry: Executor registry (defaults to one built from channel settings)

    Returns:
        FastAPI application
    """
    settings = settings or get_app_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.engine.log_level)

        engine = build_engine(settings.database)
        await create_schema(engine)
        session_factory = build_session_factory(engine)

        coordinator = create_default_coordinator(
            session_factory,
            registry or build_registry(settings.channels),
            settings.engine,
        )
        scheduler = RetryScheduler(
            session_factory,
            coordinator.retry_policy,
            coordinator,
            stale_after_seconds=settings.engine.stale_after_seconds,
        )
        recovery = asyncio.create_task(
            scheduler.run_forever(settings.engine.recovery_interval_seconds)
        )

        app.state.session_factory = session_factory
        app.state.coordinator = coordinator
        app.state.scheduler = scheduler
        app.state.pdf_output_dir = Path(settings.channels.pdf.output_dir)
        logger.info("Operation engine started")

        try:
            yield
        finally:
            scheduler.stop()
            await recovery
            await coordinator.worker.shutdown()
            await engine.dispose()
            logger.info("Operation engine stopped")

    app = FastAPI(
        title="opflow API",
        description="Operation & Channel Orchestration Engine",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.include_router(operations.router, prefix="/api/v1")

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_errors(exc)},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(f"Store unavailable on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Store unavailable, retry later"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint.

        Returns:
            Health status
        """
        return {"status": "healthy"}

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Request validation errors without the non-serialisable context."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
