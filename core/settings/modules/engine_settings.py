from __future__ import annotations

from pydantic import Field, model_validator

from core.settings.base_settings import OpflowBaseSettings


class EngineSettings(OpflowBaseSettings):
    """
    Retry policy, worker pool and recovery loop settings.
    """

    max_attempts: int = Field(3, ge=1, alias="OPFLOW_MAX_ATTEMPTS")
    backoff_seconds: float = Field(1.0, ge=0, alias="OPFLOW_BACKOFF_SECONDS")
    backoff_multiplier: float = Field(2.0, ge=1.0, alias="OPFLOW_BACKOFF_MULTIPLIER")
    max_backoff_seconds: float = Field(60.0, ge=0, alias="OPFLOW_MAX_BACKOFF_SECONDS")
    worker_concurrency: int = Field(8, ge=1, alias="OPFLOW_WORKER_CONCURRENCY")
    recovery_interval_seconds: float = Field(15.0, gt=0, alias="OPFLOW_RECOVERY_INTERVAL")
    stale_after_seconds: float = Field(300.0, gt=0, alias="OPFLOW_STALE_AFTER_SECONDS")
    log_level: str = Field("INFO", alias="OPFLOW_LOG_LEVEL")

    @model_validator(mode="after")
    def _backoff_cap(self) -> "EngineSettings":
        if self.max_backoff_seconds < self.backoff_seconds:
            raise ValueError("OPFLOW_MAX_BACKOFF_SECONDS must be >= OPFLOW_BACKOFF_SECONDS")
        return self
