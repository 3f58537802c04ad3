from __future__ import annotations

from pydantic import Field

from core.settings.base_settings import OpflowBaseSettings


class DatabaseSettings(OpflowBaseSettings):
    """
    Database connection settings.
    Any SQLAlchemy async URL works; SQLite gets foreign keys and
    immediate-mode transactions enabled on every connection.
    """

    url: str = Field("sqlite+aiosqlite:///./opflow.db", alias="OPFLOW_DB_URL")
    echo_sql: bool = Field(False, alias="OPFLOW_DB_ECHO")
    busy_timeout_seconds: float = Field(30.0, gt=0, alias="OPFLOW_DB_BUSY_TIMEOUT")
