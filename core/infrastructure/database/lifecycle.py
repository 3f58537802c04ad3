"""Database Lifecycle Management - Async Version"""

import logging

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.settings.modules.database_settings import DatabaseSettings

logger = logging.getLogger(__name__)


def _configure_sqlite(engine: AsyncEngine) -> None:
    """Enable foreign keys and take the write lock when a transaction begins.

    BEGIN IMMEDIATE serializes writers up front, so a read-then-write
    transaction never fails to upgrade its lock halfway through.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        # Hand transaction control to the "begin" hook below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(settings: DatabaseSettings) -> AsyncEngine:
    """
    Create async SQLAlchemy engine.

    Args:
        settings: Database settings

    Returns:
        Configured async engine
    """
    url = make_url(settings.url)
    is_sqlite = url.drivername.startswith("sqlite")

    connect_args = {}
    if is_sqlite:
        connect_args = {"timeout": settings.busy_timeout_seconds, "check_same_thread": False}

    engine = create_async_engine(
        url,
        echo=settings.echo_sql,
        connect_args=connect_args,
        pool_pre_ping=not is_sqlite,
    )
    if is_sqlite:
        _configure_sqlite(engine)

    logger.info(f"Created database engine for {url.render_as_string(hide_password=True)}")
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables if they don't exist."""
    from core.data.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

