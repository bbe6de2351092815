import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.pool import StaticPool
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncEngine
)

from ...core.config import get_settings
from ...core.exceptions import AppException, DatabaseError

logger = logging.getLogger(__name__)

# Registers the orchestration tables on SQLModel.metadata
from . import models  # noqa: E402,F401

# Sync driver prefixes and the async driver each one is served by
ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite:///": "sqlite+aiosqlite:///",
}


def to_async_url(url: str) -> str:
    """Rewrite a plain database URL to use the async driver for its dialect."""
    for prefix, async_prefix in ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return async_prefix + url[len(prefix):]
    return url


def mask_url(url: str) -> str:
    """Hide the credentials part of a URL before it is logged."""
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"


class DatabaseManager:
    """
    Owns the async engine the orchestration ledgers are stored through.

    Sessions handed out by ``get_async_session`` commit when the block exits
    cleanly and roll back otherwise. Application errors pass through
    untouched; anything else surfaces as DatabaseError.
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None,
                 create_schema: Optional[bool] = None):
        settings = get_settings().database
        self.url = to_async_url(url or settings.url)
        self.echo = settings.echo if echo is None else echo
        self.pool_pre_ping = settings.pool_pre_ping
        self.create_schema = settings.create_tables_on_connect if create_schema is None else create_schema
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None
        self._connected = False
        self._engine_lock = asyncio.Lock()

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": self.echo}
        if self.is_sqlite:
            options["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.url:
                # Every session must see the same in-memory database
                options["poolclass"] = StaticPool
        else:
            options["pool_pre_ping"] = self.pool_pre_ping
        return options

    async def get_async_engine(self) -> AsyncEngine:
        """The engine, created on first use."""
        if self._engine is not None:
            return self._engine

        async with self._engine_lock:
            if self._engine is None:
                try:
                    engine = create_async_engine(self.url, **self.engine_options())
                except Exception as e:
                    logger.error(f"Cannot create engine for {mask_url(self.url)}: {e}")
                    raise DatabaseError(f"Engine creation failed: {e}", operation="create_engine")
                self._session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
                self._engine = engine
                logger.info(f"Database engine ready: {mask_url(self.url)}")
        return self._engine

    @asynccontextmanager
    async def get_async_session(self) -> AsyncIterator[AsyncSession]:
        await self.get_async_engine()

        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except AppException:
                await session.rollback()
                raise
            except Exception as e:
                await session.rollback()
                logger.error(f"Session rolled back: {e}")
                raise DatabaseError(f"Database operation failed: {e}", operation="session") from e

    async def connect(self) -> None:
        """
        Open the engine and make sure the database answers.

        Tables are created from the models first unless schema creation is
        turned off (databases managed by Alembic).

        Raises:
            DatabaseError: If the database cannot be reached
        """
        logger.info(f"Connecting to {mask_url(self.url)}")
        try:
            await self.get_async_engine()
            if self.create_schema:
                await self.create_tables()
            if not await self.health_check():
                raise DatabaseError("Database did not answer the health check", operation="connect")
        except DatabaseError:
            raise
        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            raise DatabaseError(f"Database connection failed: {e}", operation="connect")

        self._connected = True
        logger.info("Database connected")

    async def disconnect(self) -> None:
        """Dispose of the engine. Safe to call when not connected."""
        engine, self._engine, self._session_maker = self._engine, None, None
        self._connected = False
        if engine is not None:
            await engine.dispose()
            logger.info("Database disconnected")

    async def create_tables(self) -> None:
        await self._run_metadata(SQLModel.metadata.create_all, "create_tables")
        logger.info("Orchestration tables created")

    async def drop_tables(self) -> None:
        logger.warning(f"Dropping every table of {mask_url(self.url)}")
        await self._run_metadata(SQLModel.metadata.drop_all, "drop_tables")

    async def _run_metadata(self, action, operation: str) -> None:
        engine = await self.get_async_engine()
        try:
            async with engine.begin() as conn:
                await conn.run_sync(action)
        except Exception as e:
            logger.error(f"{operation} failed: {e}")
            raise DatabaseError(f"{operation} failed: {e}", operation=operation)

    async def health_check(self) -> bool:
        """True when a trivial query round-trips."""
        try:
            async with self.get_async_session() as session:
                result = await session.exec(select(1))
                return result.first() == 1
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    @property
    def is_connected(self) -> bool:
        return self._connected


database_manager = DatabaseManager()
