"""Async database service with SQLModel and SQLAlchemy 2.0."""

from typing import Any, Optional
from sqlmodel import SQLModel, select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from contextlib import asynccontextmanager

from core.config import Settings
from models.database import KVEntry
from core.logging import get_logger

logger = get_logger(__name__)


class Database:
    """Async database service with SQLModel."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = None
        self.async_session = None

    async def startup(self):
        """Initialize database connection and create tables."""
        try:
            import logging
            logging.getLogger("aiosqlite").setLevel(logging.WARNING)
            logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
            logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

            self.engine = create_async_engine(
                self.settings.database_url,
                echo=self.settings.database_echo,
                future=True
            )

            self.async_session = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

            logger.info("Database initialized successfully")

        except Exception as e:
            logger.error("Database startup failed", error=str(e))
            raise

    async def shutdown(self):
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None
            logger.info("Database connections closed")

    @property
    def is_ready(self) -> bool:
        return self.async_session is not None

    @asynccontextmanager
    async def get_session(self):
        """Get async database session."""
        if not self.async_session:
            raise RuntimeError("Database not initialized")

        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    # ============================================================================
    # Key-Value Dataset
    # ============================================================================

    async def get_kv(self, key: str) -> Optional[Any]:
        """Get a stored value by key, None when absent."""
        try:
            async with self.get_session() as session:
                stmt = select(KVEntry).where(KVEntry.key == key)
                result = await session.execute(stmt)
                entry = result.scalar_one_or_none()

                return entry.value if entry else None

        except Exception as e:
            logger.error("Failed to get kv entry", key=key, error=str(e))
            return None

    async def set_kv(self, key: str, value: Any) -> bool:
        """Save or replace a value by key."""
        try:
            async with self.get_session() as session:
                stmt = select(KVEntry).where(KVEntry.key == key)
                result = await session.execute(stmt)
                existing = result.scalar_one_or_none()

                if existing:
                    existing.value = value
                else:
                    session.add(KVEntry(key=key, value=value))

                await session.commit()
                return True

        except Exception as e:
            logger.error("Failed to save kv entry", key=key, error=str(e))
            return False
