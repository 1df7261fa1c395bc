"""
Database Configuration for Billing Sync

Async SQLAlchemy engine and session management. One engine per process,
one session per webhook request.
"""

import re
from typing import AsyncGenerator, Optional
from urllib.parse import quote_plus

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy import text

from billing_sync.config.settings import Settings, settings
from billing_sync.infrastructure.exceptions import ConfigurationError


def build_database_url(config: Settings) -> str:
    """
    Get the asyncpg connection URL.

    Uses DATABASE_URL when provided, otherwise derives it from
    SUPABASE_URL + SUPABASE_PASSWORD.
    """
    if config.database_url:
        database_url = config.database_url
        if database_url.startswith("postgresql://"):
            database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
        return database_url

    if not config.supabase_url or not config.supabase_password:
        raise ConfigurationError(
            "Either DATABASE_URL or (SUPABASE_URL + SUPABASE_PASSWORD) is required",
            missing_keys=["DATABASE_URL"],
        )

    # Format: https://[project-ref].supabase.co
    match = re.match(r'https?://([^.]+)\.supabase\.co', config.supabase_url)
    if not match:
        raise ConfigurationError(f"Invalid SUPABASE_URL format: {config.supabase_url}")

    project_ref = match.group(1)
    password = quote_plus(config.supabase_password)

    return (
        f"postgresql+asyncpg://postgres:{password}"
        f"@db.{project_ref}.supabase.co:5432/postgres"
    )


class DatabaseManager:
    """
    Owns the async engine and session factory.

    Created lazily on first use and disposed on application shutdown.
    """

    def __init__(self, config: Settings):
        self._config = config
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create async engine with connection pooling."""
        if self._engine is None:
            self._initialize_engine()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create session factory."""
        if self._session_factory is None:
            self._initialize_engine()
        return self._session_factory

    def _initialize_engine(self) -> None:
        """Initialize async engine with pooling configuration."""
        self._engine = create_async_engine(
            build_database_url(self._config),
            echo=self._config.database_echo,
            pool_size=self._config.database_pool_size,
            max_overflow=self._config.database_max_overflow,
            pool_timeout=self._config.database_pool_timeout,
            pool_pre_ping=True,  # Verify connections before use
        )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    async def close(self) -> None:
        """Close engine and dispose of connection pool."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None


# Global instance (lazy initialization)
_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get or create the database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager(settings)
    return _db_manager


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection for async database sessions.

    Yields:
        AsyncSession: Database session that auto-closes after use
    """
    db = get_db_manager()
    async with db.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Open the pool and check connectivity (called on app startup)."""
    async with get_db_manager().engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Close database connection pool (called on app shutdown)."""
    global _db_manager
    if _db_manager is not None:
        await _db_manager.close()
        _db_manager = None
