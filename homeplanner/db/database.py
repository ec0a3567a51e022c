from typing import Any, AsyncGenerator, Dict
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from homeplanner.core.config import settings
from homeplanner.models.base import Base
from homeplanner.core.logging import db_logger

def _engine_options(url: str) -> Dict[str, Any]:
    """Pool settings for server databases; SQLite gets its own thread-safety flag."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 20,  # Maximum number of connections in the pool
        "max_overflow": 10,  # Connections allowed beyond pool_size
        "pool_timeout": 30,  # Seconds to wait before giving up on getting a connection
        "pool_recycle": 1800,  # Recycle connections after 30 minutes
        "pool_pre_ping": True,
    }

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    **_engine_options(settings.DATABASE_URL)
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

async def init_db() -> None:
    """Create all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    db_logger.info("Database schema ready", extra={"tables": sorted(Base.metadata.tables)})

async def dispose_db() -> None:
    """Properly dispose of database connections."""
    await engine.dispose()
    db_logger.info("Database connections disposed")
