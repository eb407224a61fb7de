"""
Database session configuration.

Async SQLAlchemy engine and session factory. PostgreSQL (asyncpg) in
production; a SQLite URL (aiosqlite) works for local runs.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from adorder.app.core.config import settings


def _engine_options(url: str) -> dict:
    options = {"echo": settings.db_echo, "future": True}
    # SQLite uses a single-connection pool without size limits
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_pre_ping"] = True
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# Objects stay readable after commit; services build responses from them
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """
    FastAPI dependency for database sessions.

    Services commit their own units of work; anything left uncommitted when
    the request fails is rolled back here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
