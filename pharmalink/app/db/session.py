"""
Database engine and sessions.

One engine per process. Ledger code relies on ``expire_on_commit=False`` so
records returned after a commit stay readable, and on explicit
``populate_existing`` reads when it needs the row as the database holds it.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from pharmalink.app.core.config import settings


def _engine_options(database_url: str) -> dict:
    # SQLite (local runs) has no pool sizing
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    **_engine_options(settings.database_url),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """Request-scoped session; closed when the response is sent."""
    async with AsyncSessionLocal() as session:
        yield session
