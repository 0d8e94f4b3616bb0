"""
Google Analytics Counter — Async SQLAlchemy database setup.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from gacounter.config import settings


def make_engine(url: str) -> AsyncEngine:
    """Async engine for *url*; pool tuning applies to server databases only."""
    if "sqlite" in url:
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
    )


engine = make_engine(settings.database_url)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """FastAPI dependency — yields an async session."""
    async with async_session() as session:
        yield session


async def create_tables(bind: AsyncEngine) -> None:
    import gacounter.models  # noqa: F401  registers every table on Base.metadata

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Create all tables at startup."""
    await create_tables(engine)


async def close_db() -> None:
    await engine.dispose()
