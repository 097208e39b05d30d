"""Database base and session setup."""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


engine = create_async_engine(
    config.DATABASE_URL,
    echo=False,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_async_session():
    """Async generator yielding database sessions. Use: async for session in get_async_session(): ..."""
    async with async_session_factory() as session:
        yield session


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
