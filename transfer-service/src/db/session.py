# transfer-service/src/db/session.py
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Async engine for DATABASE_URL (postgresql+asyncpg in deployments,
    sqlite+aiosqlite in tests).
    """
    return create_async_engine(database_url, echo=echo, future=True)


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


async def create_schema(engine: AsyncEngine) -> None:
    """
    Create missing tables. Used on startup and by the test fixtures.
    """
    # models must be imported so their tables are registered on Base.metadata
    from db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
