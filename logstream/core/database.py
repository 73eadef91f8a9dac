# DB connections

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from logstream.models.event import Base


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine shared by the whole process"""
    if database_url.startswith("sqlite"):
        # In-memory SQLite must keep a single connection or every session sees an empty db
        return create_async_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False}
        )

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=20,
        max_overflow=0
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create tables and indexes if they don't exist yet"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
