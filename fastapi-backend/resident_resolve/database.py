from typing import AsyncGenerator
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool, StaticPool

from .config import get_settings

DATABASE_URL = get_settings().database_url

# Ensure we use an async driver
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
elif DATABASE_URL.startswith("sqlite:///"):
    DATABASE_URL = DATABASE_URL.replace("sqlite:///", "sqlite+aiosqlite:///")


def build_engine(url: str) -> AsyncEngine:
    engine_kwargs = {"echo": False, "future": True}
    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or "mode=memory" in url or url == "sqlite+aiosqlite://":
            # In-memory DBs must share one connection or the schema disappears
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["poolclass"] = NullPool
    elif "asyncpg" in url:
        engine_kwargs["poolclass"] = NullPool
    return create_async_engine(url, **engine_kwargs)


engine = build_engine(DATABASE_URL)

async_session_factory = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session


async def init_db(bind: AsyncEngine = None) -> None:
    """Create all tables on the given engine (the app engine by default)."""
    from . import models  # noqa: F401  registers the tables on SQLModel.metadata

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
