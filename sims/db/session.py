from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from sims.core.config import settings
from sims.core.exceptions import ServiceError


def _create_engine() -> Optional[AsyncEngine]:
    # Supabase-only deployments run without a database of their own
    if not settings.database_url:
        return None
    # pool_pre_ping/pool_recycle: drop connections the server closed while idle
    return create_async_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
        pool_recycle=300,
    )


engine = _create_engine()

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    if engine is None:
        raise ServiceError("Database backend requires DATABASE_URL")
    async with AsyncSessionLocal() as session:
        yield session
