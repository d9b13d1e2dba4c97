from typing import Any, AsyncGenerator, Dict
from sqlalchemy import MetaData
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
import logging

from .settings import settings

logger = logging.getLogger(__name__)

# Stable constraint names so index/unique names match across Postgres and SQLite
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pool settings per backend. SQLite (tests, local runs) keeps SQLAlchemy's defaults."""
    options: Dict[str, Any] = {"echo": settings.DEBUG}
    if make_url(database_url).get_backend_name() == "postgresql":
        options.update(pool_pre_ping=True, pool_recycle=300)
    return options


engine = create_async_engine(
    settings.SQLALCHEMY_DATABASE_URL,
    **engine_options(settings.SQLALCHEMY_DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

class Base(DeclarativeBase):
    """Declarative base for readings, journal responses, users and analytics events"""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session. Commits when the route returns, rolls back if it raises."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

async def init_db():
    """Create any missing tables."""
    # Imported for its side effect of registering the mapped tables on Base.metadata
    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({engine.url.get_backend_name()}): {', '.join(sorted(Base.metadata.tables))}")

async def dispose_db():
    await engine.dispose()
    logger.info("Database connections closed")
