"""
Database configuration and session management.
Uses SQLAlchemy async engine (PostgreSQL via asyncpg in production).
"""
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from studio.config import settings
from studio.models.base import Base

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> dict:
    # SQLite (tests, local dev) does not accept pool sizing arguments
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 10, "max_overflow": 20}


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=False,  # Disable SQLAlchemy query logging
    future=True,
    pool_pre_ping=True,
    **_engine_kwargs(settings.database_url),
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncSession:
    """
    Dependency for FastAPI routes to get database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def seed_default_model(db: AsyncSession) -> None:
    """Insert the configured default AI model when the catalog is empty."""
    from studio.models.ai_model import AIModel

    count = (await db.execute(select(func.count(AIModel.id)))).scalar() or 0
    if count:
        return

    db.add(AIModel(
        model_id=settings.default_model_id,
        model_name=settings.default_model_name,
        provider="gemini",
        xp_cost=settings.default_model_xp_cost,
        is_active=True,
        display_order=0,
    ))
    await db.commit()
    logger.info(
        f"Seeded default AI model {settings.default_model_id}",
        extra={"event": "ai_model_seeded", "model_id": settings.default_model_id}
    )


async def init_db():
    """
    Initialize database: create tables and seed the model catalog.
    Called on application startup.
    """
    # Import models so they register on the metadata
    import studio.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await seed_default_model(session)
