"""
Periodic maintenance tasks run by Celery beat.
"""
import asyncio
import logging

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from studio.config import settings
from studio.services.generation_service import GenerationService
from studio.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


async def _fail_stale_generations_async() -> int:
    # Engine per run: each asyncio.run() gets a fresh event loop
    worker_engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)
    WorkerSessionLocal = async_sessionmaker(worker_engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with WorkerSessionLocal() as session:
            return await GenerationService.fail_stale_pending(session)
    finally:
        await worker_engine.dispose()


@celery_app.task(name="fail_stale_generations")
def fail_stale_generations_task():
    """Fail and refund generations left PENDING past stale_generation_minutes."""
    refunded = asyncio.run(_fail_stale_generations_async())
    if refunded:
        logger.info(
            f"Refunded {refunded} stale generations",
            extra={"event": "stale_generations_refunded", "count": refunded}
        )
    return {"refunded": refunded}
