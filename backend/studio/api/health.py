"""
Health check endpoint.
Verifies database and Redis connectivity.
"""
import asyncio

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
import redis
from studio.database import get_db
from studio.config import settings

router = APIRouter()


def _ping_redis() -> None:
    r = redis.from_url(settings.redis_url, socket_connect_timeout=2)
    r.ping()


@router.get("")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Returns status of database and Redis connections, 503 when either is down.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "redis": "unknown"
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        health_status["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    try:
        await asyncio.to_thread(_ping_redis)
        health_status["redis"] = "connected"
    except Exception as e:
        health_status["redis"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
