"""
FastAPI application entry point.
Sets up the API with lifespan events for logging, database and Firebase.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from studio.config import settings
from studio.database import AsyncSessionLocal, init_db
from studio.api.router import api_router
from studio.auth.firebase import initialize_firebase
from studio.middleware.metrics_middleware import MetricsMiddleware
from studio.services.generation_service import GenerationService
from studio.utils.logging import configure_logging

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - Startup: configure logging, create tables and seed the model catalog,
      initialize Firebase Admin SDK for Google sign-in, refund generations
      a previous process left pending
    """
    configure_logging('studio-api', settings.log_level)

    await init_db()

    async with AsyncSessionLocal() as session:
        refunded = await GenerationService.fail_stale_pending(session)
    if refunded:
        logger.warning(f"Refunded {refunded} stale generations at startup")

    # Google sign-in is optional outside production
    if settings.firebase_project_id:
        try:
            initialize_firebase()
        except Exception as e:
            if settings.environment == "production":
                raise
            logger.warning(f"Firebase initialization failed: {e}")

    yield


app = FastAPI(
    title="Portrait Studio API",
    description="Backend API for the Portrait Studio AI photo generator",
    version=API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware (must be after CORS to track all requests)
app.add_middleware(MetricsMiddleware)

app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "message": "Portrait Studio API",
        "version": API_VERSION,
        "environment": settings.environment
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
