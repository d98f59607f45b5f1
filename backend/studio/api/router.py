"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from studio.api import (
    health,
    auth,
    me,
    users,
    templates,
    generations,
    analysis,
    models,
    settings,
    xp,
    admin,
    payments,
    webhooks,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(me.router, prefix="/me", tags=["me"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(templates.router, prefix="/templates", tags=["templates"])
api_router.include_router(generations.router, prefix="/generations", tags=["generations"])
api_router.include_router(analysis.router, prefix="/analyze-face", tags=["analysis"])
api_router.include_router(models.router, prefix="/models", tags=["models"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
api_router.include_router(xp.router, prefix="/xp", tags=["xp"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])
