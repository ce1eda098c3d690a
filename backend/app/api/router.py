"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter
from app.api import health, credits, generation, automation, admin

api_router = APIRouter()

# Include route modules
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(credits.router, prefix="/credits", tags=["credits"])
api_router.include_router(generation.router, tags=["generation"])
api_router.include_router(automation.router, prefix="/automation", tags=["automation"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
