"""
Health check endpoints
"""
from fastapi import APIRouter
from crowd_intel.database import get_database

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": "crowd_intelligence",
        "database": "connected" if get_database() is not None else "disconnected"
    }
