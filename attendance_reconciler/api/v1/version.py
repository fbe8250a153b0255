"""
Version and metadata endpoint
"""
from fastapi import APIRouter
from attendance_reconciler.core.config import settings

router = APIRouter()


@router.get("/version")
async def get_version():
    """
    Get application version and metadata

    Returns:
        Version information including service name, version, environment and business zone
    """
    return {
        "service": "attendance-reconciler",
        "version": settings.VERSION or "1.0.0",
        "env": settings.APP_ENV,
        "timezone": settings.APP_TIMEZONE,
    }
