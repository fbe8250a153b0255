"""
Main API router
"""
from fastapi import APIRouter

from attendance_reconciler.api.v1 import (
    health,
    version,
    attendance,
    adjustments,
    devices,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(adjustments.router, prefix="/attendance/adjustments", tags=["attendance-adjustments"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(devices.router, prefix="/devices", tags=["devices"])
