"""
Health check endpoint
"""
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from attendance_reconciler.db.session import get_db
from attendance_reconciler.services.activity_service import activity

router = APIRouter()


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint

    Returns service status, database reachability and the activity backlog.
    """
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        database = "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": "attendance-reconciler",
        "database": database,
        "pending_activity": activity.pending(),
    }
