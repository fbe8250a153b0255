"""
Activity log model (side-channel audit trail)
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from attendance_reconciler.db.base import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, nullable=True, index=True)  # None for scheduler-initiated actions
    action = Column(String, nullable=False)  # e.g. "SYNC", "RECONCILE", "ADJUSTMENT_CREATE"
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=True)
    meta_json = Column(JSON, nullable=True)
    # Set by the recorder at enqueue time, not at drain time
    created_at = Column(DateTime(timezone=True), nullable=False)
