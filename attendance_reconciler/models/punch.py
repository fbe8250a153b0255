"""
Biometric punch log and per-device sync watermark models
"""
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from attendance_reconciler.db.base import Base


class PunchLog(Base):
    """One scan from a terminal. Immutable once ingested."""
    __tablename__ = "punch_logs"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(String, nullable=False, index=True)  # terminal user id
    punched_at = Column(DateTime(timezone=True), nullable=False, index=True)  # UTC
    device_id = Column(String, nullable=False, index=True)
    punch_type = Column(Integer, nullable=False, default=0)
    state = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("subject_id", "punched_at", name="uq_punch_subject_time"),
    )


class SyncWatermark(Base):
    """Latest punch instant already ingested from a device. Never moves backwards."""
    __tablename__ = "sync_watermarks"

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(String, unique=True, nullable=False, index=True)
    last_synced_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)
