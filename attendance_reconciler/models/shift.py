"""
Shift definition and roster models
"""
from sqlalchemy import Column, Integer, String, Time, DateTime, Date, Numeric, JSON, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.sql import func
import enum
from attendance_reconciler.db.base import Base

# 0=Sunday ... 6=Saturday
DEFAULT_WEEKEND_DAYS = [5, 6]


class ShiftKind(str, enum.Enum):
    FIXED = "FIXED"          # scheduled start/end; lateness, early departure and overtime apply
    FLEXIBLE = "FLEXIBLE"    # no fixed start/end; only overtime against working hours
    OFF_DAY = "OFF_DAY"      # every day is an off day


class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    kind = Column(SQLEnum(ShiftKind), nullable=False, default=ShiftKind.FIXED)
    start_time = Column(Time, nullable=True)   # local time-of-day
    end_time = Column(Time, nullable=True)     # may be earlier than start_time (crosses midnight)
    grace_period_minutes = Column(Integer, nullable=False, default=0)
    overtime_threshold_minutes = Column(Integer, nullable=False, default=0)
    working_hours = Column(Numeric(4, 2), nullable=True)  # defaults to the start->end span
    weekend_days = Column(JSON, nullable=False, default=lambda: list(DEFAULT_WEEKEND_DAYS))
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("name", name="uq_shift_name"),
    )


class ShiftRoster(Base):
    """Per-date shift assignment overriding the employee's default shift."""
    __tablename__ = "shift_rosters"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, nullable=False, index=True)
    roster_date = Column(Date, nullable=False, index=True)
    shift_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "roster_date", name="uq_shift_roster_employee_date"),
    )
