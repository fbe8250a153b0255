"""
Canonical daily attendance record model
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, Enum as SQLEnum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from attendance_reconciler.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "Present"
    INCOMPLETE = "Incomplete"
    ABSENT = "Absent"
    WEEKEND = "Weekend"
    HOLIDAY = "Holiday"
    LEAVE = "Leave"
    REMOTE = "Remote"


PRESENCE_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.INCOMPLETE})


class RecordSource(str, enum.Enum):
    DEVICE = "DEVICE"           # derived from punches by the reconciliation sweep
    ADJUSTMENT = "ADJUSTMENT"   # written by an approved adjustment request


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    work_date = Column(Date, nullable=False, index=True)  # local business date
    check_in = Column(DateTime(timezone=True), nullable=True)   # UTC
    check_out = Column(DateTime(timezone=True), nullable=True)  # UTC
    work_minutes = Column(Integer, nullable=False, default=0)
    status = Column(SQLEnum(AttendanceStatus), nullable=False, index=True)
    late_minutes = Column(Integer, nullable=False, default=0)
    early_departure_minutes = Column(Integer, nullable=False, default=0)
    overtime_minutes = Column(Integer, nullable=False, default=0)
    leave_type = Column(String, nullable=True)
    shift_id = Column(Integer, nullable=True)
    source = Column(SQLEnum(RecordSource), nullable=False, default=RecordSource.DEVICE)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="uq_attendance_employee_date"),
    )

    employee = relationship("Employee", backref="attendance_records")
