"""
Leave request model (read-only input to reconciliation)
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, Text, Enum as SQLEnum, Index, CheckConstraint
from sqlalchemy.sql import func
import enum
from attendance_reconciler.db.base import Base


class LeaveType(str, enum.Enum):
    CASUAL = "casual"
    SICK = "sick"
    FESTIVE = "festive"
    ANNUAL = "annual"
    MATERNITY = "maternity"
    REMOTE = "remote"   # non-deducting; resolves to Remote instead of Leave


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    leave_type = Column(SQLEnum(LeaveType), nullable=False)
    status = Column(SQLEnum(LeaveStatus), nullable=False, default=LeaveStatus.PENDING)
    approver_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        Index("ix_leave_requests_employee_dates", "employee_id", "start_date", "end_date"),
        CheckConstraint("start_date <= end_date", name="check_leave_start_le_end"),
    )

    def covers(self, day) -> bool:
        return self.start_date <= day <= self.end_date
