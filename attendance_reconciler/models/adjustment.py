"""
Attendance adjustment request model (manager -> HR approval chain)
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, Text, Enum as SQLEnum, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from attendance_reconciler.db.base import Base


class AdjustmentStatus(str, enum.Enum):
    PENDING_MANAGER_APPROVAL = "pending_manager_approval"
    PENDING_HR_APPROVAL = "pending_hr_approval"
    APPROVED = "approved"
    DENIED_BY_MANAGER = "denied_by_manager"
    DENIED_BY_HR = "denied_by_hr"


UNRESOLVED_STATUSES = (
    AdjustmentStatus.PENDING_MANAGER_APPROVAL,
    AdjustmentStatus.PENDING_HR_APPROVAL,
)

# SQLEnum persists member names, so the index predicate matches names
_UNRESOLVED_PREDICATE = text("status IN ('PENDING_MANAGER_APPROVAL', 'PENDING_HR_APPROVAL')")


class AttendanceAdjustmentRequest(Base):
    __tablename__ = "attendance_adjustment_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    attendance_date = Column(Date, nullable=False, index=True)
    original_check_in = Column(DateTime(timezone=True), nullable=True)
    original_check_out = Column(DateTime(timezone=True), nullable=True)
    proposed_check_in = Column(DateTime(timezone=True), nullable=True)
    proposed_check_out = Column(DateTime(timezone=True), nullable=True)
    reason = Column(Text, nullable=False)
    status = Column(SQLEnum(AdjustmentStatus), nullable=False, default=AdjustmentStatus.PENDING_MANAGER_APPROVAL, index=True)
    manager_approver_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    hr_approver_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    manager_reviewed_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    manager_reviewed_at = Column(DateTime(timezone=True), nullable=True)
    manager_comment = Column(Text, nullable=True)
    hr_reviewed_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    hr_reviewed_at = Column(DateTime(timezone=True), nullable=True)
    hr_comment = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("employees.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        # At most one unresolved request per employee and day
        Index(
            "uq_adjustment_unresolved_employee_date",
            "employee_id",
            "attendance_date",
            unique=True,
            sqlite_where=_UNRESOLVED_PREDICATE,
            postgresql_where=_UNRESOLVED_PREDICATE,
        ),
    )

    employee = relationship("Employee", foreign_keys=[employee_id])
