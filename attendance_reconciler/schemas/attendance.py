"""
Attendance schemas (report view and reconciliation sweep)
"""
from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from attendance_reconciler.models.attendance import AttendanceStatus


class AttendanceRecordOut(BaseModel):
    """One employee-day. Datetimes are ISO-8601 in the business zone."""
    employee_id: int
    emp_code: str
    name: str
    work_date: date
    status: AttendanceStatus
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    work_minutes: int
    late_minutes: int
    early_departure_minutes: int
    overtime_minutes: int
    leave_type: Optional[str] = None
    source: Optional[str] = Field(None, description="DEVICE or ADJUSTMENT; null when resolved on the fly")
    persisted: bool


class AttendanceTotals(BaseModel):
    present_days: int = 0
    incomplete_days: int = 0
    absent_days: int = 0
    leave_days: int = 0
    remote_days: int = 0
    holiday_days: int = 0
    weekend_days: int = 0
    total_late_minutes: int = 0
    total_overtime_minutes: int = 0
    total_early_departure_minutes: int = 0
    total_work_minutes: int = 0


class AttendanceReportOut(BaseModel):
    from_date: date
    to_date: date
    records: List[AttendanceRecordOut]
    totals: AttendanceTotals


class ReconcileRequest(BaseModel):
    """Schema for a reconciliation sweep request"""
    from_date: date = Field(..., description="First work date to reconcile")
    to_date: date = Field(..., description="Last work date to reconcile (inclusive)")
    employee_ids: Optional[List[int]] = Field(None, description="Restrict the sweep to these employees")

    @model_validator(mode="after")
    def _check_range(self):
        if self.from_date > self.to_date:
            raise ValueError("from_date must be <= to_date")
        return self


class ReconcileSummaryOut(BaseModel):
    keys: int
    inserted: int
    updated: int
    unchanged: int
    protected: int
    unmapped_subjects: List[str] = []
