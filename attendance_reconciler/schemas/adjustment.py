"""
Attendance adjustment request schemas
"""
from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from attendance_reconciler.core.errors import InvalidDateFormat
from attendance_reconciler.models.adjustment import AdjustmentStatus
from attendance_reconciler.utils.datetime_utils import iso_local, parse_local_datetime


class AdjustmentCreateRequest(BaseModel):
    """
    Schema for filing an adjustment. Proposed times without an offset are
    local wall-clock time in the business zone.
    """
    attendance_date: date = Field(..., description="Work date to adjust")
    proposed_check_in: Optional[datetime] = Field(None, description="Corrected check-in")
    proposed_check_out: Optional[datetime] = Field(None, description="Corrected check-out")
    reason: str = Field(..., min_length=1, description="Why the record is wrong")
    employee_id: Optional[int] = Field(None, description="Employee to adjust (HR/admin only; defaults to caller)")

    @field_validator("proposed_check_in", "proposed_check_out", mode="before")
    @classmethod
    def _localize(cls, v):
        if v is None or v == "":
            return None
        try:
            return parse_local_datetime(v)
        except InvalidDateFormat as e:
            raise ValueError(e.detail)


class ReviewRequest(BaseModel):
    """Schema for a manager or HR review"""
    decision: Literal["approve", "deny"]
    comment: Optional[str] = Field(None, description="Optional reviewer comment")


class AdjustmentOut(BaseModel):
    """Schema for adjustment output. Datetimes in the business zone."""
    id: int
    employee_id: int
    attendance_date: date
    original_check_in: Optional[datetime] = None
    original_check_out: Optional[datetime] = None
    proposed_check_in: Optional[datetime] = None
    proposed_check_out: Optional[datetime] = None
    reason: str
    status: AdjustmentStatus
    manager_approver_id: Optional[int] = None
    hr_approver_id: Optional[int] = None
    manager_reviewed_by: Optional[int] = None
    manager_reviewed_at: Optional[datetime] = None
    manager_comment: Optional[str] = None
    hr_reviewed_by: Optional[int] = None
    hr_reviewed_at: Optional[datetime] = None
    hr_comment: Optional[str] = None
    created_by: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer(
        "original_check_in", "original_check_out", "proposed_check_in", "proposed_check_out",
        "manager_reviewed_at", "hr_reviewed_at", "created_at",
        when_used="always",
    )
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)
