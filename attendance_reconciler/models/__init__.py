"""
Database models
"""
from attendance_reconciler.models.employee import Employee, Role
from attendance_reconciler.models.shift import Shift, ShiftRoster, ShiftKind, DEFAULT_WEEKEND_DAYS
from attendance_reconciler.models.holiday import Holiday
from attendance_reconciler.models.leave import LeaveRequest, LeaveType, LeaveStatus
from attendance_reconciler.models.punch import PunchLog, SyncWatermark
from attendance_reconciler.models.attendance import (
    AttendanceRecord,
    AttendanceStatus,
    RecordSource,
    PRESENCE_STATUSES,
)
from attendance_reconciler.models.adjustment import (
    AttendanceAdjustmentRequest,
    AdjustmentStatus,
    UNRESOLVED_STATUSES,
)
from attendance_reconciler.models.activity_log import ActivityLog

__all__ = [
    "Employee",
    "Role",
    "Shift",
    "ShiftRoster",
    "ShiftKind",
    "DEFAULT_WEEKEND_DAYS",
    "Holiday",
    "LeaveRequest",
    "LeaveType",
    "LeaveStatus",
    "PunchLog",
    "SyncWatermark",
    "AttendanceRecord",
    "AttendanceStatus",
    "RecordSource",
    "PRESENCE_STATUSES",
    "AttendanceAdjustmentRequest",
    "AdjustmentStatus",
    "UNRESOLVED_STATUSES",
    "ActivityLog",
]
