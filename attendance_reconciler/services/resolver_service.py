"""
Status resolution: merge a day's punch session with shift, holiday and leave
data into one attendance record.

Precedence, highest first:
    1. check-in and check-out           -> Present
    2. check-in only                    -> Incomplete
    3. approved leave covering the day  -> Remote (remote leave) / Leave
    4. holiday covering the day         -> Holiday
    5. off day of the shift             -> Weekend
    6. otherwise                        -> Absent

Metrics are only computed for Present/Incomplete. All minute arithmetic is
integer.
"""
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from attendance_reconciler.models.attendance import AttendanceStatus, PRESENCE_STATUSES
from attendance_reconciler.models.holiday import Holiday
from attendance_reconciler.models.leave import LeaveRequest, LeaveType
from attendance_reconciler.services.session_service import Session
from attendance_reconciler.services.shift_service import ShiftDefinition
from attendance_reconciler.utils.datetime_utils import MINUTES_PER_DAY, at_local_time, minutes_between
from attendance_reconciler.utils.keys import AttendanceKey


@dataclass
class ResolvedRecord:
    employee_id: int
    work_date: date
    status: AttendanceStatus
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    work_minutes: int = 0
    late_minutes: int = 0
    early_departure_minutes: int = 0
    overtime_minutes: int = 0
    leave_type: Optional[str] = None
    shift_id: Optional[int] = None

    @property
    def key(self) -> AttendanceKey:
        return AttendanceKey(self.employee_id, self.work_date)

    def as_fields(self) -> Dict[str, Any]:
        return asdict(self)


def work_minutes_between(check_in: datetime, check_out: datetime) -> int:
    """Minutes worked; a non-positive span is read as crossing midnight."""
    minutes = minutes_between(check_in, check_out)
    if minutes <= 0:
        minutes += MINUTES_PER_DAY
    return minutes


def lateness_minutes(check_in: datetime, shift: ShiftDefinition, work_date: date) -> int:
    due = at_local_time(work_date, shift.start_time) + timedelta(minutes=shift.grace_period_minutes)
    return max(0, minutes_between(due, check_in))


def early_departure_minutes(check_out: datetime, shift: ShiftDefinition, work_date: date) -> int:
    end_day = work_date + timedelta(days=1) if shift.crosses_midnight else work_date
    scheduled_end = at_local_time(end_day, shift.end_time)
    return max(0, minutes_between(check_out, scheduled_end))


def overtime_minutes(work_minutes: int, shift: ShiftDefinition) -> int:
    expected = shift.scheduled_minutes
    if expected is None:
        return 0
    return max(0, work_minutes - (expected + shift.overtime_threshold_minutes))


def _status(
    session: Optional[Session],
    shift: Optional[ShiftDefinition],
    holiday: Optional[Holiday],
    leave: Optional[LeaveRequest],
    work_date: date,
) -> AttendanceStatus:
    if session is not None and session.check_in is not None:
        return AttendanceStatus.PRESENT if session.check_out is not None else AttendanceStatus.INCOMPLETE
    if leave is not None:
        return AttendanceStatus.REMOTE if LeaveType(leave.leave_type) == LeaveType.REMOTE else AttendanceStatus.LEAVE
    if holiday is not None:
        return AttendanceStatus.HOLIDAY
    if shift is not None and shift.is_off_day(work_date):
        return AttendanceStatus.WEEKEND
    return AttendanceStatus.ABSENT


def resolve(
    employee_id: int,
    work_date: date,
    session: Optional[Session] = None,
    shift: Optional[ShiftDefinition] = None,
    holiday: Optional[Holiday] = None,
    leave: Optional[LeaveRequest] = None,
) -> ResolvedRecord:
    """
    Resolve one (employee, day).

    Leave and holiday are only consulted when they cover work_date. Without a
    shift no weekend is known, so an unpunched day with no leave or holiday is
    Absent.
    """
    if leave is not None and not leave.covers(work_date):
        leave = None
    if holiday is not None and not holiday.covers(work_date):
        holiday = None

    status = _status(session, shift, holiday, leave, work_date)
    record = ResolvedRecord(
        employee_id=employee_id,
        work_date=work_date,
        status=status,
        shift_id=shift.id if shift is not None else None,
    )

    if status in (AttendanceStatus.LEAVE, AttendanceStatus.REMOTE):
        record.leave_type = LeaveType(leave.leave_type).value
    if status not in PRESENCE_STATUSES:
        return record

    record.check_in = session.check_in
    record.check_out = session.check_out
    if session.complete:
        record.work_minutes = work_minutes_between(session.check_in, session.check_out)

    if shift is None:
        return record
    if shift.has_schedule:
        record.late_minutes = lateness_minutes(session.check_in, shift, work_date)
        if session.check_out is not None:
            record.early_departure_minutes = early_departure_minutes(session.check_out, shift, work_date)
    if session.complete:
        record.overtime_minutes = overtime_minutes(record.work_minutes, shift)
    return record
