"""
Tests for status precedence and late/early/overtime arithmetic
"""
from datetime import date, time
from decimal import Decimal

from attendance_reconciler.models import (
    AttendanceRecord,
    AttendanceStatus,
    Holiday,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    ShiftKind,
)
from attendance_reconciler.services.reconcile_service import sync_and_reconcile
from attendance_reconciler.services.resolver_service import resolve, work_minutes_between
from attendance_reconciler.services.session_service import derive_session
from attendance_reconciler.services.shift_service import ShiftDefinition
from attendance_reconciler.services.terminal_client import InMemoryTerminalClient
from conftest import local_instant

MONDAY = date(2025, 5, 5)
FRIDAY = date(2025, 5, 9)

GENERAL = ShiftDefinition(
    id=1,
    name="General",
    start_time=time(9, 0),
    end_time=time(17, 0),
    grace_period_minutes=10,
    overtime_threshold_minutes=30,
    working_hours=Decimal("8"),
)


def _session(day, *clock):
    punches = [local_instant(day.year, day.month, day.day, h, m) for h, m in clock]
    return derive_session("101", day, punches)


def _leave(day, leave_type=LeaveType.CASUAL):
    return LeaveRequest(employee_id=1, start_date=day, end_date=day, leave_type=leave_type, status=LeaveStatus.APPROVED)


def test_leave_beats_weekend_when_nobody_punched():
    record = resolve(1, FRIDAY, session=None, shift=GENERAL, leave=_leave(FRIDAY))
    assert record.status == AttendanceStatus.LEAVE
    assert record.leave_type == "casual"


def test_complete_session_beats_leave_and_weekend():
    record = resolve(1, FRIDAY, session=_session(FRIDAY, (9, 0), (17, 0)), shift=GENERAL, leave=_leave(FRIDAY))
    assert record.status == AttendanceStatus.PRESENT
    assert record.leave_type is None


def test_check_in_only_is_incomplete():
    record = resolve(1, MONDAY, session=_session(MONDAY, (9, 0)), shift=GENERAL)
    assert record.status == AttendanceStatus.INCOMPLETE
    assert record.work_minutes == 0
    assert record.overtime_minutes == 0


def test_remote_leave_resolves_to_remote():
    record = resolve(1, MONDAY, shift=GENERAL, leave=_leave(MONDAY, LeaveType.REMOTE))
    assert record.status == AttendanceStatus.REMOTE


def test_leave_beats_holiday_and_holiday_beats_weekend():
    holiday = Holiday(name="Eid", start_date=FRIDAY, end_date=None, applies_to_all=True, active=True)
    assert resolve(1, FRIDAY, shift=GENERAL, holiday=holiday, leave=_leave(FRIDAY)).status == AttendanceStatus.LEAVE
    assert resolve(1, FRIDAY, shift=GENERAL, holiday=holiday).status == AttendanceStatus.HOLIDAY


def test_weekend_and_absent():
    assert resolve(1, FRIDAY, shift=GENERAL).status == AttendanceStatus.WEEKEND
    assert resolve(1, MONDAY, shift=GENERAL).status == AttendanceStatus.ABSENT
    # Without a shift there is no weekend
    assert resolve(1, FRIDAY).status == AttendanceStatus.ABSENT


def test_leave_not_covering_the_day_is_ignored():
    record = resolve(1, MONDAY, shift=GENERAL, leave=_leave(date(2025, 5, 6)))
    assert record.status == AttendanceStatus.ABSENT


def test_lateness_after_grace():
    record = resolve(1, MONDAY, session=_session(MONDAY, (9, 15), (17, 0)), shift=GENERAL)
    assert record.late_minutes == 5


def test_within_grace_is_not_late():
    record = resolve(1, MONDAY, session=_session(MONDAY, (9, 10), (17, 0)), shift=GENERAL)
    assert record.late_minutes == 0


def test_overtime_beyond_threshold():
    record = resolve(1, MONDAY, session=_session(MONDAY, (9, 0), (18, 10)), shift=GENERAL)
    assert record.status == AttendanceStatus.PRESENT
    assert record.work_minutes == 550
    assert record.overtime_minutes == 40
    assert record.early_departure_minutes == 0


def test_early_departure():
    record = resolve(1, MONDAY, session=_session(MONDAY, (9, 0), (16, 20)), shift=GENERAL)
    assert record.early_departure_minutes == 40
    assert record.overtime_minutes == 0


def test_night_shift_crossing_midnight():
    night = ShiftDefinition(name="Night", start_time=time(22, 0), end_time=time(6, 0))
    assert night.crosses_midnight
    assert night.scheduled_minutes == 480
    # 05:30 on Tuesday is still inside Monday's window
    session = derive_session("101", MONDAY, [local_instant(2025, 5, 5, 22, 20), local_instant(2025, 5, 6, 5, 30)])
    record = resolve(1, MONDAY, session=session, shift=night)
    assert record.status == AttendanceStatus.PRESENT
    assert record.late_minutes == 20
    assert record.work_minutes == 430
    assert record.early_departure_minutes == 30


def test_work_minutes_wrap_when_non_positive():
    check_in = local_instant(2025, 5, 5, 22, 0)
    assert work_minutes_between(check_in, local_instant(2025, 5, 5, 21, 0)) == 1380
    assert work_minutes_between(check_in, check_in) == 1440


def test_work_minutes_without_shift():
    record = resolve(1, MONDAY, session=_session(MONDAY, (10, 0), (12, 30)))
    assert record.work_minutes == 150
    assert record.late_minutes == 0
    assert record.overtime_minutes == 0


def test_flexible_shift_has_no_lateness_but_overtime():
    flexible = ShiftDefinition(name="Flex", kind=ShiftKind.FLEXIBLE, working_hours=Decimal("8"))
    record = resolve(1, MONDAY, session=_session(MONDAY, (11, 0), (20, 0)), shift=flexible)
    assert record.late_minutes == 0
    assert record.early_departure_minutes == 0
    assert record.overtime_minutes == 60


def test_off_day_shift_marks_every_day_weekend():
    off = ShiftDefinition(name="Off", kind=ShiftKind.OFF_DAY, start_time=time(9, 0), end_time=time(17, 0))
    assert resolve(1, MONDAY, shift=off).status == AttendanceStatus.WEEKEND
    record = resolve(1, MONDAY, session=_session(MONDAY, (11, 0), (15, 0)), shift=off)
    assert record.status == AttendanceStatus.PRESENT
    assert record.late_minutes == 0
    assert record.early_departure_minutes == 0


def test_punches_to_record_end_to_end(db, make_employee):
    from attendance_reconciler.models import Shift

    shift = Shift(name="Early", kind=ShiftKind.FIXED, start_time=time(8, 0), end_time=time(16, 0), weekend_days=[5, 6])
    db.add(shift)
    db.commit()
    employee = make_employee(subject="101", shift=shift)

    terminal = InMemoryTerminalClient()
    terminal.add("101", "2025-05-05 08:05:00")
    terminal.add("101", "2025-05-05 16:00:00")

    result, summary = sync_and_reconcile(db, terminal, "terminal-e2e")
    assert result.inserted == 2
    assert summary.inserted == 1

    record = db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == employee.id).one()
    assert record.work_date == MONDAY
    assert record.status == AttendanceStatus.PRESENT
    assert record.late_minutes == 5
    assert record.overtime_minutes == 0
    assert record.work_minutes == 475


def test_roster_entry_overrides_default_shift(db, make_employee, day_shift):
    from attendance_reconciler.models import Shift, ShiftRoster
    from attendance_reconciler.services.shift_service import effective_shift

    night = Shift(name="Night", kind=ShiftKind.FIXED, start_time=time(22, 0), end_time=time(6, 0))
    db.add(night)
    db.commit()
    employee = make_employee(shift=day_shift)
    db.add(ShiftRoster(employee_id=employee.id, roster_date=MONDAY, shift_id=night.id))
    db.commit()

    assert effective_shift(db, employee, MONDAY).name == "Night"
    assert effective_shift(db, employee, date(2025, 5, 6)).name == "General"


def test_missing_shift_means_no_shift(db, make_employee):
    from attendance_reconciler.services.shift_service import effective_shift

    employee = make_employee()
    employee.shift_id = 4242
    db.commit()

    assert effective_shift(db, employee, MONDAY) is None
