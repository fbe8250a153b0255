"""
Report service - attendance view with totals for a caller's scope
"""
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from attendance_reconciler.core.errors import Forbidden, InvalidInput
from attendance_reconciler.models.attendance import AttendanceRecord, AttendanceStatus
from attendance_reconciler.models.employee import Employee
from attendance_reconciler.services import directory_service
from attendance_reconciler.services.reconcile_service import resolve_plan
from attendance_reconciler.utils.datetime_utils import iso_local, iter_days, today_local
from attendance_reconciler.utils.keys import AttendanceKey

# Longest range a single report may cover
MAX_REPORT_DAYS = 366

_TOTAL_KEYS = {
    AttendanceStatus.PRESENT: "present_days",
    AttendanceStatus.INCOMPLETE: "incomplete_days",
    AttendanceStatus.ABSENT: "absent_days",
    AttendanceStatus.LEAVE: "leave_days",
    AttendanceStatus.REMOTE: "remote_days",
    AttendanceStatus.HOLIDAY: "holiday_days",
    AttendanceStatus.WEEKEND: "weekend_days",
}


def _row(employee: Employee, record, persisted: bool) -> Dict:
    return {
        "employee_id": employee.id,
        "emp_code": employee.emp_code,
        "name": employee.name,
        "work_date": record.work_date,
        "status": AttendanceStatus(record.status).value,
        "check_in": iso_local(record.check_in),
        "check_out": iso_local(record.check_out),
        "work_minutes": record.work_minutes,
        "late_minutes": record.late_minutes,
        "early_departure_minutes": record.early_departure_minutes,
        "overtime_minutes": record.overtime_minutes,
        "leave_type": record.leave_type,
        "source": record.source.value if persisted else None,
        "persisted": persisted,
    }


def compute_totals(rows: List[Dict]) -> Dict[str, int]:
    totals = {name: 0 for name in _TOTAL_KEYS.values()}
    totals.update(total_late_minutes=0, total_overtime_minutes=0, total_early_departure_minutes=0, total_work_minutes=0)
    for row in rows:
        totals[_TOTAL_KEYS[AttendanceStatus(row["status"])]] += 1
        totals["total_late_minutes"] += row["late_minutes"]
        totals["total_overtime_minutes"] += row["overtime_minutes"]
        totals["total_early_departure_minutes"] += row["early_departure_minutes"]
        totals["total_work_minutes"] += row["work_minutes"]
    return totals


def _scoped_employees(db: Session, current_user: Employee, employee_id: Optional[int]) -> List[Employee]:
    scope = directory_service.employee_scope(db, current_user)
    if employee_id is not None:
        if scope is not None and employee_id not in scope:
            raise Forbidden("You can only view attendance of yourself or your direct reports")
        directory_service.get_employee(db, employee_id)
        return directory_service.active_employees(db, [employee_id])
    return directory_service.active_employees(db, scope)


def attendance_report(
    db: Session,
    current_user: Employee,
    from_date: date,
    to_date: date,
    employee_id: Optional[int] = None,
) -> Dict:
    """
    Attendance rows plus totals for every employee in the caller's scope.

    Days with a stored record use it. Past days without one are resolved on
    the fly (never written); future days are omitted.

    Raises:
        InvalidInput: If from_date is after to_date or the range exceeds MAX_REPORT_DAYS
        Forbidden: If employee_id is outside the caller's scope
        NotFound: If employee_id does not exist
    """
    if (to_date - from_date).days + 1 > MAX_REPORT_DAYS:
        raise InvalidInput(f"Date range cannot exceed {MAX_REPORT_DAYS} days.")
    days = [d for d in iter_days(from_date, to_date) if d <= today_local()]
    employees = _scoped_employees(db, current_user, employee_id)
    by_id = {e.id: e for e in employees}

    stored: Dict[AttendanceKey, AttendanceRecord] = {}
    if employees and days:
        rows = (
            db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.employee_id.in_(list(by_id)),
                AttendanceRecord.work_date >= from_date,
                AttendanceRecord.work_date <= to_date,
            )
            .all()
        )
        stored = {AttendanceKey(r.employee_id, r.work_date): r for r in rows}

    plan = []
    for employee in employees:
        missing = [d for d in days if AttendanceKey(employee.id, d) not in stored]
        if missing:
            plan.append((employee, missing))
    lazy = {r.key: r for r in resolve_plan(db, plan)}

    records = []
    for employee in employees:
        for day in days:
            key = AttendanceKey(employee.id, day)
            if key in stored:
                records.append(_row(employee, stored[key], persisted=True))
            else:
                records.append(_row(employee, lazy[key], persisted=False))

    return {
        "from_date": from_date,
        "to_date": to_date,
        "records": records,
        "totals": compute_totals(records),
    }
