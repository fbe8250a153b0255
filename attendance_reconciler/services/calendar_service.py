"""
Holiday and approved-leave lookups for a date range.
"""
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from attendance_reconciler.models.holiday import Holiday
from attendance_reconciler.models.leave import LeaveRequest, LeaveStatus


def holidays_between(db: Session, start: date, end: date) -> List[Holiday]:
    """Active holidays that apply to everyone and overlap start..end."""
    return (
        db.query(Holiday)
        .filter(
            Holiday.active.is_(True),
            Holiday.applies_to_all.is_(True),
            Holiday.start_date <= end,
            func.coalesce(Holiday.end_date, Holiday.start_date) >= start,
        )
        .order_by(Holiday.start_date, Holiday.id)
        .all()
    )


def approved_leaves_between(db: Session, employee_ids: Iterable[int], start: date, end: date) -> List[LeaveRequest]:
    ids = list(employee_ids)
    if not ids:
        return []
    return (
        db.query(LeaveRequest)
        .filter(
            LeaveRequest.employee_id.in_(ids),
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
        .order_by(LeaveRequest.start_date, LeaveRequest.id)
        .all()
    )


class CalendarBook:
    """Holidays and approved leave preloaded for a set of employees and a date range."""

    def __init__(self, db: Session, employee_ids: Iterable[int], start: date, end: date):
        self.holidays = holidays_between(db, start, end)
        self._leaves: Dict[int, List[LeaveRequest]] = {}
        for leave in approved_leaves_between(db, employee_ids, start, end):
            self._leaves.setdefault(leave.employee_id, []).append(leave)

    def holiday_on(self, day: date) -> Optional[Holiday]:
        for holiday in self.holidays:
            if holiday.covers(day):
                return holiday
        return None

    def leave_on(self, employee_id: int, day: date) -> Optional[LeaveRequest]:
        for leave in self._leaves.get(employee_id, ()):
            if leave.covers(day):
                return leave
        return None
