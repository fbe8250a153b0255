"""
Shift lookup: the effective shift of an employee on a date.

Effective shift = roster entry for the date, else the employee's default
shift, else none. A shift id that no longer resolves means "no shift".
"""
import logging
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from attendance_reconciler.models.employee import Employee
from attendance_reconciler.models.shift import DEFAULT_WEEKEND_DAYS, Shift, ShiftKind, ShiftRoster
from attendance_reconciler.utils.datetime_utils import MINUTES_PER_DAY, weekday_index

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShiftDefinition:
    name: str
    kind: ShiftKind = ShiftKind.FIXED
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    grace_period_minutes: int = 0
    overtime_threshold_minutes: int = 0
    working_hours: Optional[Decimal] = None
    weekend_days: FrozenSet[int] = frozenset(DEFAULT_WEEKEND_DAYS)
    id: Optional[int] = None

    @property
    def has_schedule(self) -> bool:
        """Lateness and early departure are only defined against a fixed schedule."""
        return self.kind == ShiftKind.FIXED and self.start_time is not None and self.end_time is not None

    @property
    def crosses_midnight(self) -> bool:
        return self.has_schedule and self.end_time <= self.start_time

    @property
    def scheduled_minutes(self) -> Optional[int]:
        """Expected working minutes; working_hours wins over the start->end span."""
        if self.working_hours is not None:
            return int(round(float(self.working_hours) * 60))
        if self.start_time is None or self.end_time is None:
            return None
        span = (self.end_time.hour * 60 + self.end_time.minute) - (self.start_time.hour * 60 + self.start_time.minute)
        if span <= 0:
            span += MINUTES_PER_DAY
        return span

    def is_off_day(self, day: date) -> bool:
        return self.kind == ShiftKind.OFF_DAY or weekday_index(day) in self.weekend_days

    @classmethod
    def from_model(cls, shift: Shift) -> "ShiftDefinition":
        kind = ShiftKind(shift.kind) if shift.kind else ShiftKind.FIXED
        if kind == ShiftKind.FIXED and (shift.start_time is None or shift.end_time is None):
            logger.warning("Shift %s is FIXED but has no start/end; treating it as FLEXIBLE", shift.id)
            kind = ShiftKind.FLEXIBLE
        weekend = shift.weekend_days if shift.weekend_days is not None else DEFAULT_WEEKEND_DAYS
        return cls(
            id=shift.id,
            name=shift.name,
            kind=kind,
            start_time=shift.start_time,
            end_time=shift.end_time,
            grace_period_minutes=shift.grace_period_minutes or 0,
            overtime_threshold_minutes=shift.overtime_threshold_minutes or 0,
            working_hours=shift.working_hours,
            weekend_days=frozenset(int(d) for d in weekend),
        )


class ShiftBook:
    """Shifts and roster entries preloaded for a set of employees and a date range."""

    def __init__(self, db: Session, employee_ids: Iterable[int], start: date, end: date):
        ids = list(employee_ids)
        self._shifts: Dict[int, ShiftDefinition] = {
            s.id: ShiftDefinition.from_model(s) for s in db.query(Shift).all()
        }
        self._roster: Dict[Tuple[int, date], int] = {}
        if ids:
            rows = (
                db.query(ShiftRoster)
                .filter(
                    ShiftRoster.employee_id.in_(ids),
                    ShiftRoster.roster_date >= start,
                    ShiftRoster.roster_date <= end,
                )
                .all()
            )
            self._roster = {(r.employee_id, r.roster_date): r.shift_id for r in rows}

    def effective(self, employee: Employee, day: date) -> Optional[ShiftDefinition]:
        shift_id = self._roster.get((employee.id, day), employee.shift_id)
        if shift_id is None:
            return None
        shift = self._shifts.get(shift_id)
        if shift is None:
            logger.debug("Employee %s references missing shift %s", employee.id, shift_id)
        return shift


def effective_shift(db: Session, employee: Employee, day: date) -> Optional[ShiftDefinition]:
    return ShiftBook(db, [employee.id], day, day).effective(employee, day)
