"""
Reconciliation sweep.

Runs Session Deriver -> Status Resolver -> Writer over a date range, or
incrementally over the keys touched by newly ingested punches. Keys are
independent; each write commits on its own.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from attendance_reconciler.core.config import settings
from attendance_reconciler.models.employee import Employee
from attendance_reconciler.models.leave import LeaveRequest
from attendance_reconciler.services import directory_service
from attendance_reconciler.services.activity_service import activity
from attendance_reconciler.services.calendar_service import CalendarBook
from attendance_reconciler.services.ingest_service import IngestResult, ingest
from attendance_reconciler.services.resolver_service import ResolvedRecord, resolve
from attendance_reconciler.services.session_service import group_punches, load_punches, sessions_from_groups
from attendance_reconciler.services.shift_service import ShiftBook
from attendance_reconciler.services.terminal_client import TerminalClient
from attendance_reconciler.services.writer_service import INSERTED, PROTECTED, UNCHANGED, UPDATED, upsert_record
from attendance_reconciler.utils.datetime_utils import attendance_day, iter_days, today_local
from attendance_reconciler.utils.keys import AttendanceKey, PunchKey, SubjectDay

logger = logging.getLogger(__name__)

# (employee, days to resolve for them)
Plan = List[Tuple[Employee, List[date]]]


@dataclass
class ReconcileSummary:
    keys: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    protected: int = 0
    unmapped_subjects: List[str] = field(default_factory=list)

    def count(self, action: str) -> None:
        self.keys += 1
        if action == INSERTED:
            self.inserted += 1
        elif action == UPDATED:
            self.updated += 1
        elif action == UNCHANGED:
            self.unchanged += 1
        elif action == PROTECTED:
            self.protected += 1

    def as_dict(self) -> dict:
        return {
            "keys": self.keys,
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "protected": self.protected,
            "unmapped_subjects": list(self.unmapped_subjects),
        }


def resolve_plan(db: Session, plan: Plan) -> List[ResolvedRecord]:
    """Resolve every (employee, day) in plan without writing anything."""
    plan = [(employee, days) for employee, days in plan if days]
    if not plan:
        return []

    all_days = [d for _, days in plan for d in days]
    start, end = min(all_days), max(all_days)
    employee_ids = [e.id for e, _ in plan]
    window_start = settings.ATTENDANCE_WINDOW_START

    shifts = ShiftBook(db, employee_ids, start, end)
    calendar = CalendarBook(db, employee_ids, start, end)
    subjects = [e.device_subject_id for e, _ in plan if e.device_subject_id]
    sessions = sessions_from_groups(
        group_punches(load_punches(db, subjects, start, end, window_start), window_start),
        window_start,
    )

    resolved = []
    for employee, days in plan:
        for day in days:
            session = None
            if employee.device_subject_id:
                session = sessions.get(SubjectDay(employee.device_subject_id, day))
            resolved.append(
                resolve(
                    employee.id,
                    day,
                    session=session,
                    shift=shifts.effective(employee, day),
                    holiday=calendar.holiday_on(day),
                    leave=calendar.leave_on(employee.id, day),
                )
            )
    return resolved


def _write_plan(db: Session, plan: Plan, summary: ReconcileSummary) -> ReconcileSummary:
    for record in resolve_plan(db, plan):
        _, action = upsert_record(db, record)
        summary.count(action)
    return summary


def _closed_days(start: date, end: date) -> List[date]:
    """Days in start..end that are not in the future; future days are never reconciled."""
    today = today_local()
    return [d for d in iter_days(start, end) if d <= today]


def reconcile_range(
    db: Session,
    start: date,
    end: date,
    employee_ids: Optional[Iterable[int]] = None,
    actor_id: Optional[int] = None,
) -> ReconcileSummary:
    """
    Resolve and write every (active employee, day) in start..end.

    Raises:
        InvalidInput: If start is after end
    """
    days = _closed_days(start, end)
    employees = directory_service.active_employees(db, employee_ids)
    summary = _write_plan(db, [(e, days) for e in employees], ReconcileSummary())
    logger.info(
        "Reconciled %s..%s for %d employees: inserted=%d updated=%d unchanged=%d protected=%d",
        start, end, len(employees), summary.inserted, summary.updated, summary.unchanged, summary.protected,
    )
    activity.record(
        actor_id, "RECONCILE", "attendance", f"{start.isoformat()}..{end.isoformat()}",
        meta={"employees": len(employees), **summary.as_dict()},
    )
    return summary


def reconcile_keys(db: Session, keys: Iterable[AttendanceKey]) -> ReconcileSummary:
    """Resolve and write the given (employee, day) keys. Unknown or inactive employees are skipped."""
    wanted: Dict[int, Set[date]] = defaultdict(set)
    for key in keys:
        wanted[key.employee_id].add(key.work_date)
    if not wanted:
        return ReconcileSummary()
    employees = directory_service.active_employees(db, wanted.keys())
    plan = [(e, sorted(wanted[e.id])) for e in employees]
    return _write_plan(db, plan, ReconcileSummary())


def keys_for_punches(db: Session, punches: Iterable[PunchKey]) -> Tuple[Set[AttendanceKey], List[str]]:
    """Attendance keys touched by punches, plus the subjects that map to no employee."""
    window_start = settings.ATTENDANCE_WINDOW_START
    punches = list(punches)
    by_subject = {
        subject: directory_service.find_by_device_subject(db, subject)
        for subject in {p.subject_id for p in punches}
    }
    keys: Set[AttendanceKey] = set()
    unmapped: Set[str] = set()
    for punch in punches:
        employee = by_subject.get(punch.subject_id)
        if employee is None:
            unmapped.add(punch.subject_id)
            continue
        keys.add(AttendanceKey(employee.id, attendance_day(punch.punched_at, window_start)))
    return keys, sorted(unmapped)


def reconcile_punches(db: Session, punches: Iterable[PunchKey]) -> ReconcileSummary:
    """Incremental path after ingestion: reconcile only the keys the new punches touch."""
    keys, unmapped = keys_for_punches(db, punches)
    if unmapped:
        logger.warning("Punches from %d unmapped device subjects: %s", len(unmapped), ", ".join(unmapped))
    summary = reconcile_keys(db, keys)
    summary.unmapped_subjects = unmapped
    return summary


def reconcile_leave_days(db: Session, leave: LeaveRequest) -> ReconcileSummary:
    """Re-run the days covered by a leave request, e.g. after it was approved or denied."""
    days = _closed_days(leave.start_date, leave.end_date)
    return reconcile_keys(db, (AttendanceKey(leave.employee_id, d) for d in days))


def sync_and_reconcile(
    db: Session,
    client: TerminalClient,
    device_id: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> Tuple[IngestResult, ReconcileSummary]:
    """
    Ingest new punches from a terminal, then reconcile only the keys they touch.

    Raises:
        NotFound: device_id is not a configured terminal
        SyncInProgress: A sync for the device is already running
        UpstreamUnavailable: The terminal could not be reached
    """
    result = ingest(db, client, device_id)
    summary = reconcile_punches(db, result.new_punches)
    if actor_id is not None:
        activity.record(actor_id, "SYNC_REQUEST", "device", result.device_id, meta=summary.as_dict())
    return result, summary
