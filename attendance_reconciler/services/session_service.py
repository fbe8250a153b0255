"""
Session derivation: bucket punches into attendance windows and collapse each
bucket into a check-in/check-out pair.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session as DbSession

from attendance_reconciler.models.punch import PunchLog
from attendance_reconciler.utils.datetime_utils import attendance_day, attendance_window_bounds, ensure_utc
from attendance_reconciler.utils.keys import SubjectDay


@dataclass(frozen=True)
class Session:
    subject_id: str
    work_date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    punch_count: int = 0

    @property
    def complete(self) -> bool:
        return self.check_in is not None and self.check_out is not None


def derive_session(
    subject_id: str,
    work_date: date,
    punches: Iterable[datetime],
    window_start: Optional[time] = None,
) -> Session:
    """
    Collapse the punches of one subject into the session for work_date.

    Punches outside work_date's attendance window are ignored. Earliest is the
    check-in; the latest is the check-out when there are two or more punches.
    """
    in_window = sorted(
        instant
        for instant in (ensure_utc(p) for p in punches)
        if attendance_day(instant, window_start) == work_date
    )
    if not in_window:
        return Session(subject_id, work_date)
    if len(in_window) == 1:
        return Session(subject_id, work_date, check_in=in_window[0], punch_count=1)
    return Session(subject_id, work_date, check_in=in_window[0], check_out=in_window[-1], punch_count=len(in_window))


def group_punches(
    punches: Iterable[Tuple[str, datetime]],
    window_start: Optional[time] = None,
) -> Dict[SubjectDay, List[datetime]]:
    """Bucket (subject_id, instant) pairs by the attendance day they fall in."""
    buckets: Dict[SubjectDay, List[datetime]] = defaultdict(list)
    for subject_id, instant in punches:
        instant = ensure_utc(instant)
        buckets[SubjectDay(subject_id, attendance_day(instant, window_start))].append(instant)
    return dict(buckets)


def sessions_from_groups(
    groups: Dict[SubjectDay, List[datetime]],
    window_start: Optional[time] = None,
) -> Dict[SubjectDay, Session]:
    return {
        key: derive_session(key.subject_id, key.work_date, instants, window_start)
        for key, instants in groups.items()
    }


def load_punches(
    db: DbSession,
    subject_ids: Sequence[str],
    start: date,
    end: date,
    window_start: Optional[time] = None,
) -> List[Tuple[str, datetime]]:
    """(subject_id, UTC instant) pairs inside the attendance windows of start..end."""
    if not subject_ids:
        return []
    lo, _ = attendance_window_bounds(start, window_start)
    _, hi = attendance_window_bounds(end, window_start)
    rows = (
        db.query(PunchLog.subject_id, PunchLog.punched_at)
        .filter(
            PunchLog.subject_id.in_(list(subject_ids)),
            PunchLog.punched_at >= lo,
            PunchLog.punched_at < hi,
        )
        .order_by(PunchLog.punched_at)
        .all()
    )
    return [(subject, ensure_utc(at)) for subject, at in rows]
