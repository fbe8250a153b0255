"""
Reconciliation writer: upsert canonical attendance records keyed by
(employee_id, work_date).

Guards on DEVICE writes:
- a stored Present/Incomplete record with a check-in is never downgraded to a
  non-presence status;
- a record written by an approved adjustment is only replaced by another
  adjustment.
ADJUSTMENT writes bypass both guards.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from attendance_reconciler.models.attendance import AttendanceRecord, PRESENCE_STATUSES, RecordSource
from attendance_reconciler.services.resolver_service import ResolvedRecord
from attendance_reconciler.utils.datetime_utils import ensure_utc

logger = logging.getLogger(__name__)

INSERTED = "inserted"
UPDATED = "updated"
UNCHANGED = "unchanged"
PROTECTED = "protected"

_FIELDS = (
    "check_in",
    "check_out",
    "work_minutes",
    "status",
    "late_minutes",
    "early_departure_minutes",
    "overtime_minutes",
    "leave_type",
    "shift_id",
)


def _find(db: Session, record: ResolvedRecord) -> Optional[AttendanceRecord]:
    return (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.employee_id == record.employee_id,
            AttendanceRecord.work_date == record.work_date,
        )
        .first()
    )


def _protected(existing: AttendanceRecord, record: ResolvedRecord, source: RecordSource) -> bool:
    if source == RecordSource.ADJUSTMENT:
        return False
    if existing.source == RecordSource.ADJUSTMENT:
        return True
    return (
        existing.status in PRESENCE_STATUSES
        and existing.check_in is not None
        and record.status not in PRESENCE_STATUSES
    )


def _same(existing: AttendanceRecord, record: ResolvedRecord, source: RecordSource) -> bool:
    if existing.source != source:
        return False
    for name in _FIELDS:
        stored = getattr(existing, name)
        wanted = getattr(record, name)
        if name in ("check_in", "check_out"):
            stored, wanted = ensure_utc(stored), ensure_utc(wanted)
        if stored != wanted:
            return False
    return True


def upsert_record(
    db: Session,
    record: ResolvedRecord,
    *,
    source: RecordSource = RecordSource.DEVICE,
) -> Tuple[AttendanceRecord, str]:
    """
    Insert or update the record for record.key and commit.

    Returns the stored row and what happened to it: inserted, updated,
    unchanged or protected (the guard kept the stored row).
    """
    existing = _find(db, record)
    if existing is None:
        row = AttendanceRecord(
            employee_id=record.employee_id,
            work_date=record.work_date,
            source=source,
            **{name: getattr(record, name) for name in _FIELDS},
        )
        try:
            with db.begin_nested():
                db.add(row)
            db.commit()
            db.refresh(row)
            return row, INSERTED
        except IntegrityError:
            # Another writer inserted the same key first; fall back to update
            existing = _find(db, record)
            if existing is None:
                raise
            logger.info("Insert race on %s; updating instead", record.key)

    if _protected(existing, record, source):
        logger.debug(
            "Kept %s record for %s (stored %s, source %s; incoming %s)",
            existing.status.value, record.key, existing.status.value, existing.source.value, record.status.value,
        )
        return existing, PROTECTED

    if _same(existing, record, source):
        return existing, UNCHANGED

    before = existing.status
    for name in _FIELDS:
        setattr(existing, name, getattr(record, name))
    existing.source = source
    db.commit()
    db.refresh(existing)
    if before != existing.status:
        logger.info(
            "Attendance transition: key=%s before=%s after=%s source=%s",
            record.key, before.value, existing.status.value, source.value,
        )
    return existing, UPDATED


def write(db: Session, record: ResolvedRecord, *, source: RecordSource = RecordSource.DEVICE) -> AttendanceRecord:
    """Upsert record and return the stored row (which a guard may have kept unchanged)."""
    row, _ = upsert_record(db, record, source=source)
    return row
