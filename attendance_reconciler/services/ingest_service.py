"""
Punch ingestion: pull the terminal log, validate, dedupe and persist punches,
then advance the per-device watermark.

The watermark only moves after the punch rows are committed, so a crash in
between re-fetches (and dedupes) the same entries on the next run.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from attendance_reconciler.core.config import settings
from attendance_reconciler.core.errors import InvalidDateFormat, NotFound, SyncInProgress, UpstreamUnavailable
from attendance_reconciler.models.employee import Employee
from attendance_reconciler.models.punch import PunchLog, SyncWatermark
from attendance_reconciler.services.activity_service import activity
from attendance_reconciler.services.terminal_client import TerminalClient, TerminalUnavailable
from attendance_reconciler.utils.datetime_utils import EPOCH, ensure_utc, parse_local_datetime
from attendance_reconciler.utils.keys import PunchKey

logger = logging.getLogger(__name__)

_device_locks: Dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def require_device(device_id: str) -> str:
    """
    Return device_id if it names a configured terminal.

    Raises:
        NotFound: device_id is not one of the configured terminals
    """
    if device_id not in settings.get_device_ids():
        raise NotFound(f"Unknown device {device_id}")
    return device_id


def _device_lock(device_id: str) -> threading.Lock:
    with _registry_lock:
        lock = _device_locks.get(device_id)
        if lock is None:
            lock = _device_locks[device_id] = threading.Lock()
        return lock


class RawPunch(BaseModel):
    """One terminal log entry. Naive timestamps are local wall-clock time."""

    subject_id: str = Field(validation_alias=AliasChoices("user_id", "subject_id"))
    punched_at: datetime = Field(validation_alias=AliasChoices("record_time", "timestamp", "punched_at"))
    punch_type: int = Field(default=0, validation_alias=AliasChoices("type", "punch_type"))
    state: int = 0

    @field_validator("subject_id", mode="before")
    @classmethod
    def _subject(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("subject id is required")
        return str(v).strip()

    @field_validator("punched_at", mode="before")
    @classmethod
    def _instant(cls, v):
        if v is None:
            raise ValueError("timestamp is required")
        try:
            return parse_local_datetime(v)
        except InvalidDateFormat as e:
            raise ValueError(e.detail)

    @field_validator("punch_type", "state", mode="before")
    @classmethod
    def _code(cls, v):
        return 0 if v is None else v

    @property
    def key(self) -> PunchKey:
        return PunchKey(self.subject_id, self.punched_at)


@dataclass
class IngestResult:
    """
    accepted: valid entries newer than the watermark
    rejected: malformed entries (missing subject/timestamp, unparseable timestamp)
    inserted: punches written by this run
    duplicates: entries already known (at/before the watermark, stored, or repeated in the batch)
    """
    device_id: str
    accepted: int = 0
    rejected: int = 0
    inserted: int = 0
    duplicates: int = 0
    watermark: datetime = EPOCH
    new_punches: List[PunchKey] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return self.rejected > 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "watermark": self.watermark,
            "partial": self.partial,
        }


def get_watermark(db: Session, device_id: str) -> datetime:
    """Last ingested instant for a device; the epoch before the first run."""
    row = db.query(SyncWatermark).filter(SyncWatermark.device_id == device_id).first()
    if row is None:
        return EPOCH
    return ensure_utc(row.last_synced_at)


def _store_watermark(db: Session, device_id: str, value: datetime) -> None:
    row = db.query(SyncWatermark).filter(SyncWatermark.device_id == device_id).first()
    if row is None:
        db.add(SyncWatermark(device_id=device_id, last_synced_at=value))
    elif value > ensure_utc(row.last_synced_at):
        row.last_synced_at = value
    db.commit()


def _stored_keys(db: Session, punches: List[RawPunch]) -> set:
    subjects = {p.subject_id for p in punches}
    lo = min(p.punched_at for p in punches)
    hi = max(p.punched_at for p in punches)
    rows = (
        db.query(PunchLog.subject_id, PunchLog.punched_at)
        .filter(
            PunchLog.subject_id.in_(subjects),
            PunchLog.punched_at >= lo,
            PunchLog.punched_at <= hi,
        )
        .all()
    )
    return {PunchKey(subject, ensure_utc(at)) for subject, at in rows}


def _punch_row(punch: RawPunch, device_id: str) -> PunchLog:
    return PunchLog(
        subject_id=punch.subject_id,
        punched_at=punch.punched_at,
        device_id=device_id,
        punch_type=punch.punch_type,
        state=punch.state,
    )


def _insert_individually(db: Session, punches: List[RawPunch], device_id: str) -> List[PunchKey]:
    """Slow path after a unique-key race: insert each punch in its own savepoint."""
    inserted = []
    for punch in punches:
        try:
            with db.begin_nested():
                db.add(_punch_row(punch, device_id))
            inserted.append(punch.key)
        except IntegrityError:
            logger.debug("Punch %s already stored by a concurrent run", punch.key)
    db.commit()
    return inserted


def ingest(db: Session, client: TerminalClient, device_id: Optional[str] = None) -> IngestResult:
    """
    Pull new punches from a terminal and persist them.

    Raises:
        NotFound: device_id is not a configured terminal
        SyncInProgress: A sync for the same device is already running in this process
        UpstreamUnavailable: The terminal could not be reached; nothing was written
    """
    device_id = require_device(device_id or settings.TERMINAL_DEVICE_ID)
    lock = _device_lock(device_id)
    if not lock.acquire(blocking=False):
        raise SyncInProgress(f"Sync already running for device {device_id}")
    try:
        return _ingest_locked(db, client, device_id)
    finally:
        lock.release()


def _ingest_locked(db: Session, client: TerminalClient, device_id: str) -> IngestResult:
    watermark = get_watermark(db, device_id)
    result = IngestResult(device_id=device_id, watermark=watermark)

    try:
        raw_entries = client.fetch_punches_since(watermark)
    except TerminalUnavailable as e:
        logger.warning("Terminal %s unavailable: %s", device_id, e)
        raise UpstreamUnavailable(f"Terminal {device_id} unavailable") from e

    fresh: List[RawPunch] = []
    for entry in raw_entries:
        try:
            punch = RawPunch.model_validate(entry)
        except ValidationError as e:
            result.rejected += 1
            logger.warning("Rejected terminal entry %r: %s", entry, e.errors(include_url=False))
            continue
        if punch.punched_at <= watermark:
            result.duplicates += 1
            continue
        fresh.append(punch)
    result.accepted = len(fresh)

    to_insert: List[RawPunch] = []
    if fresh:
        known = _stored_keys(db, fresh)
        for punch in fresh:
            if punch.key in known:
                result.duplicates += 1
                continue
            known.add(punch.key)
            to_insert.append(punch)

    if to_insert:
        db.add_all([_punch_row(p, device_id) for p in to_insert])
        try:
            db.commit()
            result.new_punches = [p.key for p in to_insert]
        except IntegrityError:
            db.rollback()
            logger.info("Unique-key race while storing punches for %s; retrying one by one", device_id)
            result.new_punches = _insert_individually(db, to_insert, device_id)
        result.inserted = len(result.new_punches)
        result.duplicates += len(to_insert) - result.inserted

    # Punches are committed; only now may the watermark move
    if fresh:
        newest = max(p.punched_at for p in fresh)
        if newest > watermark:
            _store_watermark(db, device_id, newest)
            result.watermark = newest

    if result.partial:
        logger.warning(
            "Sync %s partial: accepted=%d rejected=%d inserted=%d duplicates=%d",
            device_id, result.accepted, result.rejected, result.inserted, result.duplicates,
        )
    else:
        logger.info(
            "Sync %s: accepted=%d inserted=%d duplicates=%d watermark=%s",
            device_id, result.accepted, result.inserted, result.duplicates, result.watermark.isoformat(),
        )

    activity.record(None, "SYNC", "device", device_id, meta=result.as_dict())
    return result


def list_unmapped_subjects(db: Session, client: TerminalClient) -> List[str]:
    """Subjects enrolled on the terminal that no employee is mapped to."""
    try:
        subjects = {str(s) for s in client.fetch_known_subjects()}
    except TerminalUnavailable as e:
        raise UpstreamUnavailable("Terminal unavailable") from e
    if not subjects:
        return []
    mapped = {
        row[0]
        for row in db.query(Employee.device_subject_id).filter(Employee.device_subject_id.in_(subjects)).all()
    }
    return sorted(subjects - mapped)
