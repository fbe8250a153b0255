"""
Activity logging side channel.

Services call ``activity.record(...)`` after a state transition. Records are
queued in memory and persisted by ``activity.drain()`` (run by the scheduler,
or explicitly) in a session of its own, so a failure here can never roll back
or fail the operation that produced the record.
"""
import logging
import queue
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from attendance_reconciler.db.session import SessionLocal
from attendance_reconciler.models.activity_log import ActivityLog
from attendance_reconciler.utils.datetime_utils import now_utc
from attendance_reconciler.utils.json_serializer import serialize_meta, to_json_safe

logger = logging.getLogger(__name__)

MAX_PENDING = 10000


class ActivityRecorder:
    def __init__(self, maxsize: int = MAX_PENDING):
        self._queue: "queue.Queue[Dict[str, Any]]" = queue.Queue(maxsize=maxsize)

    def record(
        self,
        actor_id: Optional[int],
        action: str,
        entity_type: str,
        entity_id: Any = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Queue an activity row. Never raises."""
        entry = {
            "actor_id": actor_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": None if entity_id is None else str(to_json_safe(entity_id)),
            "meta_json": serialize_meta(meta),
            "created_at": now_utc(),
        }
        try:
            self._queue.put_nowait(entry)
        except queue.Full:
            logger.warning("Activity queue full; dropping %s %s/%s", action, entity_type, entity_id)

    def pending(self) -> int:
        return self._queue.qsize()

    def clear(self) -> None:
        self._take_all()

    def _take_all(self) -> List[Dict[str, Any]]:
        entries = []
        while True:
            try:
                entries.append(self._queue.get_nowait())
            except queue.Empty:
                return entries

    def drain(self, session_factory: Callable[[], Session] = SessionLocal) -> int:
        """
        Persist every queued record. Returns the number of rows written.

        A failed write is logged and the batch is discarded; the primary
        operations that produced it have already committed.
        """
        entries = self._take_all()
        if not entries:
            return 0

        db = session_factory()
        try:
            db.add_all([ActivityLog(**entry) for entry in entries])
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to persist %d activity records", len(entries))
            return 0
        finally:
            db.close()

        logger.debug("Persisted %d activity records", len(entries))
        return len(entries)


activity = ActivityRecorder()
