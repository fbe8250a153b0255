"""
Tests for punch ingestion and the per-device watermark
"""
import pytest

from attendance_reconciler.core.errors import NotFound, SyncInProgress, UpstreamUnavailable
from attendance_reconciler.models import PunchLog, SyncWatermark
from attendance_reconciler.services.ingest_service import (
    _device_lock,
    _device_locks,
    get_watermark,
    ingest,
    list_unmapped_subjects,
)
from attendance_reconciler.services.terminal_client import InMemoryTerminalClient
from attendance_reconciler.utils.datetime_utils import EPOCH
from conftest import local_instant

DEVICE = "terminal-test"


@pytest.fixture
def terminal():
    client = InMemoryTerminalClient()
    client.add("101", "2025-05-05 08:55:00")
    client.add("101", "2025-05-05 17:05:00")
    client.add("102", "2025-05-05 09:20:00", punch_type=1, state=1)
    return client


def test_first_sync_inserts_and_advances_watermark(db, terminal):
    assert get_watermark(db, DEVICE) == EPOCH

    result = ingest(db, terminal, DEVICE)

    assert result.accepted == 3
    assert result.inserted == 3
    assert result.duplicates == 0
    assert result.rejected == 0
    assert not result.partial
    assert db.query(PunchLog).count() == 3
    assert get_watermark(db, DEVICE) == local_instant(2025, 5, 5, 17, 5)
    assert result.watermark == local_instant(2025, 5, 5, 17, 5)

    stored = db.query(PunchLog).filter(PunchLog.subject_id == "102").one()
    assert stored.device_id == DEVICE
    assert stored.punch_type == 1
    assert stored.state == 1


def test_rerun_is_idempotent(db, terminal):
    ingest(db, terminal, DEVICE)
    result = ingest(db, terminal, DEVICE)

    assert result.inserted == 0
    assert result.accepted == 0
    assert result.duplicates == 3
    assert result.new_punches == []
    assert get_watermark(db, DEVICE) == local_instant(2025, 5, 5, 17, 5)
    assert db.query(PunchLog).count() == 3
    assert db.query(SyncWatermark).count() == 1


def test_new_entries_after_watermark_are_picked_up(db, terminal):
    ingest(db, terminal, DEVICE)
    terminal.add("101", "2025-05-06 09:01:00")

    result = ingest(db, terminal, DEVICE)

    assert result.inserted == 1
    assert result.new_punches[0].subject_id == "101"
    assert result.new_punches[0].punched_at == local_instant(2025, 5, 6, 9, 1)
    assert get_watermark(db, DEVICE) == local_instant(2025, 5, 6, 9, 1)


def test_malformed_entries_are_counted_and_skipped(db, terminal):
    terminal.entries.append({"user_id": "", "record_time": "2025-05-05 10:00:00"})
    terminal.entries.append({"user_id": "103", "record_time": "not a time"})
    terminal.entries.append({"user_id": "104"})

    result = ingest(db, terminal, DEVICE)

    assert result.rejected == 3
    assert result.inserted == 3
    assert result.partial
    assert result.as_dict()["partial"] is True
    assert db.query(PunchLog).count() == 3


def test_utc_timestamps_are_accepted(db):
    terminal = InMemoryTerminalClient([{"user_id": 7, "timestamp": "2025-05-05T03:00:00Z"}])

    result = ingest(db, terminal, DEVICE)

    assert result.inserted == 1
    assert result.new_punches[0].subject_id == "7"
    assert result.new_punches[0].punched_at == local_instant(2025, 5, 5, 9, 0)


def test_duplicate_within_batch_is_stored_once(db):
    terminal = InMemoryTerminalClient()
    terminal.add("101", "2025-05-05 08:55:00")
    terminal.add("101", "2025-05-05 08:55:00")

    result = ingest(db, terminal, DEVICE)

    assert result.inserted == 1
    assert result.duplicates == 1
    assert db.query(PunchLog).count() == 1


def test_same_punch_from_another_device_is_a_duplicate(db, terminal):
    ingest(db, terminal, DEVICE)

    result = ingest(db, terminal, "terminal-other")

    assert result.inserted == 0
    assert result.duplicates == 3
    # Each device keeps its own watermark
    assert get_watermark(db, "terminal-other") == local_instant(2025, 5, 5, 17, 5)


def test_unavailable_terminal_writes_nothing(db, terminal):
    terminal.available = False

    with pytest.raises(UpstreamUnavailable):
        ingest(db, terminal, DEVICE)

    assert db.query(PunchLog).count() == 0
    assert get_watermark(db, DEVICE) == EPOCH
    # The lock is released for the next tick
    terminal.available = True
    assert ingest(db, terminal, DEVICE).inserted == 3


def test_concurrent_sync_for_same_device_is_rejected(db, terminal):
    lock = _device_lock(DEVICE)
    lock.acquire()
    try:
        with pytest.raises(SyncInProgress):
            ingest(db, terminal, DEVICE)
        assert terminal.calls == 0
    finally:
        lock.release()


def test_sync_is_recorded_as_activity(db, terminal):
    from attendance_reconciler.services.activity_service import activity

    ingest(db, terminal, DEVICE)

    assert activity.pending() == 1


def test_list_unmapped_subjects(db, make_employee):
    make_employee(subject="101")
    terminal = InMemoryTerminalClient(subjects=["101", "102"])
    terminal.add("205", "2025-05-05 08:00:00")

    assert list_unmapped_subjects(db, terminal) == ["102", "205"]


def test_list_unmapped_subjects_when_offline(db):
    terminal = InMemoryTerminalClient(subjects=["101"])
    terminal.available = False

    with pytest.raises(UpstreamUnavailable):
        list_unmapped_subjects(db, terminal)


def test_unknown_device_is_rejected(db, terminal):
    with pytest.raises(NotFound):
        ingest(db, terminal, "no-such-device")

    assert terminal.calls == 0
    assert db.query(SyncWatermark).count() == 0
    assert "no-such-device" not in _device_locks


def test_default_device_is_used_when_none_given(db, terminal):
    result = ingest(db, terminal)

    assert result.device_id == "terminal-1"
    assert get_watermark(db, "terminal-1") == local_instant(2025, 5, 5, 17, 5)
