"""
Tests for the background jobs
"""
from datetime import timedelta

from attendance_reconciler.models import AttendanceRecord, AttendanceStatus, PunchLog
from attendance_reconciler.services import scheduler
from attendance_reconciler.services.activity_service import activity
from attendance_reconciler.services.terminal_client import InMemoryTerminalClient
from attendance_reconciler.utils.datetime_utils import today_local


def test_create_scheduler_registers_jobs():
    sched = scheduler.create_scheduler()

    assert {job.id for job in sched.get_jobs()} == {"terminal_sync", "daily_sweep", "activity_drain"}
    assert not sched.running


def test_sync_job_skips_unreachable_terminal(db):
    offline = InMemoryTerminalClient()
    offline.available = False

    scheduler.sync_job(lambda: offline, device_id="terminal-job")

    assert offline.calls == 1
    assert db.query(PunchLog).count() == 0


def test_sync_job_stores_punches(db, make_employee):
    make_employee(subject="101")
    terminal = InMemoryTerminalClient()
    terminal.add("101", "2025-05-05 09:00:00")

    scheduler.sync_job(lambda: terminal, device_id="terminal-job")

    assert db.query(PunchLog).count() == 1
    assert db.query(AttendanceRecord).one().status == AttendanceStatus.INCOMPLETE


def test_daily_sweep_reconciles_yesterday(db, make_employee):
    employee = make_employee()

    scheduler.daily_sweep_job()

    record = db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == employee.id).one()
    assert record.work_date == today_local() - timedelta(days=1)
    assert record.status == AttendanceStatus.ABSENT


def test_activity_drain_job_empties_queue(db):
    activity.record(None, "SYNC", "device", "terminal-1")

    scheduler.activity_drain_job()

    assert activity.pending() == 0
