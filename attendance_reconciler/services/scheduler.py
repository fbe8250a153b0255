"""
Background jobs: periodic terminal sync, the daily sweep and the activity
drain, run by an APScheduler BackgroundScheduler.
"""
import logging
from datetime import timedelta
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from attendance_reconciler.core.config import settings
from attendance_reconciler.core.errors import SyncInProgress, UpstreamUnavailable
from attendance_reconciler.db.session import SessionLocal
from attendance_reconciler.services.activity_service import activity
from attendance_reconciler.services.reconcile_service import reconcile_range, sync_and_reconcile
from attendance_reconciler.services.terminal_client import TerminalClient, build_terminal_client
from attendance_reconciler.utils.datetime_utils import today_local

logger = logging.getLogger(__name__)

_scheduler: Optional[BackgroundScheduler] = None


def sync_job(client_factory: Callable[[], TerminalClient] = build_terminal_client, device_id: Optional[str] = None) -> None:
    """One sync tick. An unreachable terminal skips the tick; the next one retries."""
    db = SessionLocal()
    try:
        result, summary = sync_and_reconcile(db, client_factory(), device_id)
        logger.info(
            "Sync tick: inserted=%d keys=%d unmapped=%d",
            result.inserted, summary.keys, len(summary.unmapped_subjects),
        )
    except UpstreamUnavailable as e:
        logger.warning("Sync tick skipped: %s", e.detail)
    except SyncInProgress as e:
        logger.info("Sync tick skipped: %s", e.detail)
    finally:
        db.close()


def daily_sweep_job() -> None:
    """Reconcile the work date whose attendance window just closed, for every active employee."""
    db = SessionLocal()
    try:
        day = today_local() - timedelta(days=1)
        reconcile_range(db, day, day)
    finally:
        db.close()


def activity_drain_job() -> None:
    activity.drain()


def create_scheduler() -> BackgroundScheduler:
    scheduler = BackgroundScheduler(
        timezone=settings.APP_TIMEZONE,
        job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300},
    )
    scheduler.add_job(sync_job, "interval", minutes=settings.SYNC_INTERVAL_MINUTES, id="terminal_sync")
    window = settings.ATTENDANCE_WINDOW_START
    scheduler.add_job(daily_sweep_job, "cron", hour=window.hour, minute=window.minute, id="daily_sweep")
    scheduler.add_job(activity_drain_job, "interval", seconds=settings.ACTIVITY_DRAIN_SECONDS, id="activity_drain")
    return scheduler


def start_scheduler() -> BackgroundScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = create_scheduler()
        _scheduler.start()
        logger.info(
            "Scheduler started: sync every %d min, daily sweep at %s",
            settings.SYNC_INTERVAL_MINUTES, settings.ATTENDANCE_WINDOW_START.strftime("%H:%M"),
        )
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
    # Flush whatever is still queued
    activity.drain()
