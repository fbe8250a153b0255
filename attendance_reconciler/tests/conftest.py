"""
Pytest configuration and fixtures
"""
import os

# Must be set before the application modules read settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["APP_ENV"] = "local"
os.environ["APP_TIMEZONE"] = "Asia/Dhaka"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["TERMINAL_DEVICE_ID"] = "terminal-1"
os.environ["TERMINAL_DEVICE_IDS"] = "terminal-test,terminal-other,terminal-e2e,terminal-job,gate-1,gate-busy"

from datetime import datetime, time, timezone  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from attendance_reconciler.main import app  # noqa: E402
from attendance_reconciler.core.security import create_access_token  # noqa: E402
from attendance_reconciler.db.base import Base  # noqa: E402
from attendance_reconciler.db.session import engine, SessionLocal, get_db  # noqa: E402
from attendance_reconciler.models import Employee, Role, Shift, ShiftKind  # noqa: E402
from attendance_reconciler.services.activity_service import activity  # noqa: E402

LOCAL = ZoneInfo("Asia/Dhaka")


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def local_instant(year, month, day, hour=0, minute=0):
    """UTC instant of a local wall-clock time in the business zone."""
    return datetime(year, month, day, hour, minute, tzinfo=LOCAL).astimezone(timezone.utc)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_activity_queue():
    activity.clear()
    yield
    activity.clear()


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_employee(db):
    """Factory for employees; emp_code and name are derived from a counter."""
    counter = {"n": 0}

    def _make(role=Role.EMPLOYEE, subject=None, shift=None, manager=None, active=True, **kwargs):
        counter["n"] += 1
        employee = Employee(
            emp_code=kwargs.pop("emp_code", f"EMP{counter['n']:03d}"),
            name=kwargs.pop("name", f"Employee {counter['n']}"),
            role=role.value,
            device_subject_id=subject,
            shift_id=shift.id if shift is not None else None,
            reporting_manager_id=manager.id if manager is not None else None,
            active=active,
            **kwargs,
        )
        db.add(employee)
        db.commit()
        db.refresh(employee)
        return employee

    return _make


@pytest.fixture
def day_shift(db):
    """09:00-17:00, grace 10, overtime threshold 30, 8 working hours, Fri/Sat off."""
    shift = Shift(
        name="General",
        kind=ShiftKind.FIXED,
        start_time=time(9, 0),
        end_time=time(17, 0),
        grace_period_minutes=10,
        overtime_threshold_minutes=30,
        working_hours=8,
        weekend_days=[5, 6],
    )
    db.add(shift)
    db.commit()
    db.refresh(shift)
    return shift


def auth_headers(employee):
    """Bearer header for an employee"""
    token = create_access_token({"sub": str(employee.id)})
    return {"Authorization": f"Bearer {token}"}
