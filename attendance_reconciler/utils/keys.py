"""
Composite keys used across ingestion and reconciliation
"""
from datetime import date, datetime
from typing import NamedTuple


class PunchKey(NamedTuple):
    """Identity of a punch event; a device may report the same scan more than once."""
    subject_id: str
    punched_at: datetime


class AttendanceKey(NamedTuple):
    """Identity of a canonical attendance record."""
    employee_id: int
    work_date: date


class SubjectDay(NamedTuple):
    """A device subject's punches bucketed onto one attendance day, before employee mapping."""
    subject_id: str
    work_date: date
