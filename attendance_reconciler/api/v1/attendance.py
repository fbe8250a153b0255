"""
Attendance endpoints: report view and on-demand reconciliation sweep.
Employees see themselves, managers their direct reports, HR/admin everyone.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from attendance_reconciler.core.deps import get_current_user, require_roles
from attendance_reconciler.db.session import get_db
from attendance_reconciler.models.employee import Employee, Role
from attendance_reconciler.schemas.attendance import (
    AttendanceReportOut,
    ReconcileRequest,
    ReconcileSummaryOut,
)
from attendance_reconciler.services.reconcile_service import reconcile_range
from attendance_reconciler.services.report_service import attendance_report
from attendance_reconciler.utils.datetime_utils import parse_local_date

router = APIRouter()
_log = logging.getLogger(__name__)


@router.get("", response_model=AttendanceReportOut)
def get_attendance(
    from_date: str = Query(..., alias="from", description="First work date, YYYY-MM-DD"),
    to_date: str = Query(..., alias="to", description="Last work date, YYYY-MM-DD"),
    employee_id: Optional[int] = Query(None, description="Restrict to one employee"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Attendance records and totals for the caller's scope.

    Days without a stored record are resolved on the fly and flagged
    persisted=false.
    """
    start = parse_local_date(from_date)
    end = parse_local_date(to_date)
    return attendance_report(db, current_user, start, end, employee_id=employee_id)


@router.post("/reconcile", response_model=ReconcileSummaryOut)
def run_reconcile(
    body: ReconcileRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR, Role.ADMIN)),
):
    """Resolve and write every (employee, day) in the range. Safe to re-run."""
    _log.info(
        "reconcile requested: actor_id=%s from=%s to=%s employees=%s",
        current_user.id, body.from_date, body.to_date, body.employee_ids,
    )
    summary = reconcile_range(db, body.from_date, body.to_date, body.employee_ids, actor_id=current_user.id)
    return summary.as_dict()
