"""
Attendance adjustment endpoints (manager -> HR approval chain)
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from attendance_reconciler.core.deps import get_current_user
from attendance_reconciler.db.session import get_db
from attendance_reconciler.models.adjustment import AdjustmentStatus
from attendance_reconciler.models.employee import Employee
from attendance_reconciler.schemas.adjustment import AdjustmentCreateRequest, AdjustmentOut, ReviewRequest
from attendance_reconciler.services import adjustment_service

router = APIRouter()


@router.post("", response_model=AdjustmentOut, status_code=status.HTTP_201_CREATED)
def create_adjustment(
    body: AdjustmentCreateRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """File an adjustment request; it starts in pending_manager_approval."""
    return adjustment_service.create_request(
        db,
        current_user,
        attendance_date=body.attendance_date,
        reason=body.reason,
        proposed_check_in=body.proposed_check_in,
        proposed_check_out=body.proposed_check_out,
        employee_id=body.employee_id,
    )


@router.get("", response_model=List[AdjustmentOut])
def list_adjustments(
    status_filter: Optional[AdjustmentStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Requests visible to the caller (own, awaiting their review, or all for admins)."""
    return adjustment_service.list_requests(db, current_user, status=status_filter)


@router.post("/{request_id}/manager-review", response_model=AdjustmentOut)
def manager_review(
    request_id: int,
    body: ReviewRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    return adjustment_service.manager_review(db, request_id, current_user, body.decision, body.comment)


@router.post("/{request_id}/hr-review", response_model=AdjustmentOut)
def hr_review(
    request_id: int,
    body: ReviewRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Final review; approval overwrites the day's attendance record."""
    return adjustment_service.hr_review(db, request_id, current_user, body.decision, body.comment)
