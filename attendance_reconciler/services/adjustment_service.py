"""
Attendance adjustment workflow.

    pending_manager_approval --approve--> pending_hr_approval --approve--> approved
            |                                      |
            +--deny--> denied_by_manager           +--deny--> denied_by_hr

Every transition is a compare-and-swap on status
(UPDATE ... WHERE id = ? AND status = ?); a lost race surfaces as
InvalidState and is never retried. The requester never reviews their own
request, and the two stages are approved by different people. Final approval
writes the proposed times into the canonical record, bypassing status
resolution.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from attendance_reconciler.core.errors import (
    DuplicateRequest,
    Forbidden,
    InvalidInput,
    InvalidState,
    MissingApprover,
    NotFound,
)
from attendance_reconciler.models.adjustment import (
    AdjustmentStatus,
    AttendanceAdjustmentRequest,
    UNRESOLVED_STATUSES,
)
from attendance_reconciler.models.attendance import AttendanceRecord, AttendanceStatus, RecordSource
from attendance_reconciler.models.employee import Employee, Role
from attendance_reconciler.services import directory_service
from attendance_reconciler.services.activity_service import activity
from attendance_reconciler.services.resolver_service import ResolvedRecord, work_minutes_between
from attendance_reconciler.services.writer_service import write
from attendance_reconciler.utils.datetime_utils import ensure_utc, now_utc
from attendance_reconciler.utils.roles import ADMIN_ROLES, HR_REVIEW_ROLES, MANAGER_REVIEW_ROLES, has_role

logger = logging.getLogger(__name__)

APPROVE = "approve"
DENY = "deny"


def get_request(db: Session, request_id: int) -> AttendanceAdjustmentRequest:
    request = db.query(AttendanceAdjustmentRequest).filter(AttendanceAdjustmentRequest.id == request_id).first()
    if request is None:
        raise NotFound(f"Adjustment request with id {request_id} not found")
    return request


def find_unresolved(db: Session, employee_id: int, attendance_date: date) -> Optional[AttendanceAdjustmentRequest]:
    return (
        db.query(AttendanceAdjustmentRequest)
        .filter(
            AttendanceAdjustmentRequest.employee_id == employee_id,
            AttendanceAdjustmentRequest.attendance_date == attendance_date,
            AttendanceAdjustmentRequest.status.in_(UNRESOLVED_STATUSES),
        )
        .first()
    )


def create_request(
    db: Session,
    creator: Employee,
    attendance_date: date,
    reason: str,
    proposed_check_in: Optional[datetime] = None,
    proposed_check_out: Optional[datetime] = None,
    employee_id: Optional[int] = None,
) -> AttendanceAdjustmentRequest:
    """
    File an adjustment request for one employee and day.

    The employee defaults to the creator; HR and admins may file on behalf of
    others. Original check-in/out are snapshotted from the stored record.

    Raises:
        InvalidInput: Missing reason or no proposed time
        MissingApprover: Employee has no manager and the creator is not SUPER_ADMIN
        Forbidden: Filing for someone else without an HR/admin role
        DuplicateRequest: An unresolved request exists for the same employee and day
    """
    if not reason or not reason.strip():
        raise InvalidInput("reason is required")
    if proposed_check_in is None and proposed_check_out is None:
        raise InvalidInput("At least one of proposed_check_in/proposed_check_out is required")

    employee_id = employee_id if employee_id is not None else creator.id
    if employee_id != creator.id and not has_role(creator, HR_REVIEW_ROLES):
        raise Forbidden("You can only request adjustments for your own attendance")
    employee = directory_service.get_employee(db, employee_id)

    manager = directory_service.find_manager(db, employee.id)
    if manager is None and not has_role(creator, (Role.SUPER_ADMIN,)):
        raise MissingApprover("Employee does not have an assigned manager for approval")

    if find_unresolved(db, employee.id, attendance_date) is not None:
        raise DuplicateRequest("An adjustment request for this date is already pending.")

    stored = (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.employee_id == employee.id, AttendanceRecord.work_date == attendance_date)
        .first()
    )

    request = AttendanceAdjustmentRequest(
        employee_id=employee.id,
        attendance_date=attendance_date,
        original_check_in=stored.check_in if stored else None,
        original_check_out=stored.check_out if stored else None,
        proposed_check_in=ensure_utc(proposed_check_in),
        proposed_check_out=ensure_utc(proposed_check_out),
        reason=reason.strip(),
        status=AdjustmentStatus.PENDING_MANAGER_APPROVAL,
        manager_approver_id=manager.id if manager else None,
        created_by=creator.id,
    )
    db.add(request)
    try:
        db.commit()
    except IntegrityError:
        # Partial unique index caught a concurrent duplicate
        db.rollback()
        raise DuplicateRequest("An adjustment request for this date is already pending.")
    db.refresh(request)

    logger.info(
        "adjustment created: request_id=%s employee_id=%s date=%s manager_approver_id=%s",
        request.id, employee.id, attendance_date, request.manager_approver_id,
    )
    activity.record(
        creator.id, "ADJUSTMENT_CREATE", "attendance_adjustment_requests", request.id,
        meta={"employee_id": employee.id, "attendance_date": attendance_date},
    )
    return request


def _compare_and_swap(
    db: Session,
    request: AttendanceAdjustmentRequest,
    expected: AdjustmentStatus,
    values: Dict[str, Any],
) -> None:
    updated = (
        db.query(AttendanceAdjustmentRequest)
        .filter(
            AttendanceAdjustmentRequest.id == request.id,
            AttendanceAdjustmentRequest.status == expected,
        )
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        db.rollback()
        raise InvalidState(f"Adjustment request {request.id} is no longer {expected.value}")


def _decision(decision: str) -> bool:
    if decision not in (APPROVE, DENY):
        raise InvalidInput(f"decision must be '{APPROVE}' or '{DENY}'")
    return decision == APPROVE


def manager_review(
    db: Session,
    request_id: int,
    reviewer: Employee,
    decision: str,
    comment: Optional[str] = None,
) -> AttendanceAdjustmentRequest:
    """
    First-stage review.

    Raises:
        NotFound: Unknown request
        Forbidden: Reviewer is the requester, or is neither the assigned manager
            nor holds a reviewing role
        InvalidState: Request is not pending manager approval
    """
    approve = _decision(decision)
    request = get_request(db, request_id)

    if reviewer.id == request.employee_id:
        raise Forbidden("You cannot review your own adjustment request")
    if request.manager_approver_id != reviewer.id and not has_role(reviewer, MANAGER_REVIEW_ROLES):
        raise Forbidden("You are not authorized to review this request")
    if request.status != AdjustmentStatus.PENDING_MANAGER_APPROVAL:
        raise InvalidState(f"Request already {request.status.value}")

    values: Dict[str, Any] = {
        "manager_reviewed_by": reviewer.id,
        "manager_reviewed_at": now_utc(),
        "manager_comment": comment,
    }
    if approve:
        hr_approver = directory_service.find_hr_approver(db, exclude_ids=(request.employee_id, reviewer.id))
        if hr_approver is None:
            logger.warning("No HR or SUPER_ADMIN employee found for adjustment request %s", request.id)
        values["hr_approver_id"] = hr_approver.id if hr_approver else None
        values["status"] = AdjustmentStatus.PENDING_HR_APPROVAL
    else:
        values["status"] = AdjustmentStatus.DENIED_BY_MANAGER

    _compare_and_swap(db, request, AdjustmentStatus.PENDING_MANAGER_APPROVAL, values)
    db.commit()
    db.refresh(request)

    logger.info(
        "adjustment status transition: request_id=%s before=%s after=%s reviewer_id=%s",
        request.id, AdjustmentStatus.PENDING_MANAGER_APPROVAL.value, request.status.value, reviewer.id,
    )
    activity.record(
        reviewer.id, "ADJUSTMENT_MANAGER_" + ("APPROVE" if approve else "DENY"),
        "attendance_adjustment_requests", request.id, meta={"comment": comment},
    )
    return request


def adjusted_record(request: AttendanceAdjustmentRequest) -> ResolvedRecord:
    """Operator record written on final approval."""
    check_in = ensure_utc(request.proposed_check_in)
    check_out = ensure_utc(request.proposed_check_out)
    work_minutes = 0
    if check_in is not None and check_out is not None:
        work_minutes = work_minutes_between(check_in, check_out)
    status = AttendanceStatus.PRESENT if (check_in or check_out) else AttendanceStatus.ABSENT
    return ResolvedRecord(
        employee_id=request.employee_id,
        work_date=request.attendance_date,
        status=status,
        check_in=check_in,
        check_out=check_out,
        work_minutes=work_minutes,
    )


def hr_review(
    db: Session,
    request_id: int,
    reviewer: Employee,
    decision: str,
    comment: Optional[str] = None,
) -> AttendanceAdjustmentRequest:
    """
    Final review. Approval overwrites the canonical record with the proposed
    times in the same transaction as the status change.

    Raises:
        NotFound: Unknown request
        Forbidden: Reviewer is the requester or did the manager review, or is
            neither the assigned HR approver nor holds HR/admin
        InvalidState: Request is not pending HR approval
    """
    approve = _decision(decision)
    request = get_request(db, request_id)

    if reviewer.id == request.employee_id:
        raise Forbidden("You cannot review your own adjustment request")
    if reviewer.id == request.manager_reviewed_by:
        raise Forbidden("The manager-stage reviewer cannot also give the HR approval")
    if request.hr_approver_id != reviewer.id and not has_role(reviewer, HR_REVIEW_ROLES):
        raise Forbidden("You are not authorized to review this request")
    if request.status != AdjustmentStatus.PENDING_HR_APPROVAL:
        raise InvalidState(f"Request already {request.status.value}")

    values = {
        "hr_reviewed_by": reviewer.id,
        "hr_reviewed_at": now_utc(),
        "hr_comment": comment,
        "status": AdjustmentStatus.APPROVED if approve else AdjustmentStatus.DENIED_BY_HR,
    }
    _compare_and_swap(db, request, AdjustmentStatus.PENDING_HR_APPROVAL, values)

    if approve:
        # write() commits the status change together with the record
        record = write(db, adjusted_record(request), source=RecordSource.ADJUSTMENT)
        logger.info(
            "adjustment applied: request_id=%s employee_id=%s date=%s status=%s",
            request.id, record.employee_id, record.work_date, record.status.value,
        )
    else:
        db.commit()
    db.refresh(request)

    logger.info(
        "adjustment status transition: request_id=%s before=%s after=%s reviewer_id=%s",
        request.id, AdjustmentStatus.PENDING_HR_APPROVAL.value, request.status.value, reviewer.id,
    )
    activity.record(
        reviewer.id, "ADJUSTMENT_HR_" + ("APPROVE" if approve else "DENY"),
        "attendance_adjustment_requests", request.id, meta={"comment": comment},
    )
    return request


def list_requests(
    db: Session,
    current_user: Employee,
    status: Optional[AdjustmentStatus] = None,
) -> List[AttendanceAdjustmentRequest]:
    """
    Requests visible to the caller.

    Admins and executives see everything; HR sees requests awaiting HR review;
    managers see requests awaiting their review; everyone else sees their own.
    """
    query = db.query(AttendanceAdjustmentRequest)
    if has_role(current_user, ADMIN_ROLES | {Role.EXECUTIVE}):
        pass
    elif has_role(current_user, (Role.HR,)):
        query = query.filter(AttendanceAdjustmentRequest.status == AdjustmentStatus.PENDING_HR_APPROVAL)
    elif has_role(current_user, (Role.MANAGER,)):
        query = query.filter(
            AttendanceAdjustmentRequest.manager_approver_id == current_user.id,
            AttendanceAdjustmentRequest.status == AdjustmentStatus.PENDING_MANAGER_APPROVAL,
        )
    else:
        query = query.filter(AttendanceAdjustmentRequest.employee_id == current_user.id)

    if status is not None:
        query = query.filter(AttendanceAdjustmentRequest.status == status)
    return query.order_by(AttendanceAdjustmentRequest.created_at.desc(), AttendanceAdjustmentRequest.id.desc()).all()
