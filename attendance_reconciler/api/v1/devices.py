"""
Biometric terminal endpoints: on-demand sync and enrolment check
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from attendance_reconciler.core.deps import get_terminal_client, require_roles
from attendance_reconciler.db.session import get_db
from attendance_reconciler.models.employee import Employee, Role
from attendance_reconciler.schemas.device import SyncResponse, UnmappedSubjectsOut
from attendance_reconciler.services.ingest_service import list_unmapped_subjects, require_device
from attendance_reconciler.services.reconcile_service import sync_and_reconcile
from attendance_reconciler.services.terminal_client import TerminalClient

router = APIRouter()
_log = logging.getLogger(__name__)


@router.post("/{device_id}/sync", response_model=SyncResponse)
def sync_device(
    device_id: str,
    db: Session = Depends(get_db),
    client: TerminalClient = Depends(get_terminal_client),
    current_user: Employee = Depends(require_roles(Role.HR, Role.ADMIN)),
):
    """
    Pull new punches from the terminal and reconcile the days they touch.

    404 for a device that is not configured; 409 if a sync for the device is
    already running; 503 if the terminal is unreachable (nothing is written).
    """
    _log.info("sync requested: actor_id=%s device_id=%s", current_user.id, device_id)
    result, summary = sync_and_reconcile(db, client, device_id, actor_id=current_user.id)
    return {"ingest": result.as_dict(), "reconcile": summary.as_dict()}


@router.get("/{device_id}/subjects", response_model=UnmappedSubjectsOut)
def unmapped_subjects(
    device_id: str,
    db: Session = Depends(get_db),
    client: TerminalClient = Depends(get_terminal_client),
    current_user: Employee = Depends(require_roles(Role.HR, Role.ADMIN)),
):
    """Terminal users that are not mapped to any employee."""
    require_device(device_id)
    return {"device_id": device_id, "unmapped_subjects": list_unmapped_subjects(db, client)}
