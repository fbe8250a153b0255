"""
Employee directory lookups used by the engine.
"""
from typing import Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from attendance_reconciler.core.errors import NotFound
from attendance_reconciler.models.employee import Employee, Role
from attendance_reconciler.utils.roles import ORG_WIDE_ROLES, has_role


def get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFound(f"Employee {employee_id} not found")
    return employee


def find_by_device_subject(db: Session, subject_id: str) -> Optional[Employee]:
    return db.query(Employee).filter(Employee.device_subject_id == str(subject_id)).first()


def active_employees(db: Session, employee_ids: Optional[Iterable[int]] = None) -> List[Employee]:
    """Active employees, optionally restricted to employee_ids (None = everyone)."""
    query = db.query(Employee).filter(Employee.active.is_(True))
    if employee_ids is not None:
        ids = list(employee_ids)
        if not ids:
            return []
        query = query.filter(Employee.id.in_(ids))
    return query.order_by(Employee.id).all()


def find_manager(db: Session, employee_id: int) -> Optional[Employee]:
    """The employee's reporting manager, if assigned and still active."""
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None or employee.reporting_manager_id is None:
        return None
    manager = db.query(Employee).filter(Employee.id == employee.reporting_manager_id).first()
    if manager is None or not manager.active:
        return None
    return manager


def find_hr_approver(db: Session, exclude_ids: Iterable[int] = ()) -> Optional[Employee]:
    """
    First active HR employee, else the first active SUPER_ADMIN.

    exclude_ids are people who may not approve (the requester and the
    manager-stage reviewer).
    """
    excluded = [i for i in exclude_ids if i is not None]
    for role in (Role.HR, Role.SUPER_ADMIN):
        query = db.query(Employee).filter(Employee.role == role.value, Employee.active.is_(True))
        if excluded:
            query = query.filter(Employee.id.notin_(excluded))
        approver = query.order_by(Employee.id).first()
        if approver is not None:
            return approver
    return None


def employee_scope(db: Session, user: Employee) -> Optional[Set[int]]:
    """
    Employee ids whose attendance the user may see; None means everyone.

    HR, admins and executives see all; managers see themselves and their
    direct reports; everyone else sees only themselves.
    """
    if has_role(user, ORG_WIDE_ROLES):
        return None
    scope = {user.id}
    if has_role(user, (Role.MANAGER,)):
        reports = db.query(Employee.id).filter(Employee.reporting_manager_id == user.id).all()
        scope.update(r[0] for r in reports)
    return scope
