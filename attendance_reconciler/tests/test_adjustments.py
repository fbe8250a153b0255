"""
Tests for the attendance adjustment approval chain
"""
from datetime import date

import pytest

from attendance_reconciler.core.errors import InvalidState
from attendance_reconciler.models import (
    AdjustmentStatus,
    AttendanceAdjustmentRequest,
    AttendanceRecord,
    AttendanceStatus,
    RecordSource,
    Role,
)
from attendance_reconciler.services import adjustment_service
from attendance_reconciler.services.reconcile_service import reconcile_range
from conftest import auth_headers, local_instant

BASE = "/api/v1/attendance/adjustments"
MONDAY = date(2025, 5, 5)


@pytest.fixture
def team(make_employee):
    hr = make_employee(role=Role.HR)
    manager = make_employee(role=Role.MANAGER)
    employee = make_employee(subject="101", manager=manager)
    return {"hr": hr, "manager": manager, "employee": employee}


def _file(client, employee, **overrides):
    body = {
        "attendance_date": "2025-05-05",
        "proposed_check_in": "2025-05-05T09:00:00",
        "proposed_check_out": "2025-05-05T17:30:00",
        "reason": "Terminal was down in the morning",
    }
    body.update(overrides)
    return client.post(BASE, json=body, headers=auth_headers(employee))


def test_create_adjustment(client, team):
    response = _file(client, team["employee"])

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending_manager_approval"
    assert data["employee_id"] == team["employee"].id
    assert data["manager_approver_id"] == team["manager"].id
    assert data["created_by"] == team["employee"].id
    # Naive input is local time; output carries the business offset
    assert data["proposed_check_in"] == "2025-05-05T09:00:00+06:00"
    assert data["original_check_in"] is None


def test_create_snapshots_stored_record(client, db, team):
    db.add(AttendanceRecord(
        employee_id=team["employee"].id,
        work_date=MONDAY,
        check_in=local_instant(2025, 5, 5, 10, 0),
        status=AttendanceStatus.INCOMPLETE,
        source=RecordSource.DEVICE,
    ))
    db.commit()

    response = _file(client, team["employee"])

    assert response.status_code == 201
    assert response.json()["original_check_in"] == "2025-05-05T10:00:00+06:00"
    assert response.json()["original_check_out"] is None


def test_duplicate_unresolved_request_conflicts(client, team):
    assert _file(client, team["employee"]).status_code == 201

    response = _file(client, team["employee"])

    assert response.status_code == 409
    assert "already pending" in response.json()["detail"]


def test_new_request_allowed_after_denial(client, team):
    request_id = _file(client, team["employee"]).json()["id"]
    client.post(f"{BASE}/{request_id}/manager-review", json={"decision": "deny"}, headers=auth_headers(team["manager"]))

    assert _file(client, team["employee"]).status_code == 201


def test_create_without_manager_is_rejected(client, make_employee):
    loner = make_employee()

    response = _file(client, loner)

    assert response.status_code == 400
    assert response.json()["error_type"] == "MissingApprover"


def test_create_requires_a_proposed_time(client, team):
    response = _file(client, team["employee"], proposed_check_in=None, proposed_check_out=None)

    assert response.status_code == 400


def test_create_rejects_unparseable_time(client, team):
    response = _file(client, team["employee"], proposed_check_in="nine o'clock")

    assert response.status_code == 422


def test_employee_cannot_file_for_someone_else(client, team, make_employee):
    colleague = make_employee(manager=team["manager"])

    response = _file(client, team["employee"], employee_id=colleague.id)

    assert response.status_code == 403


def test_hr_can_file_on_behalf(client, team):
    response = _file(client, team["hr"], employee_id=team["employee"].id)

    assert response.status_code == 201
    assert response.json()["employee_id"] == team["employee"].id
    assert response.json()["created_by"] == team["hr"].id


def test_manager_deny(client, team):
    request_id = _file(client, team["employee"]).json()["id"]

    response = client.post(
        f"{BASE}/{request_id}/manager-review",
        json={"decision": "deny", "comment": "You were on leave"},
        headers=auth_headers(team["manager"]),
    )

    assert response.status_code == 200
    assert response.json()["status"] == "denied_by_manager"
    assert response.json()["manager_comment"] == "You were on leave"
    assert response.json()["hr_approver_id"] is None


def test_full_approval_writes_adjustment_record(client, db, team):
    request_id = _file(client, team["employee"]).json()["id"]

    response = client.post(
        f"{BASE}/{request_id}/manager-review",
        json={"decision": "approve"},
        headers=auth_headers(team["manager"]),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "pending_hr_approval"
    assert response.json()["hr_approver_id"] == team["hr"].id

    response = client.post(
        f"{BASE}/{request_id}/hr-review",
        json={"decision": "approve", "comment": "ok"},
        headers=auth_headers(team["hr"]),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["hr_reviewed_by"] == team["hr"].id

    record = db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == team["employee"].id).one()
    assert record.work_date == MONDAY
    assert record.status == AttendanceStatus.PRESENT
    assert record.source == RecordSource.ADJUSTMENT
    assert record.work_minutes == 510

    # A later sweep without punches does not undo the approved correction
    summary = reconcile_range(db, MONDAY, MONDAY, employee_ids=[team["employee"].id])
    assert summary.protected == 1
    db.refresh(record)
    assert record.source == RecordSource.ADJUSTMENT


def test_hr_deny_leaves_record_alone(client, db, team):
    request_id = _file(client, team["employee"]).json()["id"]
    client.post(f"{BASE}/{request_id}/manager-review", json={"decision": "approve"}, headers=auth_headers(team["manager"]))

    response = client.post(f"{BASE}/{request_id}/hr-review", json={"decision": "deny"}, headers=auth_headers(team["hr"]))

    assert response.status_code == 200
    assert response.json()["status"] == "denied_by_hr"
    assert db.query(AttendanceRecord).count() == 0


def test_plain_employee_cannot_review(client, team, make_employee):
    request_id = _file(client, team["employee"]).json()["id"]
    bystander = make_employee()

    response = client.post(
        f"{BASE}/{request_id}/manager-review",
        json={"decision": "approve"},
        headers=auth_headers(bystander),
    )

    assert response.status_code == 403


def test_manager_cannot_do_hr_review(client, team):
    request_id = _file(client, team["employee"]).json()["id"]
    client.post(f"{BASE}/{request_id}/manager-review", json={"decision": "approve"}, headers=auth_headers(team["manager"]))

    response = client.post(f"{BASE}/{request_id}/hr-review", json={"decision": "approve"}, headers=auth_headers(team["manager"]))

    assert response.status_code == 403


def test_hr_review_before_manager_review_conflicts(client, team):
    request_id = _file(client, team["employee"]).json()["id"]

    response = client.post(f"{BASE}/{request_id}/hr-review", json={"decision": "approve"}, headers=auth_headers(team["hr"]))

    assert response.status_code == 409
    assert response.json()["error_type"] == "InvalidState"


def test_review_of_unknown_request(client, team):
    response = client.post(f"{BASE}/9999/manager-review", json={"decision": "approve"}, headers=auth_headers(team["manager"]))

    assert response.status_code == 404


def test_invalid_decision_is_rejected(client, team):
    request_id = _file(client, team["employee"]).json()["id"]

    response = client.post(
        f"{BASE}/{request_id}/manager-review",
        json={"decision": "maybe"},
        headers=auth_headers(team["manager"]),
    )

    assert response.status_code == 422


def test_lost_race_surfaces_invalid_state(db, team):
    request = adjustment_service.create_request(
        db, team["employee"], MONDAY, "forgot to punch", proposed_check_in=local_instant(2025, 5, 5, 9, 0),
    )
    # Another reviewer moved the request after it was loaded
    db.query(AttendanceAdjustmentRequest).filter(AttendanceAdjustmentRequest.id == request.id).update(
        {"status": AdjustmentStatus.DENIED_BY_MANAGER}, synchronize_session=False,
    )
    db.commit()

    with pytest.raises(InvalidState):
        adjustment_service._compare_and_swap(
            db, request, AdjustmentStatus.PENDING_MANAGER_APPROVAL, {"status": AdjustmentStatus.PENDING_HR_APPROVAL},
        )
    db.refresh(request)
    assert request.status == AdjustmentStatus.DENIED_BY_MANAGER


def test_single_time_approval_is_present_without_minutes(db, team):
    request = adjustment_service.create_request(
        db, team["employee"], MONDAY, "forgot to punch in", proposed_check_in=local_instant(2025, 5, 5, 9, 0),
    )
    adjustment_service.manager_review(db, request.id, team["manager"], adjustment_service.APPROVE)
    adjustment_service.hr_review(db, request.id, team["hr"], adjustment_service.APPROVE)

    record = db.query(AttendanceRecord).one()
    assert record.status == AttendanceStatus.PRESENT
    assert record.check_out is None
    assert record.work_minutes == 0


def test_list_visibility(client, team, make_employee):
    other_manager = make_employee(role=Role.MANAGER)
    first = _file(client, team["employee"]).json()["id"]
    second = _file(client, team["employee"], attendance_date="2025-05-06").json()["id"]
    client.post(f"{BASE}/{second}/manager-review", json={"decision": "approve"}, headers=auth_headers(team["manager"]))

    own = client.get(BASE, headers=auth_headers(team["employee"])).json()
    assert {r["id"] for r in own} == {first, second}

    managed = client.get(BASE, headers=auth_headers(team["manager"])).json()
    assert [r["id"] for r in managed] == [first]

    assert client.get(BASE, headers=auth_headers(other_manager)).json() == []

    hr_queue = client.get(BASE, headers=auth_headers(team["hr"])).json()
    assert [r["id"] for r in hr_queue] == [second]

    filtered = client.get(BASE, params={"status": "pending_hr_approval"}, headers=auth_headers(team["employee"])).json()
    assert [r["id"] for r in filtered] == [second]


def test_requires_authentication(client):
    assert client.get(BASE).status_code in (401, 403)


def test_hr_requester_is_not_their_own_hr_approver(client, db, make_employee):
    hr_requester = make_employee(role=Role.HR)
    boss = make_employee(role=Role.MANAGER)
    hr_requester.reporting_manager_id = boss.id
    db.commit()
    super_admin = make_employee(role=Role.SUPER_ADMIN)

    request_id = _file(client, hr_requester).json()["id"]
    response = client.post(f"{BASE}/{request_id}/manager-review", json={"decision": "approve"}, headers=auth_headers(boss))
    assert response.status_code == 200
    assert response.json()["hr_approver_id"] == super_admin.id

    response = client.post(f"{BASE}/{request_id}/hr-review", json={"decision": "approve"}, headers=auth_headers(hr_requester))
    assert response.status_code == 403

    response = client.post(f"{BASE}/{request_id}/hr-review", json={"decision": "approve"}, headers=auth_headers(super_admin))
    assert response.status_code == 200
    assert response.json()["status"] == "approved"


def test_manager_cannot_review_own_request(client, db, make_employee):
    director = make_employee(role=Role.MANAGER)
    manager = make_employee(role=Role.MANAGER, manager=director)

    request_id = _file(client, manager).json()["id"]
    response = client.post(f"{BASE}/{request_id}/manager-review", json={"decision": "approve"}, headers=auth_headers(manager))

    assert response.status_code == 403
    assert db.get(AttendanceAdjustmentRequest, request_id).status == AdjustmentStatus.PENDING_MANAGER_APPROVAL


def test_both_stages_need_different_reviewers(client, team, make_employee):
    second_hr = make_employee(role=Role.HR)
    request_id = _file(client, team["employee"]).json()["id"]

    response = client.post(f"{BASE}/{request_id}/manager-review", json={"decision": "approve"}, headers=auth_headers(team["hr"]))
    assert response.status_code == 200
    assert response.json()["hr_approver_id"] == second_hr.id

    response = client.post(f"{BASE}/{request_id}/hr-review", json={"decision": "approve"}, headers=auth_headers(team["hr"]))
    assert response.status_code == 403

    response = client.post(f"{BASE}/{request_id}/hr-review", json={"decision": "approve"}, headers=auth_headers(second_hr))
    assert response.status_code == 200
    assert response.json()["hr_reviewed_by"] == second_hr.id
