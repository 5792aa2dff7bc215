from datetime import date, datetime

import pytest

from src.enterprise_suite.enterprise_suite.core.enums import LeaveStatus, Role
from src.enterprise_suite.enterprise_suite.core.exceptions import AuthorizationError, ValidationError
from src.enterprise_suite.enterprise_suite.leaves.model import Leave
from src.enterprise_suite.enterprise_suite.leaves.query_service import LeaveQueryService
from src.enterprise_suite.enterprise_suite.leaves.service import LeaveService
from src.enterprise_suite.enterprise_suite.users.model import SessionUser

from tests.leaves.leave_fakes import FakeLeaveRepo, FakeUsers

NOW = datetime(2026, 3, 1, 9, 0)

WORKER = SessionUser(user_id=1, name="Worker", email="w@example.com", role=Role.EMPLOYEE)
MANAGER = SessionUser(user_id=2, name="Manager", email="m@example.com", role=Role.EMPLOYEE)
ADMIN = SessionUser(user_id=9, name="Admin", email="a@example.com", role=Role.ADMIN)


def _service(repo=None):
    repo = repo or FakeLeaveRepo()
    users = FakeUsers()
    query = LeaveQueryService(repo, users, clock=lambda: NOW)
    return LeaveService(repo, users, query, clock=lambda: NOW), repo


def _apply(svc, start="2026-03-02", end="2026-03-03", leave_type_id=1, user=WORKER):
    return svc.apply(leave_type_id=leave_type_id, from_date=start, to_date=end, reason="Family", current_user=user)


def test_apply_builds_manager_approval_chain():
    svc, _ = _service()
    leave = _apply(svc)

    assert leave.status == LeaveStatus.NEW
    assert leave.no_of_days == 2
    assert leave.current_approval_level == 1
    assert leave.approval_chain[0]["approver_id"] == 2


def test_auto_approve_types_are_approved_immediately():
    svc, _ = _service()
    leave = _apply(svc, leave_type_id=2)
    assert leave.status == LeaveStatus.APPROVED
    assert leave.approved_at == NOW


def test_apply_rejects_overlap_and_overdraw():
    svc, _ = _service()
    _apply(svc)
    with pytest.raises(ValidationError, match="overlap"):
        _apply(svc, "2026-03-03", "2026-03-04")
    with pytest.raises(ValidationError, match="Insufficient Casual balance"):
        _apply(svc, "2026-03-10", "2026-03-13")


def test_carried_days_extend_the_balance():
    svc, _ = _service(FakeLeaveRepo(carried={(1, 1, 2026): 3.0}))
    leave = _apply(svc, "2026-03-02", "2026-03-09")
    assert leave.no_of_days == 8


def test_apply_for_someone_else_needs_admin():
    svc, _ = _service()
    with pytest.raises(AuthorizationError):
        svc.apply(
            leave_type_id=1, from_date="2026-03-02", to_date="2026-03-02", reason="x", current_user=MANAGER, user_id=1
        )
    with pytest.raises(ValidationError):
        _apply(svc, "2026-03-05", "2026-03-02")


def test_chain_approver_can_approve_and_others_cannot():
    svc, _ = _service()
    leave = _apply(svc)
    with pytest.raises(AuthorizationError):
        svc.approve(leave.id, current_user=WORKER)

    approved = svc.approve(leave.id, current_user=MANAGER, comments="ok")
    assert approved.status == LeaveStatus.APPROVED
    assert approved.approved_by == 2
    assert approved.approval_chain[0]["status"] == "approved"

    with pytest.raises(ValidationError):
        svc.approve(leave.id, current_user=ADMIN)


def test_reject_needs_reason():
    svc, _ = _service()
    leave = _apply(svc)
    with pytest.raises(ValidationError):
        svc.reject(leave.id, reason=" ", current_user=ADMIN)
    rejected = svc.reject(leave.id, reason="Busy week", current_user=ADMIN)
    assert rejected.status == LeaveStatus.REJECTED
    assert rejected.rejected_by == 9


def test_bulk_approve_reports_failures():
    existing = Leave(
        id=50,
        user_id=1,
        leave_type_id=1,
        from_date=date(2026, 2, 2),
        to_date=date(2026, 2, 2),
        no_of_days=1,
        reason="x",
        status=LeaveStatus.APPROVED,
    )
    svc, _ = _service(FakeLeaveRepo(leaves=[existing]))
    leave = _apply(svc)
    result = svc.bulk_approve([leave.id, 50, 404], current_user=ADMIN)
    assert result["succeeded"] == [leave.id]
    assert result["failed_count"] == 2


def test_delete_rules():
    svc, repo = _service()
    leave = _apply(svc)
    with pytest.raises(AuthorizationError):
        svc.delete(leave.id, current_user=MANAGER)
    svc.approve(leave.id, current_user=ADMIN)
    with pytest.raises(ValidationError):
        svc.delete(leave.id, current_user=WORKER)
    svc.delete(leave.id, current_user=ADMIN)
    assert repo.get(leave.id) is None
