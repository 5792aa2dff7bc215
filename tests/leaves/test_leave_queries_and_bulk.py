from datetime import date, datetime

import pytest

from src.enterprise_suite.enterprise_suite.core.enums import LeaveStatus, Role
from src.enterprise_suite.enterprise_suite.core.exceptions import ValidationError
from src.enterprise_suite.enterprise_suite.leaves.bulk_validation import BulkLeaveValidator, group_consecutive
from src.enterprise_suite.enterprise_suite.leaves.model import Holiday, Leave
from src.enterprise_suite.enterprise_suite.leaves.query_service import LeaveQueryService, map_statuses
from src.enterprise_suite.enterprise_suite.leaves.service import LeaveService
from src.enterprise_suite.enterprise_suite.users.model import SessionUser

from tests.leaves.leave_fakes import FakeLeaveRepo, FakeUsers

NOW = datetime(2026, 3, 1, 9, 0)
WORKER = SessionUser(user_id=1, name="Worker", email="w@example.com", role=Role.EMPLOYEE)
ADMIN = SessionUser(user_id=9, name="Admin", email="a@example.com", role=Role.ADMIN)
HOLI = Holiday(id=1, title="Holi", from_date=date(2026, 3, 4), to_date=date(2026, 3, 4))


def _leave(leave_id, start, days, status=LeaveStatus.APPROVED, leave_type_id=1, user_id=1):
    return Leave(
        id=leave_id,
        user_id=user_id,
        leave_type_id=leave_type_id,
        from_date=start,
        to_date=date(start.year, start.month, start.day + days - 1),
        no_of_days=days,
        reason="x",
        status=status,
        leave_type="Casual" if leave_type_id == 1 else "Sick",
    )


def _query(repo):
    return LeaveQueryService(repo, FakeUsers(), clock=lambda: NOW)


def test_map_statuses():
    assert map_statuses("pending") == ["New", "Pending"]
    assert map_statuses(["rejected", "approved"]) == ["Declined", "Rejected", "Approved"]
    assert map_statuses("all") == []
    assert map_statuses("cancelled") == ["Cancelled"]


def test_balances_count_open_and_approved_leaves():
    repo = FakeLeaveRepo(
        leaves=[
            _leave(1, date(2026, 1, 5), 2),
            _leave(2, date(2026, 2, 9), 1, LeaveStatus.PENDING),
            _leave(3, date(2026, 2, 16), 1, LeaveStatus.REJECTED),
        ],
        carried={(1, 1, 2026): 2.0},
    )
    casual = _query(repo).balances(1)[0]
    assert (casual["used"], casual["carried"], casual["remaining"]) == (3, 2.0, 4.0)


def test_filter_scopes_non_admins_to_themselves():
    repo = FakeLeaveRepo(leaves=[_leave(1, date(2026, 1, 5), 1), _leave(2, date(2026, 1, 6), 1, user_id=2)])
    result = _query(repo).filter(filters={"user_id": 2, "month": "2026-01"}, current_user=WORKER)
    assert repo.last_search["user_id"] == 1
    assert repo.last_search["start"] == date(2026, 1, 1)
    assert result["total"] == 1

    result = _query(repo).filter(filters={"admin_view": True, "status": "approved"}, current_user=ADMIN)
    assert "user_id" not in repo.last_search
    assert repo.last_search["statuses"] == ["Approved"]
    assert result["total"] == 2


def test_statistics_and_summary():
    repo = FakeLeaveRepo(
        leaves=[_leave(1, date(2026, 1, 5), 2), _leave(2, date(2026, 2, 9), 1, LeaveStatus.NEW, leave_type_id=2)]
    )
    stats = _query(repo).statistics(2026)
    assert stats["by_status"] == {"pending": 1, "approved": 1, "rejected": 0}
    assert stats["approved_days_by_type"] == {"Casual": 2}

    row = _query(repo).summary(2026)[0]
    assert row["JAN"] == 2
    assert row["total_pending"] == 1
    assert row["total_balance"] == 12
    assert row["department"] == "Site"


def test_holiday_dates_require_ordered_range():
    query = _query(FakeLeaveRepo(holidays=[HOLI]))
    assert query.holiday_dates(date(2026, 3, 1), date(2026, 3, 31)) == [date(2026, 3, 4)]
    with pytest.raises(ValidationError):
        query.holiday_dates(date(2026, 3, 31), date(2026, 3, 1))


def test_group_consecutive():
    days = [date(2026, 3, 3), date(2026, 3, 2), date(2026, 3, 5)]
    assert group_consecutive(days) == [(date(2026, 3, 2), date(2026, 3, 3)), (date(2026, 3, 5), date(2026, 3, 5))]


def _validator(repo):
    return BulkLeaveValidator(repo, _query(repo), clock=lambda: NOW)


def test_bulk_validate_marks_warnings_and_conflicts():
    repo = FakeLeaveRepo(holidays=[HOLI], leaves=[_leave(1, date(2026, 3, 6), 1)])
    report = _validator(repo).validate(
        1, ["2026-03-02", "2026-03-04", "2026-03-06", "2026-03-07", "2026-02-27", "bad", "2026-03-02"], 1
    )
    statuses = [r["status"] for r in report["validation_results"]]
    assert statuses == ["ok", "warning", "conflict", "warning", "conflict", "conflict", "conflict"]
    assert report["summary"]["estimated_balance_impact"] == 1


def test_bulk_validate_runs_out_of_balance():
    repo = FakeLeaveRepo()
    days = ["2026-03-02", "2026-03-03", "2026-03-04", "2026-03-05", "2026-03-06", "2026-03-09"]
    report = _validator(repo).validate(1, days, 1)
    assert report["summary"]["conflicts"] == 1
    assert report["validation_results"][-1]["errors"] == ["Insufficient Casual balance."]


def test_bulk_create_groups_runs_and_skips_weekends():
    repo = FakeLeaveRepo()
    users = FakeUsers()
    query = _query(repo)
    service = LeaveService(repo, users, query, clock=lambda: NOW)
    result = _validator(repo).bulk_create(
        service,
        user_id=1,
        dates=["2026-03-05", "2026-03-06", "2026-03-07", "2026-03-09"],
        leave_type_id=1,
        reason="Trip",
        current_user=WORKER,
    )
    assert result["created_count"] == 2
    assert [(c["from_date"], c["to_date"]) for c in result["created"]] == [
        ("2026-03-05", "2026-03-06"),
        ("2026-03-09", "2026-03-09"),
    ]


def test_bulk_create_refuses_conflicts():
    repo = FakeLeaveRepo()
    service = LeaveService(repo, FakeUsers(), _query(repo), clock=lambda: NOW)
    with pytest.raises(ValidationError) as info:
        _validator(repo).bulk_create(
            service, user_id=1, dates=["2026-02-01"], leave_type_id=1, reason="x", current_user=WORKER
        )
    assert "2026-02-01" in info.value.errors
    assert repo.rows == {}
