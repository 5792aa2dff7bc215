from dataclasses import replace
from datetime import date, datetime

from src.enterprise_suite.enterprise_suite.core.enums import LeaveStatus
from src.enterprise_suite.enterprise_suite.leaves.jobs import accrue_monthly, reset_annual
from src.enterprise_suite.enterprise_suite.leaves.model import Leave
from src.enterprise_suite.enterprise_suite.leaves.query_service import LeaveQueryService

from tests.leaves.leave_fakes import CASUAL, EARNED, SICK, FakeLeaveRepo, FakeUsers, default_users


def test_reset_annual_carries_unused_days_of_carry_forward_types():
    used = Leave(
        id=1,
        user_id=1,
        leave_type_id=1,
        from_date=date(2025, 6, 2),
        to_date=date(2025, 6, 4),
        no_of_days=3,
        reason="x",
        status=LeaveStatus.APPROVED,
    )
    repo = FakeLeaveRepo(leaves=[used])
    users = FakeUsers()
    query = LeaveQueryService(repo, users, clock=lambda: datetime(2026, 1, 1))

    result = reset_annual(repo, users, query, 2026)

    assert result == {"year": 2026, "carried": 2, "expired": 1}
    carried = {(c.user_id, c.leave_type_id): c.carried_days for c in repo.carry_forwards}
    assert carried == {(1, 1): 2.0, (2, 1): 5.0}
    assert repo.carry_forwards[0].expiry_date == date(2026, 12, 31)
    assert repo.expired_years == [2025]


def test_accrue_monthly_is_idempotent_and_skips_future_joiners():
    users = default_users()
    users[1] = replace(users[1], date_of_joining=date(2026, 4, 1))
    repo = FakeLeaveRepo(settings=(CASUAL, SICK, EARNED))
    fake_users = FakeUsers(users)

    first = accrue_monthly(repo, fake_users, date(2026, 3, 1))
    assert (first["created"], first["skipped"]) == (1, 0)
    accrual = next(iter(repo.accruals.values()))
    assert accrual.accrued_days == 1.5
    assert accrual.notes == "Monthly accrual for March 2026"

    again = accrue_monthly(repo, fake_users, date(2026, 3, 1))
    assert (again["created"], again["skipped"]) == (0, 1)

    accrue_monthly(repo, fake_users, date(2026, 4, 1))
    latest = repo.accruals[(1, 3, date(2026, 4, 1))]
    assert latest.balance_after == 3.0
