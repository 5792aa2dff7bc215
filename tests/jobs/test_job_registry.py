from contextlib import contextmanager
from datetime import datetime

import pytest

from src.enterprise_suite.enterprise_suite.jobs.registry import JOBS, run_job
from src.enterprise_suite.enterprise_suite.tenancy.model import Tenant


class FakeTenants:
    def __init__(self, tenants):
        self.tenants = tenants

    def list_active(self):
        return self.tenants


class FakeRouter:
    def __init__(self):
        self.current = None
        self.used = []

    @contextmanager
    def use(self, database):
        self.current = database
        self.used.append(database)
        try:
            yield
        finally:
            self.current = None


class FakeSummaryService:
    def __init__(self, router, failing_database=None):
        self.router = router
        self.failing_database = failing_database
        self.dates = []

    def generate_for(self, work_date):
        if self.router.current == self.failing_database:
            raise RuntimeError("table missing")
        self.dates.append((self.router.current, work_date))
        return ["summary"]


class Container:
    def __init__(self, tenants, failing_database=None):
        self.tenants_repo = FakeTenants(tenants)
        self.tenant_router = FakeRouter()
        self.daily_work_summary_service = FakeSummaryService(self.tenant_router, failing_database)


TENANTS = [
    Tenant(id="acme", name="Acme", database="tenant_acme"),
    Tenant(id="globex", name="Globex", database="tenant_globex"),
]


def test_due_predicates():
    jan_first = datetime(2026, 1, 1, 0, 5)
    assert JOBS["leave:reset-annual"].is_due(jan_first)
    assert not JOBS["leave:reset-annual"].is_due(datetime(2026, 2, 1))
    assert JOBS["leave:accrue-monthly"].is_due(datetime(2026, 2, 1))
    assert not JOBS["attendance:reminders"].is_due(datetime(2026, 3, 7, 10))


def test_summaries_run_per_tenant_for_yesterday():
    container = Container(TENANTS)
    result = run_job("daily-works:summaries", container, datetime(2026, 3, 2, 1, 0))

    assert result["ran"] is True
    assert result["failed"] == 0
    assert container.daily_work_summary_service.dates == [
        ("tenant_acme", datetime(2026, 3, 1).date()),
        ("tenant_globex", datetime(2026, 3, 1).date()),
    ]
    assert result["tenants"]["acme"]["result"] == {"date": "2026-03-01", "summaries": 1}


def test_failing_tenant_does_not_stop_the_others():
    container = Container(TENANTS, failing_database="tenant_acme")
    result = run_job("daily-works:summaries", container, datetime(2026, 3, 2, 1, 0))

    assert result["failed"] == 1
    assert result["tenants"]["acme"] == {"ok": False, "error": "table missing"}
    assert result["tenants"]["globex"]["ok"] is True


def test_jobs_not_due_are_skipped_unless_forced():
    container = Container(TENANTS)
    skipped = run_job("attendance:reminders", container, datetime(2026, 3, 7, 10))
    assert skipped["ran"] is False
    assert container.tenant_router.used == []

    with pytest.raises(KeyError):
        run_job("payroll:run", container, datetime(2026, 3, 7))
