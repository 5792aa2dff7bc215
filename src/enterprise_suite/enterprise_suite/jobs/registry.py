"""Scheduled tenant jobs.

Cron calls ``scripts/run_jobs.py <name>`` (daily is enough); each job decides
from ``now`` whether it is due and then runs once per active tenant with that
tenant's database bound.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from ..attendance.reminders import send_punch_reminders
from ..common.logging_config import bind_tenant, get_logger, unbind_tenant
from ..leaves.jobs import accrue_monthly, reset_annual

logger = get_logger(__name__)


@dataclass(frozen=True)
class Job:
    name: str
    description: str
    is_due: Callable[[datetime], bool]
    run: Callable[[object, datetime], dict]


def _reset_annual(container, now: datetime) -> dict:
    return reset_annual(container.leaves_repo, container.users_repo, container.leave_query_service, now.year)


def _accrue_monthly(container, now: datetime) -> dict:
    return accrue_monthly(container.leaves_repo, container.users_repo, now.date())


def _reminders(container, now: datetime) -> dict:
    return send_punch_reminders(container.attendance_repo, container.users_repo, container.leaves_repo, now.date())


def _daily_summaries(container, now: datetime) -> dict:
    # yesterday is the last complete day
    work_date = now.date() - timedelta(days=1)
    summaries = container.daily_work_summary_service.generate_for(work_date)
    return {"date": work_date.isoformat(), "summaries": len(summaries)}


JOBS: dict[str, Job] = {
    job.name: job
    for job in (
        Job(
            "leave:reset-annual",
            "Carry forward unused leave and expire last year's carry-over",
            lambda now: now.month == 1 and now.day == 1,
            _reset_annual,
        ),
        Job(
            "leave:accrue-monthly",
            "Credit monthly accruals for earned leave types",
            lambda now: now.day == 1,
            _accrue_monthly,
        ),
        Job(
            "attendance:reminders",
            "Remind active users who have not punched in",
            lambda now: now.weekday() < 5,
            _reminders,
        ),
        Job(
            "daily-works:summaries",
            "Rebuild per-incharge daily work summaries",
            lambda now: True,
            _daily_summaries,
        ),
    )
}


def run_job(name: str, container, now: datetime, *, force: bool = False) -> dict:
    """Run one job across every active tenant.

    A failing tenant is logged and counted; the remaining tenants still run.
    """
    job = JOBS.get(name)
    if job is None:
        raise KeyError(f"Unknown job: {name}")
    if not force and not job.is_due(now):
        logger.info("Job %s not due at %s", name, now.isoformat())
        return {"job": name, "ran": False, "tenants": {}, "failed": 0}

    tenants: dict[str, dict] = {}
    failed = 0
    for tenant in container.tenants_repo.list_active():
        log_token = bind_tenant(tenant.id)
        try:
            with container.tenant_router.use(tenant.database):
                result = job.run(container, now)
            tenants[tenant.id] = {"ok": True, "result": result}
            logger.info("Job %s finished: %s", name, result)
        except Exception as e:
            failed += 1
            tenants[tenant.id] = {"ok": False, "error": str(e)}
            logger.exception("Job %s failed for tenant %s", name, tenant.id)
        finally:
            unbind_tenant(log_token)

    logger.info("Job %s ran for %s tenants, %s failed", name, len(tenants), failed)
    return {"job": name, "ran": True, "tenants": tenants, "failed": failed}
