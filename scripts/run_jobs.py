"""Run one scheduled job for every active tenant.

    python scripts/run_jobs.py leave:accrue-monthly
    python scripts/run_jobs.py attendance:reminders --force
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import load_settings

from src.enterprise_suite.enterprise_suite.common.logging_config import configure_logging
from src.enterprise_suite.enterprise_suite.container import build_container
from src.enterprise_suite.enterprise_suite.jobs.registry import JOBS, run_job


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a scheduled tenant job")
    parser.add_argument("job", choices=sorted(JOBS))
    parser.add_argument("--force", action="store_true", help="run even when the job is not due today")
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG))

    result = run_job(args.job, container, container.clock(), force=args.force)
    if not result["ran"]:
        print(f"{args.job}: not due")
        return 0
    print(f"{args.job}: {len(result['tenants'])} tenants, {result['failed']} failed")
    return 1 if result["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
