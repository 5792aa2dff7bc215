"""Convert attendance type configs between the single-location and multi-location shapes.

    python scripts/migrate_attendance_types.py up
    python scripts/migrate_attendance_types.py down
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import load_settings

from src.enterprise_suite.enterprise_suite.attendance.config_migration import DOWN, UP, migrate_attendance_types
from src.enterprise_suite.enterprise_suite.common.logging_config import (
    bind_tenant,
    configure_logging,
    get_logger,
    unbind_tenant,
)
from src.enterprise_suite.enterprise_suite.container import build_container

logger = get_logger("scripts.migrate_attendance_types")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Migrate attendance type configs in every tenant database")
    parser.add_argument("direction", choices=(UP, DOWN))
    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG))

    failed = 0
    for tenant in container.tenants_repo.list_active():
        token = bind_tenant(tenant.id)
        try:
            with container.tenant_router.use(tenant.database):
                changed = migrate_attendance_types(container.attendance_repo, args.direction)
            print(f"{tenant.id}: {changed} attendance types migrated {args.direction}")
        except Exception:
            failed += 1
            logger.exception("Attendance type migration failed for tenant %s", tenant.id)
        finally:
            unbind_tenant(token)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
