from __future__ import annotations

import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import load_settings

from src.enterprise_suite.enterprise_suite.common.logging_config import configure_logging
from src.enterprise_suite.enterprise_suite.container import build_container
from src.enterprise_suite.enterprise_suite.database.bootstrap import ensure_admin_user
from src.enterprise_suite.enterprise_suite.modules.definitions import MODULE_DEFINITIONS
from src.enterprise_suite.enterprise_suite.modules.seeder import seed_module_registry
from src.enterprise_suite.enterprise_suite.subscriptions.seeder import seed_subscriptions


def main() -> None:
    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)
    container = build_container(db_config=db_config)

    stats = seed_module_registry(container.module_permission_service, MODULE_DEFINITIONS)
    result = seed_subscriptions(container.subscription_service, container.subscriptions_repo)
    admin_id = ensure_admin_user(
        db_config,
        name=os.getenv("PLATFORM_ADMIN_NAME", "Platform Admin"),
        email=os.getenv("PLATFORM_ADMIN_EMAIL", "admin@example.com"),
        password=os.getenv("PLATFORM_ADMIN_PASSWORD", "password123"),
    )

    print(
        "OK: Seeded central database -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(modules={stats['total_modules']}, plans_created={result['plans_created']}, admin_id={admin_id})"
    )


if __name__ == "__main__":
    main()
