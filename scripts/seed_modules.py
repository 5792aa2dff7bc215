"""Re-sync the module registry from the code definitions and print what it holds."""
from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import load_settings

from src.enterprise_suite.enterprise_suite.common.logging_config import configure_logging
from src.enterprise_suite.enterprise_suite.container import build_container
from src.enterprise_suite.enterprise_suite.modules.definitions import MODULE_DEFINITIONS
from src.enterprise_suite.enterprise_suite.modules.seeder import seed_module_registry


def main() -> None:
    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG))

    stats = seed_module_registry(container.module_permission_service, MODULE_DEFINITIONS)
    container.module_permission_service.clear_cache()

    print("Module permission system seeded:")
    print(f"  modules:      {stats['total_modules']}")
    print(f"  sub-modules:  {stats['total_sub_modules']}")
    print(f"  components:   {stats['total_components']}")
    print(f"  requirements: {stats['total_requirements']}")


if __name__ == "__main__":
    main()
