from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import load_settings

from src.enterprise_suite.enterprise_suite.common.logging_config import configure_logging
from src.enterprise_suite.enterprise_suite.database.bootstrap import CENTRAL_SCHEMA, apply_schema, list_tables


def main() -> None:
    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    apply_schema(db_config, schema_path=CENTRAL_SCHEMA)
    tables = list_tables(db_config)
    print(
        "OK: Applied central_schema.sql -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(tables={len(tables)})"
    )


if __name__ == "__main__":
    main()
