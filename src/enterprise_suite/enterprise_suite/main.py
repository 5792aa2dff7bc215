from __future__ import annotations

import importlib

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.logging_config import configure_logging, get_logger
from .common.web import register_error_handlers
from .container import build_container
from .core.constants import DEFAULT_TRIAL_DAYS, NAVIGATION_CACHE_SECONDS, TENANT_DB_PREFIX
from .daily_works.controller import register as register_daily_works
from .database.bootstrap import CENTRAL_SCHEMA, apply_schema, list_tables
from .events.controller import register as register_events
from .leaves.controller import register as register_leaves
from .modules.controller import register as register_modules
from .modules.definitions import MODULE_DEFINITIONS
from .modules.middleware import EXTENSION_KEY
from .modules.seeder import seed_module_registry
from .objections.controller import register as register_objections
from .subscriptions.controller import register as register_subscriptions
from .subscriptions.seeder import seed_subscriptions
from .tenancy.controller import install_tenant_hooks
from .tenancy.controller import register as register_tenancy
from .users.controller import register as register_users

logger = get_logger(__name__)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logger.info(
        "Starting settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if getattr(settings, "AUTO_INIT_DB", False):
        apply_schema(db_config, schema_path=CENTRAL_SCHEMA)
        logger.info("Central schema ready (tables=%s)", len(list_tables(db_config)))

    container = build_container(
        db_config=db_config,
        central_domains=tuple(getattr(settings, "CENTRAL_DOMAINS", ("localhost",))),
        base_domain=getattr(settings, "BASE_DOMAIN", "localhost"),
        tenant_db_prefix=getattr(settings, "TENANT_DB_PREFIX", TENANT_DB_PREFIX),
        navigation_cache_seconds=int(getattr(settings, "NAVIGATION_CACHE_SECONDS", NAVIGATION_CACHE_SECONDS)),
        trial_days=int(getattr(settings, "TRIAL_DAYS", DEFAULT_TRIAL_DAYS)),
    )

    if getattr(settings, "AUTO_SEED_DB", False):
        seed_module_registry(container.module_permission_service, MODULE_DEFINITIONS)
        seed_subscriptions(container.subscription_service, container.subscriptions_repo)

    app.extensions[EXTENSION_KEY] = container.module_permission_service
    app.extensions["container"] = container

    register_error_handlers(app)

    install_tenant_hooks(app, container)

    register_users(app, container)
    register_tenancy(app, container)
    register_subscriptions(app, container)
    register_modules(app, container)
    register_daily_works(app, container)
    register_objections(app, container)
    register_leaves(app, container)
    register_events(app, container)
    register_attendance(app, container)

    return app
