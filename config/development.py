import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

# Central database: tenants, plans, billable modules, module registry, platform admins
DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "enterprise_central"),
}

TENANT_DB_PREFIX = os.getenv("TENANT_DB_PREFIX", "tenant_")
CENTRAL_DOMAINS = [d.strip() for d in os.getenv("CENTRAL_DOMAINS", "localhost,127.0.0.1").split(",") if d.strip()]
BASE_DOMAIN = os.getenv("BASE_DOMAIN", "localhost")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

NAVIGATION_CACHE_SECONDS = int(os.getenv("NAVIGATION_CACHE_SECONDS", "300"))
TRIAL_DAYS = int(os.getenv("TRIAL_DAYS", "14"))

# If enabled, app will apply central_schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed plans and the module registry on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
