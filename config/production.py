import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "enterprise_central"),
}

TENANT_DB_PREFIX = os.getenv("TENANT_DB_PREFIX", "tenant_")
CENTRAL_DOMAINS = [d.strip() for d in os.getenv("CENTRAL_DOMAINS", "").split(",") if d.strip()]
BASE_DOMAIN = os.getenv("BASE_DOMAIN", "example.com")

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

NAVIGATION_CACHE_SECONDS = int(os.getenv("NAVIGATION_CACHE_SECONDS", "300"))
TRIAL_DAYS = int(os.getenv("TRIAL_DAYS", "14"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
