import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "enterprise_central_test"),
}

TENANT_DB_PREFIX = "tenant_test_"
CENTRAL_DOMAINS = ["localhost"]
BASE_DOMAIN = "localhost"

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

NAVIGATION_CACHE_SECONDS = 300
TRIAL_DAYS = 14

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
