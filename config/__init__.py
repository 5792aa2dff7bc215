import importlib
import os
from types import ModuleType

from dotenv import load_dotenv

_SETTINGS_BY_ENV = {
    "prod": "config.production",
    "production": "config.production",
    "test": "config.testing",
    "testing": "config.testing",
}


def get_settings_module() -> str:
    # unknown APP_ENV values fall back to development
    env = os.getenv("APP_ENV", "development").strip().lower()
    return _SETTINGS_BY_ENV.get(env, "config.development")


def load_settings() -> ModuleType:
    """Load ``.env`` into the environment and import the active settings module."""
    load_dotenv(override=False)
    return importlib.import_module(get_settings_module())
