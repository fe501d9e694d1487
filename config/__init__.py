"""Settings selection by ``APP_ENV``."""

import importlib
import os
from types import ModuleType
from typing import Optional

_ENVIRONMENTS = {
    "dev": "development",
    "development": "development",
    "prod": "production",
    "production": "production",
    "test": "testing",
    "testing": "testing",
}


def get_settings_module(env: Optional[str] = None) -> str:
    """Unknown or empty names fall back to development."""
    name = (env if env is not None else os.getenv("APP_ENV", "")).strip().lower()
    return f"config.{_ENVIRONMENTS.get(name, 'development')}"


def load_settings(env: Optional[str] = None) -> ModuleType:
    return importlib.import_module(get_settings_module(env))
