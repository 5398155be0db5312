"""Конфигурация приложения."""
import os
from functools import lru_cache


def _flag(name: str) -> bool:
    return os.environ.get(name, "0").lower() in ("1", "true", "yes")


@lru_cache
def get_config():
    debug = _flag("DEBUG")
    return type("Config", (), {
        "debug": debug,
        "allowed_origins": os.environ.get("ALLOWED_ORIGINS", "*").split(","),
        "ready_check": _flag("READY_CHECK"),
        "log_level": "DEBUG" if debug else os.environ.get("LOG_LEVEL", "INFO").upper(),
    })()
