"""Filesystem locations for user data, logs and the dataset cache."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

__all__ = [
    "APP_DIR_NAME",
    "get_user_data_dir",
    "get_log_directory",
    "get_cache_directory",
]

APP_DIR_NAME = "AttendanceDashboard"


@lru_cache(maxsize=None)
def get_user_data_dir(app_name: str = APP_DIR_NAME) -> Path:
    """Per-user folder holding logs and cached datasets."""

    base = Path(os.path.expanduser("~")) / app_name
    base.mkdir(parents=True, exist_ok=True)
    return base


@lru_cache(maxsize=None)
def get_log_directory(subdir: str = "logs", app_name: str = APP_DIR_NAME) -> Path:
    root = get_user_data_dir(app_name)
    log_dir = root / subdir
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_cache_directory(configured: Path | None = None, app_name: str = APP_DIR_NAME) -> Path:
    """Configured cache folder, or ``~/AttendanceDashboard/cache``."""

    directory = Path(configured).expanduser() if configured else get_user_data_dir(app_name) / "cache"
    directory.mkdir(parents=True, exist_ok=True)
    return directory
