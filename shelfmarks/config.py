from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


@dataclass
class Settings:
    # Storage
    db_path: str = "shelfmarks.sqlite"
    busy_timeout_ms: int = 5000

    # Caller identity (normally supplied by the auth layer)
    owner: str = ""

    # Import pipeline
    import_batch_size: int = 20
    import_batch_pause_ms: int = 100
    import_folder_jobs: int = 8

    # Icons
    default_category_icon: str = "fa-solid fa-folder"
    default_folder_icon: str = "fa-solid fa-folder"
    default_bookmark_icon: str = "fa-solid fa-bookmark"

    # Logging / UX
    log_level: str = "INFO"
    no_color: bool = False

    @staticmethod
    def from_env() -> "Settings":
        s = Settings()
        s.db_path = _env_str("SHELF_DB_PATH", s.db_path)
        s.busy_timeout_ms = _env_int("SHELF_BUSY_TIMEOUT_MS", s.busy_timeout_ms)

        s.owner = _env_str("SHELF_OWNER", s.owner)

        s.import_batch_size = _env_int("SHELF_IMPORT_BATCH_SIZE", s.import_batch_size)
        s.import_batch_pause_ms = _env_int("SHELF_IMPORT_BATCH_PAUSE_MS", s.import_batch_pause_ms)
        s.import_folder_jobs = _env_int("SHELF_IMPORT_FOLDER_JOBS", s.import_folder_jobs)

        s.default_category_icon = _env_str("SHELF_DEFAULT_CATEGORY_ICON", s.default_category_icon)
        s.default_folder_icon = _env_str("SHELF_DEFAULT_FOLDER_ICON", s.default_folder_icon)
        s.default_bookmark_icon = _env_str("SHELF_DEFAULT_BOOKMARK_ICON", s.default_bookmark_icon)

        s.log_level = _env_str("SHELF_LOG_LEVEL", s.log_level)
        s.no_color = _env_bool("SHELF_NO_COLOR", s.no_color)
        return s

    @staticmethod
    def from_file(path: Path) -> "Settings":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        s = Settings.from_env()
        for k, v in data.items():
            if hasattr(s, k):
                setattr(s, k, v)
        return s


def load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return Settings.from_file(Path(config_path))
    return Settings.from_env()
