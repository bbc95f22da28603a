# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.05.13
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/config/manager.py

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Final

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from zenjournal.system.exceptions import ConfigError


# ---- Constants ----

USER_CFG: Final = "zenjournal.yml"
DEFAULT_APP_FOLDER: Final = "ZenJournal"
DRIVE_API_URL: Final = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_URL: Final = "https://www.googleapis.com/upload/drive/v3"


def _get_config_search_paths() -> tuple[Path, ...]:
    """Get config file search paths (ordered by priority: lowest to highest).

    Dynamic function so environment variables are evaluated at call time,
    not at module import time (important for test isolation).
    """
    return (
        Path("/etc/zenjournal") / USER_CFG,  # System defaults
        Path.home() / ".config" / "zenjournal" / USER_CFG,  # User config
        Path(os.getenv("XDG_CONFIG_HOME", "")) / "zenjournal" / USER_CFG,  # XDG override
        Path(os.getenv("ZENJOURNAL_CONFIG_HOME", "")) / USER_CFG,  # Explicit override (highest priority)
    )


def _default_data_dir() -> Path:
    return Path(os.getenv("XDG_DATA_HOME", Path.home() / ".local" / "share")) / "zenjournal"


def _deep_update(base: dict, override: dict) -> dict:
    """Merge override into base, recursing into nested sections."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def _load_merged_config_data(candidates: tuple[Path, ...]) -> dict:
    """Load and merge config data from candidate paths.

    Later candidates override earlier ones. Missing files are fine: the
    journal runs on defaults until someone writes a config.
    """
    merged_data: dict = {}
    found_configs = []

    for candidate in candidates:
        if candidate.exists() and candidate != Path("") / USER_CFG:  # Skip empty env vars
            try:
                with candidate.open("r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
                if not isinstance(data, dict):
                    raise ConfigError(f"Top level of {candidate} must be a mapping")
                _deep_update(merged_data, data)
                found_configs.append(str(candidate))
                logger.debug(f"Loaded config from {candidate}")
            except Exception as e:
                logger.warning(f"Failed to load config from {candidate}: {e}")

    if found_configs:
        logger.debug(f"Merged config from: {', '.join(found_configs)}")
    else:
        logger.debug(f"No {USER_CFG} found, using defaults")
    return merged_data


# ---- Config Models ----

class DriveSettings(BaseModel):
    """Remote file store (Google Drive v3) settings."""
    api_url: str = DRIVE_API_URL
    upload_url: str = DRIVE_UPLOAD_URL
    page_size: int = Field(default=100, ge=1, le=1000)
    timeout_seconds: float = Field(default=30.0, gt=0)


class SyncSettings(BaseModel):
    """Sync engine tuning."""
    download_concurrency: int = Field(default=5, ge=1, le=20, description="Text records fetched per batch")
    attachment_concurrency: int = Field(default=5, ge=1, le=20, description="Attachment downloads in flight per record")
    autosave_seconds: float = Field(default=1.0, ge=0, description="Debounce before an edit is saved")
    retry_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay: float = Field(default=0.5, ge=0)


class JournalConfig(BaseModel):
    """Application configuration."""
    app_folder_name: str = Field(default=DEFAULT_APP_FOLDER, min_length=1)
    data_dir: Path = Field(default_factory=_default_data_dir)

    # Optional logging configuration
    local_log: Optional[Path] = None

    drive: DriveSettings = Field(default_factory=DriveSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)

    @property
    def entries_path(self) -> Path:
        return self.data_dir / "entries.json"

    @property
    def session_path(self) -> Path:
        return self.data_dir / "session.json"


def load_merged_config() -> JournalConfig:
    """Load and merge config from all locations (system defaults + user overrides)."""
    candidates = _get_config_search_paths()
    merged_data = _load_merged_config_data(candidates)
    try:
        return JournalConfig.model_validate(merged_data)
    except ValidationError as e:
        raise ConfigError(str(e)) from e


# ---- Validation Function ----

def validate_config() -> list[str]:
    """Return a list of validation errors. Empty list means config is valid."""
    errors = []

    try:
        cfg = load_merged_config()
    except ConfigError as e:
        errors.append(f"Error in config: {e}")
        return errors

    if cfg.data_dir.exists() and not cfg.data_dir.is_dir():
        errors.append(f"data_dir exists but is not a directory: {cfg.data_dir}")

    if cfg.local_log:
        log_path = cfg.local_log
        if not log_path.is_absolute():
            errors.append(f"local_log path must be absolute: {log_path}")
        elif log_path.exists() and not log_path.is_dir():
            errors.append(f"local_log path exists but is not a directory: {log_path}")
        elif log_path.exists():
            test_file = log_path / ".zenjournal_write_test"
            try:
                test_file.write_text("test")
                test_file.unlink()
            except OSError as write_error:
                errors.append(f"local_log directory is not writable: {log_path} ({write_error})")

    if "/" in cfg.app_folder_name:
        errors.append(f"app_folder_name must not contain '/': {cfg.app_folder_name}")

    return errors


# done.
