# Author: PB & Claude
# Maintainer: PB
# Original date: 2025.06.01
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/zenjournal/system/logging_setup.py

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from zenjournal.config.manager import JournalConfig, load_merged_config
from zenjournal.data.naming import sanitize_title

FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[app_folder]} session={extra[session]} | "
    "{name}:{function}:{line} - {message}"
)


def log_file_path(config: JournalConfig) -> Path:
    """One log file per app folder, so two journals on one machine stay apart."""
    return Path(config.local_log) / f"zenjournal-{sanitize_title(config.app_folder_name)}.log"


def setup_logging(config: Optional[JournalConfig] = None, debug: bool = False) -> None:
    """Setup loguru logging for the entire application.

    Configures:
    - Console output: WARNING+ only (clean CLI output), DEBUG+ with debug=True
    - File output: DEBUG+ if local_log is configured, every line tagged with
      the app folder and the session generation it was written under
      (`logger.contextualize(session=...)`; "-" outside a session)
    """
    logger.remove()
    logger.configure(extra={"app_folder": "-", "session": "-"})

    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "WARNING",
        format="<level>{level}</level>: {message}",
        colorize=True
    )

    try:
        if config is None:
            config = load_merged_config()
        logger.configure(extra={"app_folder": config.app_folder_name, "session": "-"})
        if config.local_log:
            log_file = log_file_path(config)
            log_file.parent.mkdir(parents=True, exist_ok=True)

            logger.add(
                log_file,
                level="DEBUG",
                format=FILE_FORMAT,
                rotation="10 MB",
                retention="30 days",
                compression="gz"
            )
            logger.debug(f"File logging enabled: {log_file}")

    except Exception as e:
        # Don't fail the entire application if logging setup fails
        logger.warning(f"Failed to setup file logging: {e}")
