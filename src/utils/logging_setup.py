"""Logging configuration with file rotation support.

Provides centralized logging setup with optional file output and rotation.

Log Level Precedence (deterministic resolution order):
1. CLI/explicit parameter (log_level argument to setup_logging)
2. Environment variable (APP_LOG_LEVEL in the process environment)
3. Config defaults (config.app.log_level, which also reads .env)
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from utils.config import get_config

logger = logging.getLogger(__name__)

LOG_FILE_PREFIX = "housing_"


def resolve_log_level(log_level: str | None = None) -> str:
    """Resolve the effective log level name using the precedence order."""
    if log_level is not None:
        return log_level.upper()
    env_level = os.environ.get("APP_LOG_LEVEL")
    if env_level:
        return env_level.upper()
    return get_config().app.log_level


def setup_logging(
    log_level: str | None = None,
    log_dir: Path | None = None,
    log_to_file: bool | None = None,
) -> None:
    """Configure application logging with optional file output and rotation.

    Args:
        log_level: Explicit logging level override (highest priority).
        log_dir: Directory for log files (defaults to <data_dir>/logs).
        log_to_file: Enable the rotating file handler (defaults to config).
    """
    config = get_config()

    resolved_level = resolve_log_level(log_level)
    numeric_level = getattr(logging, resolved_level, logging.INFO)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()

    # Console handler (always present)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(console_handler)

    if log_to_file is None:
        log_to_file = config.app.log_to_file

    if log_to_file:
        if log_dir is None:
            log_dir = config.app.data_dir / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = (
            log_dir
            / f"{LOG_FILE_PREFIX}{datetime.now(UTC).strftime('%Y%m%d_%H%M%S')}.log"
        )
        retention_count = config.app.log_retention_count

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=retention_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)

        _cleanup_old_logs(log_dir, retention_count)

        logger.info(f"Logging to file: {log_file}")

    logger.info(f"Logging configured with level: {resolved_level}")


def _cleanup_old_logs(log_dir: Path, keep_count: int) -> None:
    """Remove old log files, keeping only the most recent ones.

    Args:
        log_dir: Directory containing log files.
        keep_count: Number of most recent log files to keep.
    """
    try:
        log_files = sorted(
            log_dir.glob(f"{LOG_FILE_PREFIX}*.log*"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )

        for log_file in log_files[keep_count:]:
            try:
                log_file.unlink()
                logger.debug(f"Deleted old log file: {log_file}")
            except OSError as e:
                logger.warning(f"Failed to delete old log file {log_file}: {e}")
    except OSError as e:
        logger.warning(f"Failed to cleanup old log files: {e}")
