#!/usr/bin/env python3
"""Shared utilities for the studio integrations.

Provides common functionality used across multiple integrations:
- make_logger: Attach a file log next to stdout for a logger tree
- format_uptime: Human readable durations for status replies
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from integrations.config import SYNC_LOG


def make_logger(name: str, log_file: Optional[Path] = None) -> logging.Logger:
    """Create a logger that also writes to a file.

    Args:
        name: Logger name (a module or package prefix, e.g. "sync_loop")
        log_file: Path for log file. If None, uses STATE_DIR/sync.log

    Returns:
        Configured logger instance
    """
    if log_file is None:
        log_file = SYNC_LOG

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Avoid adding duplicate handlers
    target = str(Path(log_file).resolve())
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return logger

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(file_handler)

    return logger


def format_uptime(delta: timedelta) -> str:
    """Format a duration as e.g. "2d 3h 4m" (seconds only under a minute)."""
    total = int(delta.total_seconds())
    if total < 60:
        return f"{max(total, 0)}s"

    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours or days:
        parts.append(f"{hours}h")
    parts.append(f"{minutes}m")
    return " ".join(parts)
