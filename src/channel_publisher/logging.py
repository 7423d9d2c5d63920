"""Logging helpers for the publisher CLI."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> <level>{level: <8}</level> {message}"
WORKSPACE_ENV = "CHANNEL_PUBLISHER_WORKSPACE"


def init_logging(log_file: Optional[Path] = None, level: str = "INFO") -> None:
    """Send logs to stderr and to a rotating file; stdout carries command results only."""

    logger.remove()
    logger.add(
        lambda msg: sys.stderr.write(msg),
        colorize=sys.stderr.isatty(),
        level=level.upper(),
        format=CONSOLE_FORMAT,
    )

    target = log_file or _default_log_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    logger.add(target, level=level.upper(), rotation="10 MB", retention="7 days", encoding="utf-8")
    logger.debug("Writing publisher log to {}", target)


def log_operation(namespace: str, action: str, source: str, destination: str, dry_run: bool = False) -> None:
    """Emit the one-line trace written for every storage operation."""

    prefix = "[dry-run] " if dry_run else ""
    logger.info("{}> {} {} {} -> {}", prefix, namespace, action, source, destination)


def _default_log_path() -> Path:
    workspace = os.environ.get(WORKSPACE_ENV, "target")
    return Path(workspace).expanduser().resolve() / "logs" / "publisher.log"
