"""Logging setup.

Log files live in `logs/` (relative to CWD unless configured) and rotate by
date through TimedRotatingFileHandler.

- Rotation: daily (midnight).
- Retention: retention_days (30 by default).
- Level: level (INFO by default).
- Console: stderr, so it never mixes with the report on stdout.
"""
from __future__ import annotations

import glob
import logging
import os
import sys
import time
from logging.handlers import TimedRotatingFileHandler

_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LOG_FILE = "pwd_expiry.log"

# Track installed handlers so reconfiguration replaces them.
_file_handler: logging.Handler | None = None
_console_handler: logging.Handler | None = None


def _parse_level(level: str) -> tuple[str, int]:
    level_str = (level or "INFO").strip().upper()
    if level_str not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        level_str = "INFO"
    return level_str, getattr(logging, level_str, logging.INFO)


def setup_logging(
    level: str = "INFO",
    log_dir: str = "logs",
    retention_days: int = 30,
    console_level: str = "WARNING",
) -> None:
    """Configure the root logger.

    - File handler: daily rotation, `level`.
    - Console handler: stderr, `console_level` (the report itself goes to stdout).
    """
    global _file_handler, _console_handler

    level_str, log_level = _parse_level(level)
    _, con_level = _parse_level(console_level)
    retention_days = max(1, min(365, int(retention_days or 30)))

    root = logging.getLogger()

    if _file_handler and _file_handler in root.handlers:
        root.removeHandler(_file_handler)
        _file_handler.close()
    if _console_handler and _console_handler in root.handlers:
        root.removeHandler(_console_handler)

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)

    os.makedirs(log_dir, exist_ok=True)
    fh = TimedRotatingFileHandler(
        os.path.join(log_dir, _LOG_FILE),
        when="midnight",
        interval=1,
        backupCount=retention_days,
        encoding="utf-8",
        utc=True,
    )
    fh.suffix = "%Y-%m-%d"
    fh.setLevel(log_level)
    fh.setFormatter(formatter)
    _file_handler = fh

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(con_level)
    ch.setFormatter(formatter)
    _console_handler = ch

    root.setLevel(min(log_level, con_level))
    root.addHandler(fh)
    root.addHandler(ch)

    _cleanup_old_logs(log_dir, retention_days)

    # ldap3 is chatty at DEBUG.
    logging.getLogger("ldap3").setLevel(max(log_level, logging.WARNING))

    logging.getLogger("pwd_expiry").debug(
        "Logging configured: level=%s, retention=%d days, dir=%s",
        level_str, retention_days, log_dir,
    )


def _cleanup_old_logs(log_dir: str, retention_days: int) -> None:
    """Remove rotated log files older than retention_days."""
    cutoff = time.time() - (retention_days * 86400)
    for f in glob.glob(os.path.join(log_dir, _LOG_FILE + ".*")):
        try:
            if os.path.getmtime(f) < cutoff:
                os.remove(f)
        except OSError:
            continue
