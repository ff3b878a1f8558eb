"""
Logging configuration — one setup call for the CLI process.

Every module logs through ``logging.getLogger(__name__)``; main.py calls
``setup_logging`` once before any command runs.

Levels carry the installer's error tiers:
    INFO     a fallback step failed and the next one is tried
    WARNING  a stage degraded and the run continues
    ERROR    the run aborts

Console level, highest precedence first:
    --debug / -v / -q  >  SBPROV_LOG_LEVEL  >  WARNING

A second, usually more detailed, copy can go to SBPROV_LOG_FILE at
SBPROV_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LEVEL = "SBPROV_LOG_LEVEL"
ENV_FILE = "SBPROV_LOG_FILE"
ENV_FILE_LEVEL = "SBPROV_LOG_FILE_LEVEL"

# ── Formats ─────────────────────────────────────────────────────

# (threshold, format, datefmt): the first threshold >= level wins.
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "[%(levelname)s] %(message)s", None),
)

_FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root handlers with a stderr handler and an optional file.

    Args:
        level: Console level name. Unknown names mean WARNING.
        log_file: Append a full-detail copy of the log here.
        log_file_level: Level for ``log_file``; defaults to ``level``.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def setup_from_env(debug: bool, verbose: bool, quiet: bool) -> None:
    """Configure logging from CLI flags plus the SBPROV_LOG_* variables."""
    setup_logging(
        level=level_from_flags(debug, verbose, quiet, os.environ.get(ENV_LEVEL, "WARNING")),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
    )


def level_from_flags(debug: bool, verbose: bool, quiet: bool, fallback: str) -> str:
    """Resolve the console level from CLI flags, falling back to ``fallback``."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return fallback


def _console_formatter(level: int) -> logging.Formatter:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter(_CONSOLE_FORMATS[-1][1])


def _parse_level(level: str | None) -> int:
    numeric = getattr(logging, level.upper(), None) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
