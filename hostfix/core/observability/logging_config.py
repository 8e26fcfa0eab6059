"""
Logging configuration — one setup call per process, made by main.py.

Two audiences, two outputs:

- the console (stderr) is for the operator: quiet by default, because
  progress lines are printed by ``hostfix.ui.cli.console`` and are not
  log records;
- the optional log file is the diagnostic trail of a system change:
  every command line (INFO) and its output (DEBUG), kept at DEBUG unless
  HOSTFIX_LOG_FILE_LEVEL says otherwise.

Console level precedence:
    --debug / --verbose / --quiet  >  HOSTFIX_LOG_LEVEL  >  WARNING
"""

from __future__ import annotations

import logging
import sys

# Console formats by level
_FMT_CONSOLE = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_FMT_CONSOLE_DEFAULT = ("%(levelname)s: %(message)s", None)

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure the root logger for a hostfix run.

    Args:
        level: Console level name.
        log_file: Optional log file path, opened in append mode so
            successive runs accumulate.
        log_file_level: File level name (default DEBUG).
    """
    console_level = _parse_level(level)
    fmt, datefmt = _console_format(console_level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root.setLevel(console_level)

    if log_file:
        file_level = _parse_level(log_file_level, default=logging.DEBUG)
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            # An unwritable log file must not stop a system fix.
            logging.getLogger(__name__).warning("Cannot open log file %s: %s", log_file, e)
        else:
            fh.setLevel(file_level)
            fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
            root.addHandler(fh)
            root.setLevel(min(console_level, file_level))

    logging.raiseExceptions = False


def _console_format(level: int) -> tuple[str, str | None]:
    if level <= logging.DEBUG:
        return _FMT_CONSOLE[logging.DEBUG]
    if level <= logging.INFO:
        return _FMT_CONSOLE[logging.INFO]
    return _FMT_CONSOLE_DEFAULT


def _parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Level name to number; unknown or empty names fall back to ``default``."""
    if not level:
        return default
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else default
