# path: assocreset/services/logger.py
from __future__ import annotations

"""
assocreset logger (normalized)

- Single global logging configuration (no per-module handlers).
- Console handler plus a best-effort rotating file log; a locked or
  read-only log directory falls back to the OS temp dir.
- Every record is tagged with the current run id (ContextVar).
- Public symbols:
    get_logger, configure, set_run_id, get_run_id, run_context,
    flush_all_handlers, get_current_log_file, cleanup_handlers
"""

import logging
import os
import sys
import tempfile
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Generator, Optional, Union

BASE_LOGGER = "assocreset"
LOG_FILE_NAME = "assocreset.log"

DEBUG = os.environ.get("ASSOCRESET_DEBUG", "").strip().lower() in ("1", "true", "yes")

_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL"}


# ----------------------------
# Context (run tagging)
# ----------------------------

_run_id: ContextVar[str] = ContextVar("assocreset_run_id", default="")


def set_run_id(run_id: str) -> None:
    """Attach a run id to subsequent log records in the current context."""
    _run_id.set(str(run_id or ""))


def get_run_id() -> str:
    return _run_id.get()


@contextmanager
def run_context(run_id: str) -> Generator[None, None, None]:
    token = _run_id.set(str(run_id or ""))
    try:
        yield
    finally:
        _run_id.reset(token)


class _RunIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = get_run_id()
        return True


class _Fmt(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        run = getattr(record, "run_id", "")
        formatted = super().format(record)
        if not run:
            return formatted
        return formatted.replace(f"{record.name}:", f"{record.name} [run:{run}]:", 1)


# ----------------------------
# Global configuration (once)
# ----------------------------

_configured = False
_config_lock = threading.Lock()
_current_log_file: Optional[Path] = None


def parse_level(level: Union[int, str, None], default: int = logging.INFO) -> int:
    if level is None or level == "":
        return default
    if isinstance(level, int):
        return level
    name = _LEVEL_ALIASES.get(str(level).strip().upper(), str(level).strip().upper())
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else default


def _safe_logs_dir(preferred: Optional[Path]) -> Path:
    """
    Prefer the requested directory (default ~/.assocreset/logs).
    Fall back to OS temp if we can't create or write there.
    """
    target = preferred or (Path.home() / ".assocreset" / "logs")
    try:
        target.mkdir(parents=True, exist_ok=True)
        marker = target / ".write_test"
        marker.write_text("ok", encoding="utf-8")
        marker.unlink(missing_ok=True)
        return target
    except OSError:
        tmp = Path(tempfile.gettempdir()) / "assocreset_logs"
        tmp.mkdir(parents=True, exist_ok=True)
        return tmp


def _configure_root(
    level: int = logging.INFO,
    log_to_file: bool = False,
    log_dir: Optional[Path] = None,
    file_max_size: int = 10 * 1024 * 1024,
    file_backup_count: int = 10,
) -> None:
    global _configured, _current_log_file

    with _config_lock:
        if _configured:
            return

        base = logging.getLogger(BASE_LOGGER)
        base.setLevel(level)
        base.propagate = False

        for h in list(base.handlers):
            base.removeHandler(h)
            h.close()

        formatter = _Fmt(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(level)
        sh.setFormatter(formatter)
        sh.addFilter(_RunIdFilter())
        base.addHandler(sh)

        _current_log_file = None
        if log_to_file:
            try:
                logs_dir = _safe_logs_dir(log_dir)
                log_file = logs_dir / LOG_FILE_NAME
                fh = RotatingFileHandler(
                    log_file,
                    maxBytes=file_max_size,
                    backupCount=file_backup_count,
                    encoding="utf-8",
                )
                # The file keeps everything; the console honours the requested level.
                fh.setLevel(logging.DEBUG)
                fh.setFormatter(formatter)
                fh.addFilter(_RunIdFilter())
                base.addHandler(fh)
                base.setLevel(min(level, logging.DEBUG))
                _current_log_file = log_file
            except OSError as e:
                # Console logging still works even if file logging fails.
                base.warning("File logging disabled: %s", e)

        _configured = True


def configure(
    level: Union[int, str, None] = logging.INFO,
    log_to_file: bool = False,
    log_dir: Optional[Union[str, Path]] = None,
    file_max_size: int = 10 * 1024 * 1024,
    file_backup_count: int = 10,
) -> None:
    """(Re)configure the shared handlers."""
    global _configured
    with _config_lock:
        _configured = False
    _configure_root(
        parse_level(level),
        log_to_file,
        Path(log_dir).expanduser() if log_dir else None,
        file_max_size,
        file_backup_count,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger that shares the global assocreset handlers.
    Never add handlers in feature modules; use this instead.
    """
    _configure_root(level=logging.DEBUG if DEBUG else logging.WARNING)
    base = logging.getLogger(BASE_LOGGER)
    return base.getChild(name) if name else base


def flush_all_handlers() -> None:
    """Flush stream/file handlers (useful before exit)."""
    base = logging.getLogger(BASE_LOGGER)
    for h in base.handlers[:]:
        try:
            h.flush()
        except (AttributeError, ValueError):
            continue


def get_current_log_file() -> Optional[Path]:
    return _current_log_file


def cleanup_handlers() -> None:
    """Remove and close every handler (useful for tests or reconfiguration)."""
    global _configured, _current_log_file
    with _config_lock:
        base = logging.getLogger(BASE_LOGGER)
        for h in list(base.handlers):
            base.removeHandler(h)
            h.close()
        _configured = False
        _current_log_file = None


__all__ = [
    "cleanup_handlers",
    "configure",
    "flush_all_handlers",
    "get_current_log_file",
    "get_logger",
    "get_run_id",
    "parse_level",
    "run_context",
    "set_run_id",
]
