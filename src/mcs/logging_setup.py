"""
Rotating file logging for the mcs command-line tool.

Every invocation appends to a rotating log file so failures can be diagnosed
after the fact; the file handler captures DEBUG and above. Console output is
kept separate: the CLI prints its own user-facing messages with click, and
only attaches a console log handler in verbose mode.

Usage (once, at CLI startup):

    from mcs.logging_setup import setup_logging

    log_path = setup_logging(level="INFO", add_console=False)

Environment variables (optional):
- MCS_LOG_FILE: Absolute path to the desired log file.
- MCS_LOG_DIR:  Directory where the log file should be created.
- MCS_LOG_MAX_BYTES: Max file size before rotate (default: 5242880 = 5MB).
- MCS_LOG_BACKUP_COUNT: Number of rotated files to keep (default: 3).
- MCS_LOG_LEVEL / LOG_LEVEL: Base level for mcs loggers (default: INFO).
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple, Union

__all__ = [
    "setup_logging",
    "configure_third_party_loggers",
]

_DEFAULT_MAX_BYTES = 5 * 1024 * 1024
_DEFAULT_BACKUP_COUNT = 3
_DEFAULT_FORMAT_FILE = "%(asctime)s %(levelname)s [mcs] %(name)s pid=%(process)d %(filename)s:%(lineno)d - %(message)s"
_DEFAULT_FORMAT_CONSOLE = "%(levelname)s %(name)s: %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"
_LOG_FILE_NAME = "mcs.log"

# Sentinel to avoid adding duplicate file handlers
_ATTACHED_LOG_PATHS: set[str] = set()


def _coerce_level(level: Optional[Union[int, str]], default: int = logging.INFO) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        upper = level.strip().upper()
        return getattr(logging, upper, default)
    return default


def _candidate_paths(log_dir: Optional[Union[str, Path]]) -> List[Path]:
    """
    Prioritized list of candidate log file paths.
    """
    candidates: List[Path] = []

    env_file = os.getenv("MCS_LOG_FILE")
    if env_file:
        candidates.append(Path(env_file).expanduser())

    if log_dir:
        candidates.append(Path(log_dir).expanduser() / _LOG_FILE_NAME)
    env_dir = os.getenv("MCS_LOG_DIR")
    if env_dir:
        candidates.append(Path(env_dir).expanduser() / _LOG_FILE_NAME)

    home = os.getenv("MCS_HOME")
    base = Path(home).expanduser() if home else Path.home() / ".mcs"
    candidates.append(base / "logs" / _LOG_FILE_NAME)

    candidates.append(Path(tempfile.gettempdir()) / "mcs" / "logs" / _LOG_FILE_NAME)
    return candidates


def _ensure_writable_file(path: Path) -> Tuple[bool, Optional[str]]:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, mode="a", encoding="utf-8"):
            pass
        return True, None
    except OSError as e:
        return False, f"{e.__class__.__name__}: {e}"


def _pick_log_path(log_dir: Optional[Union[str, Path]]) -> Optional[Path]:
    """
    First writable candidate, or None when nothing is writable.

    A read-only home must not stop the CLI from working, so the caller runs
    without a file handler in that case.
    """
    for candidate in _candidate_paths(log_dir):
        ok, _reason = _ensure_writable_file(candidate)
        if ok:
            return candidate
    return None


def configure_third_party_loggers(base_level: int) -> None:
    """
    Tame noisy third-party libraries while allowing escalation via DEBUG when needed.
    """
    lib_level = logging.INFO if base_level <= logging.DEBUG else logging.WARNING
    for name in ("docker", "urllib3", "requests"):
        logging.getLogger(name).setLevel(lib_level)
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)


def setup_logging(
    *,
    level: Optional[Union[int, str]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
    add_console: bool = False,
) -> Optional[Path]:
    """
    Configure root logging with a rotating file handler.

    Returns:
        Path to the active log file, or None if no writable location exists.
    """
    base_level = _coerce_level(
        level if level is not None else (os.getenv("MCS_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO"),
        default=logging.INFO,
    )
    bytes_limit = int(os.getenv("MCS_LOG_MAX_BYTES", str(max_bytes if max_bytes is not None else _DEFAULT_MAX_BYTES)))
    keep_files = int(os.getenv("MCS_LOG_BACKUP_COUNT", str(backup_count if backup_count is not None else _DEFAULT_BACKUP_COUNT)))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    log_path = _pick_log_path(log_dir)
    if log_path is not None:
        target_key = str(log_path.resolve())
        already_attached = any(
            getattr(h, "baseFilename", None) and str(Path(getattr(h, "baseFilename")).resolve()) == target_key
            for h in root.handlers
        )
        if not already_attached and target_key not in _ATTACHED_LOG_PATHS:
            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_path,
                maxBytes=max(1, bytes_limit),
                backupCount=max(1, keep_files),
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT_FILE, datefmt=_DEFAULT_DATEFMT))
            root.addHandler(file_handler)
            _ATTACHED_LOG_PATHS.add(target_key)

    if add_console:
        has_console = any(
            isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) in (sys.stdout, sys.stderr)
            for h in root.handlers
        )
        if not has_console:
            ch = logging.StreamHandler(stream=sys.stderr)
            ch.setLevel(base_level)
            ch.setFormatter(logging.Formatter(_DEFAULT_FORMAT_CONSOLE))
            root.addHandler(ch)

    logging.getLogger("mcs").setLevel(base_level)
    configure_third_party_loggers(base_level)

    logging.getLogger("mcs").debug(
        "Logging initialized: file=%s level=%s backup=%s",
        str(log_path) if log_path else "<none>",
        logging.getLevelName(base_level),
        keep_files,
    )
    return log_path
