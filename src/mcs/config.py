"""
Unified configuration for mcs.

This module centralizes:
- Defaults for all settings (filesystem roots, Docker, timeouts, retention)
- Loading from environment variables
- Optional .env file hydration (best-effort, only for allowed keys)
- Derived paths (preferences file, port registry, dockerfiles directory)

Usage:
    from mcs.config import get_settings

    settings = get_settings()
    print(settings.codespaces_dir)

Notes:
- Environment variables always take precedence.
- The .env file is looked up at $MCS_HOME/.env (default ~/.mcs/.env). Only
  allow-listed keys are copied into the process environment, and only when
  they are not already set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


DEFAULT_RELEASES_URL = "https://api.github.com/repos/michaelkeevildown/michaels-codespaces/releases/latest"


# ----------------------------
# Helpers: env, parsing, types
# ----------------------------

_ALLOWED_DOTENV_KEYS = {
    # Filesystem roots
    "MCS_HOME",
    "MCS_CODESPACES_DIR",
    "MCS_BACKUP_DIR",
    "MCS_DOCKERFILES_DIR",
    # Docker
    "MCS_NETWORK_NAME",
    "DOCKER_CLIENT_TIMEOUT",
    "MCS_STOP_TIMEOUT_SECONDS",
    # Create defaults
    "MCS_CLONE_DEPTH",
    # Backups
    "MCS_BACKUP_KEEP",
    # Update checks
    "MCS_UPDATE_CHECK",
    "MCS_UPDATE_CHECK_INTERVAL_SECONDS",
    "MCS_RELEASES_URL",
    "MCS_HTTP_TIMEOUT",
    # Logging
    "LOG_LEVEL",
    "MCS_LOG_LEVEL",
    "MCS_LOG_DIR",
    "MCS_LOG_FILE",
}


def _str2bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    s = val.strip().lower()
    return s in ("1", "true", "yes", "y", "on")


def _int_env(name: str, default: int, minimum: Optional[int] = None) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        value = default
    if minimum is not None:
        value = max(minimum, value)
    return value


def _path_env(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw:
        return Path(raw).expanduser()
    return default


def _default_home() -> Path:
    return _path_env("MCS_HOME", Path.home() / ".mcs")


def _load_dotenv_into_env(dotenv_path: Optional[Path] = None, allowed_keys: Optional[set[str]] = None) -> None:
    """
    Best-effort .env loader:
    - Loads from $MCS_HOME/.env by default
    - Only sets variables from allowed_keys if not already present in os.environ
    - Strips surrounding quotes on values
    - Ignores malformed lines
    """
    path = Path(dotenv_path) if dotenv_path else _default_home() / ".env"
    try:
        if not path.is_file():
            return
        text = path.read_text(encoding="utf-8")
    except OSError:
        # Best-effort; never fail startup due to .env reading
        return
    allow = set(allowed_keys or _ALLOWED_DOTENV_KEYS)
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip()
        if (val.startswith('"') and val.endswith('"')) or (val.startswith("'") and val.endswith("'")):
            val = val[1:-1]
        if key and key in allow and key not in os.environ:
            os.environ[key] = val


# ----------------------------
# Unified configuration object
# ----------------------------

@dataclass(frozen=True)
class Settings:
    """
    Unified configuration for mcs.

    All fields are immutable once created. Use from_env() to construct an instance.
    """

    # Filesystem roots
    home_dir: Path
    codespaces_dir: Path
    backup_dir: Path
    dockerfiles_dir: Path

    # Docker
    network_name: str
    docker_client_timeout: int
    stop_timeout_seconds: int

    # Create defaults
    clone_depth: int

    # Backups
    backup_keep: int

    # Update checks
    update_check_enabled: bool
    update_check_interval_seconds: int
    releases_url: str
    http_timeout: float

    log_level: str

    @staticmethod
    def from_env(dotenv: bool = True, dotenv_path: Optional[str | Path] = None) -> "Settings":
        """
        Construct Settings with values pulled from the current environment,
        optionally hydrated by a .env file if dotenv=True.
        """
        if dotenv:
            _load_dotenv_into_env(Path(dotenv_path) if dotenv_path else None, _ALLOWED_DOTENV_KEYS)

        home = _default_home()
        codespaces_dir = _path_env("MCS_CODESPACES_DIR", Path.home() / "codespaces")
        backup_dir = _path_env("MCS_BACKUP_DIR", Path.home() / ".mcs.backup")
        dockerfiles_dir = _path_env("MCS_DOCKERFILES_DIR", home / "dockerfiles")

        try:
            http_timeout = float(os.getenv("MCS_HTTP_TIMEOUT", "5"))
        except ValueError:
            http_timeout = 5.0

        return Settings(
            home_dir=home,
            codespaces_dir=codespaces_dir,
            backup_dir=backup_dir,
            dockerfiles_dir=dockerfiles_dir,
            network_name=os.getenv("MCS_NETWORK_NAME", "mcs-network"),
            docker_client_timeout=_int_env("DOCKER_CLIENT_TIMEOUT", 180, minimum=1),
            stop_timeout_seconds=_int_env("MCS_STOP_TIMEOUT_SECONDS", 30, minimum=0),
            clone_depth=_int_env("MCS_CLONE_DEPTH", 20),
            backup_keep=_int_env("MCS_BACKUP_KEEP", 5, minimum=0),
            update_check_enabled=_str2bool(os.getenv("MCS_UPDATE_CHECK"), default=True),
            update_check_interval_seconds=_int_env("MCS_UPDATE_CHECK_INTERVAL_SECONDS", 86400, minimum=0),
            releases_url=os.getenv("MCS_RELEASES_URL", DEFAULT_RELEASES_URL),
            http_timeout=http_timeout,
            log_level=os.getenv("MCS_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO",
        )

    # ----------------------------
    # Derived helpers / utilities
    # ----------------------------

    @property
    def preferences_path(self) -> Path:
        return self.home_dir / "config.json"

    @property
    def ports_path(self) -> Path:
        return self.home_dir / "ports.json"

    @property
    def logs_dir(self) -> Path:
        return self.home_dir / "logs"

    def codespace_path(self, name: str) -> Path:
        """
        Directory holding a codespace. One name maps to exactly one directory.
        """
        return self.codespaces_dir / name


# ----------------------------
# Cached accessor
# ----------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Cached settings accessor. Safe to import and call across the package.
    """
    return Settings.from_env(dotenv=True)


__all__ = [
    "DEFAULT_RELEASES_URL",
    "Settings",
    "get_settings",
]
