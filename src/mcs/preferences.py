"""
Persisted user preferences ($MCS_HOME/config.json).

Holds the host address used in codespace URLs and the background update
check bookkeeping. Writes are atomic (temp file + rename).
"""

from __future__ import annotations

import enum
import ipaddress
import json
import logging
import socket
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import requests
from pydantic import BaseModel, ValidationError

from mcs.codespaces.core import now_utc
from mcs.errors import InvalidAddressError, McsError

__all__ = [
    "IPMode",
    "Preferences",
    "PreferencesStore",
    "validate_ip",
    "detect_local_ip",
    "detect_public_ip",
    "resolve_host_ip",
]

logger = logging.getLogger(__name__)

PUBLIC_IP_URL = "https://api.ipify.org"


class IPMode(str, enum.Enum):
    localhost = "localhost"
    auto = "auto"
    public = "public"
    custom = "custom"


class Preferences(BaseModel):
    host_ip: str = "localhost"
    ip_mode: IPMode = IPMode.localhost
    auto_update_enabled: bool = True
    auto_update_check_interval: int = 86400
    last_update_check: Optional[datetime] = None
    last_known_version: str = ""
    latest_available_version: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ----------------------------
# Address helpers
# ----------------------------

def validate_ip(value: str) -> str:
    try:
        return str(ipaddress.ip_address((value or "").strip()))
    except ValueError as e:
        raise InvalidAddressError(f"invalid IP address: {value!r}") from e


def detect_local_ip() -> str:
    """
    Primary non-loopback IPv4 address, or 127.0.0.1. No packets are sent:
    connecting a UDP socket only selects a route.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        try:
            s.connect(("10.255.255.255", 1))
            ip = s.getsockname()[0]
        except OSError:
            return "127.0.0.1"
    return ip or "127.0.0.1"


def detect_public_ip(session: Optional[requests.Session] = None, timeout: float = 5.0) -> str:
    http = session or requests.Session()
    try:
        resp = http.get(PUBLIC_IP_URL, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise McsError(f"could not determine public IP: {e}") from e
    return validate_ip(resp.text)


def resolve_host_ip(
    mode: IPMode,
    custom_ip: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> str:
    mode = IPMode(mode)
    if mode is IPMode.localhost:
        return "localhost"
    if mode is IPMode.auto:
        return detect_local_ip()
    if mode is IPMode.public:
        return detect_public_ip(session)
    if not custom_ip:
        raise InvalidAddressError("custom IP mode requires an address")
    return validate_ip(custom_ip)


# ----------------------------
# Store
# ----------------------------

class PreferencesStore:
    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Preferences:
        """
        Stored preferences, or defaults when the file is missing or unreadable.
        """
        if not self.path.is_file():
            return Preferences()
        try:
            return Preferences.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable preferences %s: %s", self.path, e)
            return Preferences()

    def save(self, prefs: Preferences) -> Preferences:
        now = now_utc()
        updated = prefs.model_copy(update={"updated_at": now, "created_at": prefs.created_at or now})
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".json.tmp")
        tmp.write_text(updated.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(self.path)
        return updated

    def host_ip(self) -> str:
        return self.load().host_ip or "localhost"

    def set_ip_mode(
        self,
        mode: IPMode,
        custom_ip: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> Preferences:
        """
        Resolve and persist the host address. Invalid input changes nothing.
        """
        ip = resolve_host_ip(mode, custom_ip, session)
        prefs = self.load().model_copy(update={"ip_mode": IPMode(mode), "host_ip": ip})
        logger.info("Host IP set to %s (mode=%s)", ip, IPMode(mode).value)
        return self.save(prefs)
