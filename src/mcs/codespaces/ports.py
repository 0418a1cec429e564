"""
Host port registry persisted in $MCS_HOME/ports.json.

Each allocation records the port, owning codespace, service and time. A port
is handed out only if it is neither recorded nor bound on the host. Search
starts at a random offset inside the service's range and wraps around.
"""

from __future__ import annotations

import json
import logging
import random
import socket
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from mcs.codespaces.core import now_utc
from mcs.errors import PortAllocationError

__all__ = ["DEFAULT_RANGES", "FALLBACK_RANGE", "PortRegistry", "is_port_free"]

logger = logging.getLogger(__name__)

DEFAULT_RANGES: Mapping[str, Tuple[int, int]] = MappingProxyType(
    {
        "vscode": (8080, 8099),
        "app": (3000, 3099),
        "api": (5000, 5099),
        "db": (5432, 5532),
    }
)
FALLBACK_RANGE = (10000, 20000)


def is_port_free(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        try:
            s.bind(("", port))
        except OSError:
            return False
    return True


class PortRegistry:
    def __init__(
        self,
        path: Union[str, Path],
        *,
        probe: Callable[[int], bool] = is_port_free,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.path = Path(path)
        self._probe = probe
        self._rng = rng or random.Random()
        self._allocations: Dict[int, Dict[str, str]] = self._load()

    def _load(self) -> Dict[int, Dict[str, str]]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            raise PortAllocationError(f"port registry {self.path} is corrupt: {e}") from e
        return {int(port): dict(entry) for port, entry in data.items()}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {str(p): a for p, a in sorted(self._allocations.items())}
        tmp = self.path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    # ----------------------------
    # Queries
    # ----------------------------

    def allocations(self) -> Dict[int, Dict[str, str]]:
        return {p: dict(a) for p, a in self._allocations.items()}

    def ports_for(self, codespace: str) -> Dict[str, int]:
        return {a["service"]: p for p, a in sorted(self._allocations.items()) if a.get("codespace") == codespace}

    # ----------------------------
    # Allocation
    # ----------------------------

    def _find_free(self, low: int, high: int) -> int:
        span = high - low + 1
        start = self._rng.randrange(span)
        for i in range(span):
            port = low + (start + i) % span
            if port in self._allocations:
                continue
            if self._probe(port):
                return port
        raise PortAllocationError(f"no available ports in range {low}-{high}")

    def allocate(self, codespace: str, service: str) -> int:
        low, high = DEFAULT_RANGES.get(service, FALLBACK_RANGE)
        port = self._find_free(low, high)
        self._allocations[port] = {
            "codespace": codespace,
            "service": service,
            "allocated_at": now_utc().isoformat(),
        }
        self._save()
        logger.debug("Allocated port %d for %s/%s", port, codespace, service)
        return port

    def allocate_codespace(self, codespace: str, services: Tuple[str, ...] = ("vscode", "app")) -> Dict[str, int]:
        """
        Allocate one port per service; on failure, release what was taken.
        """
        ports: Dict[str, int] = {}
        try:
            for service in services:
                ports[service] = self.allocate(codespace, service)
        except PortAllocationError:
            self.release_codespace(codespace)
            raise
        return ports

    def release(self, port: int) -> None:
        if self._allocations.pop(port, None) is not None:
            self._save()

    def release_codespace(self, codespace: str) -> List[int]:
        released = [p for p, a in self._allocations.items() if a.get("codespace") == codespace]
        for p in released:
            del self._allocations[p]
        if released:
            self._save()
        return sorted(released)
