"""
Ownership classification and bulk operations over managed containers.

A container belongs to mcs when any one of these holds:
- one of its names starts with "/mcs-"
- its image contains "michaelkeevildown/claude-coder"
- it carries the label mcs.managed="true" (exact, case-sensitive)

Every bulk stop/remove/count goes through `is_owned` so foreign containers
are never touched. Bulk removal enumerates once, then processes each
container independently and reports aggregate counts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from docker import DockerClient
from docker.errors import DockerException, NotFound
from requests.exceptions import RequestException

from mcs.codespaces.core import LABEL_MANAGED, OWNED_IMAGE_FRAGMENT, OWNED_NAME_PREFIX, managed_label_filters
from mcs.errors import BulkOperationError
from mcs.models import ContainerSummary

__all__ = [
    "CleanupReport",
    "is_owned",
    "docker_api",
    "list_containers",
    "list_owned",
    "count_owned",
    "cleanup_owned",
    "ensure_network",
    "prune_unused",
]

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    removed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    removed_names: List[str] = field(default_factory=list)

    def summary(self) -> str:
        return f"removed {self.removed}, failed {self.failed}"


def is_owned(container: ContainerSummary) -> bool:
    if any(name.startswith(OWNED_NAME_PREFIX) for name in container.names):
        return True
    if OWNED_IMAGE_FRAGMENT in container.image:
        return True
    return container.labels.get(LABEL_MANAGED) == "true"


# ----------------------------
# Enumeration
# ----------------------------

def docker_api(client: DockerClient):
    """
    Low-level APIClient behind a DockerClient.
    """
    return client.api


def list_containers(client: DockerClient) -> List[ContainerSummary]:
    """
    One snapshot of every container on the engine, running or not.
    """
    rows = docker_api(client).containers(all=True)
    return [ContainerSummary.from_api(row) for row in rows]


def list_owned(client: DockerClient) -> List[ContainerSummary]:
    return [c for c in list_containers(client) if is_owned(c)]


def count_owned(client: DockerClient) -> Dict[str, int]:
    owned = list_owned(client)
    running = sum(1 for c in owned if c.state == "running")
    return {"total": len(owned), "running": running, "stopped": len(owned) - running}


# ----------------------------
# Bulk removal
# ----------------------------

def cleanup_owned(client: DockerClient, stop_timeout: int = 30) -> CleanupReport:
    """
    Stop (if running) and force-remove every owned container with its volumes.

    A failure on one container is recorded and the loop continues. Raises
    BulkOperationError carrying the report when anything failed.
    """
    report = CleanupReport()
    api = docker_api(client)
    for c in list_owned(client):
        label = c.display_name
        try:
            if c.state == "running":
                api.stop(c.id, timeout=stop_timeout)
            api.remove_container(c.id, v=True, force=True)
        except NotFound:
            # Gone between enumeration and removal
            report.removed += 1
            report.removed_names.append(label)
            continue
        except (DockerException, RequestException) as e:
            report.failed += 1
            report.errors.append(f"{label}: {e}")
            logger.error("Cleanup: failed to remove container %s: %s", label, e)
            continue
        report.removed += 1
        report.removed_names.append(label)
        logger.info("Cleanup: removed container %s", label)

    if report.failed:
        raise BulkOperationError(report)
    return report


# ----------------------------
# Network and pruning
# ----------------------------

def ensure_network(client: DockerClient, name: str) -> bool:
    """
    Create the shared bridge network if missing. Returns True when created.
    """
    if client.networks.list(names=[name]):
        return False
    client.networks.create(name, driver="bridge", labels={LABEL_MANAGED: "true"})
    logger.info("Created network %s", name)
    return True


def prune_unused(client: DockerClient) -> Dict[str, Any]:
    """
    Prune stopped containers, unused volumes and networks carrying the mcs
    managed label, plus dangling images. Only reachable from an explicit
    `cleanup --prune`.
    """
    owned = managed_label_filters()
    results: Dict[str, Any] = {
        "containers": client.containers.prune(filters=owned),
        "images": client.images.prune(filters={"dangling": True}),
        "volumes": client.volumes.prune(filters=owned),
        "networks": client.networks.prune(filters=owned),
    }
    reclaimed = sum(int((r or {}).get("SpaceReclaimed") or 0) for r in results.values())
    results["space_reclaimed"] = reclaimed
    return results
