"""
Docker client factory.

The CLI opens one client per invocation and closes it when the command is
done; library callers may inject their own client instead.
"""

from __future__ import annotations

import logging
from typing import Optional

import docker
from docker import DockerClient
from docker.errors import DockerException
from requests.exceptions import RequestException

from mcs.config import Settings, get_settings
from mcs.errors import DockerUnavailableError

logger = logging.getLogger(__name__)


def docker_client(settings: Optional[Settings] = None) -> DockerClient:
    """
    Provide a DockerClient configured via environment (DOCKER_HOST etc.).

    Raises DockerUnavailableError when the daemon cannot be reached.
    Caller is responsible for closing the client.
    """
    cfg = settings or get_settings()
    try:
        client = docker.from_env(timeout=cfg.docker_client_timeout)
        client.ping()
    except (DockerException, RequestException) as exc:
        logger.debug("Docker daemon not reachable: %s", exc)
        raise DockerUnavailableError(
            f"Docker is not available: {exc} (is the Docker daemon running?)"
        ) from exc
    return client


__all__ = ["docker_client"]
