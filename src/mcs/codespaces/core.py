"""
Core helpers for codespaces: labels, fixed paths, naming, passwords, time.

Small, side-effect-free helpers shared by the compose generator, the
ownership classifier and the lifecycle controller.
"""

from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timezone
from typing import Dict, List

# --------------------------
# Labels (public constants)
# --------------------------

LABEL_MANAGED = "mcs.managed"
LABEL_CODESPACE = "mcs.codespace"

# Name prefix and image fragment that also mark a container as ours
OWNED_NAME_PREFIX = "/mcs-"
OWNED_IMAGE_FRAGMENT = "michaelkeevildown/claude-coder"

# --------------------------
# Container-side constants
# --------------------------

CONTAINER_HOME = "/home/coder"
EDITOR_PORT = "8080"
APP_PORT = "3000"
DEFAULT_IMAGE = "codercom/code-server:latest"
CONTAINER_SUFFIX = "-dev"
METADATA_DIR = ".mcs"
METADATA_FILE = "metadata.json"

# Directories created inside every codespace; the last two only with components
CODESPACE_DIRS = ("src", "data", "config", "logs")
COMPONENT_DIRS = ("components", "init")


def ownership_labels(codespace_name: str) -> Dict[str, str]:
    """
    The two labels every managed container carries.
    """
    return {LABEL_CODESPACE: codespace_name, LABEL_MANAGED: "true"}


def managed_label_filters() -> Dict[str, List[str]]:
    """
    Docker SDK filters for containers written by mcs.
    Usage:
        client.containers.list(all=True, filters=managed_label_filters())
    """
    return {"label": [f"{LABEL_MANAGED}=true"]}


def container_name(codespace_name: str) -> str:
    return f"{codespace_name}{CONTAINER_SUFFIX}"


# --------------------------
# Secrets
# --------------------------

_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def generate_password(length: int = 16) -> str:
    """
    Random alphanumeric password for the editor.
    """
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


# --------------------------
# Time helpers
# --------------------------

def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def epoch_now() -> float:
    return time.time()


__all__ = [
    "LABEL_MANAGED",
    "LABEL_CODESPACE",
    "OWNED_NAME_PREFIX",
    "OWNED_IMAGE_FRAGMENT",
    "CONTAINER_HOME",
    "EDITOR_PORT",
    "APP_PORT",
    "DEFAULT_IMAGE",
    "METADATA_DIR",
    "METADATA_FILE",
    "CODESPACE_DIRS",
    "COMPONENT_DIRS",
    "ownership_labels",
    "managed_label_filters",
    "container_name",
    "generate_password",
    "now_utc",
    "epoch_now",
]
