"""
Compose artifact generation.

From one ComposeConfig this module renders:
- docker-compose.yml: a single service keyed by the container name
- .env: CODESPACE_NAME, PASSWORD and the custom variables
- init/init.sh: component installation script (only when components exist)

The service always carries the ownership labels and joins the shared
external network; components add two read-only mounts and a startup command
that runs the init script before code-server.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml

from mcs.codespaces.core import (
    CONTAINER_HOME,
    DEFAULT_IMAGE,
    EDITOR_PORT,
    ownership_labels,
)
from mcs.models import Component, ComposeConfig

__all__ = [
    "COMPOSE_FILE",
    "ENV_FILE",
    "INIT_SCRIPT",
    "generate_compose",
    "render_compose",
    "render_init_script",
    "render_env_file",
    "write_artifacts",
]

logger = logging.getLogger(__name__)

COMPOSE_FILE = "docker-compose.yml"
ENV_FILE = ".env"
INIT_SCRIPT = "init/init.sh"

NETWORK_NAME = "mcs-network"
_INIT_MOUNT = "/docker-entrypoint-initdb.d"
_COMPONENTS_MOUNT = f"{CONTAINER_HOME}/.components"
_RESERVED_ENV = ("PASSWORD", "CODESPACE_NAME")


# ----------------------------
# docker-compose.yml
# ----------------------------

def _editor_command(cfg: ComposeConfig) -> str:
    return f"code-server --bind-addr 0.0.0.0:{EDITOR_PORT} --auth password {cfg.working_dir}"


def _startup_command(cfg: ComposeConfig) -> List[str]:
    script = f"{_INIT_MOUNT}/init.sh"
    return [
        "sh",
        "-c",
        f"if [ -f {script} ]; then echo 'Installing components...' && bash {script}; fi"
        f" && exec {_editor_command(cfg)}",
    ]


def _environment(cfg: ComposeConfig) -> Dict[str, str]:
    env = {
        "PASSWORD": cfg.password,
        "CODESPACE_NAME": cfg.codespace_name,
        "TZ": "${TZ:-UTC}",
    }
    for key, value in cfg.environment.items():
        if key in _RESERVED_ENV:
            continue
        env[key] = value
    return env


def _volumes(cfg: ComposeConfig) -> List[str]:
    volumes = [
        f"./src:{cfg.working_dir}",
        f"./data:{CONTAINER_HOME}/.local/share/code-server",
        f"./config:{CONTAINER_HOME}/.config",
        f"./logs:{CONTAINER_HOME}/logs",
        f"${{HOME}}/.ssh:{CONTAINER_HOME}/.ssh:ro",
        f"${{HOME}}/.gitconfig:{CONTAINER_HOME}/.gitconfig:ro",
    ]
    if cfg.components:
        volumes.append(f"./components:{_COMPONENTS_MOUNT}:ro")
        volumes.append(f"./init:{_INIT_MOUNT}:ro")
    return volumes


def generate_compose(cfg: ComposeConfig, network_name: str = NETWORK_NAME) -> Dict[str, Any]:
    """
    Build the compose document as plain data.
    """
    service: Dict[str, Any] = {}
    if cfg.build_context:
        service["build"] = {"context": cfg.build_context, "dockerfile": cfg.dockerfile}
    else:
        service["image"] = cfg.image or DEFAULT_IMAGE

    labels = dict(cfg.labels)
    labels.update(ownership_labels(cfg.codespace_name))

    service.update(
        {
            "container_name": cfg.container_name,
            "restart": "unless-stopped",
            "environment": _environment(cfg),
            "ports": [f"{host}:{container}" for host, container in cfg.ports.items()],
            "volumes": _volumes(cfg),
            "labels": labels,
            "working_dir": cfg.working_dir,
        }
    )
    if cfg.components:
        service["command"] = _startup_command(cfg)
    service["healthcheck"] = {
        "test": ["CMD", "curl", "-f", f"http://localhost:{EDITOR_PORT}/healthz"],
        "interval": "30s",
        "timeout": "10s",
        "retries": 3,
        "start_period": "40s",
    }
    service["networks"] = [network_name]

    return {
        "services": {cfg.container_name: service},
        "networks": {network_name: {"external": True, "name": network_name}},
    }


def render_compose(cfg: ComposeConfig, network_name: str = NETWORK_NAME) -> str:
    return yaml.safe_dump(
        generate_compose(cfg, network_name),
        default_flow_style=False,
        sort_keys=False,
    )


# ----------------------------
# init.sh
# ----------------------------

_INIT_HEADER = """#!/bin/bash
# Component installation script
set -e

mkdir -p /home/coder/.local/bin /home/coder/.local/share
mkdir -p /home/coder/.npm-global/bin
mkdir -p /home/coder/.mcs/components
export PATH="/home/coder/.npm-global/bin:/home/coder/.local/bin:$PATH"
export NPM_PREFIX="/home/coder/.npm-global"
npm config set prefix "$NPM_PREFIX" >/dev/null 2>&1 || true
"""


def render_init_script(components: Iterable[Component]) -> str:
    """
    Bootstrap lines followed by one install step per selected component.
    Unselected components do not appear in the script.
    """
    lines = [_INIT_HEADER]
    for c in components:
        if not c.selected:
            continue
        installer = f"{_COMPONENTS_MOUNT}/{c.installer}"
        lines.append(
            f'echo "Installing {c.name}..."\n'
            f"if bash {installer} install; then\n"
            f'    echo "{c.name} installed successfully"\n'
            f"else\n"
            f'    echo "{c.name} installation failed"\n'
            f"fi\n"
        )
    lines.append('echo "Component installation complete!"\n')
    return "\n".join(lines)


# ----------------------------
# .env
# ----------------------------

def render_env_file(cfg: ComposeConfig) -> str:
    lines = [
        "# MCS Codespace Environment",
        f"CODESPACE_NAME={cfg.codespace_name}",
        f"PASSWORD={cfg.password}",
    ]
    for key, value in cfg.environment.items():
        if key in _RESERVED_ENV:
            continue
        lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


# ----------------------------
# Writing
# ----------------------------

def write_artifacts(cfg: ComposeConfig, directory: Path, network_name: str = NETWORK_NAME) -> Dict[str, Path]:
    """
    Write the compose file, the .env file and, with components, init/init.sh.
    Returns the written paths keyed by artifact name.
    """
    directory = Path(directory)
    written: Dict[str, Path] = {}

    compose_path = directory / COMPOSE_FILE
    compose_path.write_text(render_compose(cfg, network_name), encoding="utf-8")
    written["compose"] = compose_path

    env_path = directory / ENV_FILE
    env_path.write_text(render_env_file(cfg), encoding="utf-8")
    env_path.chmod(0o600)
    written["env"] = env_path

    if cfg.components:
        init_path = directory / INIT_SCRIPT
        init_path.parent.mkdir(parents=True, exist_ok=True)
        init_path.write_text(render_init_script(cfg.components), encoding="utf-8")
        init_path.chmod(0o755)
        written["init"] = init_path

    logger.debug("Wrote compose artifacts for %s: %s", cfg.codespace_name, ", ".join(sorted(written)))
    return written
