"""
Thin wrapper around the compose command line.

`docker compose` (the CLI plugin) is tried first. The standalone
`docker-compose` binary is used only when the docker CLI reports that
"compose" is not a docker command; any other failure is surfaced as is.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from mcs.codespaces.compose import COMPOSE_FILE
from mcs.errors import ComposeCommandError, ComposeUnavailableError, McsError

__all__ = ["ComposeRunner", "compose_available", "LEGACY_SIGNATURE"]

logger = logging.getLogger(__name__)

LEGACY_SIGNATURE = "is not a docker command"


def _run(args: Sequence[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    return subprocess.run(
        list(args),
        cwd=str(cwd) if cwd else None,
        capture_output=True,
        text=True,
        check=False,
    )


def compose_available() -> Optional[str]:
    """
    "docker compose", "docker-compose", or None when neither works.
    """
    try:
        if _run(["docker", "compose", "version"]).returncode == 0:
            return "docker compose"
    except FileNotFoundError:
        pass
    try:
        if _run(["docker-compose", "version"]).returncode == 0:
            return "docker-compose"
    except FileNotFoundError:
        pass
    return None


class ComposeRunner:
    """
    Runs compose subcommands inside one codespace directory.
    """

    def __init__(self, workdir: Path) -> None:
        self.workdir = Path(workdir)

    def run(self, *args: str) -> str:
        if not (self.workdir / COMPOSE_FILE).is_file():
            raise McsError(f"{COMPOSE_FILE} not found in {self.workdir}")

        modern = ["docker", "compose", *args]
        try:
            result = _run(modern, self.workdir)
        except FileNotFoundError as exc:
            raise ComposeUnavailableError("docker CLI not found on PATH") from exc

        if result.returncode == 0:
            return result.stdout

        output = (result.stderr or "") + (result.stdout or "")
        if LEGACY_SIGNATURE not in output:
            raise ComposeCommandError(modern, result.returncode, output)

        logger.debug("docker compose plugin missing; falling back to docker-compose")
        legacy = ["docker-compose", *args]
        try:
            result = _run(legacy, self.workdir)
        except FileNotFoundError as exc:
            raise ComposeUnavailableError(
                "neither 'docker compose' nor 'docker-compose' is available"
            ) from exc
        if result.returncode != 0:
            raise ComposeCommandError(legacy, result.returncode, (result.stderr or "") + (result.stdout or ""))
        return result.stdout

    def up(self, detached: bool = True) -> str:
        args: List[str] = ["up"]
        if detached:
            args.append("-d")
        return self.run(*args)

    def down(self, volumes: bool = False) -> str:
        args: List[str] = ["down"]
        if volumes:
            args.append("-v")
        return self.run(*args)

    def start(self) -> str:
        return self.run("start")

    def stop(self) -> str:
        return self.run("stop")

    def build(self) -> str:
        return self.run("build")

    def logs(self, tail: Optional[int] = None) -> str:
        args: List[str] = ["logs", "--no-color"]
        if tail is not None:
            args.extend(["--tail", str(tail)])
        return self.run(*args)
