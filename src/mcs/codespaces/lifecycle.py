"""
Codespace lifecycle: create, start, stop, restart, remove, destroy.

States: absent -> created -> running <-> stopped -> removed.

Only the directory is persisted as the authority for existence; the state
shown to users is recomputed from the Docker engine on every query:
- no container            -> created
- container running       -> running
- container in any other  -> stopped

Create rolls back (directory removed, ports released) on any failure before
the optional start. A failed start after a successful create is reported as
a warning and leaves the codespace in the created state.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional

from docker import DockerClient
from docker.errors import APIError, ImageNotFound, NotFound
from docker.models.containers import Container
from pydantic import ValidationError

from mcs.codespaces import components as registry
from mcs.codespaces import git
from mcs.codespaces.backups import BackupManager
from mcs.codespaces.compose import write_artifacts
from mcs.codespaces.compose_runner import ComposeRunner
from mcs.codespaces.core import (
    APP_PORT,
    CODESPACE_DIRS,
    COMPONENT_DIRS,
    EDITOR_PORT,
    LABEL_CODESPACE,
    METADATA_DIR,
    METADATA_FILE,
    container_name,
    generate_password,
    managed_label_filters,
    now_utc,
)
from mcs.codespaces.detect import detect_language
from mcs.codespaces.images import get_image_info
from mcs.codespaces.naming import sanitize, unique_name
from mcs.codespaces.ownership import CleanupReport, cleanup_owned, ensure_network
from mcs.codespaces.ports import PortRegistry
from mcs.codespaces.repository import parse_repository
from mcs.config import Settings, get_settings
from mcs.deps import docker_client
from mcs.errors import (
    BulkOperationError,
    CodespaceExistsError,
    CodespaceNotFoundError,
    ContainerNotFoundError,
    McsError,
    UserInputError,
)
from mcs.models import BackupType, Codespace, CodespaceState, Component, ComposeConfig
from mcs.preferences import PreferencesStore

__all__ = ["CreateOptions", "DestroyReport", "CodespaceManager"]

logger = logging.getLogger(__name__)


@dataclass
class CreateOptions:
    repository: str
    name: Optional[str] = None
    # None selects the registry defaults; [] selects nothing
    components: Optional[List[str]] = None
    start: bool = True
    clone_depth: Optional[int] = None
    environment: Dict[str, str] = field(default_factory=dict)


@dataclass
class DestroyReport:
    backup_id: Optional[str] = None
    backup_error: Optional[str] = None
    containers: CleanupReport = field(default_factory=CleanupReport)
    removed_root: bool = False


def _state_from_container_status(status: Optional[str]) -> CodespaceState:
    if status is None:
        return CodespaceState.created
    if status == "running":
        return CodespaceState.running
    return CodespaceState.stopped


def _file_checksum(path: Path) -> str:
    if not path.is_file():
        return ""
    return hashlib.sha256(path.read_bytes()).hexdigest()


class CodespaceManager:
    """
    Drives codespaces through their lifecycle.

    The Docker client is opened lazily so that purely local operations
    (listing directories, reading metadata) never require the daemon.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[DockerClient] = None,
        *,
        ports: Optional[PortRegistry] = None,
        backups: Optional[BackupManager] = None,
        preferences: Optional[PreferencesStore] = None,
        runner_factory: Callable[[Path], ComposeRunner] = ComposeRunner,
        cloner: Callable[..., Path] = git.clone,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client
        self._owns_client = client is None
        self._ports = ports
        self.backups = backups or BackupManager(self.settings.backup_dir)
        self.preferences = preferences or PreferencesStore(self.settings.preferences_path)
        self._runner_factory = runner_factory
        self._cloner = cloner

    # ----------------------------
    # Resources
    # ----------------------------

    @property
    def client(self) -> DockerClient:
        if self._client is None:
            self._client = docker_client(self.settings)
        return self._client

    @property
    def ports(self) -> PortRegistry:
        if self._ports is None:
            self._ports = PortRegistry(self.settings.ports_path)
        return self._ports

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    # ----------------------------
    # Lookups
    # ----------------------------

    def path(self, name: str) -> Path:
        # Only sanitized names map into the codespaces root.
        if not name or sanitize(name) != name:
            raise UserInputError(f"invalid codespace name: {name!r}")
        return self.settings.codespace_path(name)

    def exists(self, name: str) -> bool:
        return self.path(name).exists()

    def _require(self, name: str) -> Path:
        p = self.path(name)
        if not p.is_dir():
            raise CodespaceNotFoundError(name)
        return p

    def _container(self, name: str) -> Optional[Container]:
        try:
            return self.client.containers.get(container_name(name))
        except NotFound:
            return None

    def _container_states(self) -> Dict[str, str]:
        states: Dict[str, str] = {}
        for c in self.client.containers.list(all=True, filters=managed_label_filters()):
            owner = (c.labels or {}).get(LABEL_CODESPACE)
            if owner:
                states[owner] = c.status
        return states

    def _load_metadata(self, directory: Path) -> Codespace:
        meta = directory / METADATA_DIR / METADATA_FILE
        if meta.is_file():
            try:
                return Codespace.model_validate_json(meta.read_text(encoding="utf-8"))
            except (OSError, ValidationError) as e:
                logger.warning("Unreadable metadata for %s: %s", directory.name, e)
        created = datetime.fromtimestamp(directory.stat().st_mtime, tz=timezone.utc)
        return Codespace(name=directory.name, path=str(directory), created_at=created)

    def _save_metadata(self, cs: Codespace) -> None:
        meta_dir = Path(cs.path) / METADATA_DIR
        meta_dir.mkdir(parents=True, exist_ok=True)
        meta = meta_dir / METADATA_FILE
        meta.write_text(cs.metadata_json(), encoding="utf-8")
        meta.chmod(0o600)

    def status(self, name: str) -> CodespaceState:
        if not self.exists(name):
            return CodespaceState.absent
        c = self._container(name)
        return _state_from_container_status(c.status if c is not None else None)

    def get(self, name: str) -> Codespace:
        directory = self._require(name)
        cs = self._load_metadata(directory)
        cs.status = self.status(name)
        return cs

    def list(self) -> List[Codespace]:
        root = self.settings.codespaces_dir
        if not root.is_dir():
            return []
        dirs = sorted(d for d in root.iterdir() if d.is_dir() and not d.name.startswith("."))
        if not dirs:
            return []
        states = self._container_states()
        out: List[Codespace] = []
        for d in dirs:
            cs = self._load_metadata(d)
            cs.status = _state_from_container_status(states.get(d.name))
            out.append(cs)
        return out

    # ----------------------------
    # Create
    # ----------------------------

    def _resolve_name(self, opts: CreateOptions, owner: str, repo: str) -> str:
        if opts.name:
            name = sanitize(opts.name)
            if self.exists(name):
                raise CodespaceExistsError(name)
            return name
        return unique_name(owner, repo, self.exists)

    def _image_available(self, image: str) -> bool:
        try:
            self.client.images.get(image)
        except ImageNotFound:
            return False
        except APIError as e:
            logger.warning("Could not inspect image %s: %s", image, e)
            return False
        return True

    def _compose_config(
        self,
        name: str,
        language: str,
        chosen: List[Component],
        password: str,
        host_ports: Dict[str, int],
        repo_url: str,
        repo_name: str,
        environment: Dict[str, str],
    ) -> ComposeConfig:
        info = get_image_info(language, chosen)
        dockerfiles = self.settings.dockerfiles_dir
        build: Dict[str, Optional[str]] = {"image": info.fallback_image, "build_context": None, "dockerfile": None}
        if self._image_available(info.image):
            build["image"] = info.image
        elif (dockerfiles / info.dockerfile).is_file():
            build = {"image": None, "build_context": str(dockerfiles), "dockerfile": info.dockerfile}
        else:
            logger.info(
                "Neither image %s nor %s in %s found; using %s",
                info.image,
                info.dockerfile,
                dockerfiles,
                info.fallback_image,
            )

        env = {"REPO_URL": repo_url}
        env.update(environment)
        return ComposeConfig(
            codespace_name=name,
            password=password,
            ports={str(host_ports["vscode"]): EDITOR_PORT, str(host_ports["app"]): APP_PORT},
            environment=env,
            labels={
                "codespace.repo": repo_name,
                "codespace.created": now_utc().isoformat(),
                "codespace.language": language,
            },
            components=chosen,
            **build,
        )

    def create(self, opts: CreateOptions) -> Codespace:
        repo = parse_repository(opts.repository)
        chosen = registry.selected(registry.select(opts.components))
        name = self._resolve_name(opts, repo.owner, repo.name)
        directory = self.path(name)
        if directory.exists():
            raise CodespaceExistsError(name)

        logger.info("Creating codespace %s from %s", name, repo.url)
        try:
            for sub in CODESPACE_DIRS + (COMPONENT_DIRS if chosen else ()):
                (directory / sub).mkdir(parents=True, exist_ok=True)

            depth = self.settings.clone_depth if opts.clone_depth is None else opts.clone_depth
            self._cloner(repo.url, directory / "src", depth)
            language = detect_language(directory / "src")

            host_ports = self.ports.allocate_codespace(name)
            password = generate_password()
            cfg = self._compose_config(
                name, language, chosen, password, host_ports, repo.url, repo.name, opts.environment
            )
            write_artifacts(cfg, directory, self.settings.network_name)
            if chosen:
                registry.copy_installers(chosen, directory / "components")

            ensure_network(self.client, self.settings.network_name)

            checksum = _file_checksum(Path(cfg.build_context) / cfg.dockerfile) if cfg.build_context and cfg.dockerfile else ""
            host = self.preferences.host_ip()
            cs = Codespace(
                name=name,
                repository=repo.url,
                path=str(directory),
                status=CodespaceState.created,
                created_at=now_utc(),
                vscode_url=f"http://{host}:{host_ports['vscode']}",
                app_url=f"http://{host}:{host_ports['app']}",
                password=password,
                components=[c.id for c in chosen],
                language=language,
                dockerfile_checksum=checksum,
            )
            self._save_metadata(cs)
        except BaseException:
            logger.error("Create failed for %s; rolling back", name)
            self.ports.release_codespace(name)
            shutil.rmtree(directory, ignore_errors=True)
            raise

        if opts.start:
            try:
                self.start(name)
                cs.status = CodespaceState.running
            except McsError as e:
                logger.warning("Codespace %s created but failed to start: %s", name, e)
        return cs

    # ----------------------------
    # Transitions
    # ----------------------------

    def start(self, name: str) -> None:
        directory = self._require(name)
        logger.info("Starting codespace %s", name)
        self._runner_factory(directory).up(detached=True)

    def stop(self, name: str) -> None:
        self._require(name)
        c = self._container(name)
        if c is None:
            raise ContainerNotFoundError(container_name(name))
        logger.info("Stopping codespace %s", name)
        c.stop(timeout=self.settings.stop_timeout_seconds)

    def restart(self, name: str) -> None:
        try:
            self.stop(name)
        except ContainerNotFoundError:
            logger.info("No container for %s; treating as stopped", name)
        self.start(name)

    def remove(self, name: str, backup: bool = False) -> Optional[str]:
        """
        Irreversibly delete a codespace: container (with volumes), ports and
        directory. With backup=True a destroy backup is attempted first; a
        failed backup is logged and removal continues. Returns the backup id.
        """
        directory = self._require(name)

        backup_id: Optional[str] = None
        if backup:
            try:
                backup_id = self.backups.create(directory, BackupType.destroy, f"before removing {name}").id
            except (McsError, OSError) as e:
                logger.warning("Backup of %s failed, removing anyway: %s", name, e)

        c = self._container(name)
        if c is not None:
            if c.status == "running":
                c.stop(timeout=self.settings.stop_timeout_seconds)
            c.remove(force=True, v=True)

        self.ports.release_codespace(name)
        shutil.rmtree(directory)
        logger.info("Removed codespace %s", name)
        return backup_id

    def logs(self, name: str, tail: Optional[int] = 100) -> str:
        self._require(name)
        c = self._container(name)
        if c is None:
            raise ContainerNotFoundError(container_name(name))
        raw = c.logs(tail=tail if tail is not None else "all")
        return raw.decode("utf-8", errors="replace")

    # ----------------------------
    # Destroy everything
    # ----------------------------

    def destroy_all(self, backup: bool = True) -> DestroyReport:
        """
        Remove every owned container and the whole codespaces root.

        The backup step is warn-and-proceed. Container failures do not stop
        the directory removal; they are raised at the end as one
        BulkOperationError carrying the report.
        """
        report = DestroyReport()
        root = self.settings.codespaces_dir

        if backup and root.is_dir() and any(root.iterdir()):
            try:
                report.backup_id = self.backups.create(root, BackupType.destroy, "before destroy").id
            except (McsError, OSError) as e:
                report.backup_error = str(e)
                logger.warning("Pre-destroy backup failed, continuing: %s", e)

        failure: Optional[BulkOperationError] = None
        try:
            report.containers = cleanup_owned(self.client, self.settings.stop_timeout_seconds)
        except BulkOperationError as e:
            report.containers = e.report
            failure = e

        if root.is_dir():
            for d in root.iterdir():
                if d.is_dir():
                    self.ports.release_codespace(d.name)
            shutil.rmtree(root)
            report.removed_root = True

        if failure is not None:
            raise BulkOperationError(report.containers) from failure
        return report
