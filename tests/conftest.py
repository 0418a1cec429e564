# Pytest configuration for mcs tests.
# - Makes the in-repo `src/` layout importable without an editable install.
# - Registers a "docker" marker for tests that require a running Docker daemon.
# - Automatically skips tests marked with @pytest.mark.docker when Docker is unavailable.
# - Points every mcs directory at a per-test temporary home.

from __future__ import annotations

import contextlib
import sys
from pathlib import Path
from typing import Tuple

import pytest


def _add_sys_path(p: Path) -> None:
    """
    Prepend a filesystem path to sys.path if it's not already present.
    """
    try:
        rp = str(p.resolve())
    except Exception:
        rp = str(p)
    if rp not in sys.path:
        sys.path.insert(0, rp)


_THIS_FILE = Path(__file__).resolve()
_TESTS_DIR = _THIS_FILE.parent                  # .../tests
_PROJECT_DIR = _TESTS_DIR.parent                # project root

_SRC = _PROJECT_DIR / "src"
if _SRC.exists():
    _add_sys_path(_SRC)


def _docker_available() -> Tuple[bool, str]:
    """
    Check if Docker daemon is reachable.
    Returns (available, reason_if_unavailable).
    """
    try:
        import docker  # type: ignore
    except Exception as e:
        return False, f"Docker SDK not importable: {e} (install the 'docker' Python package)"

    try:
        with contextlib.closing(docker.from_env()) as client:  # type: ignore
            client.ping()
        return True, ""
    except Exception as e:
        return False, f"Docker daemon not reachable: {e} (ensure the Docker daemon is running; set DOCKER_HOST for remote engines)"


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "docker: mark test as requiring Docker (skipped if Docker is unavailable)",
    )
    config.addinivalue_line("markers", "unit: fast tests without external dependencies")

    available, reason = _docker_available()
    setattr(config, "_mcs_docker_available", available)
    setattr(config, "_mcs_docker_unavailable_reason", reason)


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    available: bool = getattr(config, "_mcs_docker_available", False)
    if available:
        return
    reason: str = getattr(config, "_mcs_docker_unavailable_reason", "") or "Docker daemon not reachable"
    skip_marker = pytest.mark.skip(reason=reason)
    for item in items:
        if "docker" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture(autouse=True)
def mcs_home(tmp_path, monkeypatch):
    """
    Isolated MCS_HOME, codespaces root and backup root for every test.
    """
    from mcs.config import get_settings

    home = tmp_path / "mcs-home"
    monkeypatch.setenv("MCS_HOME", str(home))
    monkeypatch.setenv("MCS_CODESPACES_DIR", str(tmp_path / "codespaces"))
    monkeypatch.setenv("MCS_BACKUP_DIR", str(tmp_path / "backups"))
    monkeypatch.setenv("MCS_DOCKERFILES_DIR", str(tmp_path / "dockerfiles"))
    monkeypatch.setenv("MCS_UPDATE_CHECK", "false")
    for var in ("MCS_LOG_FILE", "MCS_LOG_DIR", "MCS_LOG_LEVEL", "LOG_LEVEL", "MCS_NETWORK_NAME", "MCS_CLONE_DEPTH"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield home
    get_settings.cache_clear()


# ----------------------------
# In-memory Docker engine
# ----------------------------

class FakeContainer:
    def __init__(self, engine, name, status="running", labels=None, image="codercom/code-server:latest"):
        self._engine = engine
        self.name = name
        self.id = f"id-{name}"
        self.status = status
        self.labels = dict(labels or {})
        self.image = image
        self.stop_calls = []
        self.remove_calls = []
        self.log_output = b""

    def stop(self, timeout=None):
        self.stop_calls.append(timeout)
        self.status = "exited"

    def remove(self, force=False, v=False):
        self.remove_calls.append({"force": force, "v": v})
        self._engine.containers.drop(self.name)

    def logs(self, tail=None):
        self.last_tail = tail
        return self.log_output


class FakeContainers:
    def __init__(self, engine):
        self._engine = engine
        self.by_name = {}

    def add(self, name, status="running", labels=None, image="codercom/code-server:latest"):
        c = FakeContainer(self._engine, name, status, labels, image)
        self.by_name[name] = c
        return c

    def drop(self, name):
        self.by_name.pop(name, None)

    def get(self, name):
        from docker.errors import NotFound

        if name not in self.by_name:
            raise NotFound(f"No such container: {name}")
        return self.by_name[name]

    def list(self, all=False, filters=None):
        wanted = (filters or {}).get("label", [])
        out = []
        for c in self.by_name.values():
            if not all and c.status != "running":
                continue
            if self._matches_all(c, wanted):
                out.append(c)
        return out

    @staticmethod
    def _matches_all(c, wanted):
        for f in wanted:
            key, _, value = f.partition("=")
            if c.labels.get(key) != value:
                return False
        return True

    def prune(self, filters=None):
        self.prune_filters = filters
        return {"SpaceReclaimed": 100}


class FakeAPI:
    def __init__(self, engine):
        self._engine = engine
        self.fail_remove = set()
        self.stopped = []
        self.removed = []

    def containers(self, all=False):
        rows = []
        for c in self._engine.containers.by_name.values():
            rows.append(
                {
                    "Id": c.id,
                    "Names": [f"/{c.name}"],
                    "Image": c.image,
                    "Labels": dict(c.labels),
                    "State": c.status,
                }
            )
        return rows

    def _by_id(self, cid):
        from docker.errors import NotFound

        for c in self._engine.containers.by_name.values():
            if c.id == cid:
                return c
        raise NotFound(f"No such container: {cid}")

    def stop(self, cid, timeout=None):
        self._by_id(cid).status = "exited"
        self.stopped.append((cid, timeout))

    def remove_container(self, cid, v=False, force=False):
        from docker.errors import APIError

        if cid in self.fail_remove:
            raise APIError(f"removal of container {cid} is already in progress")
        c = self._by_id(cid)
        self._engine.containers.drop(c.name)
        self.removed.append((cid, v, force))


class FakeNetworks:
    def __init__(self):
        self.names = []
        self.created = []

    def list(self, names=None):
        return [n for n in self.names if not names or n in names]

    def create(self, name, driver=None, labels=None):
        self.names.append(name)
        self.created.append({"name": name, "driver": driver, "labels": labels})
        return name

    def prune(self, filters=None):
        self.prune_filters = filters
        return {"NetworksDeleted": []}


class FakePruner:
    def __init__(self, reclaimed=0):
        self.reclaimed = reclaimed

    def prune(self, filters=None):
        self.prune_filters = filters
        return {"SpaceReclaimed": self.reclaimed}


class FakeImages(FakePruner):
    def __init__(self, reclaimed=0):
        super().__init__(reclaimed)
        self.local = set()

    def get(self, name):
        from docker.errors import ImageNotFound

        if name not in self.local:
            raise ImageNotFound(f"No such image: {name}")
        return name


class FakeDockerClient:
    def __init__(self):
        self.containers = FakeContainers(self)
        self.api = FakeAPI(self)
        self.networks = FakeNetworks()
        self.images = FakeImages(2048)
        self.volumes = FakePruner(1024)
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def fake_docker():
    return FakeDockerClient()
