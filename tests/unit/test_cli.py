import random

import pytest
from click.testing import CliRunner

from mcs import __version__, cli
from mcs.codespaces.core import ownership_labels
from mcs.codespaces.lifecycle import CodespaceManager
from mcs.codespaces.ports import PortRegistry
from mcs.config import get_settings


def _clone(url, dest, depth):
    (dest / ".git").mkdir(parents=True, exist_ok=True)
    (dest / "go.mod").write_text("module example\n")
    return dest


@pytest.fixture
def app(monkeypatch, fake_docker):
    """
    Wire the CLI to an in-memory engine and a fake compose runner.
    """

    def runner_factory(workdir):
        class _Runner:
            def up(self, detached=True):
                name = workdir.name
                fake_docker.containers.add(f"{name}-dev", "running", ownership_labels(name))

        return _Runner()

    def build_manager(settings, preferences=None):
        ports = PortRegistry(settings.ports_path, probe=lambda p: True, rng=random.Random(0))
        return CodespaceManager(
            settings,
            fake_docker,
            ports=ports,
            preferences=preferences,
            runner_factory=runner_factory,
            cloner=_clone,
        )

    monkeypatch.setattr(cli, "CodespaceManager", build_manager)
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    return fake_docker


def _invoke(*args, input=None):
    return CliRunner().invoke(cli.cli, list(args), input=input, catch_exceptions=False)


@pytest.mark.unit
def test_version(app):
    result = _invoke("version")
    assert result.exit_code == 0
    assert result.output.strip() == f"mcs {__version__}"


@pytest.mark.unit
def test_list_empty(app):
    result = _invoke("list")
    assert result.exit_code == 0
    assert "No codespaces found." in result.output


@pytest.mark.unit
def test_create_then_list_and_status(app):
    result = _invoke("create", "owner/svc", "--no-components")
    assert result.exit_code == 0, result.output
    assert "Codespace 'owner-svc' created" in result.output
    assert "Language: go" in result.output

    listing = _invoke("list")
    assert "owner-svc" in listing.output
    assert "running" in listing.output

    detail = _invoke("status", "owner-svc")
    assert "Status:     running" in detail.output

    overview = _invoke("status")
    assert "Managed containers: 1 (1 running, 0 stopped)" in overview.output


@pytest.mark.unit
def test_create_with_component_selection(app):
    result = _invoke("create", "owner/svc", "-c", "claude-flow", "--no-start")
    assert result.exit_code == 0, result.output
    detail = _invoke("status", "owner-svc")
    assert "Components: claude, claude-flow" in detail.output
    assert "Status:     created" in detail.output


@pytest.mark.unit
def test_errors_become_one_line_failures(app):
    result = _invoke("start", "ghost")
    assert result.exit_code == 1
    assert "codespace 'ghost' not found" in result.output


@pytest.mark.unit
def test_remove_rejects_path_like_names(app):
    _invoke("create", "owner/svc", "--no-components")
    settings = get_settings()

    result = _invoke("remove", "..", "-f")

    assert result.exit_code == 1
    assert "invalid codespace name" in result.output
    assert (settings.codespaces_dir / "owner-svc").is_dir()


@pytest.mark.unit
def test_remove_asks_for_confirmation(app):
    _invoke("create", "owner/svc", "--no-components")
    settings = get_settings()

    declined = _invoke("remove", "owner-svc", input="n\n")
    assert declined.exit_code == 1
    assert (settings.codespaces_dir / "owner-svc").is_dir()

    accepted = _invoke("remove", "owner-svc", input="y\n")
    assert accepted.exit_code == 0, accepted.output
    assert not (settings.codespaces_dir / "owner-svc").exists()
    assert "owner-svc-dev" not in app.containers.by_name


@pytest.mark.unit
def test_destroy_requires_typed_confirmation(app, monkeypatch):
    _invoke("create", "owner/svc", "--no-components")
    settings = get_settings()

    monkeypatch.setattr(cli, "confirm_word", lambda prompt, expected: False)
    result = _invoke("destroy")
    assert result.exit_code == 1
    assert (settings.codespaces_dir / "owner-svc").is_dir()

    monkeypatch.setattr(cli, "confirm_word", lambda prompt, expected: expected == "destroy")
    result = _invoke("destroy", "--skip-backup")
    assert result.exit_code == 0, result.output
    assert "Containers: removed 1, failed 0" in result.output
    assert not settings.codespaces_dir.exists()
    assert "Backup:" not in result.output


@pytest.mark.unit
def test_cleanup_spares_foreign_containers(app):
    app.containers.add("mcs-old", "exited")
    app.containers.add("redis", "running", image="redis:7")

    result = _invoke("cleanup", "--yes")

    assert result.exit_code == 0, result.output
    assert "removed 1, failed 0" in result.output
    assert list(app.containers.by_name) == ["redis"]


@pytest.mark.unit
def test_backup_commands(app, tmp_path):
    project = tmp_path / "project"
    project.mkdir()
    (project / "file.txt").write_text("data")

    for _ in range(3):
        created = _invoke("backup", "create", str(project), "-d", "nightly")
        assert created.exit_code == 0, created.output

    listing = _invoke("backup", "list")
    assert listing.output.count("manual-") == 3
    assert "(nightly)" in listing.output

    dry = _invoke("backup", "cleanup", "--keep", "1", "--dry-run")
    assert dry.output.count("Would delete") == 2
    assert _invoke("backup", "list").output.count("manual-") == 3

    done = _invoke("backup", "cleanup", "--keep", "1")
    assert done.output.count("Deleted") == 2
    assert _invoke("backup", "list").output.count("manual-") == 1

    missing = _invoke("backup", "delete", "manual-19990101_000000.000000")
    assert missing.exit_code == 1
    assert "backup not found" in missing.output


@pytest.mark.unit
def test_update_ip(app):
    ok = _invoke("update-ip", "custom", "10.1.2.3")
    assert ok.exit_code == 0, ok.output
    assert "10.1.2.3" in ok.output

    bad = _invoke("update-ip", "custom", "10.1.2")
    assert bad.exit_code == 1
    assert "invalid IP address" in bad.output


@pytest.mark.unit
def test_check_updates(app, monkeypatch):
    monkeypatch.setattr(cli, "check_for_updates", lambda *a, **k: "9.9.9")
    result = _invoke("check-updates")
    assert "Version 9.9.9 is available" in result.output

    monkeypatch.setattr(cli, "check_for_updates", lambda *a, **k: None)
    result = _invoke("check-updates")
    assert "up to date" in result.output
