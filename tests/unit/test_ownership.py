import pytest

from mcs.codespaces.ownership import cleanup_owned, count_owned, ensure_network, is_owned, list_owned, prune_unused
from mcs.errors import BulkOperationError
from mcs.models import ContainerSummary


def _summary(**kw):
    return ContainerSummary(**kw)


@pytest.mark.unit
@pytest.mark.parametrize(
    "summary, owned",
    [
        (dict(names=["/mcs-anything"]), True),
        (dict(image="michaelkeevildown/claude-coder:latest"), True),
        (dict(labels={"mcs.managed": "true"}), True),
        (dict(labels={"mcs.managed": "True"}), False),
        (dict(labels={"mcs.managed": "false"}), False),
        (dict(names=["/postgres"], image="postgres:16"), False),
        (dict(names=["/my-mcs-thing"]), False),
    ],
)
def test_is_owned(summary, owned):
    assert is_owned(_summary(**summary)) is owned


def _populate(client):
    client.containers.add("a-dev", "running", {"mcs.managed": "true", "mcs.codespace": "a"})
    client.containers.add("b-dev", "exited", {"mcs.managed": "true", "mcs.codespace": "b"})
    client.containers.add("mcs-legacy", "running")
    client.containers.add("postgres", "running", image="postgres:16")


@pytest.mark.unit
def test_list_and_count_only_owned(fake_docker):
    _populate(fake_docker)
    names = sorted(c.display_name for c in list_owned(fake_docker))
    assert names == ["a-dev", "b-dev", "mcs-legacy"]
    assert count_owned(fake_docker) == {"total": 3, "running": 2, "stopped": 1}


@pytest.mark.unit
def test_cleanup_removes_owned_and_spares_foreign(fake_docker):
    _populate(fake_docker)

    report = cleanup_owned(fake_docker, stop_timeout=7)

    assert report.removed == 3
    assert report.failed == 0
    assert list(fake_docker.containers.by_name) == ["postgres"]
    # only running containers are stopped first
    assert sorted(fake_docker.api.stopped) == [("id-a-dev", 7), ("id-mcs-legacy", 7)]
    assert all(v and force for _, v, force in fake_docker.api.removed)


@pytest.mark.unit
def test_cleanup_continues_past_failures_and_reports(fake_docker):
    _populate(fake_docker)
    fake_docker.api.fail_remove.add("id-a-dev")

    with pytest.raises(BulkOperationError) as ei:
        cleanup_owned(fake_docker)

    report = ei.value.report
    assert (report.removed, report.failed) == (2, 1)
    assert report.errors[0].startswith("a-dev:")
    assert "removed 2, failed 1" in str(ei.value)
    assert sorted(fake_docker.containers.by_name) == ["a-dev", "postgres"]


@pytest.mark.unit
def test_cleanup_with_nothing_owned(fake_docker):
    fake_docker.containers.add("postgres", "running", image="postgres:16")
    report = cleanup_owned(fake_docker)
    assert report.summary() == "removed 0, failed 0"


@pytest.mark.unit
def test_ensure_network_is_idempotent(fake_docker):
    assert ensure_network(fake_docker, "mcs-network") is True
    assert ensure_network(fake_docker, "mcs-network") is False
    assert fake_docker.networks.created == [
        {"name": "mcs-network", "driver": "bridge", "labels": {"mcs.managed": "true"}}
    ]


@pytest.mark.unit
def test_prune_sums_reclaimed_space(fake_docker):
    results = prune_unused(fake_docker)
    assert results["space_reclaimed"] == 100 + 2048 + 1024


@pytest.mark.unit
def test_prune_only_targets_managed_resources(fake_docker):
    prune_unused(fake_docker)

    owned = {"label": ["mcs.managed=true"]}
    assert fake_docker.containers.prune_filters == owned
    assert fake_docker.volumes.prune_filters == owned
    assert fake_docker.networks.prune_filters == owned
    assert fake_docker.images.prune_filters == {"dangling": True}
