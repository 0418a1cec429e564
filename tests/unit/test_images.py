import pytest

from mcs.codespaces import components as registry
from mcs.codespaces.core import DEFAULT_IMAGE
from mcs.codespaces.images import get_image_info, needs_node


def _with_node():
    return registry.select(["claude"])


def _without_node():
    return registry.select(["github-cli"])


@pytest.mark.unit
def test_needs_node_only_counts_selected_components():
    assert needs_node(_with_node())
    assert not needs_node(_without_node())
    assert not needs_node(registry.select([]))


@pytest.mark.unit
@pytest.mark.parametrize(
    "language, node, dockerfile",
    [
        ("python", False, "Dockerfile.python"),
        ("python", True, "Dockerfile.python-node"),
        ("go", False, "Dockerfile.go"),
        ("go", True, "Dockerfile.go-node"),
        ("node", False, "Dockerfile.node"),
        ("node", True, "Dockerfile.node"),
        ("generic", False, "Dockerfile.base"),
        ("generic", True, "Dockerfile.node"),
        ("rust", False, "Dockerfile.rust"),
        ("rust", True, "Dockerfile.rust-node"),
    ],
)
def test_dockerfile_selection(language, node, dockerfile):
    comps = _with_node() if node else _without_node()
    info = get_image_info(language, comps)
    assert info.dockerfile == dockerfile
    assert info.fallback_image == DEFAULT_IMAGE


@pytest.mark.unit
def test_language_match_is_case_insensitive():
    assert get_image_info("Python", []).dockerfile == "Dockerfile.python"


@pytest.mark.unit
def test_unknown_language_without_node_uses_base_image():
    info = get_image_info("ruby", [])
    assert info.image == "mcs/code-server-base:latest"
