import os

import pytest

from mcs.codespaces.repository import parse_repository
from mcs.errors import InvalidRepositoryError


@pytest.mark.unit
@pytest.mark.parametrize(
    "ref, url, owner, name",
    [
        ("facebook/react", "https://github.com/facebook/react", "facebook", "react"),
        ("facebook/react.git", "https://github.com/facebook/react", "facebook", "react"),
        ("https://github.com/owner/repo", "https://github.com/owner/repo", "owner", "repo"),
        ("https://github.com/owner/repo.git", "https://github.com/owner/repo", "owner", "repo"),
        ("https://gitlab.com/group/project/", "https://gitlab.com/group/project", "group", "project"),
        ("git@github.com:owner/repo.git", "https://github.com/owner/repo", "owner", "repo"),
    ],
)
def test_remote_references(ref, url, owner, name):
    repo = parse_repository(ref)
    assert repo.url == url
    assert repo.owner == owner
    assert repo.name == name
    assert repo.is_local is False


@pytest.mark.unit
def test_local_path(tmp_path):
    project = tmp_path / "proj"
    project.mkdir()
    repo = parse_repository(str(project))
    assert repo.is_local
    assert repo.name == "proj"
    assert repo.url == os.path.abspath(str(project))


@pytest.mark.unit
@pytest.mark.parametrize("ref", ["", "   ", "justaname", "a/b/c", "owner/", "https://github.com/owner"])
def test_invalid_references(ref):
    with pytest.raises(InvalidRepositoryError):
        parse_repository(ref)
