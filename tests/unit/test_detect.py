import pytest

from mcs.codespaces.detect import detect_language


def _touch(path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")


@pytest.mark.unit
@pytest.mark.parametrize(
    "marker, language",
    [
        ("requirements.txt", "python"),
        ("pyproject.toml", "python"),
        ("package.json", "node"),
        ("go.mod", "go"),
        ("Cargo.toml", "rust"),
        ("pom.xml", "java"),
        ("composer.json", "php"),
        ("Gemfile", "ruby"),
        ("App.csproj", "dotnet"),
    ],
)
def test_root_markers(tmp_path, marker, language):
    _touch(tmp_path / marker)
    assert detect_language(tmp_path) == language


@pytest.mark.unit
def test_marker_order_breaks_ties(tmp_path):
    _touch(tmp_path / "package.json")
    _touch(tmp_path / "requirements.txt")
    assert detect_language(tmp_path) == "python"


@pytest.mark.unit
def test_root_wins_over_subdirectories(tmp_path):
    _touch(tmp_path / "go.mod")
    _touch(tmp_path / "backend" / "requirements.txt")
    assert detect_language(tmp_path) == "go"


@pytest.mark.unit
def test_monorepo_subdirectory(tmp_path):
    _touch(tmp_path / "packages" / "web" / "package.json")
    assert detect_language(tmp_path) == "node"


@pytest.mark.unit
def test_empty_project_is_generic(tmp_path):
    assert detect_language(tmp_path) == "generic"
