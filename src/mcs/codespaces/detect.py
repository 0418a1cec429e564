"""
Project language detection from well-known marker files.

The project root is checked first, then common subdirectories (monorepo
packages, backend folders). Anything unrecognized is "generic".
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Tuple, Union

__all__ = ["LANGUAGE_MARKERS", "detect_language"]

# Checked in this order; first match wins
LANGUAGE_MARKERS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("python", ("requirements.txt", "setup.py", "Pipfile", "pyproject.toml")),
    ("node", ("package.json", "yarn.lock", "package-lock.json")),
    ("go", ("go.mod", "go.sum")),
    ("rust", ("Cargo.toml", "Cargo.lock")),
    ("java", ("pom.xml", "build.gradle", "build.gradle.kts")),
    ("php", ("composer.json", "composer.lock")),
    ("ruby", ("Gemfile", "Gemfile.lock")),
    ("dotnet", ("*.csproj", "*.fsproj", "*.vbproj")),
)

_SUBDIR_PATTERNS = (
    "*",
    "backend",
    "api",
    "server",
    "app",
    "src",
    "*-go",
    "*-api",
    "*-backend",
    "services/*",
    "packages/*",
)


def _has_marker(directory: Path, marker: str) -> bool:
    if "*" in marker:
        return any(directory.glob(marker))
    return (directory / marker).exists()


def _language_of(directory: Path) -> str:
    for language, markers in LANGUAGE_MARKERS:
        if any(_has_marker(directory, m) for m in markers):
            return language
    return ""


def _candidate_dirs(root: Path) -> Iterable[Path]:
    for pattern in _SUBDIR_PATTERNS:
        matches: List[Path] = sorted(root.glob(pattern)) if "*" in pattern else [root / pattern]
        for d in matches:
            if d.is_dir():
                yield d


def detect_language(project_path: Union[str, Path]) -> str:
    root = Path(project_path)
    found = _language_of(root)
    if found:
        return found
    for d in _candidate_dirs(root):
        found = _language_of(d)
        if found:
            return found
    return "generic"
