"""
Registry of optional components installed inside a codespace.

Installer scripts ship as package data under mcs/assets/installers and are
copied into `<codespace>/components` at create time; the generated init
script runs each selected one with an `install` argument.
"""

from __future__ import annotations

import logging
import shutil
from importlib import resources
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from mcs.errors import UnknownComponentError
from mcs.models import Component

__all__ = [
    "REGISTRY",
    "all_components",
    "get_by_id",
    "select",
    "selected",
    "system_requirements",
    "copy_installers",
]

logger = logging.getLogger(__name__)

REGISTRY = (
    Component(
        id="claude",
        name="Claude Code",
        description="Claude AI coding assistant in the terminal",
        selected=True,
        installer="claude.sh",
        requires=["nodejs"],
    ),
    Component(
        id="claude-flow",
        name="Claude Flow",
        description="Agent orchestration and workflow automation",
        selected=True,
        installer="claude-flow.sh",
        depends_on=["claude"],
        requires=["nodejs"],
    ),
    Component(
        id="github-cli",
        name="GitHub CLI",
        description="Command-line interface for GitHub",
        selected=True,
        installer="github-cli.sh",
    ),
)


def all_components() -> List[Component]:
    """
    Fresh copies of the registry with default selection.
    """
    return [c.model_copy(deep=True) for c in REGISTRY]


def get_by_id(component_id: str) -> Component:
    for c in REGISTRY:
        if c.id == component_id:
            return c.model_copy(deep=True)
    raise UnknownComponentError(component_id)


def select(ids: Optional[Sequence[str]]) -> List[Component]:
    """
    Registry copies with `selected` set for the given ids and their
    dependencies. None means the registry defaults; an empty list selects
    nothing. Unknown ids raise UnknownComponentError.
    """
    components = all_components()
    if ids is None:
        return components

    by_id = {c.id: c for c in components}
    wanted: set[str] = set()
    pending = list(ids)
    while pending:
        cid = pending.pop()
        if cid in wanted:
            continue
        if cid not in by_id:
            raise UnknownComponentError(cid)
        wanted.add(cid)
        pending.extend(by_id[cid].depends_on)

    for c in components:
        c.selected = c.id in wanted
    return components


def selected(components: Iterable[Component]) -> List[Component]:
    return [c for c in components if c.selected]


def system_requirements(components: Iterable[Component]) -> List[str]:
    reqs: List[str] = []
    for c in components:
        if not c.selected:
            continue
        for r in c.requires:
            if r not in reqs:
                reqs.append(r)
    return reqs


def copy_installers(components: Iterable[Component], dest: Path) -> List[Path]:
    """
    Copy the installer script of every selected component into dest (0755).
    """
    dest.mkdir(parents=True, exist_ok=True)
    root = resources.files("mcs") / "assets" / "installers"
    written: List[Path] = []
    for c in selected(components):
        source = root / c.installer
        target = dest / c.installer
        with resources.as_file(source) as src_path:
            shutil.copyfile(src_path, target)
        target.chmod(0o755)
        written.append(target)
        logger.debug("Copied installer %s -> %s", c.installer, target)
    return written
