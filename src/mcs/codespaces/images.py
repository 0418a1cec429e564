"""
Container image and Dockerfile selection.

The choice depends on the detected project language and on whether any
selected component needs Node.js. Languages without a dedicated image fall
back to the generic base image while keeping `Dockerfile.<language>` as the
Dockerfile name.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Tuple

from mcs.codespaces.core import DEFAULT_IMAGE
from mcs.models import Component, ImageInfo

__all__ = ["NODE_REQUIREMENT", "needs_node", "get_image_info"]

NODE_REQUIREMENT = "nodejs"

BASE_IMAGE = "mcs/code-server-base:latest"
NODE_IMAGE = "mcs/code-server-node:latest"

# language -> ((image, dockerfile) without node, (image, dockerfile) with node)
_DEDICATED: Mapping[str, Tuple[Tuple[str, str], Tuple[str, str]]] = MappingProxyType(
    {
        "python": (
            ("mcs/code-server-python:latest", "Dockerfile.python"),
            ("mcs/code-server-python-node:latest", "Dockerfile.python-node"),
        ),
        "go": (
            ("mcs/code-server-go:latest", "Dockerfile.go"),
            ("mcs/code-server-go-node:latest", "Dockerfile.go-node"),
        ),
        "node": (
            (NODE_IMAGE, "Dockerfile.node"),
            (NODE_IMAGE, "Dockerfile.node"),
        ),
        "generic": (
            (BASE_IMAGE, "Dockerfile.base"),
            (NODE_IMAGE, "Dockerfile.node"),
        ),
    }
)


def needs_node(components: Iterable[Component]) -> bool:
    return any(c.selected and NODE_REQUIREMENT in c.requires for c in components)


def get_image_info(language: str, components: Iterable[Component]) -> ImageInfo:
    lang = (language or "").lower()
    with_node = needs_node(components)

    choice = _DEDICATED.get(lang)
    if choice is not None:
        image, dockerfile = choice[1] if with_node else choice[0]
    elif with_node:
        image, dockerfile = NODE_IMAGE, f"Dockerfile.{lang}-node"
    else:
        image, dockerfile = BASE_IMAGE, f"Dockerfile.{lang}"

    return ImageInfo(image=image, dockerfile=dockerfile, fallback_image=DEFAULT_IMAGE)
