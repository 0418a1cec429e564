"""
Pydantic models shared across mcs.

These models define the contracts for:
- Codespaces and their derived live state
- Compose generation input (ComposeConfig) and image selection output (ImageInfo)
- Installable components
- Backups
- Parsed repository references
- Container snapshots used by the ownership classifier

Notes:
- Codespace.status is never persisted; it is recomputed from the engine.
- ComposeConfig accepts either an image or a build context, never both.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# -----------------------
# Enums
# -----------------------

class CodespaceState(str, enum.Enum):
    absent = "absent"
    created = "created"
    running = "running"
    stopped = "stopped"
    removed = "removed"


class BackupType(str, enum.Enum):
    destroy = "destroy"
    install = "install"
    manual = "manual"


# -----------------------
# Components and images
# -----------------------

class Component(BaseModel):
    """
    An optional tool installed inside the codespace at container start.
    """
    id: str
    name: str
    description: str = ""
    selected: bool = False
    installer: str = ""
    depends_on: List[str] = Field(default_factory=list)
    requires: List[str] = Field(default_factory=list, description="Runtime requirements, e.g. 'nodejs'")


class ImageInfo(BaseModel):
    image: str
    dockerfile: str
    fallback_image: str


# -----------------------
# Compose input
# -----------------------

class ComposeConfig(BaseModel):
    """
    Everything needed to render the compose file, .env file and init script.
    """
    codespace_name: str
    container_name: str = ""
    image: Optional[str] = None
    build_context: Optional[str] = None
    dockerfile: Optional[str] = None
    password: str
    ports: Dict[str, str] = Field(default_factory=dict, description="host port -> container port")
    environment: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    components: List[Component] = Field(default_factory=list)
    working_dir: str = ""

    @field_validator("codespace_name")
    def v_codespace_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("codespace_name must be non-empty")
        return v

    @field_validator("ports", "environment", "labels", mode="before")
    def v_str_mapping(cls, v: Optional[Dict[Any, Any]]) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for k, val in (v or {}).items():
            key = str(k)
            if not key.strip():
                raise ValueError("Mapping keys must be non-empty")
            out[key] = str(val)
        return out

    @model_validator(mode="after")
    def v_image_or_build(self) -> "ComposeConfig":
        if self.image and self.build_context:
            raise ValueError("image and build_context are mutually exclusive")
        if self.build_context and not self.dockerfile:
            raise ValueError("build_context requires a dockerfile")
        if not self.container_name:
            self.container_name = f"{self.codespace_name}-dev"
        if not self.working_dir:
            self.working_dir = f"/home/coder/{self.codespace_name}"
        return self


# -----------------------
# Codespaces
# -----------------------

class Codespace(BaseModel):
    name: str
    repository: str = ""
    path: str
    status: CodespaceState = CodespaceState.created
    created_at: datetime
    vscode_url: str = ""
    app_url: str = ""
    password: str = ""
    components: List[str] = Field(default_factory=list)
    language: str = ""
    dockerfile_checksum: str = ""

    def metadata_json(self) -> str:
        """
        Serialized sidecar contents. Status is derived live and never stored.
        """
        return self.model_dump_json(exclude={"status"}, indent=2)


# -----------------------
# Backups
# -----------------------

class BackupInfo(BaseModel):
    id: str
    type: BackupType
    timestamp: datetime
    source_path: str
    size: int = 0
    description: Optional[str] = None


# -----------------------
# Repositories
# -----------------------

class Repository(BaseModel):
    url: str
    host: str = ""
    owner: str = ""
    name: str
    is_local: bool = False


# -----------------------
# Engine snapshots
# -----------------------

class ContainerSummary(BaseModel):
    """
    One row of the engine's container list, reduced to what ownership needs.
    """
    id: str = ""
    names: List[str] = Field(default_factory=list)
    image: str = ""
    labels: Dict[str, str] = Field(default_factory=dict)
    state: str = ""

    @classmethod
    def from_api(cls, row: Dict[str, Any]) -> "ContainerSummary":
        """
        Build from a low-level `client.api.containers()` row.
        """
        return cls(
            id=row.get("Id") or "",
            names=list(row.get("Names") or []),
            image=row.get("Image") or "",
            labels=dict(row.get("Labels") or {}),
            state=row.get("State") or "",
        )

    @property
    def display_name(self) -> str:
        if self.names:
            return self.names[0].lstrip("/")
        return self.id[:12]


__all__ = [
    "CodespaceState",
    "BackupType",
    "Component",
    "ImageInfo",
    "ComposeConfig",
    "Codespace",
    "BackupInfo",
    "Repository",
    "ContainerSummary",
]
