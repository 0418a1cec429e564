"""
Exception hierarchy for mcs.

Three families matter to callers:
- UserInputError: bad arguments; raised before any state change.
- DependencyError: the environment lacks something (Docker daemon, compose).
- BulkOperationError: a bulk operation finished but some items failed; it
  carries the full per-item report.

The CLI converts any McsError into a one-line message and a non-zero exit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from mcs.codespaces.ownership import CleanupReport


class McsError(Exception):
    """Base class for all errors raised by mcs."""


# -----------------------
# User input
# -----------------------

class UserInputError(McsError):
    pass


class InvalidRepositoryError(UserInputError):
    pass


class InvalidAddressError(UserInputError):
    pass


class CodespaceNotFoundError(UserInputError):
    def __init__(self, name: str) -> None:
        super().__init__(f"codespace '{name}' not found")
        self.name = name


class CodespaceExistsError(UserInputError):
    def __init__(self, name: str) -> None:
        super().__init__(f"codespace '{name}' already exists")
        self.name = name


class BackupNotFoundError(UserInputError):
    def __init__(self, backup_id: str) -> None:
        super().__init__(f"backup not found: {backup_id}")
        self.backup_id = backup_id


class UnknownComponentError(UserInputError):
    def __init__(self, component_id: str) -> None:
        super().__init__(f"component not found: {component_id}")
        self.component_id = component_id


# -----------------------
# Environment / dependencies
# -----------------------

class DependencyError(McsError):
    pass


class DockerUnavailableError(DependencyError):
    pass


class ComposeUnavailableError(DependencyError):
    pass


class ComposeCommandError(DependencyError):
    def __init__(self, args: list[str], returncode: int, output: str) -> None:
        cmd = " ".join(args)
        detail = output.strip()
        msg = f"'{cmd}' failed with exit code {returncode}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.command = list(args)
        self.returncode = returncode
        self.output = output


# -----------------------
# Runtime outcomes
# -----------------------

class ContainerNotFoundError(McsError):
    def __init__(self, name: str) -> None:
        super().__init__(f"container '{name}' not found")
        self.name = name


class GitCloneError(McsError):
    pass


class PortAllocationError(McsError):
    pass


class RestoreConflictError(McsError):
    def __init__(self, conflicts: list[str]) -> None:
        joined = ", ".join(conflicts)
        super().__init__(f"restore target already exists: {joined} (use force to overwrite)")
        self.conflicts = list(conflicts)


class BulkOperationError(McsError):
    def __init__(self, report: "CleanupReport", message: Optional[str] = None) -> None:
        super().__init__(message or f"removed {report.removed}, failed {report.failed}")
        self.report = report


__all__ = [
    "McsError",
    "UserInputError",
    "InvalidRepositoryError",
    "InvalidAddressError",
    "CodespaceNotFoundError",
    "CodespaceExistsError",
    "BackupNotFoundError",
    "UnknownComponentError",
    "DependencyError",
    "DockerUnavailableError",
    "ComposeUnavailableError",
    "ComposeCommandError",
    "ContainerNotFoundError",
    "GitCloneError",
    "PortAllocationError",
    "RestoreConflictError",
    "BulkOperationError",
]
