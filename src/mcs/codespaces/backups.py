"""
Directory backups with keep-newest-N retention.

Layout under the backup root (default ~/.mcs.backup):

    <type>-<YYYYmmdd_HHMMSS.ffffff>/
        metadata.json          id, type, timestamp, source_path, size, description
        <basename of source>/  full copy of the source tree

IDs embed the creation time, so they sort chronologically within a type;
ordering across types always uses the recorded timestamp.
"""

from __future__ import annotations

import logging
import re
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Union

from pydantic import ValidationError

from mcs.codespaces.core import now_utc
from mcs.codespaces.ownership import CleanupReport
from mcs.errors import BackupNotFoundError, BulkOperationError, McsError, RestoreConflictError, UserInputError
from mcs.models import BackupInfo, BackupType

__all__ = ["METADATA_FILE", "BackupManager", "format_size", "backup_type_from_id"]

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
MAX_SLOT_ATTEMPTS = 1000


def format_size(size: int) -> str:
    """
    Human readable size using 1024 steps, e.g. "512 B", "1.5 KB", "2.0 GB".
    """
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in "KMGTPE":
        value /= 1024.0
        if value < 1024.0 or unit == "E":
            return f"{value:.1f} {unit}B"
    return f"{size} B"


def backup_type_from_id(backup_id: str) -> Optional[BackupType]:
    prefix = backup_id.split("-", 1)[0]
    try:
        return BackupType(prefix)
    except ValueError:
        return None


def _tree_size(path: Path) -> int:
    total = 0
    for p in path.rglob("*"):
        if p.is_file() and not p.is_symlink():
            total += p.stat().st_size
    return total


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


class BackupManager:
    """
    Create, list, restore, delete and prune backups under one root directory.
    """

    def __init__(self, root: Union[str, Path], clock: Callable[[], datetime] = now_utc) -> None:
        self.root = Path(root).expanduser()
        self._clock = clock

    # ----------------------------
    # Paths and lookups
    # ----------------------------

    def path_for(self, backup_id: str) -> Path:
        if backup_id in (".", "..") or not _ID_RE.match(backup_id or ""):
            raise UserInputError(f"invalid backup id: {backup_id!r}")
        return self.root / backup_id

    def exists(self, backup_id: str) -> bool:
        try:
            return (self.path_for(backup_id) / METADATA_FILE).is_file()
        except UserInputError:
            return False

    def _read(self, directory: Path) -> Optional[BackupInfo]:
        meta = directory / METADATA_FILE
        try:
            return BackupInfo.model_validate_json(meta.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.debug("Skipping %s: %s", directory, e)
            return None

    def get(self, backup_id: str) -> BackupInfo:
        info = self._read(self.path_for(backup_id)) if self.exists(backup_id) else None
        if info is None:
            raise BackupNotFoundError(backup_id)
        return info

    def list(self) -> List[BackupInfo]:
        """
        All readable backups, newest first. Directories without valid
        metadata are skipped.
        """
        if not self.root.is_dir():
            return []
        backups: List[BackupInfo] = []
        for entry in self.root.iterdir():
            if not entry.is_dir():
                continue
            info = self._read(entry)
            if info is not None:
                backups.append(info)
        backups.sort(key=lambda b: (b.timestamp, b.id), reverse=True)
        return backups

    def latest(self, backup_type: BackupType) -> Optional[BackupInfo]:
        for b in self.list():
            if b.type == backup_type:
                return b
        return None

    # ----------------------------
    # Create
    # ----------------------------

    def _new_slot(self, backup_type: BackupType) -> tuple[str, datetime, Path]:
        # On collision step the timestamp forward so the id keeps its format.
        ts = self._clock()
        for _ in range(MAX_SLOT_ATTEMPTS):
            backup_id = f"{backup_type.value}-{ts.strftime('%Y%m%d_%H%M%S.%f')}"
            slot = self.root / backup_id
            try:
                slot.mkdir(parents=True)
            except FileExistsError:
                ts += timedelta(microseconds=1)
                continue
            return backup_id, ts, slot
        raise McsError(f"could not allocate a {backup_type.value} backup id in {self.root}")

    def create(
        self,
        source_path: Union[str, Path],
        backup_type: BackupType,
        description: Optional[str] = None,
    ) -> BackupInfo:
        source = Path(source_path).expanduser().resolve()
        if not source.exists():
            raise UserInputError(f"backup source does not exist: {source}")
        if not source.is_dir():
            raise UserInputError(f"backup source is not a directory: {source}")

        backup_id, ts, slot = self._new_slot(BackupType(backup_type))
        try:
            shutil.copytree(source, slot / source.name, symlinks=True)
            info = BackupInfo(
                id=backup_id,
                type=backup_type,
                timestamp=ts,
                source_path=str(source),
                size=_tree_size(slot / source.name),
                description=description or None,
            )
            (slot / METADATA_FILE).write_text(info.model_dump_json(indent=2), encoding="utf-8")
        except BaseException:
            shutil.rmtree(slot, ignore_errors=True)
            raise

        logger.info("Created backup %s of %s (%s)", backup_id, source, format_size(info.size))
        return info

    # ----------------------------
    # Restore / delete
    # ----------------------------

    def restore(
        self,
        backup_id: str,
        target: Optional[Union[str, Path]] = None,
        force: bool = False,
    ) -> Path:
        """
        Copy a backup's contents into target (default: parent of the original
        source). Every conflict is checked before anything is written, so a
        refused restore leaves the target untouched.
        """
        info = self.get(backup_id)
        slot = self.path_for(backup_id)
        dest = Path(target).expanduser() if target else Path(info.source_path).parent

        entries = sorted(p for p in slot.iterdir() if p.name != METADATA_FILE)
        conflicts = [str(dest / e.name) for e in entries if (dest / e.name).exists() or (dest / e.name).is_symlink()]
        if conflicts and not force:
            raise RestoreConflictError(conflicts)

        dest.mkdir(parents=True, exist_ok=True)
        for entry in entries:
            out = dest / entry.name
            if out.exists() or out.is_symlink():
                _remove_path(out)
            if entry.is_dir() and not entry.is_symlink():
                shutil.copytree(entry, out, symlinks=True)
            else:
                shutil.copy2(entry, out, follow_symlinks=False)

        logger.info("Restored backup %s to %s", backup_id, dest)
        return dest

    def delete(self, backup_id: str) -> None:
        if not self.exists(backup_id):
            raise BackupNotFoundError(backup_id)
        shutil.rmtree(self.path_for(backup_id))
        logger.info("Deleted backup %s", backup_id)

    # ----------------------------
    # Retention
    # ----------------------------

    def plan_cleanup(self, keep: int) -> List[BackupInfo]:
        """
        Backups that cleanup_old(keep) would delete: everything after the
        `keep` newest.
        """
        if keep < 0:
            raise ValueError("keep must be >= 0")
        return self.list()[keep:]

    def cleanup_old(self, keep: int, dry_run: bool = False) -> List[BackupInfo]:
        """
        Keep the `keep` newest backups and delete the rest. With dry_run the
        same set is returned and nothing is touched.
        """
        doomed = self.plan_cleanup(keep)
        if dry_run or not doomed:
            return doomed

        report = CleanupReport()
        for b in doomed:
            try:
                shutil.rmtree(self.path_for(b.id))
            except OSError as e:
                report.failed += 1
                report.errors.append(f"{b.id}: {e}")
                logger.error("Retention: failed to delete backup %s: %s", b.id, e)
                continue
            report.removed += 1
            report.removed_names.append(b.id)
        if report.failed:
            raise BulkOperationError(report)
        logger.info("Retention: deleted %d backup(s), kept %d", report.removed, keep)
        return doomed
