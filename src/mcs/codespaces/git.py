"""
Repository cloning through the git command line.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List

from mcs.errors import GitCloneError

__all__ = ["clone"]

logger = logging.getLogger(__name__)


def clone(url: str, dest: Path, depth: int = 20) -> Path:
    """
    Clone url into dest. depth > 0 is a shallow clone, 0 means the default
    of 20 commits, negative means full history.
    """
    dest = Path(dest)
    args: List[str] = ["git", "clone", "--quiet"]
    effective = 20 if depth == 0 else depth
    if effective > 0:
        args.extend(["--depth", str(effective)])
    args.extend([url, str(dest)])

    logger.info("Cloning %s into %s (depth=%s)", url, dest, effective if effective > 0 else "full")
    try:
        result = subprocess.run(args, capture_output=True, text=True, check=False)
    except FileNotFoundError as exc:
        raise GitCloneError("git is not installed or not on PATH") from exc
    if result.returncode != 0:
        raise GitCloneError(f"git clone failed: {(result.stderr or result.stdout).strip()}")
    if not (dest / ".git").exists():
        raise GitCloneError(f"clone verification failed: {dest / '.git'} not found")
    return dest
