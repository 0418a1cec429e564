"""
Repository reference parsing.

Accepted forms:
- local paths: ".", "./dir", "/abs/dir"
- GitHub shorthand: "owner/repo"
- URLs: "https://host/owner/repo(.git)"
- SCP-style SSH: "git@host:owner/repo.git" (rewritten to https)
"""

from __future__ import annotations

import os
from urllib.parse import urlparse

from mcs.errors import InvalidRepositoryError
from mcs.models import Repository

__all__ = ["parse_repository"]


def _strip_git(s: str) -> str:
    return s[: -len(".git")] if s.endswith(".git") else s


def parse_repository(ref: str) -> Repository:
    raw = (ref or "").strip()
    if not raw:
        raise InvalidRepositoryError("repository reference is empty")

    if raw == "." or raw.startswith("./") or raw.startswith("/"):
        path = os.path.abspath(raw)
        return Repository(url=path, name=os.path.basename(path.rstrip("/")) or path, is_local=True)

    if "://" not in raw and not raw.startswith("git@"):
        parts = raw.split("/")
        if len(parts) == 2 and all(parts):
            owner, name = parts[0], _strip_git(parts[1])
            return Repository(
                url=f"https://github.com/{owner}/{name}",
                host="github.com",
                owner=owner,
                name=name,
            )
        raise InvalidRepositoryError(f"invalid repository reference: {ref}")

    if raw.startswith("git@"):
        raw = "https://" + raw[len("git@"):].replace(":", "/", 1)

    raw = _strip_git(raw.rstrip("/"))
    parsed = urlparse(raw)
    if not parsed.scheme or not parsed.netloc:
        raise InvalidRepositoryError(f"invalid repository URL: {ref}")
    parts = [p for p in parsed.path.strip("/").split("/") if p]
    if len(parts) < 2:
        raise InvalidRepositoryError(f"invalid repository path: {parsed.path or '/'}")

    return Repository(
        url=raw,
        host=parsed.netloc,
        owner=parts[0],
        name=_strip_git(parts[1]),
    )
