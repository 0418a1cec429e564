"""
Best-effort release check.

A daemon thread asks the release endpoint for the latest version at most
once per interval and stores the answer in the preferences file. The result
is only shown as a banner on a later invocation, so the check never delays
or fails the command that started it.
"""

from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Optional

import requests
from packaging.version import InvalidVersion, Version

from mcs.codespaces.core import now_utc
from mcs.config import Settings
from mcs.preferences import Preferences, PreferencesStore

__all__ = [
    "parse_version",
    "is_newer",
    "fetch_latest_version",
    "check_due",
    "check_for_updates",
    "start_background_check",
    "pending_banner",
]

logger = logging.getLogger(__name__)


def parse_version(value: str) -> Optional[Version]:
    """
    PEP 440 version from a release tag (a leading "v" is accepted), or None.
    """
    try:
        return Version((value or "").strip())
    except InvalidVersion:
        return None


def is_newer(candidate: str, current: str) -> bool:
    cand, cur = parse_version(candidate), parse_version(current)
    if cand is None or cur is None:
        return False
    return cand > cur


def fetch_latest_version(url: str, session: Optional[requests.Session] = None, timeout: float = 5.0) -> str:
    http = session or requests.Session()
    resp = http.get(url, timeout=timeout, headers={"Accept": "application/vnd.github+json"})
    resp.raise_for_status()
    tag = (resp.json() or {}).get("tag_name") or ""
    return tag[1:] if tag.startswith("v") else tag


def check_due(prefs: Preferences, interval_seconds: int) -> bool:
    if not prefs.auto_update_enabled:
        return False
    if prefs.last_update_check is None:
        return True
    return now_utc() - prefs.last_update_check >= timedelta(seconds=interval_seconds)


def check_for_updates(
    settings: Settings,
    store: PreferencesStore,
    current_version: str,
    session: Optional[requests.Session] = None,
    force: bool = False,
) -> Optional[str]:
    """
    Query the release endpoint if due (or forced) and record the result.
    Returns the newer version, if any. Network errors propagate.
    """
    prefs = store.load()
    if not force and not check_due(prefs, settings.update_check_interval_seconds):
        return None

    latest = fetch_latest_version(settings.releases_url, session, settings.http_timeout)
    newer = latest if is_newer(latest, current_version) else ""
    store.save(
        prefs.model_copy(
            update={
                "last_update_check": now_utc(),
                "last_known_version": current_version,
                "latest_available_version": newer,
            }
        )
    )
    return newer or None


def _background(settings: Settings, store: PreferencesStore, current_version: str) -> None:
    try:
        newer = check_for_updates(settings, store, current_version)
        if newer:
            logger.info("Update available: %s -> %s", current_version, newer)
    except Exception as e:  # background task must never surface errors
        logger.debug("Background update check failed: %s", e)


def start_background_check(
    settings: Settings,
    store: PreferencesStore,
    current_version: str,
) -> Optional[threading.Thread]:
    if not settings.update_check_enabled:
        return None
    thread = threading.Thread(
        target=_background,
        args=(settings, store, current_version),
        name="mcs-update-check",
        daemon=True,
    )
    thread.start()
    return thread


def pending_banner(store: PreferencesStore, current_version: str) -> Optional[str]:
    """
    Message about a newer release found by an earlier run, if any.
    """
    latest = store.load().latest_available_version
    if latest and is_newer(latest, current_version):
        return f"A new version of mcs is available: {current_version} -> {latest}"
    return None
