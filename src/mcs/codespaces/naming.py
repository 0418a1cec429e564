"""
Codespace name resolution.

Names are derived from the repository owner and name, sanitized to
`[a-z0-9-]`, and made unique against an `exists` predicate by appending a
random `-<adjective>-<noun>` suffix, then a Unix timestamp as a last resort.
"""

from __future__ import annotations

import random
import re
import time
from typing import Callable, Optional

__all__ = [
    "ADJECTIVES",
    "NOUNS",
    "MAX_SUFFIX_ATTEMPTS",
    "sanitize",
    "base_name",
    "unique_name",
]

MAX_SUFFIX_ATTEMPTS = 50

ADJECTIVES = (
    "happy", "clever", "brave", "calm", "eager", "fancy", "gentle", "jolly",
    "kind", "lively", "nice", "proud", "silly", "witty", "zealous", "cosmic",
    "electric", "melodic", "quantum", "serene", "vibrant", "whimsical",
    "dazzling", "groovy", "mystical", "radiant", "stellar", "tranquil",
    "fierce", "noble", "swift", "wise", "bold", "cheerful", "dynamic",
    "elegant", "friendly", "graceful", "heroic", "inspired", "joyful",
    "luminous", "magical", "nimble", "peaceful", "quirky", "resilient",
    "spirited", "thoughtful", "unique", "valiant", "wonderful", "zesty",
    "brilliant", "charming", "delightful", "energetic", "fabulous", "glorious",
    "harmonious", "incredible", "jubilant", "kinetic", "legendary", "magnificent",
)

NOUNS = (
    "panda", "koala", "otter", "penguin", "dolphin", "eagle", "falcon",
    "giraffe", "hamster", "iguana", "jaguar", "kitten", "lemur", "monkey",
    "narwhal", "octopus", "parrot", "quokka", "rabbit", "sloth", "turtle",
    "unicorn", "viper", "walrus", "xerus", "yak", "zebra", "alpaca", "badger",
    "cheetah", "dragon", "elephant", "flamingo", "gecko", "hedgehog", "impala",
    "jellyfish", "kangaroo", "llama", "meerkat", "newt", "owl", "platypus",
    "quail", "raccoon", "seahorse", "toucan", "urchin", "vulture", "wombat",
    "fox", "bear", "wolf", "lynx", "moose", "bison", "crane", "dove", "elk",
    "ferret", "gazelle", "heron", "ibis", "jackal", "kiwi", "lobster", "mantis",
    "nightingale",
)

_SEPARATOR_RUN = re.compile(r"[^a-z0-9]+")


def sanitize(s: str) -> str:
    """
    Lowercase, collapse each run of characters outside [a-z0-9] (hyphens
    included) into one hyphen, trim hyphens at both ends. An empty result
    becomes "codespace".
    """
    cleaned = _SEPARATOR_RUN.sub("-", (s or "").lower()).strip("-")
    return cleaned or "codespace"


def base_name(owner: str, repo: str) -> str:
    return f"{sanitize(owner)}-{sanitize(repo)}"


def unique_name(
    owner: str,
    repo: str,
    exists: Callable[[str], bool],
    *,
    rng: Optional[random.Random] = None,
    clock: Callable[[], float] = time.time,
) -> str:
    """
    First free name among: the base name, up to 50 random adjective/noun
    suffixes, then `<base>-<unix seconds>`. Never raises.

    The timestamp fallback is unique only if two exhausted calls for the same
    base do not land in the same second.
    """
    base = base_name(owner, repo)
    if not exists(base):
        return base

    pick = rng or random.SystemRandom()
    for _ in range(MAX_SUFFIX_ATTEMPTS):
        candidate = f"{base}-{pick.choice(ADJECTIVES)}-{pick.choice(NOUNS)}"
        if not exists(candidate):
            return candidate

    return f"{base}-{int(clock())}"
