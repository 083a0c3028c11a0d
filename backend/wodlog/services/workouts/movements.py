"""
Movement Canonicalizer - maps free-text exercise names to one display name.

Used for grouping (analytics, migration titles) only. The exercise text
an athlete wrote is always what gets persisted.
"""
import pathlib
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

import yaml
from rapidfuzz import fuzz, process

from wodlog.core.config import settings
from wodlog.core.logging import get_logger

logger = get_logger(__name__)

ALIASES_PATH = pathlib.Path(__file__).resolve().parents[2] / "data" / "movement_aliases.yaml"

_TRAILING_PUNCTUATION = re.compile(r"[:;.,!?]+$")
_WORD_SEPARATORS = re.compile(r"[\s\-_.]+")


@dataclass(frozen=True)
class CanonicalMovement:
    """Canonicalization result."""
    normalized: str
    original: str
    matched: bool


@lru_cache(maxsize=1)
def _load_aliases() -> Dict[str, List[str]]:
    data = yaml.safe_load(ALIASES_PATH.read_text(encoding="utf-8")) or {}
    return {str(name): [str(alias) for alias in (aliases or [])] for name, aliases in data.items()}


@lru_cache(maxsize=1)
def _alias_to_standard() -> Dict[str, str]:
    """Reverse lookup: lowercase alias (and canonical name) -> canonical name."""
    lookup: Dict[str, str] = {}
    for standard, aliases in _load_aliases().items():
        for alias in aliases:
            lookup[_collapse(alias)] = standard
        lookup[_collapse(standard)] = standard
    logger.debug("Loaded movement aliases", movements=len(_load_aliases()), aliases=len(lookup))
    return lookup


def _collapse(text: str) -> str:
    """Lookup key: trailing punctuation stripped, lowercase, single spaces."""
    return " ".join(_TRAILING_PUNCTUATION.sub("", text.strip()).lower().split())


def all_standard_movements() -> List[str]:
    """All canonical movement names."""
    return list(_load_aliases().keys())


def movement_aliases(standard_name: str) -> List[str]:
    """Known aliases of a canonical movement name."""
    return list(_load_aliases().get(standard_name, []))


def _capitalize_words(text: str) -> str:
    words = [w for w in _WORD_SEPARATORS.split(text) if w]
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def _fuzzy_match(key: str, threshold: float) -> Optional[str]:
    lookup = _alias_to_standard()
    best = process.extractOne(key, list(lookup.keys()), scorer=fuzz.ratio, score_cutoff=threshold)
    if not best:
        return None
    alias, score, _ = best
    logger.debug("Fuzzy movement match", input=key, alias=alias, score=round(score, 1))
    return lookup[alias]


def canonicalize(name: Any, fuzzy: Optional[bool] = None) -> CanonicalMovement:
    """
    Canonicalize an exercise name.

    Args:
        name: Exercise as written ("T2B", "pull ups", "Thrusters:")
        fuzzy: Fall back to fuzzy matching (defaults to MOVEMENT_FUZZY_MATCH)

    Returns:
        CanonicalMovement; unmatched names are trimmed and capitalized
        word by word with matched=False
    """
    if not isinstance(name, str) or not name.strip():
        return CanonicalMovement(normalized="", original=name if isinstance(name, str) else "", matched=False)

    trimmed = _TRAILING_PUNCTUATION.sub("", name.strip())
    key = _collapse(trimmed)

    standard = _alias_to_standard().get(key)
    if standard:
        return CanonicalMovement(normalized=standard, original=trimmed, matched=True)

    if fuzzy is None:
        fuzzy = settings.MOVEMENT_FUZZY_MATCH
    if fuzzy and key:
        standard = _fuzzy_match(key, settings.MOVEMENT_FUZZY_THRESHOLD)
        if standard:
            return CanonicalMovement(normalized=standard, original=trimmed, matched=True)

    return CanonicalMovement(normalized=_capitalize_words(trimmed), original=trimmed, matched=False)


def split_movement_line(line: Any) -> Tuple[str, str]:
    """
    Split a legacy movement string into (amount, exercise).

    "21-15-9 Thrusters" -> ("21-15-9", "Thrusters")
    "Rope Climb"        -> ("", "Rope Climb")
    """
    if not isinstance(line, str):
        return "", ""
    parts = line.strip().split()
    if parts and parts[0][:1].isdigit():
        return parts[0], " ".join(parts[1:])
    return "", " ".join(parts)
