"""
County normalization and validation.

Canonical names carry the "Co. " prefix. Any county string without the prefix
is treated as the prefixed form everywhere: validation, feed filtering and
display.
"""

from typing import Iterable, List, Optional

from src.core.constants import COUNTY_PREFIX, IRISH_COUNTIES

_CANONICAL_BY_KEY = {county.lower(): county for county in IRISH_COUNTIES}


def normalize_county(value: Optional[str]) -> Optional[str]:
    """Prepend the "Co. " prefix when missing. Empty input gives None."""
    if not value:
        return None
    value = value.strip()
    if not value:
        return None
    if value.startswith(COUNTY_PREFIX):
        return value
    return f"{COUNTY_PREFIX}{value}"


def is_valid_county(value: Optional[str]) -> bool:
    """
    Check a county against the 32-county reference list.

    Prefix-normalized, case-insensitive, exact. No partial or fuzzy matching.
    """
    normalized = normalize_county(value)
    if normalized is None:
        return False
    return normalized.lower() in _CANONICAL_BY_KEY


def canonical_county(value: Optional[str]) -> Optional[str]:
    """Reference-list spelling of a valid county ("dublin" -> "Co. Dublin")."""
    normalized = normalize_county(value)
    if normalized is None:
        return None
    return _CANONICAL_BY_KEY.get(normalized.lower())


def same_county(a: Optional[str], b: Optional[str]) -> bool:
    """Display-time equivalence of two county strings."""
    return normalize_county(a or "") == normalize_county(b or "")


def county_options(seen: Iterable[Optional[str]] = ()) -> List[str]:
    """
    Counties for a filter dropdown: counties seen on stored reports
    (normalized) followed by the reference list, without duplicates.
    """
    options: List[str] = []
    for county in list(seen) + IRISH_COUNTIES:
        normalized = normalize_county(county)
        if normalized and normalized not in options:
            options.append(normalized)
    return options
