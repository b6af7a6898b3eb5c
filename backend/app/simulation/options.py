"""
Map free-text provider answers back onto the declared option set.

Matching is an exact comparison after trimming and case folding. The
declared casing is always returned; anything that does not match is
rejected rather than coerced into the closest bucket.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional


def _key(text: Any) -> str:
    return str(text if text is not None else "").strip().casefold()


def canonicalize_option(options: List[str], candidate: Any) -> Optional[str]:
    """Return the declared option matching ``candidate``, or ``None``."""
    key = _key(candidate)
    if not key:
        return None
    for option in options:
        if _key(option) == key:
            return option
    return None


def canonicalize_selection(options: List[str], candidates: Iterable[Any]) -> List[str]:
    """Canonicalize a multi-select answer.

    Invalid entries are dropped and duplicates collapse to one; the result
    follows first-seen order.
    """
    out: List[str] = []
    seen = set()
    for candidate in candidates:
        option = canonicalize_option(options, candidate)
        if option is None or option in seen:
            continue
        seen.add(option)
        out.append(option)
    return out


def dedupe_options(raw: Iterable[Any]) -> List[str]:
    """Trim option texts, drop empties and case-insensitive duplicates."""
    out: List[str] = []
    seen = set()
    for item in raw:
        text = str(item if item is not None else "").strip()
        if not text:
            continue
        key = text.casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(text)
    return out
