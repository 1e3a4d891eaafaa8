"""
Core Utility Functions.

Common string/tag normalization used by the parser, the evaluator and the
item store row conversion.
"""

import hashlib
import json
import re
from typing import Any, FrozenSet, Iterable, Optional, Set


_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_attribute_key(raw: Any) -> str:
    """
    Normalize an attribute key for display and comparison.

    Underscores become spaces, whitespace is trimmed and collapsed, the first
    character is uppercased and the remainder lowercased.

    Examples:
        >>> normalize_attribute_key("primary_colour")
        'Primary colour'
        >>> normalize_attribute_key("  SLEEVE_Length ")
        'Sleeve length'
    """
    text = _WHITESPACE_RUN.sub(" ", str(raw).replace("_", " ")).strip()
    if not text:
        return ""
    return text[0].upper() + text[1:].lower()


def normalize_string_set(items: Iterable[Optional[str]]) -> Set[str]:
    """
    Normalize a list of strings to a set of lowercase, stripped strings.

    Args:
        items: Strings (may contain None, empty strings)

    Returns:
        Set of normalized strings
    """
    return {s.lower().strip() for s in items if s and s.strip()}


def split_tag_field(value: Any, delimiters: str = ",") -> FrozenSet[str]:
    """
    Split a stored tag column into a set of lowercase tags.

    The inventory keeps tags as a list whose elements may themselves be
    delimited strings (``["Hourglass, Pear"]``), or as one bare string.

    Examples:
        >>> sorted(split_tag_field(["Hourglass, Pear"]))
        ['hourglass', 'pear']
        >>> sorted(split_tag_field("Autumn; Winter", ";,"))
        ['autumn', 'winter']
    """
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        value = [str(value)]

    pattern = "[" + re.escape(delimiters) + "]"
    tags: Set[str] = set()
    for element in value:
        if element is None:
            continue
        tags.update(re.split(pattern, str(element)))
    return frozenset(normalize_string_set(tags))


def payload_fingerprint(raw: Any) -> str:
    """
    Stable short hash of a raw attribute payload.

    Mappings are hashed by their sorted JSON form so key order does not
    change the fingerprint.
    """
    if isinstance(raw, (dict, list)):
        try:
            text = json.dumps(raw, sort_keys=True, default=str)
        except (TypeError, ValueError):
            text = repr(raw)
    else:
        text = repr(raw)
    return hashlib.sha1(text.encode("utf-8", errors="replace")).hexdigest()[:16]
