"""
Engine constants and parsing/facet configuration.

These are values that don't change based on environment but may need
to be tuned or referenced across the codebase.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Tuple


# =============================================================================
# Attribute Payload Parsing
# =============================================================================

@dataclass(frozen=True)
class ParserConfig:
    """Configuration for the attribute payload parser."""

    # Keys that carry row bookkeeping rather than product attributes
    BOOKKEEPING_KEYS: FrozenSet[str] = frozenset({
        "id", "created_at", "updated_at",
    })

    # Container keys that wrap the real attribute mapping
    CONTAINER_KEYS: FrozenSet[str] = frozenset({
        "attributes", "dress_attributes", "item_attributes",
    })

    # Last-resort probe list, in catalog display order
    KNOWN_ATTRIBUTES: Tuple[str, ...] = (
        "fabric",
        "length",
        "primary colour",
        "pattern",
        "neck",
        "occasion",
        "print",
        "shape",
        "sleeve length",
        "sleeve styling",
    )

    # Values that mean "not set" in legacy payloads
    EMPTY_VALUES: FrozenSet[str] = frozenset({
        "", "null", "none", "n/a", "na", "undefined",
    })


DEFAULT_PARSER_CONFIG = ParserConfig()


# =============================================================================
# Facets
# =============================================================================

@dataclass(frozen=True)
class FacetConfig:
    """Configuration for facet aggregation."""

    # Always surfaced first in facet listings, in this order
    PRIORITY_KEYS: Tuple[str, ...] = (
        "Fabric",
        "Primary colour",
        "Occasion",
        "Length",
        "Pattern",
    )


DEFAULT_FACET_CONFIG = FacetConfig()


# =============================================================================
# Item Store
# =============================================================================

@dataclass(frozen=True)
class StoreConfig:
    """Column layout of the inventory tables."""

    # Body shapes are stored comma-separated; color tones use ';' or ','
    BODY_SHAPE_DELIMITERS: str = ","
    COLOR_TONE_DELIMITERS: str = ";,"

    # Columns fetched for each candidate
    ITEM_COLUMNS: Tuple[str, ...] = field(default_factory=lambda: (
        "id", "name", "price", "stock", "brand_id", "dress_attributes",
    ))


DEFAULT_STORE_CONFIG = StoreConfig()
