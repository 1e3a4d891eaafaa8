"""
Data model for the facet engine.

Covers:
- AttributeValue tagged union (Scalar | ListValue) and ParsedAttributes
- CatalogItem as read from the item store
- FacetOption and BrandOption listings
- FilterSelection, the immutable filter state threaded through queries
- API request/response schemas
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.utils import normalize_attribute_key


# =============================================================================
# Attribute Values
# =============================================================================

@dataclass(frozen=True)
class Scalar:
    """A single recovered attribute value."""
    text: str


@dataclass(frozen=True)
class ListValue:
    """An ordered multi-valued attribute. Never holds empty strings."""
    values: Tuple[str, ...]


AttributeValue = Union[Scalar, ListValue]

# Normalized attribute key -> value. Built once per item per query.
ParsedAttributes = Mapping[str, AttributeValue]


def attribute_texts(value: AttributeValue) -> Tuple[str, ...]:
    """Return the individual texts carried by an attribute value."""
    if isinstance(value, Scalar):
        return (value.text,)
    if isinstance(value, ListValue):
        return value.values
    raise TypeError(f"Unsupported attribute value: {type(value).__name__}")


def attribute_to_json(value: AttributeValue) -> Union[str, List[str]]:
    """Plain JSON form: a string for Scalar, a list for ListValue."""
    if isinstance(value, Scalar):
        return value.text
    return list(attribute_texts(value))


# =============================================================================
# Enums
# =============================================================================

class FilterMode(str, Enum):
    """Top-level filter strategy applied before attribute filters."""
    ALL = "all"                      # body shape OR color season
    BY_COLOR = "by_color"
    BY_BODY_SHAPE = "by_body_shape"
    BY_ATTRIBUTES = "by_attributes"  # attribute filters only
    BY_BRAND = "by_brand"


# =============================================================================
# Catalog
# =============================================================================

class CatalogItem(BaseModel):
    """One in-stock inventory item. Read-only for the duration of a query."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    price: float = 0
    stock: int = 0
    brand_id: Optional[str] = None
    body_shapes: FrozenSet[str] = Field(default_factory=frozenset)
    color_tones: FrozenSet[str] = Field(default_factory=frozenset)
    raw_attributes: Any = None


class FacetOption(BaseModel):
    """A selectable filter value and how many candidates carry it."""
    attribute_key: str
    value: str
    count: int = Field(..., ge=1)


class BrandOption(BaseModel):
    """A brand present in the candidate set, labelled for the ByBrand list."""
    brand_id: str
    name: str
    count: int = Field(..., ge=1)


# =============================================================================
# Filter Selection
# =============================================================================

class FilterSelection(BaseModel):
    """
    Immutable filter state.

    Toggling or clearing returns a new selection; nothing the engine
    depends on is mutated. Attribute filter keys are normalized the same
    way as parsed attribute keys, and empty value sets are dropped.
    """
    model_config = ConfigDict(frozen=True)

    mode: FilterMode = FilterMode.ALL
    body_shape: Optional[str] = None
    color_season: Optional[str] = None
    brand_id: Optional[str] = None
    attribute_filters: Dict[str, FrozenSet[str]] = Field(default_factory=dict)
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)

    @field_validator("attribute_filters", mode="before")
    @classmethod
    def normalize_attribute_filters(cls, v):
        if not v:
            return {}
        normalized: Dict[str, Dict[str, str]] = {}
        for key, values in dict(v).items():
            norm_key = normalize_attribute_key(key)
            if not norm_key:
                continue
            if isinstance(values, str):
                values = [values]
            for val in values or []:
                text = str(val).strip() if val is not None else ""
                if text:
                    # Matching ignores case, so "Silk" and "silk" are one filter
                    normalized.setdefault(norm_key, {}).setdefault(text.lower(), text)
        return {key: frozenset(values.values()) for key, values in normalized.items()}

    @model_validator(mode="after")
    def validate_price_range(self):
        """Ensure min_price <= max_price when both are set."""
        if self.min_price is not None and self.max_price is not None:
            if self.min_price > self.max_price:
                raise ValueError(f"min_price ({self.min_price}) must be <= max_price ({self.max_price})")
        return self

    @property
    def applied_filter_count(self) -> int:
        """Number of individually selected values across all keys."""
        return sum(len(values) for values in self.attribute_filters.values())

    def toggle_filter(self, key: str, value: str) -> "FilterSelection":
        """Return a selection with ``value`` added to or removed from ``key``."""
        norm_key = normalize_attribute_key(key)
        value = (value or "").strip()
        if not norm_key or not value:
            return self

        filters = dict(self.attribute_filters)
        current = filters.get(norm_key, frozenset())
        selected = {existing for existing in current if existing.lower() == value.lower()}
        updated = current - selected if selected else current | {value}
        if updated:
            filters[norm_key] = updated
        else:
            filters.pop(norm_key, None)
        return self.model_copy(update={"attribute_filters": filters})

    def clear_filters(self) -> "FilterSelection":
        """Return a selection with all attribute filters and price bounds removed."""
        return self.model_copy(update={
            "attribute_filters": {},
            "min_price": None,
            "max_price": None,
        })

    def with_mode(self, mode: FilterMode) -> "FilterSelection":
        return self.model_copy(update={"mode": FilterMode(mode)})


# =============================================================================
# Query Results
# =============================================================================

class QueryResult(BaseModel):
    """Output of one catalog query composition."""
    items: List[CatalogItem]
    facets: Dict[str, List[FacetOption]]
    applied_filter_count: int
    candidate_count: int = 0
    total_matches: int = 0
    brands: List[BrandOption] = Field(default_factory=list)
    parsed: Dict[str, Dict[str, Union[str, List[str]]]] = Field(
        default_factory=dict,
        description="Recovered attributes per returned item id",
    )
    timing: Dict[str, int] = Field(default_factory=dict)

    def search_facets(self, term: Optional[str]) -> Dict[str, List[FacetOption]]:
        """Facets whose key or value contains ``term`` (case-insensitive)."""
        from facets.aggregator import search_facets
        return search_facets(self.facets, term)

    def page_of(self, page: int, limit: int) -> "QueryResult":
        """
        One 1-based page of the matched items.

        Facets, brands, counts and total_matches still describe the full
        query; only items and their parsed attributes are sliced.
        """
        start = (page - 1) * limit
        items = self.items[start:start + limit]
        return self.model_copy(update={
            "items": items,
            "parsed": {item.id: self.parsed[item.id] for item in items if item.id in self.parsed},
        })

    def total_pages(self, limit: int) -> int:
        return math.ceil(self.total_matches / limit)


# =============================================================================
# API Request / Response Models
# =============================================================================

class CatalogQueryRequest(BaseModel):
    """Request body for a catalog query."""
    body_shape: Optional[str] = Field(None, max_length=100, description="User body shape (e.g. Hourglass)")
    color_season: Optional[str] = Field(None, max_length=100, description="User color season (e.g. Autumn)")
    mode: FilterMode = Field(FilterMode.ALL, description="Base filter strategy")
    brand_id: Optional[str] = Field(None, description="Brand for by_brand mode")
    attribute_filters: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Selected values per attribute key (OR within a key, AND across keys)",
    )
    min_price: Optional[float] = Field(None, ge=0, description="Minimum price")
    max_price: Optional[float] = Field(None, ge=0, description="Maximum price")
    facet_search: Optional[str] = Field(None, max_length=100, description="Only return facets matching this term")
    page: int = Field(1, ge=1, description="1-based page of matched items")
    limit: int = Field(20, ge=1, le=100, description="Matched items per page")

    @model_validator(mode="after")
    def validate_price_range(self):
        if self.min_price is not None and self.max_price is not None:
            if self.min_price > self.max_price:
                raise ValueError(f"min_price ({self.min_price}) must be <= max_price ({self.max_price})")
        return self

    def to_selection(self) -> FilterSelection:
        return FilterSelection(
            mode=self.mode,
            body_shape=self.body_shape,
            color_season=self.color_season,
            brand_id=self.brand_id,
            attribute_filters=self.attribute_filters,
            min_price=self.min_price,
            max_price=self.max_price,
        )


class CatalogItemResult(BaseModel):
    """A single item in query results."""
    id: str
    name: str
    price: float
    stock: int
    brand_id: Optional[str] = None
    attributes: Dict[str, Union[str, List[str]]] = Field(default_factory=dict)


class CatalogQueryResponse(BaseModel):
    """Response from a catalog query."""
    items: List[CatalogItemResult]
    facets: Dict[str, List[FacetOption]]
    brands: List[BrandOption] = Field(default_factory=list)
    applied_filter_count: int
    total_candidates: int
    total_matches: int = Field(..., description="Matched items across all pages")
    page: int
    limit: int
    total_pages: int
    timing: Dict[str, int] = Field(default_factory=dict, description="Timing breakdown in ms")


class ToggleFilterRequest(BaseModel):
    """Toggle one attribute value on an existing selection."""
    selection: FilterSelection = Field(default_factory=FilterSelection)
    key: str = Field(..., min_length=1, max_length=100)
    value: str = Field(..., min_length=1, max_length=200)


class SelectionResponse(BaseModel):
    """A selection produced by a toggle or clear."""
    selection: FilterSelection
    applied_filter_count: int
