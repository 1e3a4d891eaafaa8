"""
Facet engine: tolerant attribute parsing, facet aggregation and filtering.

Provides:
- AttributePayloadParser: staged recovery of malformed attribute payloads
- FacetAggregator: value counts per attribute key with priority ordering
- FilterPredicateEvaluator: mode + attribute + price inclusion predicate
- CatalogQueryOrchestrator: fetch, parse, aggregate, evaluate in one call
"""

from facets.aggregator import FacetAggregator, FacetCounts, search_facets
from facets.errors import CatalogFetchError, FacetEngineError
from facets.evaluator import FilterPredicateEvaluator
from facets.models import (
    AttributeValue,
    BrandOption,
    CatalogItem,
    FacetOption,
    FilterMode,
    FilterSelection,
    ListValue,
    ParsedAttributes,
    QueryResult,
    Scalar,
)
from facets.orchestrator import CatalogQueryOrchestrator, get_catalog_orchestrator
from facets.parser import AttributePayloadParser, parse_attributes

__all__ = [
    "AttributePayloadParser",
    "AttributeValue",
    "BrandOption",
    "CatalogFetchError",
    "CatalogItem",
    "CatalogQueryOrchestrator",
    "FacetAggregator",
    "FacetCounts",
    "FacetEngineError",
    "FacetOption",
    "FilterMode",
    "FilterPredicateEvaluator",
    "FilterSelection",
    "ListValue",
    "ParsedAttributes",
    "QueryResult",
    "Scalar",
    "get_catalog_orchestrator",
    "parse_attributes",
    "search_facets",
]
