"""
Catalog Query Orchestrator

Pipeline:
1. Fetch in-stock candidates from the item store (unfiltered by mode)
2. Parse each raw attribute payload (memoized per item id + payload hash)
3. Aggregate facets over every candidate, so options reflect the full
   eligible set rather than the narrowed result
4. Evaluate the filter selection per item
5. Count applied filter values

Each call is stateless and idempotent for a given selection; callers that
issue overlapping queries simply keep the last one's result.
"""

import time
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from config.settings import Settings, get_settings
from core.logging import get_logger
from core.utils import payload_fingerprint
from facets.aggregator import FacetAggregator, search_facets
from facets.errors import CatalogFetchError
from facets.evaluator import FilterPredicateEvaluator
from facets.models import (
    AttributeValue,
    BrandOption,
    CatalogItem,
    FacetOption,
    FilterMode,
    FilterSelection,
    QueryResult,
    attribute_to_json,
)
from facets.parser import AttributePayloadParser
from facets.store import BrandLookup, ItemStore

logger = get_logger(__name__)


class CatalogQueryOrchestrator:
    """
    Composes parser, aggregator and evaluator into one catalog query.
    """

    def __init__(
        self,
        item_store: ItemStore,
        brand_lookup: Optional[BrandLookup] = None,
        parser: Optional[AttributePayloadParser] = None,
        aggregator: Optional[FacetAggregator] = None,
        evaluator: Optional[FilterPredicateEvaluator] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.item_store = item_store
        self.brand_lookup = brand_lookup
        self.parser = parser or AttributePayloadParser()
        self.aggregator = aggregator or FacetAggregator(self.settings.facet_priority_keys)
        self.evaluator = evaluator or FilterPredicateEvaluator()

    # =========================================================================
    # Query
    # =========================================================================

    def query(
        self,
        body_shape: Optional[str] = None,
        color_season: Optional[str] = None,
        mode: FilterMode = FilterMode.ALL,
        brand_id: Optional[str] = None,
        attribute_filters: Optional[Mapping[str, Iterable[str]]] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ) -> QueryResult:
        """
        Run a catalog query from individual filter arguments.

        Raises:
            CatalogFetchError: If candidates cannot be fetched.
        """
        selection = FilterSelection(
            mode=mode,
            body_shape=body_shape,
            color_season=color_season,
            brand_id=brand_id,
            attribute_filters=attribute_filters or {},
            min_price=min_price,
            max_price=max_price,
        )
        return self.query_selection(selection)

    def query_selection(self, selection: FilterSelection) -> QueryResult:
        """
        Run a catalog query for a FilterSelection.

        Returns:
            QueryResult with matched items, facets over all candidates,
            brand options and the applied filter count.

        Raises:
            CatalogFetchError: If candidates cannot be fetched.
        """
        t_start = time.time()
        timing: Dict[str, int] = {}

        items = self._fetch_candidates()
        timing["fetch_ms"] = int((time.time() - t_start) * 1000)

        t_parse = time.time()
        parsed = self._parse_all(items)
        timing["parse_ms"] = int((time.time() - t_parse) * 1000)

        t_facets = time.time()
        facets = self.aggregator.aggregate(parsed)
        timing["facets_ms"] = int((time.time() - t_facets) * 1000)

        effective = self._drop_stale_filters(selection, facets)

        t_filter = time.time()
        matched: List[Tuple[CatalogItem, Dict[str, AttributeValue]]] = [
            (item, attributes)
            for item, attributes in zip(items, parsed)
            if self.evaluator.includes(item, attributes, effective)
        ]
        timing["filter_ms"] = int((time.time() - t_filter) * 1000)

        brands = self.brand_options(items)
        timing["total_ms"] = int((time.time() - t_start) * 1000)

        logger.info(
            "Catalog query complete",
            mode=effective.mode.value,
            candidates=len(items),
            matched=len(matched),
            facet_keys=len(facets),
            applied_filters=effective.applied_filter_count,
            total_ms=timing["total_ms"],
        )

        return QueryResult(
            items=[item for item, _ in matched],
            facets=facets,
            applied_filter_count=effective.applied_filter_count,
            candidate_count=len(items),
            total_matches=len(matched),
            brands=brands,
            parsed={
                item.id: {key: attribute_to_json(value) for key, value in attributes.items()}
                for item, attributes in matched
            },
            timing=timing,
        )

    # =========================================================================
    # Caller Contract Helpers
    # =========================================================================

    @staticmethod
    def search_facets(
        facets: Dict[str, List[FacetOption]],
        term: Optional[str],
    ) -> Dict[str, List[FacetOption]]:
        """Filter already-computed facets by term; never re-fetches or re-parses."""
        return search_facets(facets, term)

    @staticmethod
    def toggle_filter(selection: FilterSelection, key: str, value: str) -> FilterSelection:
        return selection.toggle_filter(key, value)

    @staticmethod
    def clear_filters(selection: FilterSelection) -> FilterSelection:
        return selection.clear_filters()

    def brand_options(self, items: List[CatalogItem]) -> List[BrandOption]:
        """
        Brands present among the candidates, labelled for the ByBrand list.

        Labels are cosmetic: if the lookup fails the brand id is shown.
        """
        counts: Dict[str, int] = {}
        for item in items:
            if item.brand_id:
                counts[item.brand_id] = counts.get(item.brand_id, 0) + 1
        if not counts:
            return []

        names: Dict[str, str] = {}
        if self.brand_lookup is not None:
            try:
                names = self.brand_lookup.brand_names(counts.keys())
            except Exception as e:
                logger.warning("Brand lookup failed, using ids as labels", error=str(e))

        options = [
            BrandOption(brand_id=brand_id, name=names.get(brand_id, brand_id), count=count)
            for brand_id, count in counts.items()
        ]
        options.sort(key=lambda option: option.name.lower())
        return options

    # =========================================================================
    # Steps
    # =========================================================================

    def _fetch_candidates(self) -> List[CatalogItem]:
        try:
            items = self.item_store.fetch_in_stock_items()
        except CatalogFetchError:
            raise
        except Exception as e:
            logger.error("Item store raised unexpectedly", error=str(e), error_type=type(e).__name__)
            raise CatalogFetchError(f"Item store failed: {e}") from e
        return [item for item in items if item.stock > 0]

    def _parse_all(self, items: List[CatalogItem]) -> List[Dict[str, AttributeValue]]:
        if not self.settings.memoize_parsing:
            return [self.parser.parse(item.raw_attributes) for item in items]

        memo: Dict[Tuple[str, str], Dict[str, AttributeValue]] = {}
        parsed = []
        for item in items:
            memo_key = (item.id, payload_fingerprint(item.raw_attributes))
            if memo_key not in memo:
                memo[memo_key] = self.parser.parse(item.raw_attributes)
            parsed.append(memo[memo_key])

        unparsed = sum(1 for attributes in parsed if not attributes)
        if unparsed:
            logger.debug("Items without recoverable attributes", count=unparsed, total=len(items))
        return parsed

    @staticmethod
    def _drop_stale_filters(
        selection: FilterSelection,
        facets: Dict[str, List[FacetOption]],
    ) -> FilterSelection:
        """
        Ignore attribute filter keys that no longer exist in the facets.

        A stale key can only come from a selection built against an older
        facet listing; it is dropped rather than excluding every item.
        """
        live_keys = {key.lower() for key in facets}
        stale = [key for key in selection.attribute_filters if key.lower() not in live_keys]
        if not stale:
            return selection

        logger.info("Ignoring stale attribute filters", keys=stale)
        kept = {
            key: values
            for key, values in selection.attribute_filters.items()
            if key.lower() in live_keys
        }
        return selection.model_copy(update={"attribute_filters": kept})


# =============================================================================
# Singleton
# =============================================================================

import threading as _threading

_orchestrator: Optional[CatalogQueryOrchestrator] = None
_orchestrator_lock = _threading.Lock()


def get_catalog_orchestrator() -> CatalogQueryOrchestrator:
    """Get or create the Supabase-backed orchestrator singleton (thread-safe)."""
    global _orchestrator
    if _orchestrator is None:
        with _orchestrator_lock:
            if _orchestrator is None:
                from facets.store import SupabaseBrandLookup, SupabaseItemStore
                _orchestrator = CatalogQueryOrchestrator(
                    item_store=SupabaseItemStore(),
                    brand_lookup=SupabaseBrandLookup(),
                )
    return _orchestrator
