"""
Filter Predicate Evaluator

Decides whether one catalog item is included under a FilterSelection.

Inclusion = mode predicate
            AND (no active attribute filters OR attribute pass)
            AND price bounds

Mode predicates:
    by_body_shape   body-shape tags contain selection.body_shape
    by_color        color-tone tags contain selection.color_season
    by_brand        item.brand_id == selection.brand_id
    all             by_body_shape OR by_color (the loose, inclusive view)
    by_attributes   always true; attribute filters decide

Attribute pass:
    - every active key must be present on the item (case-insensitive key);
      a missing attribute, including one lost to a parse failure, excludes
    - a selected value matches when it is a case-insensitive substring of
      the recovered value; any ListValue element suffices
    - OR across values of one key, AND across keys
"""

from typing import Callable, Dict, FrozenSet, Mapping, Optional

from core.utils import normalize_attribute_key
from facets.models import (
    AttributeValue,
    CatalogItem,
    FilterMode,
    FilterSelection,
    ListValue,
    ParsedAttributes,
    Scalar,
)


ModePredicate = Callable[[CatalogItem, FilterSelection], bool]


def _tag_match(tags: FrozenSet[str], wanted: Optional[str]) -> bool:
    wanted = (wanted or "").strip().lower()
    if not wanted:
        return False
    return any(tag.lower() == wanted for tag in tags)


def matches_body_shape(item: CatalogItem, selection: FilterSelection) -> bool:
    return _tag_match(item.body_shapes, selection.body_shape)


def matches_color(item: CatalogItem, selection: FilterSelection) -> bool:
    return _tag_match(item.color_tones, selection.color_season)


def matches_brand(item: CatalogItem, selection: FilterSelection) -> bool:
    if selection.brand_id is None:
        return False
    return item.brand_id == selection.brand_id


def matches_all(item: CatalogItem, selection: FilterSelection) -> bool:
    return matches_body_shape(item, selection) or matches_color(item, selection)


def matches_any(item: CatalogItem, selection: FilterSelection) -> bool:
    return True


MODE_PREDICATES: Dict[FilterMode, ModePredicate] = {
    FilterMode.ALL: matches_all,
    FilterMode.BY_COLOR: matches_color,
    FilterMode.BY_BODY_SHAPE: matches_body_shape,
    FilterMode.BY_ATTRIBUTES: matches_any,
    FilterMode.BY_BRAND: matches_brand,
}


def find_attribute(parsed: ParsedAttributes, key: str) -> Optional[AttributeValue]:
    """Look up an attribute by key, ignoring case and underscore/space spelling."""
    wanted = normalize_attribute_key(key).lower()
    if not wanted:
        return None
    for parsed_key, value in parsed.items():
        if normalize_attribute_key(parsed_key).lower() == wanted:
            return value
    return None


def value_matches(value: AttributeValue, selected: str) -> bool:
    """True when ``selected`` is a case-insensitive substring of the recovered value."""
    needle = selected.strip().lower()
    if not needle:
        return False
    if isinstance(value, Scalar):
        return needle in value.text.lower()
    if isinstance(value, ListValue):
        return any(needle in element.lower() for element in value.values)
    raise TypeError(f"Unsupported attribute value: {type(value).__name__}")


class FilterPredicateEvaluator:
    """
    Pure inclusion predicate over (item, parsed attributes, selection).

    Safe to call concurrently; holds no per-query state.
    """

    def __init__(self, mode_predicates: Optional[Mapping[FilterMode, ModePredicate]] = None):
        self.mode_predicates = dict(mode_predicates or MODE_PREDICATES)

    def includes(
        self,
        item: CatalogItem,
        parsed: ParsedAttributes,
        selection: FilterSelection,
    ) -> bool:
        if not self.matches_mode(item, selection):
            return False
        if not self.matches_attributes(parsed, selection.attribute_filters):
            return False
        return self.matches_price(item, selection)

    def matches_mode(self, item: CatalogItem, selection: FilterSelection) -> bool:
        predicate = self.mode_predicates[FilterMode(selection.mode)]
        return predicate(item, selection)

    @staticmethod
    def matches_attributes(
        parsed: ParsedAttributes,
        attribute_filters: Mapping[str, FrozenSet[str]],
    ) -> bool:
        for key, selected_values in attribute_filters.items():
            selected = [value for value in selected_values if value and value.strip()]
            if not selected:
                continue
            recovered = find_attribute(parsed, key)
            if recovered is None:
                return False
            if not any(value_matches(recovered, value) for value in selected):
                return False
        return True

    @staticmethod
    def matches_price(item: CatalogItem, selection: FilterSelection) -> bool:
        if selection.min_price is not None and item.price < selection.min_price:
            return False
        if selection.max_price is not None and item.price > selection.max_price:
            return False
        return True
