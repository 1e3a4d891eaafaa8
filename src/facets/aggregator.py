"""
Facet Aggregator

Counts recovered attribute values across a candidate set and produces the
facet listing that drives the filter UI.

Counting rules:
- Every element of a ListValue increments its own count, so an item with
  three fabrics contributes three increments.
- Values are grouped case-insensitively; the first-seen spelling is shown.
- Options within a key are sorted by descending count, ties in first-seen order.
- Priority keys come first in their configured order, the rest follow in
  first-seen order. Keys with no values are omitted.

FacetCounts is a plain reduction: partial counts over disjoint item subsets
merge by addition, so large candidate sets can be counted in chunks.
"""

from functools import reduce
from typing import Dict, Iterable, List, Optional, Sequence

from config.constants import DEFAULT_FACET_CONFIG
from core.utils import normalize_attribute_key
from facets.models import FacetOption, ListValue, ParsedAttributes, Scalar


class FacetCounts:
    """
    Per-key value counts with first-seen ordering.

    Keys and values are stored under their casefolded form alongside the
    first-seen display label.
    """

    def __init__(self):
        # key fold -> value fold -> count
        self._counts: Dict[str, Dict[str, int]] = {}
        self._key_labels: Dict[str, str] = {}
        self._value_labels: Dict[str, Dict[str, str]] = {}

    def add(self, parsed: ParsedAttributes) -> "FacetCounts":
        """Count one item's parsed attributes. Returns self for chaining."""
        for key, value in parsed.items():
            if isinstance(value, ListValue):
                texts = value.values
            elif isinstance(value, Scalar):
                texts = (value.text,)
            else:
                raise TypeError(f"Unsupported attribute value: {type(value).__name__}")
            for text in texts:
                self._increment(key, text, 1)
        return self

    def merge(self, other: "FacetCounts") -> "FacetCounts":
        """Return a new FacetCounts holding the sum of self and other."""
        merged = FacetCounts()
        for source in (self, other):
            for key_fold, values in source._counts.items():
                key_label = source._key_labels[key_fold]
                for value_fold, count in values.items():
                    merged._increment(key_label, source._value_labels[key_fold][value_fold], count)
        return merged

    def count_for(self, key: str, value: str) -> int:
        key_fold = normalize_attribute_key(key).lower()
        return self._counts.get(key_fold, {}).get(value.strip().lower(), 0)

    def keys(self) -> List[str]:
        return [self._key_labels[fold] for fold in self._counts]

    def to_facets(self, priority_keys: Sequence[str] = ()) -> Dict[str, List[FacetOption]]:
        """Build the ordered facet listing."""
        ordered: List[str] = []
        for key in priority_keys:
            fold = normalize_attribute_key(key).lower()
            if fold in self._counts and fold not in ordered:
                ordered.append(fold)
        ordered.extend(fold for fold in self._counts if fold not in ordered)

        facets: Dict[str, List[FacetOption]] = {}
        for key_fold in ordered:
            values = self._counts[key_fold]
            if not values:
                continue
            key_label = self._key_labels[key_fold]
            # sorted() is stable, so equal counts keep first-seen order
            ranked = sorted(values.items(), key=lambda entry: -entry[1])
            facets[key_label] = [
                FacetOption(
                    attribute_key=key_label,
                    value=self._value_labels[key_fold][value_fold],
                    count=count,
                )
                for value_fold, count in ranked
            ]
        return facets

    def _increment(self, key: str, value: str, count: int) -> None:
        value = value.strip()
        if not value or count <= 0:
            return
        key_label = normalize_attribute_key(key)
        if not key_label:
            return
        key_fold = key_label.lower()
        value_fold = value.lower()

        self._key_labels.setdefault(key_fold, key_label)
        labels = self._value_labels.setdefault(key_fold, {})
        labels.setdefault(value_fold, value)
        values = self._counts.setdefault(key_fold, {})
        values[value_fold] = values.get(value_fold, 0) + count


class FacetAggregator:
    """Aggregates parsed attributes into ordered facet listings."""

    def __init__(self, priority_keys: Optional[Sequence[str]] = None):
        self.priority_keys = tuple(
            priority_keys if priority_keys is not None else DEFAULT_FACET_CONFIG.PRIORITY_KEYS
        )

    def count(self, items: Iterable[ParsedAttributes]) -> FacetCounts:
        counts = FacetCounts()
        for parsed in items:
            counts.add(parsed)
        return counts

    def aggregate(
        self,
        items: Iterable[ParsedAttributes],
        priority_keys: Optional[Sequence[str]] = None,
    ) -> Dict[str, List[FacetOption]]:
        """
        Aggregate facet options over parsed attribute maps.

        Args:
            items: One ParsedAttributes per candidate item.
            priority_keys: Keys listed first; defaults to the aggregator's.

        Returns:
            Ordered mapping of attribute key -> FacetOption list.
        """
        keys = self.priority_keys if priority_keys is None else tuple(priority_keys)
        return self.count(items).to_facets(keys)

    def aggregate_chunks(
        self,
        chunks: Iterable[Iterable[ParsedAttributes]],
        priority_keys: Optional[Sequence[str]] = None,
    ) -> Dict[str, List[FacetOption]]:
        """Count disjoint chunks independently and merge the partial counts."""
        keys = self.priority_keys if priority_keys is None else tuple(priority_keys)
        partials = [self.count(chunk) for chunk in chunks]
        return reduce(FacetCounts.merge, partials, FacetCounts()).to_facets(keys)


def search_facets(
    facets: Dict[str, List[FacetOption]],
    term: Optional[str],
) -> Dict[str, List[FacetOption]]:
    """
    Filter an already-computed facet listing by a search term.

    A (key, value) pair is kept when the key or the value contains the term,
    case-insensitively. Keys left without options are dropped. An empty
    term returns the listing unchanged.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return facets

    matched: Dict[str, List[FacetOption]] = {}
    for key, options in facets.items():
        if needle in key.lower():
            matched[key] = list(options)
            continue
        kept = [option for option in options if needle in option.value.lower()]
        if kept:
            matched[key] = kept
    return matched
