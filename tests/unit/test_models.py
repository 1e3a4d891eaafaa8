"""
Tests for the facet engine data model.
"""

import pytest
from pydantic import ValidationError

from facets.models import (
    CatalogQueryRequest,
    FilterMode,
    FilterSelection,
    ListValue,
    Scalar,
    attribute_texts,
    attribute_to_json,
)


class TestAttributeValues:
    """Tests for the Scalar | ListValue union helpers."""

    def test_texts(self):
        assert attribute_texts(Scalar("Silk")) == ("Silk",)
        assert attribute_texts(ListValue(("S", "M"))) == ("S", "M")

    def test_to_json(self):
        assert attribute_to_json(Scalar("Silk")) == "Silk"
        assert attribute_to_json(ListValue(("S", "M"))) == ["S", "M"]

    def test_values_are_frozen(self):
        value = Scalar("Silk")
        with pytest.raises(Exception):
            value.text = "Cotton"


class TestFilterSelection:
    """Tests for the immutable filter selection."""

    def test_defaults(self):
        selection = FilterSelection()

        assert selection.mode == FilterMode.ALL
        assert selection.attribute_filters == {}
        assert selection.applied_filter_count == 0

    def test_attribute_filter_keys_normalized(self):
        selection = FilterSelection(attribute_filters={
            "primary_colour": ["Red"],
            "Primary colour": ["Blue"],
            "fabric": [],
            "neck": ["  "],
        })

        assert selection.attribute_filters == {"Primary colour": frozenset({"Red", "Blue"})}

    def test_toggle_adds_then_removes(self):
        empty = FilterSelection()

        added = empty.toggle_filter("fabric", "Silk")
        removed = added.toggle_filter("Fabric", "Silk")

        assert added.attribute_filters == {"Fabric": frozenset({"Silk"})}
        assert removed.attribute_filters == {}

    def test_toggle_returns_new_selection(self):
        original = FilterSelection().toggle_filter("Fabric", "Silk")

        toggled = original.toggle_filter("Fabric", "Linen")

        assert original.attribute_filters == {"Fabric": frozenset({"Silk"})}
        assert toggled.attribute_filters == {"Fabric": frozenset({"Silk", "Linen"})}

    def test_toggle_ignores_value_case(self):
        selected = FilterSelection().toggle_filter("Fabric", "Silk")

        again = selected.toggle_filter("Fabric", "silk")

        assert again.attribute_filters == {}
        assert again.applied_filter_count == 0

    def test_case_variants_collapse_to_one_filter(self):
        selection = FilterSelection(attribute_filters={"fabric": ["Silk", "silk", " SILK "]})

        assert len(selection.attribute_filters["Fabric"]) == 1
        assert selection.applied_filter_count == 1

    def test_toggle_blank_value_is_noop(self):
        selection = FilterSelection()

        assert selection.toggle_filter("Fabric", "  ") is selection

    def test_applied_filter_count_counts_values(self):
        selection = (
            FilterSelection(min_price=10, max_price=90)
            .toggle_filter("Fabric", "Silk")
            .toggle_filter("Fabric", "Linen")
            .toggle_filter("Occasion", "Party")
        )

        assert selection.applied_filter_count == 3

    def test_clear_resets_filters_and_price(self):
        selection = FilterSelection(
            mode=FilterMode.BY_COLOR,
            color_season="Autumn",
            min_price=10,
            max_price=90,
        ).toggle_filter("Fabric", "Silk")

        cleared = selection.clear_filters()

        assert cleared.attribute_filters == {}
        assert cleared.min_price is None
        assert cleared.max_price is None
        assert cleared.mode == FilterMode.BY_COLOR
        assert cleared.color_season == "Autumn"
        assert selection.applied_filter_count == 1

    def test_frozen(self):
        selection = FilterSelection()
        with pytest.raises(ValidationError):
            selection.mode = FilterMode.BY_BRAND

    def test_with_mode(self):
        selection = FilterSelection().with_mode("by_brand")

        assert selection.mode == FilterMode.BY_BRAND

    def test_price_range_validated(self):
        with pytest.raises(ValidationError):
            FilterSelection(min_price=100, max_price=10)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            FilterSelection(min_price=-1)


class TestCatalogQueryRequest:
    """Tests for the API request model."""

    def test_to_selection(self):
        request = CatalogQueryRequest(
            mode="by_attributes",
            attribute_filters={"fabric": ["Silk", "Linen"]},
            max_price=120,
        )

        selection = request.to_selection()

        assert selection.mode == FilterMode.BY_ATTRIBUTES
        assert selection.attribute_filters == {"Fabric": frozenset({"Silk", "Linen"})}
        assert selection.max_price == 120

    def test_invalid_mode_rejected(self):
        with pytest.raises(ValidationError):
            CatalogQueryRequest(mode="by_mood")
