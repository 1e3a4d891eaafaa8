"""
Tests for inventory row conversion and the Supabase-backed collaborators.
"""

from unittest.mock import MagicMock

import pytest

from facets.errors import CatalogFetchError
from facets.store import SupabaseBrandLookup, SupabaseItemStore, item_from_row


def _paged_client(pages):
    """Mock client whose select chain returns the given pages in order."""
    client = MagicMock()
    chain = client.table.return_value.select.return_value.gt.return_value.order.return_value
    chain.range.return_value.execute.side_effect = [MagicMock(data=page) for page in pages]
    return client, chain


class TestItemFromRow:
    """Tests for item_from_row."""

    def test_full_row(self, sample_inventory_row):
        item = item_from_row(sample_inventory_row)

        assert item.id == "101"
        assert item.name == "Silk Wrap Dress"
        assert item.price == 89.5
        assert item.stock == 3
        assert item.brand_id == "7"
        assert item.body_shapes == frozenset({"hourglass", "pear"})
        assert item.color_tones == frozenset({"autumn", "winter"})
        assert item.raw_attributes == sample_inventory_row["dress_attributes"]

    def test_item_attributes_as_dict(self):
        item = item_from_row({
            "id": "x",
            "item_attributes": {"body_shapes": "Apple", "color_tones": "Spring,Summer"},
        })

        assert item.body_shapes == frozenset({"apple"})
        assert item.color_tones == frozenset({"spring", "summer"})

    def test_missing_and_bad_fields(self):
        item = item_from_row({"id": 3, "price": "n/a", "stock": None, "item_attributes": []})

        assert item.price == 0.0
        assert item.stock == 0
        assert item.brand_id is None
        assert item.body_shapes == frozenset()
        assert item.raw_attributes is None

    def test_attributes_column_fallback(self):
        item = item_from_row({"id": 4, "attributes": {"fabric": "Silk"}})

        assert item.raw_attributes == {"fabric": "Silk"}


class TestSupabaseItemStore:
    """Tests for SupabaseItemStore paging and errors."""

    def test_single_page(self, test_settings, sample_inventory_row):
        client, chain = _paged_client([[sample_inventory_row]])
        store = SupabaseItemStore(client=client, settings=test_settings)

        items = store.fetch_in_stock_items()

        assert [item.id for item in items] == ["101"]
        client.table.assert_called_with("inventory_items")
        chain.range.assert_called_once_with(0, test_settings.catalog_page_size - 1)

    def test_pages_until_short_page(self):
        from config.settings import get_settings_for_testing

        settings = get_settings_for_testing(catalog_page_size=2)
        client, chain = _paged_client([
            [{"id": 1, "stock": 1}, {"id": 2, "stock": 1}],
            [{"id": 3, "stock": 1}],
        ])
        store = SupabaseItemStore(client=client, settings=settings)

        items = store.fetch_in_stock_items()

        assert [item.id for item in items] == ["1", "2", "3"]
        assert [call.args for call in chain.range.call_args_list] == [(0, 1), (2, 3)]

    def test_select_joins_tag_table(self, test_settings):
        client, _ = _paged_client([[]])
        store = SupabaseItemStore(client=client, settings=test_settings)

        store.fetch_in_stock_items()

        select_clause = client.table.return_value.select.call_args.args[0]
        assert select_clause.startswith("id, name, price, stock, brand_id, dress_attributes")
        assert "item_attributes (body_shapes, color_tones)" in select_clause

    def test_failure_raises_catalog_fetch_error(self, test_settings):
        client, chain = _paged_client([])
        chain.range.return_value.execute.side_effect = ConnectionError("timeout")
        store = SupabaseItemStore(client=client, settings=test_settings)

        with pytest.raises(CatalogFetchError):
            store.fetch_in_stock_items()

    def test_rows_without_id_skipped(self, test_settings):
        client, _ = _paged_client([[{"id": None, "stock": 1}, {"id": 9, "stock": 1}]])
        store = SupabaseItemStore(client=client, settings=test_settings)

        assert [item.id for item in store.fetch_in_stock_items()] == ["9"]


class TestSupabaseBrandLookup:
    """Tests for SupabaseBrandLookup."""

    def test_brand_names(self, test_settings, mock_supabase_client):
        mock_supabase_client.table.return_value.select.return_value.in_.return_value.execute.return_value.data = [
            {"id": 1, "Name": "Aurora"},
            {"id": 2, "Name": None},
        ]
        lookup = SupabaseBrandLookup(client=mock_supabase_client, settings=test_settings)

        names = lookup.brand_names(["1", "2", None])

        assert names == {"1": "Aurora"}
        mock_supabase_client.table.assert_called_with("brands")
        mock_supabase_client.table.return_value.select.return_value.in_.assert_called_with("id", ["1", "2"])

    def test_no_ids_skips_query(self, test_settings, mock_supabase_client):
        lookup = SupabaseBrandLookup(client=mock_supabase_client, settings=test_settings)

        assert lookup.brand_names([]) == {}
        mock_supabase_client.table.assert_not_called()
