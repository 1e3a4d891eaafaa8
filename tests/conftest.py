"""
Pytest configuration and shared fixtures for the facet engine tests.
"""
import os
import sys
from typing import Dict, List
from unittest.mock import MagicMock, patch

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))

# Settings require Supabase credentials even when the client is mocked
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-key")

# Load environment variables
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))


# ============================================================================
# Fixtures: Test Data Factories
# ============================================================================

@pytest.fixture
def sample_inventory_row() -> dict:
    """Sample inventory row as returned by the Supabase select."""
    return {
        "id": 101,
        "name": "Silk Wrap Dress",
        "price": "89.50",
        "stock": 3,
        "brand_id": 7,
        "dress_attributes": "{fabric: 'Silk', primary_colour: 'Red', occasion: 'Party'}",
        "item_attributes": [
            {"body_shapes": ["Hourglass, Pear"], "color_tones": ["Autumn; Winter"]},
        ],
    }


@pytest.fixture
def malformed_payloads() -> List[str]:
    """Payloads as found in the legacy inventory."""
    return [
        "{fabric: 'Cotton', primary_colour: 'Red'}",
        '{"sizes": [S, M, L]',
        "{'occasion': 'Party', 'pattern': 'Floral',}",
        '"{\\"fabric\\": \\"Linen\\"}"',
        "fabric = cotton, sleeve_length = long, length = midi",
        "%%%garbage###",
        "",
    ]


@pytest.fixture
def catalog_factory():
    """Build CatalogItems with sensible defaults."""
    from facets.models import CatalogItem

    def _make(item_id: str, raw_attributes=None, **overrides) -> CatalogItem:
        fields = {
            "id": item_id,
            "name": f"Item {item_id}",
            "price": 50.0,
            "stock": 1,
            "brand_id": "brand-1",
            "body_shapes": frozenset(),
            "color_tones": frozenset(),
            "raw_attributes": raw_attributes,
        }
        fields.update(overrides)
        return CatalogItem(**fields)

    return _make


class FakeItemStore:
    """In-memory ItemStore that records how often it was asked."""

    def __init__(self, items=None, error: Exception = None):
        self.items = list(items or [])
        self.error = error
        self.calls = 0

    def fetch_in_stock_items(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.items)


class FakeBrandLookup:
    """In-memory BrandLookup."""

    def __init__(self, names: Dict[str, str] = None, error: Exception = None):
        self.names = dict(names or {})
        self.error = error

    def brand_names(self, brand_ids):
        if self.error is not None:
            raise self.error
        return {brand_id: self.names[brand_id] for brand_id in brand_ids if brand_id in self.names}


@pytest.fixture
def fake_item_store():
    return FakeItemStore


@pytest.fixture
def fake_brand_lookup():
    return FakeBrandLookup


@pytest.fixture
def test_settings():
    """Settings with test credentials and default facet priority."""
    from config.settings import get_settings_for_testing
    return get_settings_for_testing()


# ============================================================================
# Fixtures: Mock Services
# ============================================================================

@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_client.table.return_value.select.return_value.execute.return_value.data = []
    mock_client.table.return_value.select.return_value.in_.return_value.execute.return_value.data = []

    return mock_client


@pytest.fixture
def mock_supabase(mock_supabase_client):
    """Patch Supabase client creation."""
    with patch("supabase.create_client", return_value=mock_supabase_client):
        yield mock_supabase_client


# ============================================================================
# Fixtures: FastAPI Test Client
# ============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application."""
    from api.app import create_app
    return create_app()


# ============================================================================
# Markers auto-use
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "supabase: marks tests that require Supabase")


# ============================================================================
# Skip conditions
# ============================================================================

def pytest_collection_modifyitems(config, items):
    """Auto-skip Supabase tests unless live credentials are configured."""
    skip_supabase = pytest.mark.skip(reason="Supabase tests require credentials")

    live_supabase = not os.getenv("SUPABASE_URL", "").startswith("https://test.")

    for item in items:
        if "supabase" in item.keywords and not live_supabase:
            item.add_marker(skip_supabase)
