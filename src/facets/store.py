"""
Item store and brand lookup collaborators.

The engine only needs two things from the backend:
- fetch every in-stock item with its tags and raw attribute payload
- resolve brand ids to display names for the ByBrand option list

Both are Protocols so tests and other backends can stand in for the
Supabase implementations below.
"""

from typing import Any, Dict, Iterable, List, Optional, Protocol

from config.constants import DEFAULT_STORE_CONFIG, StoreConfig
from config.settings import Settings, get_settings
from core.logging import get_logger
from core.utils import split_tag_field
from facets.errors import CatalogFetchError
from facets.models import CatalogItem

logger = get_logger(__name__)


class ItemStore(Protocol):
    """Source of candidate items."""

    def fetch_in_stock_items(self) -> List[CatalogItem]:
        ...


class BrandLookup(Protocol):
    """Resolves brand ids to display names."""

    def brand_names(self, brand_ids: Iterable[str]) -> Dict[str, str]:
        ...


# =============================================================================
# Row Conversion
# =============================================================================

def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def item_from_row(row: Dict[str, Any], config: Optional[StoreConfig] = None) -> CatalogItem:
    """
    Convert an inventory row (with joined item_attributes) to a CatalogItem.

    Handles the layouts found in the inventory:
    - item_attributes as a one-element list (one-to-many join) or a dict
    - body_shapes as ["Hourglass, Pear"] and color_tones as ["Autumn; Winter"]
    - the raw payload under dress_attributes or attributes

    Args:
        row: Dict from the Supabase select

    Returns:
        CatalogItem
    """
    config = config or DEFAULT_STORE_CONFIG

    tags = row.get("item_attributes") or {}
    if isinstance(tags, list):
        tags = tags[0] if tags and isinstance(tags[0], dict) else {}
    if not isinstance(tags, dict):
        tags = {}

    brand_id = row.get("brand_id")
    raw_attributes = row.get("dress_attributes")
    if raw_attributes is None:
        raw_attributes = row.get("attributes")

    return CatalogItem(
        id=str(row.get("id") or ""),
        name=row.get("name") or "",
        price=_to_float(row.get("price")),
        stock=_to_int(row.get("stock")),
        brand_id=str(brand_id) if brand_id is not None else None,
        body_shapes=split_tag_field(tags.get("body_shapes"), config.BODY_SHAPE_DELIMITERS),
        color_tones=split_tag_field(tags.get("color_tones"), config.COLOR_TONE_DELIMITERS),
        raw_attributes=raw_attributes,
    )


# =============================================================================
# Supabase Implementations
# =============================================================================

class SupabaseItemStore:
    """
    Fetches in-stock inventory items from Supabase.

    Reads in pages of ``settings.catalog_page_size`` rows, since PostgREST
    caps a single response.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        settings: Optional[Settings] = None,
        config: Optional[StoreConfig] = None,
    ):
        self._client = client
        self.settings = settings or get_settings()
        self.config = config or DEFAULT_STORE_CONFIG

    @property
    def client(self):
        if self._client is None:
            from config.database import get_supabase_client
            self._client = get_supabase_client()
        return self._client

    def _select_clause(self) -> str:
        columns = ", ".join(self.config.ITEM_COLUMNS)
        return f"{columns}, {self.settings.item_attributes_table} (body_shapes, color_tones)"

    def fetch_in_stock_items(self) -> List[CatalogItem]:
        """
        Fetch every item with stock > 0.

        Raises:
            CatalogFetchError: If any page cannot be fetched. No partial
                result is returned.
        """
        page_size = self.settings.catalog_page_size
        rows: List[Dict[str, Any]] = []
        offset = 0

        try:
            while True:
                result = (
                    self.client.table(self.settings.inventory_table)
                    .select(self._select_clause())
                    .gt("stock", 0)
                    .order("id")
                    .range(offset, offset + page_size - 1)
                    .execute()
                )
                batch = result.data or []
                rows.extend(batch)
                if len(batch) < page_size:
                    break
                offset += page_size
        except Exception as e:
            logger.error(
                "Catalog fetch failed",
                table=self.settings.inventory_table,
                offset=offset,
                error=str(e),
            )
            raise CatalogFetchError(f"Failed to fetch in-stock items: {e}") from e

        items = [item_from_row(row, self.config) for row in rows if row.get("id") is not None]
        logger.info("Fetched in-stock items", count=len(items), pages=offset // page_size + 1)
        return items


class SupabaseBrandLookup:
    """Resolves brand ids against the brands table."""

    def __init__(self, client: Optional[Any] = None, settings: Optional[Settings] = None):
        self._client = client
        self.settings = settings or get_settings()

    @property
    def client(self):
        if self._client is None:
            from config.database import get_supabase_client
            self._client = get_supabase_client()
        return self._client

    def brand_names(self, brand_ids: Iterable[str]) -> Dict[str, str]:
        ids = sorted({str(brand_id) for brand_id in brand_ids if brand_id})
        if not ids:
            return {}

        result = (
            self.client.table(self.settings.brands_table)
            .select("id, Name")
            .in_("id", ids)
            .execute()
        )
        names: Dict[str, str] = {}
        for row in result.data or []:
            name = row.get("Name") or row.get("name")
            if row.get("id") is not None and name:
                names[str(row["id"])] = name
        return names
