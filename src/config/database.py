"""
Supabase client access.

One client per process, created on first use. The item store, the brand
lookup and the detailed health check all go through here.
"""

from functools import lru_cache
from typing import Any, Dict, Optional

from supabase import Client, create_client

from config.settings import get_settings


class SupabaseClientError(Exception):
    """The Supabase client could not be created (bad URL or key)."""
    pass


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """
    Create (once) and return the process-wide Supabase client.

    Raises:
        SupabaseClientError: If settings are missing or the client rejects them
    """
    try:
        settings = get_settings()
        client = create_client(settings.supabase_url, settings.supabase_service_key)
    except Exception as e:
        raise SupabaseClientError(f"Cannot create Supabase client: {e}") from e
    return client


def get_supabase_client_optional() -> Optional[Client]:
    """Like get_supabase_client(), but None instead of raising."""
    try:
        return get_supabase_client()
    except SupabaseClientError:
        return None


def probe_table(table: str, client: Optional[Client] = None) -> Dict[str, Any]:
    """
    Read one row id from ``table`` and report whether that worked.

    Returns:
        {"status": "connected" | "empty" | "not_configured" | "error",
         "table": table, "error": str | None}
    """
    report: Dict[str, Any] = {"status": "not_configured", "table": table, "error": None}
    client = client or get_supabase_client_optional()
    if client is None:
        return report

    try:
        rows = client.table(table).select("id").limit(1).execute().data
    except Exception as e:
        report.update(status="error", error=str(e))
        return report

    report["status"] = "connected" if rows else "empty"
    return report
