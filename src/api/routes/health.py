"""
Liveness and dependency checks.
"""

from typing import Any, Dict

from fastapi import APIRouter

from config.database import probe_table
from config.settings import get_settings


router = APIRouter(tags=["Health"])

SERVICE_NAME = "catalog-facets"


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/health/detailed")
def detailed_health_check() -> Dict[str, Any]:
    """
    Probe every table a catalog query reads.

    The service is "degraded" unless the inventory table returns rows;
    an unreachable brands table only costs brand labels.
    """
    settings = get_settings()
    inventory = probe_table(settings.inventory_table)
    brands = probe_table(settings.brands_table)

    return {
        "status": "healthy" if inventory["status"] == "connected" else "degraded",
        "service": SERVICE_NAME,
        "environment": settings.environment,
        "checks": {
            "inventory": inventory,
            "brands": brands,
        },
    }
