"""
Catalog API Routes.

Filtered catalog queries with facet options, and the pure selection
operations the filter UI uses between queries.

NOTE: Routes use `def` (not `async def`) because the Supabase client is
synchronous. FastAPI runs sync handlers in a thread pool.
"""

from fastapi import APIRouter, Depends, HTTPException

from core.logging import get_logger
from facets.errors import CatalogFetchError
from facets.models import (
    CatalogItemResult,
    CatalogQueryRequest,
    CatalogQueryResponse,
    FilterSelection,
    SelectionResponse,
    ToggleFilterRequest,
)
from facets.orchestrator import CatalogQueryOrchestrator, get_catalog_orchestrator

logger = get_logger(__name__)

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])


@router.post(
    "/query",
    response_model=CatalogQueryResponse,
    summary="Filtered catalog items with facet options",
)
def query_catalog(
    request: CatalogQueryRequest,
    orchestrator: CatalogQueryOrchestrator = Depends(get_catalog_orchestrator),
) -> CatalogQueryResponse:
    """
    Query the in-stock catalog.

    - **mode** picks the base predicate (all / by_color / by_body_shape /
      by_attributes / by_brand)
    - **attribute_filters** match by case-insensitive substring, OR within
      a key and AND across keys
    - **facets** are counted over every in-stock item, not just the matches
    - **facet_search** narrows the returned facets without re-querying
    - **page** and **limit** slice the matched items; facets and counts
      still cover the whole query
    """
    try:
        result = orchestrator.query_selection(request.to_selection())
    except CatalogFetchError as e:
        logger.error("Catalog query failed", error=str(e))
        raise HTTPException(
            status_code=503,
            detail={"message": "Catalog is temporarily unavailable", "retryable": e.retryable},
        )

    facets = result.search_facets(request.facet_search) if request.facet_search else result.facets
    page = result.page_of(request.page, request.limit)

    return CatalogQueryResponse(
        items=[
            CatalogItemResult(
                id=item.id,
                name=item.name,
                price=item.price,
                stock=item.stock,
                brand_id=item.brand_id,
                attributes=page.parsed.get(item.id, {}),
            )
            for item in page.items
        ],
        facets=facets,
        brands=result.brands,
        applied_filter_count=result.applied_filter_count,
        total_candidates=result.candidate_count,
        total_matches=result.total_matches,
        page=request.page,
        limit=request.limit,
        total_pages=result.total_pages(request.limit),
        timing=result.timing,
    )


@router.post(
    "/filters/toggle",
    response_model=SelectionResponse,
    summary="Toggle one attribute value on a selection",
)
def toggle_filter(request: ToggleFilterRequest) -> SelectionResponse:
    selection = request.selection.toggle_filter(request.key, request.value)
    return SelectionResponse(
        selection=selection,
        applied_filter_count=selection.applied_filter_count,
    )


@router.post(
    "/filters/clear",
    response_model=SelectionResponse,
    summary="Clear attribute filters and price bounds on a selection",
)
def clear_filters(selection: FilterSelection) -> SelectionResponse:
    cleared = selection.clear_filters()
    return SelectionResponse(selection=cleared, applied_filter_count=0)
