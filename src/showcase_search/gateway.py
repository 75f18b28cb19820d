"""Query Gateway

Translates user-facing search parameters into Typesense queries and
reshapes the responses for the site:

  - carriers search: free text + facet filters, paginated
  - global search: one federated multi-search over carriers, services and
    hardware, flattened into a single tagged hit list

Both functions raise Typesense errors; the HTTP layer decides which of
them degrade to an empty result.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .schemas import Category, get_schema
from .typesense import TypesenseClient, TypesenseError, TypesenseUnavailable

logger = logging.getLogger(__name__)

GLOBAL_SEARCH_CATEGORIES = [Category.CARRIERS, Category.SERVICES, Category.HARDWARE]
MIN_GLOBAL_QUERY_LENGTH = 2
GLOBAL_UNAVAILABLE = "Search service unavailable"


class CarrierSearchParams(BaseModel):
    q: str = "*"
    page: int = 1
    per_page: int = 20
    category: Optional[str] = None
    mvno_only: bool = False
    esim_support: bool = False
    five_g: bool = False
    prepaid_anonymous: bool = False
    no_contract: bool = False
    sort_by: Optional[str] = None


class CarrierSearchResponse(BaseModel):
    hits: List[Dict[str, Any]]
    found: int
    page: int
    total_pages: int
    error: Optional[str] = None


class CollectionHits(BaseModel):
    collection: str
    hits: List[Dict[str, Any]]
    found: int


class GlobalSearchResponse(BaseModel):
    results: List[Dict[str, Any]]
    total: int
    by_collection: Optional[List[CollectionHits]] = None
    error: Optional[str] = None


def is_unavailable(error: Exception) -> bool:
    """True for failures that should degrade to an empty result.

    That is: the engine can't be reached, or the collection doesn't exist
    (e.g. mid-rebuild or never synced).
    """
    if isinstance(error, TypesenseUnavailable):
        return True
    return isinstance(error, TypesenseError) and error.http_status == 404


def build_carrier_filter(params: CarrierSearchParams) -> Optional[str]:
    """Combine the active carrier filters with ``&&``; None when no filter is set."""
    filters: List[str] = []
    if params.category:
        filters.append(f"categories:=[`{params.category}`]")
    if params.mvno_only:
        filters.append("mvno_status:=mvno")
    if params.esim_support:
        filters.append("esim_support:=true")
    if params.five_g:
        filters.append("5g_available:=true")
    if params.prepaid_anonymous:
        filters.append("prepaid_anonymous:=true")
    if params.no_contract:
        filters.append("contract_flexibility:=no_contract_required")
    return " && ".join(filters) if filters else None


def build_carrier_search(params: CarrierSearchParams) -> Dict[str, Any]:
    schema = get_schema(Category.CARRIERS)
    return {
        "q": params.q or "*",
        "query_by": ",".join(schema.query_by),
        "filter_by": build_carrier_filter(params),
        "page": params.page,
        "per_page": params.per_page,
        "sort_by": params.sort_by or f"{schema.default_sorting_field}:desc",
    }


async def search_carriers(typesense: TypesenseClient, params: CarrierSearchParams) -> CarrierSearchResponse:
    search = build_carrier_search(params)
    logger.debug("Carrier search: %s", search)
    result = await typesense.search(get_schema(Category.CARRIERS).name, search)

    found = result.get("found") or 0
    return CarrierSearchResponse(
        hits=[hit.get("document", {}) for hit in result.get("hits") or []],
        found=found,
        page=result.get("page") or 1,
        total_pages=math.ceil(found / params.per_page) if params.per_page else 0,
    )


def build_global_searches(q: str, limit: int) -> List[Dict[str, Any]]:
    searches = []
    for category in GLOBAL_SEARCH_CATEGORIES:
        schema = get_schema(category)
        searches.append(
            {
                "collection": schema.name,
                "q": q,
                "query_by": ",".join(schema.query_by),
                "per_page": limit,
                "sort_by": f"{schema.default_sorting_field}:desc",
            }
        )
    return searches


async def global_search(typesense: TypesenseClient, q: Optional[str], limit: int = 5) -> GlobalSearchResponse:
    """
    Search carriers, services and hardware in one round trip.

    Queries shorter than two characters return an empty result without
    contacting the engine. When every sub-search fails (e.g. none of the
    collections exist yet) the result is empty and carries ``error``.
    """
    q = q or ""
    if len(q) < MIN_GLOBAL_QUERY_LENGTH:
        return GlobalSearchResponse(results=[], total=0)

    searches = build_global_searches(q, limit)
    response = await typesense.multi_search(searches)

    results = response.get("results") or []
    by_collection: List[CollectionHits] = []
    failed = 0
    for category, result in zip(GLOBAL_SEARCH_CATEGORIES, results):
        schema = get_schema(category)
        if result.get("error"):
            failed += 1
            logger.warning("Global search on %s failed: %s", schema.name, result["error"])
        hits = [
            {**hit.get("document", {}), "_collection": schema.name, "_type": schema.type_label}
            for hit in result.get("hits") or []
        ]
        by_collection.append(CollectionHits(collection=schema.name, hits=hits, found=result.get("found") or 0))

    if results and failed == len(by_collection):
        return GlobalSearchResponse(results=[], total=0, by_collection=by_collection, error=GLOBAL_UNAVAILABLE)

    return GlobalSearchResponse(
        results=[hit for c in by_collection for hit in c.hits],
        total=sum(c.found for c in by_collection),
        by_collection=by_collection,
    )
