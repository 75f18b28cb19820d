"""Showcase search HTTP service (FastAPI + Uvicorn).

Routes:
  GET  /search/carriers     single-collection carrier search with facet filters
  GET  /search/global       federated search over carriers, services, hardware
  POST /webhooks/discourse  refresh a post's latest Discourse comment
  GET  /health

Clients are created in the lifespan unless injected through ``create_app``
(tests pass fakes). Injected clients are left open on shutdown.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Request

from .config import Settings
from .directus import DirectusClient
from .discourse import DiscourseClient, refresh_latest_comment
from .gateway import (
    CarrierSearchParams,
    CarrierSearchResponse,
    GLOBAL_UNAVAILABLE,
    GlobalSearchResponse,
    global_search,
    is_unavailable,
    search_carriers,
)
from .typesense import TypesenseClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    typesense: Optional[TypesenseClient] = None,
    directus: Optional[DirectusClient] = None,
    discourse: Optional[DiscourseClient] = None,
) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = []
        app.state.start_time = time.time()
        app.state.typesense = typesense
        app.state.directus = directus
        app.state.discourse = discourse
        if app.state.typesense is None:
            app.state.typesense = TypesenseClient.from_settings(settings, timeout=settings.search_timeout_seconds)
            owned.append(app.state.typesense)
        if app.state.directus is None:
            app.state.directus = DirectusClient.from_settings(settings)
            owned.append(app.state.directus)
        if app.state.discourse is None:
            app.state.discourse = DiscourseClient.from_settings(settings)
            owned.append(app.state.discourse)
        yield
        for client in owned:
            await client.aclose()

    app = FastAPI(title="Showcase Search", version="1.0.0", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        return {
            "status": "healthy",
            "uptime_seconds": round(time.time() - request.app.state.start_time, 2),
        }

    @app.get(
        "/search/carriers",
        response_model=CarrierSearchResponse,
        response_model_exclude_none=True,
    )
    async def carriers_search(
        request: Request,
        q: str = "*",
        page: int = Query(1, ge=1),
        per_page: int = Query(20, ge=1, le=250),
        category: Optional[str] = None,
        mvno_only: bool = False,
        esim_support: bool = False,
        five_g: bool = False,
        prepaid_anonymous: bool = False,
        no_contract: bool = False,
        sort_by: Optional[str] = None,
    ):
        params = CarrierSearchParams(
            q=q or "*",
            page=page,
            per_page=per_page,
            category=category or None,
            mvno_only=mvno_only,
            esim_support=esim_support,
            five_g=five_g,
            prepaid_anonymous=prepaid_anonymous,
            no_contract=no_contract,
            sort_by=sort_by or None,
        )
        try:
            return await search_carriers(request.app.state.typesense, params)
        except Exception as e:
            if is_unavailable(e):
                logger.warning("⚠ Carrier search degraded: %s", e)
                return CarrierSearchResponse(
                    hits=[],
                    found=0,
                    page=1,
                    total_pages=0,
                    error="Search service unavailable. Please configure Typesense.",
                )
            logger.exception("Typesense carrier search error")
            raise HTTPException(status_code=500, detail="Search failed")

    @app.get(
        "/search/global",
        response_model=GlobalSearchResponse,
        response_model_exclude_none=True,
    )
    async def global_search_route(
        request: Request,
        q: str = "",
        limit: int = Query(5, ge=1, le=250),
    ):
        try:
            return await global_search(request.app.state.typesense, q, limit)
        except Exception as e:
            if is_unavailable(e):
                logger.warning("⚠ Global search degraded: %s", e)
                return GlobalSearchResponse(results=[], total=0, error=GLOBAL_UNAVAILABLE)
            logger.exception("Global search error")
            raise HTTPException(status_code=500, detail="Search failed")

    @app.post("/webhooks/discourse")
    async def discourse_webhook(request: Request, body: Dict[str, Any] = Body(...)):
        topic_id = body.get("topic_id")
        post = body.get("post")
        if not topic_id or not post:
            raise HTTPException(status_code=400, detail="Missing required webhook data")

        try:
            return await refresh_latest_comment(
                request.app.state.directus,
                request.app.state.discourse,
                topic_id,
            )
        except Exception as e:
            logger.exception("Discourse webhook error")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to process webhook")

    return app


def serve() -> None:
    """Console entry point: run the HTTP service under uvicorn."""
    import uvicorn

    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
