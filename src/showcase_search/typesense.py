"""Typesense REST Client

Thin async wrapper over the Typesense HTTP API covering the operations
the sync jobs and the query gateway need:

  - collection delete / create
  - bulk document import (JSONL, one outcome per document)
  - single-collection search and federated multi-search

Connection failures are raised as ``TypesenseUnavailable`` so callers can
tell "engine down" apart from request errors.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)


class TypesenseError(Exception):
    """Error response (or transport failure) from Typesense."""

    def __init__(self, message: str, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class TypesenseUnavailable(TypesenseError):
    """Typesense could not be reached (connection refused / connect timeout)."""


class TypesenseClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"X-TYPESENSE-API-KEY": api_key},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, timeout: Optional[float] = None) -> "TypesenseClient":
        return cls(
            settings.typesense_url,
            settings.typesense_api_key,
            timeout=timeout if timeout is not None else settings.sync_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "TypesenseClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._http.request(method, path, **kwargs)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise TypesenseUnavailable(f"Typesense unreachable at {self.base_url}: {e}") from e
        except httpx.HTTPError as e:
            raise TypesenseError(f"Typesense request {method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            try:
                message = resp.json().get("message") or resp.text
            except ValueError:
                message = resp.text
            raise TypesenseError(
                f"Typesense {method} {path} returned {resp.status_code}: {message}",
                http_status=resp.status_code,
            )
        return resp

    async def delete_collection(self, name: str) -> Dict[str, Any]:
        resp = await self._request("DELETE", f"/collections/{name}")
        return resp.json()

    async def create_collection(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self._request("POST", "/collections", json=schema)
        return resp.json()

    async def import_documents(
        self,
        name: str,
        documents: List[Dict[str, Any]],
        action: str = "create",
    ) -> List[Dict[str, Any]]:
        """Bulk import documents, returning one ``{"success": ...}`` per document.

        Typesense answers 200 even when individual documents fail; the
        per-line outcomes carry ``error`` and the offending ``document``.
        """
        body = "\n".join(json.dumps(doc, ensure_ascii=False) for doc in documents)
        resp = await self._request(
            "POST",
            f"/collections/{name}/documents/import",
            params={"action": action},
            content=body.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        outcomes: List[Dict[str, Any]] = []
        for line in resp.text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                outcomes.append(json.loads(line))
            except json.JSONDecodeError:
                outcomes.append({"success": False, "error": f"Unparseable import response: {line[:200]}"})
        logger.debug("Import into %s returned %d outcomes", name, len(outcomes))
        return outcomes

    async def search(self, name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        query = {k: v for k, v in params.items() if v is not None}
        resp = await self._request("GET", f"/collections/{name}/documents/search", params=query)
        return resp.json()

    async def multi_search(self, searches: List[Dict[str, Any]]) -> Dict[str, Any]:
        resp = await self._request("POST", "/multi_search", json={"searches": searches})
        return resp.json()
