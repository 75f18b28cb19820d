"""Directus REST Client

Read (and, for the forum webhook, update) access to Directus items using a
static server token. Relation expansion is requested through dotted field
paths, e.g. ``author.name``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)


class DirectusError(Exception):
    def __init__(self, message: str, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class DirectusClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DirectusClient":
        return cls(
            settings.directus_url,
            settings.directus_server_token,
            timeout=settings.sync_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "DirectusClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise DirectusError(f"Directus request {method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            raise DirectusError(
                f"Directus {method} {path} returned {resp.status_code}: {_error_message(resp)}",
                http_status=resp.status_code,
            )
        if not resp.content:
            return None
        return resp.json().get("data")

    async def read_items(
        self,
        collection: str,
        fields: List[str],
        filter: Optional[Dict[str, Any]] = None,
        limit: int = -1,
    ) -> List[Dict[str, Any]]:
        """Read items from a collection.

        Args:
            collection: Directus collection name
            fields: Field paths to return (dotted paths expand relations)
            filter: Directus filter object
            limit: Maximum items; -1 fetches everything

        Returns:
            List of item dictionaries ([] when nothing matches)
        """
        params: Dict[str, Any] = {"fields": ",".join(fields), "limit": limit}
        if filter:
            params["filter"] = json.dumps(filter)
        data = await self._request("GET", f"/items/{collection}", params=params)
        return list(data or [])

    async def update_item(self, collection: str, item_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        result = await self._request("PATCH", f"/items/{collection}/{item_id}", json=data)
        return result or {}


def _error_message(resp: httpx.Response) -> str:
    """Pull the first message out of a Directus ``{"errors": [...]}`` body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    errors = body.get("errors") if isinstance(body, dict) else None
    if errors and isinstance(errors, list) and isinstance(errors[0], dict) and errors[0].get("message"):
        return str(errors[0]["message"])
    return resp.text
