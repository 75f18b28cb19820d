"""Discourse comment sync

When a post is made on a Discourse topic, the webhook looks up the CMS
post linked to that topic and stores the topic's latest reply on it
(``discourse_latest_comment``). This is separate from the search indexes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .config import Settings
from .directus import DirectusClient

logger = logging.getLogger(__name__)

LATEST_COMMENT_FIELDS = ("id", "username", "avatar_template", "created_at", "cooked", "post_number")


class DiscourseError(Exception):
    def __init__(self, message: str, http_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.http_status = http_status


class DiscourseClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_username: str = "system",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Api-Key": api_key, "Api-Username": api_username},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DiscourseClient":
        return cls(
            settings.discourse_api_url,
            settings.discourse_api_key,
            api_username=settings.discourse_api_username,
            timeout=settings.sync_timeout_seconds,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def get_topic(self, topic_id: Any) -> Dict[str, Any]:
        path = f"/t/{topic_id}.json"
        try:
            resp = await self._http.get(path)
        except httpx.HTTPError as e:
            raise DiscourseError(f"Discourse request GET {path} failed: {e}") from e

        if resp.status_code >= 400:
            raise DiscourseError(
                f"Discourse GET {path} returned {resp.status_code}",
                http_status=resp.status_code,
            )
        return resp.json()


def latest_reply(topic: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Last post of a topic, ignoring the opening post (the article itself)."""
    posts = (topic.get("post_stream") or {}).get("posts") or []
    if len(posts) <= 1:
        return None
    last = posts[-1]
    return {key: last.get(key) for key in LATEST_COMMENT_FIELDS}


async def refresh_latest_comment(
    directus: DirectusClient,
    discourse: DiscourseClient,
    topic_id: Any,
) -> Dict[str, Any]:
    """
    Copy a topic's latest reply onto the CMS post linked to it.

    Returns:
        Webhook response payload

    Raises:
        DirectusError / DiscourseError: On upstream failures
    """
    articles = await directus.read_items(
        "posts",
        fields=["id", "discourse_topic_id"],
        filter={"discourse_topic_id": {"_eq": topic_id}},
        limit=1,
    )
    if not articles:
        logger.info("No post linked to Discourse topic %s", topic_id)
        return {"success": True, "message": "No matching article found"}

    article = articles[0]
    topic = await discourse.get_topic(topic_id)
    comment = latest_reply(topic)

    if comment is not None:
        await directus.update_item("posts", article["id"], {"discourse_latest_comment": comment})
        logger.info("✓ Updated latest comment on post %s (topic %s)", article["id"], topic_id)

    return {"success": True, "message": "Comment data updated", "article_id": article["id"]}
