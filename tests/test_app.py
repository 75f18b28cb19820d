import logging

import pytest
from fastapi.testclient import TestClient

from showcase_search.app import create_app
from showcase_search.config import Settings
from showcase_search.directus import DirectusError
from showcase_search.typesense import TypesenseError, TypesenseUnavailable


@pytest.fixture
def client(typesense, directus, discourse):
    app = create_app(Settings(), typesense=typesense, directus=directus, discourse=discourse)
    with TestClient(app) as c:
        yield c


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


# --- /search/carriers -------------------------------------------------------------


def test_carrier_search_returns_documents(client, typesense):
    typesense.search_response = {"found": 1, "page": 1, "hits": [{"document": {"id": "c-1", "name": "Mint"}}]}

    resp = client.get("/search/carriers", params={"q": "mint", "esim_support": "true", "five_g": "true"})

    assert resp.status_code == 200
    assert resp.json() == {"hits": [{"id": "c-1", "name": "Mint"}], "found": 1, "page": 1, "total_pages": 1}
    params = typesense.calls[0][2]
    assert params["q"] == "mint"
    assert params["filter_by"] == "esim_support:=true && 5g_available:=true"


def test_carrier_search_degrades_when_engine_is_down(client, typesense):
    typesense.search_error = TypesenseUnavailable("Typesense unreachable")

    resp = client.get("/search/carriers")

    assert resp.status_code == 200
    body = resp.json()
    assert body["hits"] == []
    assert body["found"] == 0
    assert body["error"] == "Search service unavailable. Please configure Typesense."


def test_carrier_search_degrades_when_collection_is_missing(client):
    # nothing synced yet: the fake answers 404 for the carriers collection
    resp = client.get("/search/carriers")

    assert resp.status_code == 200
    assert "error" in resp.json()


def test_carrier_search_other_errors_are_500(client, typesense):
    typesense.search_error = TypesenseError("Could not parse the filter query.", http_status=400)

    resp = client.get("/search/carriers", params={"category": "Prepaid"})

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Search failed"


def test_carrier_search_rejects_oversized_page(client):
    resp = client.get("/search/carriers", params={"per_page": 1000})
    assert resp.status_code == 422


# --- /search/global ---------------------------------------------------------------


def test_global_search_short_query(client, typesense):
    resp = client.get("/search/global", params={"q": "s"})

    assert resp.status_code == 200
    assert resp.json() == {"results": [], "total": 0}
    assert typesense.calls == []


def test_global_search_tags_hits(client, typesense):
    typesense.multi_search_response = {
        "results": [
            {"found": 0, "hits": []},
            {"found": 0, "hits": []},
            {"found": 1, "hits": [{"document": {"id": "h-1", "name": "Pixel"}}]},
        ]
    }

    resp = client.get("/search/global", params={"q": "pixel", "limit": 2})

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 1
    assert body["results"] == [{"id": "h-1", "name": "Pixel", "_collection": "hardware", "_type": "hardware"}]


def test_global_search_degrades_when_engine_is_down(client, typesense):
    typesense.search_error = TypesenseUnavailable("down")

    resp = client.get("/search/global", params={"q": "proton"})

    assert resp.status_code == 200
    assert resp.json()["error"] == "Search service unavailable"


# --- /webhooks/discourse ------------------------------------------------------------


def test_webhook_requires_topic_and_post(client):
    resp = client.post("/webhooks/discourse", json={"topic_id": 12})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Missing required webhook data"


def test_webhook_without_linked_post(client, directus):
    resp = client.post("/webhooks/discourse", json={"topic_id": 12, "post": {"id": 99}})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "No matching article found"}
    assert directus.updates == []


def test_webhook_updates_latest_comment(client, directus, discourse):
    directus.items["posts"] = [{"id": "p-1", "discourse_topic_id": 12}]
    discourse.topics[12] = {
        "post_stream": {
            "posts": [
                {"id": 1, "username": "editor", "cooked": "<p>article</p>", "post_number": 1},
                {"id": 2, "username": "reader", "cooked": "<p>Nice!</p>", "post_number": 2},
            ]
        }
    }

    resp = client.post("/webhooks/discourse", json={"topic_id": 12, "post": {"id": 2}})

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Comment data updated", "article_id": "p-1"}
    collection, item_id, data = directus.updates[0]
    assert (collection, item_id) == ("posts", "p-1")
    assert data["discourse_latest_comment"]["username"] == "reader"


def test_webhook_upstream_failure_is_500(client, directus):
    directus.errors["posts"] = DirectusError("Directus GET /items/posts returned 403: Forbidden")

    resp = client.post("/webhooks/discourse", json={"topic_id": 12, "post": {"id": 2}})

    assert resp.status_code == 500
    assert "Forbidden" in resp.json()["detail"]


def test_global_search_reports_missing_indexes(client, typesense):
    typesense.multi_search_response = {"results": [{"error": "Not found.", "code": 404} for _ in range(3)]}

    resp = client.get("/search/global", params={"q": "proton"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["results"] == []
    assert body["error"] == "Search service unavailable"


def test_degraded_search_logs_without_traceback(client, typesense, caplog):
    typesense.search_error = TypesenseUnavailable("Typesense unreachable")

    with caplog.at_level(logging.WARNING, logger="showcase_search.app"):
        client.get("/search/carriers")

    records = [r for r in caplog.records if r.name == "showcase_search.app"]
    assert [r.levelno for r in records] == [logging.WARNING]
    assert records[0].exc_info is None


def test_failed_search_logs_traceback(client, typesense, caplog):
    typesense.search_error = TypesenseError("Could not parse the filter query.", http_status=400)

    with caplog.at_level(logging.WARNING, logger="showcase_search.app"):
        client.get("/search/carriers")

    records = [r for r in caplog.records if r.name == "showcase_search.app"]
    assert [r.levelno for r in records] == [logging.ERROR]
    assert records[0].exc_info is not None
