import copy
from typing import Any, Dict, List, Optional

import pytest

from showcase_search.typesense import TypesenseError


class FakeTypesense:
    """
    In-memory stand-in for TypesenseClient.

    Keeps collections as {name: {"schema": ..., "documents": {id: doc}}} and
    records every call so tests can assert on ordering and arguments.
    """

    def __init__(self):
        self.collections: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.fail_ids: set = set()
        self.delete_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.import_error: Optional[Exception] = None
        self.search_error: Optional[Exception] = None
        self.search_response: Optional[Dict[str, Any]] = None
        self.multi_search_response: Optional[Dict[str, Any]] = None

    def documents(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self.collections[name]["documents"]

    async def delete_collection(self, name):
        self.calls.append(("delete", name))
        if self.delete_error is not None:
            raise self.delete_error
        if name not in self.collections:
            raise TypesenseError("Not Found", http_status=404)
        del self.collections[name]
        return {"name": name}

    async def create_collection(self, schema):
        self.calls.append(("create", schema["name"]))
        if self.create_error is not None:
            raise self.create_error
        if schema["name"] in self.collections:
            raise TypesenseError(f"A collection with name `{schema['name']}` already exists.", http_status=409)
        self.collections[schema["name"]] = {"schema": copy.deepcopy(schema), "documents": {}}
        return schema

    async def import_documents(self, name, documents, action="create"):
        self.calls.append(("import", name, action, len(documents)))
        if self.import_error is not None:
            raise self.import_error
        store = self.documents(name)
        outcomes = []
        for doc in documents:
            if doc["id"] in self.fail_ids:
                outcomes.append({"success": False, "error": f"Bad document {doc['id']}", "document": "{}"})
            elif action == "create" and doc["id"] in store:
                outcomes.append({"success": False, "error": "A document with id already exists."})
            else:
                store[doc["id"]] = copy.deepcopy(doc)
                outcomes.append({"success": True})
        return outcomes

    async def search(self, name, params):
        self.calls.append(("search", name, dict(params)))
        if self.search_error is not None:
            raise self.search_error
        if self.search_response is not None:
            return self.search_response
        if name not in self.collections:
            raise TypesenseError("Not Found", http_status=404)
        docs = list(self.documents(name).values())
        return {"found": len(docs), "page": params.get("page", 1), "hits": [{"document": d} for d in docs]}

    async def multi_search(self, searches):
        self.calls.append(("multi_search", [dict(s) for s in searches]))
        if self.search_error is not None:
            raise self.search_error
        if self.multi_search_response is not None:
            return self.multi_search_response
        return {"results": [{"found": 0, "hits": []} for _ in searches]}


class FakeDirectus:
    """In-memory stand-in for DirectusClient; items keyed by collection."""

    def __init__(self, items: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.items = items or {}
        self.errors: Dict[str, Exception] = {}
        self.calls: List[Dict[str, Any]] = []
        self.updates: List[tuple] = []

    async def read_items(self, collection, fields, filter=None, limit=-1):
        self.calls.append({"collection": collection, "fields": list(fields), "filter": filter, "limit": limit})
        if collection in self.errors:
            raise self.errors[collection]
        return copy.deepcopy(self.items.get(collection, []))

    async def update_item(self, collection, item_id, data):
        self.updates.append((collection, item_id, data))
        return {"id": item_id, **data}


class FakeDiscourse:
    def __init__(self, topics: Optional[Dict[Any, Dict[str, Any]]] = None):
        self.topics = topics or {}
        self.requested: List[Any] = []

    async def get_topic(self, topic_id):
        self.requested.append(topic_id)
        return copy.deepcopy(self.topics[topic_id])


@pytest.fixture
def discourse():
    return FakeDiscourse()


@pytest.fixture
def typesense():
    return FakeTypesense()


@pytest.fixture
def directus():
    return FakeDirectus()


@pytest.fixture
def carrier_records():
    """Three published carriers; the third has no overall_score."""
    return [
        {
            "id": "c-1",
            "name": "Mint Mobile",
            "slug": "mint-mobile",
            "short_description": "Prepaid MVNO on T-Mobile",
            "mvno_status": "mvno",
            "esim_support": True,
            "5g_available": True,
            "overall_score": 7,
            "categories": [{"carrier_categories_id": {"name": "Prepaid"}}],
        },
        {
            "id": "c-2",
            "name": "Visible",
            "slug": "visible",
            "overall_score": '{"overall": 6}',
            "date_updated": "2024-01-01T00:00:00Z",
        },
        {
            "id": "c-3",
            "name": "Cape",
            "slug": "cape",
            "privacy_score": None,
        },
    ]
