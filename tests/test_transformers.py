import copy

import pytest

from showcase_search.schemas import Category, get_schema
from showcase_search.transformers import (
    extract_overall_score,
    junction_names,
    to_epoch_millis,
    to_search_document,
    to_source_record,
)

EMPTY_BY_TYPE = {"string": "", "bool": False, "int32": 0, "int64": 0, "string[]": []}


# --- defaults -----------------------------------------------------------------


@pytest.mark.parametrize("category", list(Category))
def test_record_with_only_id_has_no_null_fields(category):
    """
    A record carrying nothing but its id should still produce a complete
    document: strings → "", booleans → False, numbers → 0, arrays → [].
    (posts.type is the one field with a non-empty default.)
    """
    doc = to_search_document(category, {"id": "rec-1"})
    schema = get_schema(category)

    assert list(doc) == schema.field_names
    assert doc["id"] == "rec-1"
    for field in schema.fields[1:]:
        value = doc[field.name]
        assert value is not None, field.name
        if category is Category.POSTS and field.name == "type":
            assert value == "blog"
        else:
            assert value == EMPTY_BY_TYPE[field.type], field.name


@pytest.mark.parametrize("category", list(Category))
def test_explicit_nulls_are_defaulted(category):
    schema = get_schema(category)
    raw = {name: None for name in schema.field_names}
    raw["id"] = "rec-2"

    doc = to_search_document(category, raw)

    assert all(v is not None for v in doc.values())


def test_unknown_fields_are_dropped():
    raw = {"id": "h-1", "name": "Pixel 8", "warranty_years": 3, "internal_notes": "x"}
    doc = to_search_document(Category.HARDWARE, raw)

    assert "warranty_years" not in doc
    assert "internal_notes" not in doc
    assert doc["name"] == "Pixel 8"


def test_transform_is_deterministic():
    raw = {
        "id": "s-1",
        "name": "Proton Mail",
        "scores": '{"overall": 8, "privacy": 9}',
        "service_categories": [{"service_categories_id": {"name": "Email"}}],
    }
    first = to_search_document(Category.SERVICES, copy.deepcopy(raw))
    second = to_search_document(Category.SERVICES, copy.deepcopy(raw))
    assert first == second


def test_record_without_id_is_rejected():
    with pytest.raises(ValueError, match="Invalid carriers record"):
        to_search_document(Category.CARRIERS, {"name": "No id"})


def test_integer_id_becomes_string():
    record = to_source_record(Category.POSTS, {"id": 42, "title": "Hello"})
    assert record.id == "42"


# --- scores ---------------------------------------------------------------------


def test_score_json_text_is_parsed():
    assert extract_overall_score('{"overall": 3}') == 3


def test_malformed_score_text_defaults_to_zero():
    assert extract_overall_score("{overall:}") == 0


@pytest.mark.parametrize(
    "value, expected",
    [
        ({"overall": 8, "privacy": 2}, 8),
        (7, 7),
        (4.6, 5),
        (2.5, 3),
        (3.5, 4),
        (float("inf"), 0),
        ("5", 5),
        (None, 0),
        ("", 0),
        ({"privacy": 4}, 0),
        ({"overall": "high"}, 0),
        (True, 0),
        ([1, 2], 0),
        ("NaN", 0),
    ],
)
def test_score_shapes(value, expected):
    assert extract_overall_score(value) == expected


def test_malformed_score_only_affects_its_record():
    good = to_search_document(Category.HARDWARE, {"id": "h-1", "scores": {"overall": 9}})
    bad = to_search_document(Category.HARDWARE, {"id": "h-2", "scores": "{overall:}"})

    assert good["overall_score"] == 9
    assert bad["overall_score"] == 0


def test_services_score_projects_to_score_overall():
    doc = to_search_document(Category.SERVICES, {"id": "s-1", "scores": '{"overall": 6}'})
    assert doc["score_overall"] == 6
    assert "scores" not in doc


def test_carrier_scores_accept_plain_and_structured_values():
    doc = to_search_document(
        Category.CARRIERS,
        {"id": "c-1", "overall_score": '{"overall": 3}', "privacy_score": 5},
    )
    assert doc["overall_score"] == 3
    assert doc["privacy_score"] == 5


# --- timestamps -----------------------------------------------------------------


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-01T00:00:00Z", 1704067200000),
        ("2024-01-01T00:00:00.500Z", 1704067200500),
        ("2024-01-01T00:00:00", 1704067200000),
        ("2024-01-01T01:00:00+01:00", 1704067200000),
        (1704067200000, 1704067200000),
        (float("inf"), 0),
        (float("nan"), 0),
        (None, 0),
        ("", 0),
        ("yesterday", 0),
    ],
)
def test_to_epoch_millis(value, expected):
    assert to_epoch_millis(value) == expected


def test_os_date_created_is_epoch_millis():
    doc = to_search_document(
        Category.OPERATING_SYSTEMS,
        {"id": "os-1", "name": "GrapheneOS", "date_created": "2024-01-01T00:00:00Z", "is_open_source": True},
    )
    assert doc["date_created"] == 1704067200000
    assert doc["is_open_source"] is True
    assert doc["root_access_available"] is False


# --- relations ------------------------------------------------------------------


def test_carrier_categories_are_flattened_and_nulls_dropped():
    raw = {
        "id": "c-1",
        "categories": [
            {"carrier_categories_id": {"name": "MVNO"}},
            {"carrier_categories_id": None},
            {"carrier_categories_id": {"name": ""}},
            {"carrier_categories_id": {"name": "Prepaid"}},
        ],
    }
    doc = to_search_document(Category.CARRIERS, raw)
    assert doc["categories"] == ["MVNO", "Prepaid"]


def test_junction_names_ignores_non_lists():
    assert junction_names(None, "x") == []
    assert junction_names("MVNO", "x") == []


def test_post_relations_flatten_to_strings():
    raw = {
        "id": "p-1",
        "title": "Why eSIM matters",
        "type": "guide",
        "category": {"title": "Mobile"},
        "author": {"name": "Sam"},
        "date_published": "2024-01-01T00:00:00Z",
    }
    doc = to_search_document(Category.POSTS, raw)

    assert doc["category"] == "Mobile"
    assert doc["author"] == "Sam"
    assert doc["type"] == "guide"
    assert doc["date_published"] == 1704067200000


def test_post_missing_relations_become_empty_strings():
    doc = to_search_document(Category.POSTS, {"id": "p-2", "category": None, "author": 17})
    assert doc["category"] == ""
    assert doc["author"] == ""


def test_help_article_collection_title():
    doc = to_search_document(
        Category.HELP_ARTICLES,
        {"id": "h-1", "title": "Porting your number", "help_collection": {"title": "Carriers"}},
    )
    assert doc["collection"] == "Carriers"


# --- misc field handling ----------------------------------------------------------


def test_five_g_flag_uses_source_field_name():
    doc = to_search_document(Category.CARRIERS, {"id": "c-1", "5g_available": True})
    assert doc["5g_available"] is True


@pytest.mark.parametrize("value, expected", [("true", True), ("false", False), (1, True), (0, False)])
def test_flags_are_coerced(value, expected):
    doc = to_search_document(Category.SERVICES, {"id": "s-1", "federated": value})
    assert doc["federated"] is expected


def test_selfhosted_arrays_require_lists():
    doc = to_search_document(
        Category.SELFHOSTED_ALTERNATIVES,
        {"id": "a-1", "hosting_modes": "docker", "replaces": ["Google Photos", None, ""]},
    )
    assert doc["hosting_modes"] == []
    assert doc["replaces"] == ["Google Photos"]


def test_numeric_text_field_is_stringified():
    doc = to_search_document(Category.HARDWARE, {"id": "h-1", "tier": 2})
    assert doc["tier"] == "2"
