"""Typesense Collection Schemas

Declares the flat document shape each content category is indexed with.
These definitions are sent verbatim to Typesense when a collection is
recreated, and are also used by the query gateway (``query_by`` fields,
default sort) and by the export validator.
"""

from enum import Enum
from typing import Any, Dict, List, Literal

from pydantic import BaseModel


FieldType = Literal["string", "bool", "int32", "int64", "string[]"]


class Category(str, Enum):
    """Content categories synced to the search engine."""

    CARRIERS = "carriers"
    SERVICES = "services"
    HARDWARE = "hardware"
    OPERATING_SYSTEMS = "operating_systems"
    POSTS = "posts"
    HELP_ARTICLES = "help_articles"
    SELFHOSTED_ALTERNATIVES = "selfhosted_alternatives"

    @classmethod
    def parse(cls, name: str) -> "Category":
        """Resolve a category from its collection name or short task name.

        Raises:
            ValueError: If the name matches no category
        """
        key = name.strip().lower()
        if key in CATEGORY_ALIASES:
            return CATEGORY_ALIASES[key]
        return cls(key)


# Short names used by the scheduled task payloads
CATEGORY_ALIASES = {
    "os": Category.OPERATING_SYSTEMS,
    "help": Category.HELP_ARTICLES,
    "selfhosted": Category.SELFHOSTED_ALTERNATIVES,
}


class FieldSpec(BaseModel):
    name: str
    type: FieldType
    optional: bool = False
    facet: bool = False

    def to_typesense(self) -> Dict[str, Any]:
        field: Dict[str, Any] = {"name": self.name, "type": self.type}
        if self.optional:
            field["optional"] = True
        if self.facet:
            field["facet"] = True
        return field


class CollectionSchema(BaseModel):
    """Schema for one Typesense collection.

    ``query_by`` and ``type_label`` are gateway metadata and are not part
    of the create-collection payload.
    """

    name: str
    fields: List[FieldSpec]
    default_sorting_field: str
    query_by: List[str]
    type_label: str

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> FieldSpec:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    def to_typesense(self) -> Dict[str, Any]:
        """Render the body for ``POST /collections``."""
        return {
            "name": self.name,
            "fields": [f.to_typesense() for f in self.fields],
            "default_sorting_field": self.default_sorting_field,
        }


def _f(name: str, type: FieldType = "string", optional: bool = False, facet: bool = False) -> FieldSpec:
    return FieldSpec(name=name, type=type, optional=optional, facet=facet)


CARRIERS_SCHEMA = CollectionSchema(
    name="carriers",
    fields=[
        _f("id"),
        _f("name"),
        _f("slug"),
        _f("short_description", optional=True),
        _f("parent_company", optional=True),
        _f("network_type", optional=True, facet=True),
        _f("mvno_status", optional=True, facet=True),
        _f("esim_support", "bool", optional=True, facet=True),
        _f("5g_available", "bool", optional=True, facet=True),
        _f("prepaid_anonymous", "bool", optional=True, facet=True),
        _f("contract_flexibility", optional=True, facet=True),
        _f("country_of_operation", optional=True, facet=True),
        _f("categories", "string[]", optional=True, facet=True),
        _f("privacy_score", "int32", optional=True),
        _f("overall_score", "int32"),
        _f("website_url", optional=True),
        _f("brand_symbol_light", optional=True),
    ],
    default_sorting_field="overall_score",
    query_by=["name", "short_description", "parent_company"],
    type_label="carrier",
)

SERVICES_SCHEMA = CollectionSchema(
    name="services",
    fields=[
        _f("id"),
        _f("name"),
        _f("slug"),
        _f("short_description", optional=True),
        _f("service_status", optional=True, facet=True),
        _f("primary_business_model", optional=True, facet=True),
        _f("governance_model", optional=True, facet=True),
        _f("self_hostable", "bool", optional=True, facet=True),
        _f("federated", "bool", optional=True, facet=True),
        _f("end_to_end_encryption", optional=True, facet=True),
        _f("default_tracking", optional=True, facet=True),
        _f("assessment_tier", optional=True, facet=True),
        _f("categories", "string[]", optional=True, facet=True),
        _f("score_overall", "int32"),
        _f("website_url", optional=True),
        _f("brand_symbol_light", optional=True),
    ],
    default_sorting_field="score_overall",
    query_by=["name", "short_description"],
    type_label="service",
)

HARDWARE_SCHEMA = CollectionSchema(
    name="hardware",
    fields=[
        _f("id"),
        _f("name"),
        _f("slug"),
        _f("short_description", optional=True),
        _f("manufacturer", optional=True),
        _f("hardware_type", optional=True, facet=True),
        _f("repairability", optional=True, facet=True),
        _f("bootloader_unlockable", optional=True, facet=True),
        _f("tier", optional=True, facet=True),
        _f("overall_score", "int32"),
        _f("brand_symbol_light", optional=True),
    ],
    default_sorting_field="overall_score",
    query_by=["name", "short_description", "manufacturer"],
    type_label="hardware",
)

OPERATING_SYSTEMS_SCHEMA = CollectionSchema(
    name="operating_systems",
    fields=[
        _f("id"),
        _f("name"),
        _f("slug"),
        _f("tagline", optional=True),
        _f("description", optional=True),
        _f("tier", optional=True, facet=True),
        _f("is_open_source", "bool", optional=True, facet=True),
        _f("telemetry_default", optional=True, facet=True),
        _f("bootloader_unlockable", optional=True, facet=True),
        _f("root_access_available", "bool", optional=True, facet=True),
        _f("date_created", "int64"),
    ],
    default_sorting_field="date_created",
    query_by=["name", "tagline", "description"],
    type_label="operating_system",
)

POSTS_SCHEMA = CollectionSchema(
    name="posts",
    fields=[
        _f("id"),
        _f("title"),
        _f("slug"),
        _f("summary", optional=True),
        _f("type", facet=True),
        _f("category", optional=True, facet=True),
        _f("author", optional=True),
        _f("date_published", "int64"),
        _f("image", optional=True),
    ],
    default_sorting_field="date_published",
    query_by=["title", "summary"],
    type_label="post",
)

HELP_ARTICLES_SCHEMA = CollectionSchema(
    name="help_articles",
    fields=[
        _f("id"),
        _f("title"),
        _f("slug"),
        _f("summary", optional=True),
        _f("content", optional=True),
        _f("collection", optional=True, facet=True),
        _f("date_created", "int64"),
    ],
    default_sorting_field="date_created",
    query_by=["title", "summary", "content"],
    type_label="help_article",
)

SELFHOSTED_ALTERNATIVES_SCHEMA = CollectionSchema(
    name="selfhosted_alternatives",
    fields=[
        _f("id"),
        _f("name"),
        _f("slug"),
        _f("short_description", optional=True),
        _f("category", optional=True, facet=True),
        _f("tier", optional=True, facet=True),
        _f("is_open_source", "bool", optional=True, facet=True),
        _f("end_to_end_encryption", optional=True, facet=True),
        _f("hosting_modes", "string[]", optional=True, facet=True),
        _f("deployment_complexity", optional=True, facet=True),
        _f("replaces", "string[]", optional=True),
        _f("date_created", "int64"),
    ],
    default_sorting_field="date_created",
    query_by=["name", "short_description"],
    type_label="selfhosted_alternative",
)


# Registry order is also the order of a full sync run
SCHEMAS: Dict[Category, CollectionSchema] = {
    Category.CARRIERS: CARRIERS_SCHEMA,
    Category.SERVICES: SERVICES_SCHEMA,
    Category.HARDWARE: HARDWARE_SCHEMA,
    Category.POSTS: POSTS_SCHEMA,
    Category.HELP_ARTICLES: HELP_ARTICLES_SCHEMA,
    Category.SELFHOSTED_ALTERNATIVES: SELFHOSTED_ALTERNATIVES_SCHEMA,
    Category.OPERATING_SYSTEMS: OPERATING_SYSTEMS_SCHEMA,
}


def get_schema(category: Category | str) -> CollectionSchema:
    """Return the collection schema for a category.

    Raises:
        ValueError: If the category name is unknown
    """
    if not isinstance(category, Category):
        category = Category.parse(category)
    return SCHEMAS[category]
