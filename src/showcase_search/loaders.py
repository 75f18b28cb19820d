"""Data Loader Module

Fetches the visible records of each category from Directus. Every
category has a fixed fetch spec: the CMS collection it lives in, the
status value that makes a record visible, and exactly the fields the
transformer needs (dotted paths pull one-hop relations, e.g. a post's
author name instead of the author id).
"""

import logging
import time
from typing import Any, Dict, List, NamedTuple

from .directus import DirectusClient
from .schemas import Category

logger = logging.getLogger(__name__)


class FetchSpec(NamedTuple):
    collection: str
    fields: List[str]
    visible_status: str = "published"


FETCH_SPECS: Dict[Category, FetchSpec] = {
    Category.CARRIERS: FetchSpec(
        collection="carriers",
        fields=[
            "id",
            "name",
            "slug",
            "short_description",
            "parent_company",
            "network_type",
            "mvno_status",
            "esim_support",
            "5g_available",
            "prepaid_anonymous",
            "contract_flexibility",
            "country_of_operation",
            "privacy_score",
            "overall_score",
            "website_url",
            "brand_symbol_light",
            "categories.carrier_categories_id.name",
        ],
    ),
    Category.SERVICES: FetchSpec(
        collection="services",
        fields=[
            "id",
            "name",
            "slug",
            "short_description",
            "service_status",
            "primary_business_model",
            "governance_model",
            "self_hostable",
            "federated",
            "end_to_end_encryption",
            "default_tracking",
            "assessment_tier",
            "scores",
            "website_url",
            "brand_symbol_light",
            "service_categories.service_categories_id.name",
        ],
    ),
    Category.HARDWARE: FetchSpec(
        collection="hardware_items",
        fields=[
            "id",
            "name",
            "slug",
            "short_description",
            "manufacturer",
            "hardware_type",
            "repairability",
            "bootloader_unlockable",
            "tier",
            "scores",
            "brand_symbol_light",
        ],
    ),
    Category.OPERATING_SYSTEMS: FetchSpec(
        collection="operating_systems",
        fields=[
            "id",
            "name",
            "slug",
            "tagline",
            "description",
            "tier",
            "is_open_source",
            "telemetry_default",
            "bootloader_unlockable",
            "root_access_available",
            "date_created",
        ],
    ),
    Category.POSTS: FetchSpec(
        collection="posts",
        fields=[
            "id",
            "title",
            "slug",
            "summary",
            "type",
            "date_published",
            "image",
            "category.title",
            "author.name",
        ],
    ),
    Category.HELP_ARTICLES: FetchSpec(
        collection="help_articles",
        fields=[
            "id",
            "title",
            "slug",
            "summary",
            "content",
            "date_created",
            "help_collection.title",
        ],
    ),
    Category.SELFHOSTED_ALTERNATIVES: FetchSpec(
        collection="selfhosted_alternatives",
        fields=[
            "id",
            "name",
            "slug",
            "short_description",
            "category",
            "tier",
            "is_open_source",
            "end_to_end_encryption",
            "hosting_modes",
            "deployment_complexity",
            "replaces",
            "date_created",
        ],
        visible_status="active",
    ),
}


async def fetch_records(directus: DirectusClient, category: Category) -> List[Dict[str, Any]]:
    """Fetch all visible records for a category.

    Args:
        directus: Directus client
        category: Category to fetch

    Returns:
        Raw record dictionaries; [] when nothing is visible

    Raises:
        DirectusError: On network, auth or query errors (not retried here)
    """
    spec = FETCH_SPECS[category]
    t0 = time.time()
    records = await directus.read_items(
        spec.collection,
        fields=spec.fields,
        filter={"status": {"_eq": spec.visible_status}},
        limit=-1,
    )
    logger.info(
        "✓ Fetched %d %s records from %s (status=%s, %.2fs)",
        len(records),
        category.value,
        spec.collection,
        spec.visible_status,
        time.time() - t0,
    )
    return records
