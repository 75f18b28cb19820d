"""Document Transformation Module

Maps Directus records onto the flat Typesense document of their category.

Key responsibilities:
  - Validate raw records into typed per-category records (defaults applied)
  - Flatten one-hop relations into strings / string arrays
  - Project score structures (JSON text or objects) onto integer fields
  - Convert timestamps to epoch milliseconds

Malformed scores or timestamps only affect the record they belong to:
the value falls back to 0 and a warning is logged.
"""

import json
import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import ValidationError

from .models import (
    CarrierRecord,
    HardwareRecord,
    HelpArticleRecord,
    OperatingSystemRecord,
    PostRecord,
    SelfhostedAlternativeRecord,
    ServiceRecord,
    SourceRecord,
)
from .schemas import Category

logger = logging.getLogger(__name__)

SearchDocument = Dict[str, Any]


# ============================================================================
# Field helpers
# ============================================================================


def extract_overall_score(value: Any, record_id: Optional[str] = None) -> int:
    """
    Project a score structure onto a single integer.

    Accepts:
      - a JSON string, e.g. '{"overall": 3}' (or a bare number as text)
      - a dict with an ``overall`` key
      - a plain number

    Anything absent, unparseable or non-numeric yields 0.
    Fractional scores are rounded to the nearest integer, halves up.
    """
    if value is None or value == "":
        return 0

    if isinstance(value, str):
        try:
            value = json.loads(value)
        except (json.JSONDecodeError, ValueError):
            logger.warning("Unparseable score %r on record %s; defaulting to 0", value, record_id)
            return 0

    if isinstance(value, dict):
        value = value.get("overall")

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        if value is not None:
            logger.warning("Non-numeric score %r on record %s; defaulting to 0", value, record_id)
        return 0

    if not math.isfinite(value):
        logger.warning("Non-finite score %r on record %s; defaulting to 0", value, record_id)
        return 0
    return math.floor(value + 0.5)


def to_epoch_millis(value: Any, record_id: Optional[str] = None) -> int:
    """
    Convert a timestamp to milliseconds since the epoch.

    ISO-8601 strings are parsed (a trailing ``Z`` is accepted, naive values
    are taken as UTC); numbers are assumed to already be epoch millis.
    Absent or malformed values yield 0.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            logger.warning("Non-finite timestamp %r on record %s; defaulting to 0", value, record_id)
            return 0
        return int(value)
    if not isinstance(value, str):
        logger.warning("Unsupported timestamp %r on record %s; defaulting to 0", value, record_id)
        return 0

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Unparseable timestamp %r on record %s; defaulting to 0", value, record_id)
        return 0

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def relation_name(value: Any, key: str) -> str:
    """Flatten an expanded many-to-one relation (``{"title": ...}``) to a string."""
    if isinstance(value, dict):
        inner = value.get(key)
        if isinstance(inner, str):
            return inner
    return ""


def junction_names(rows: Any, junction_key: str, key: str = "name") -> List[str]:
    """
    Flatten expanded many-to-many junction rows to a list of names.

    ``[{"carrier_categories_id": {"name": "MVNO"}}, {"carrier_categories_id": None}]``
    → ``["MVNO"]``
    """
    if not isinstance(rows, list):
        return []
    names: List[str] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        name = relation_name(row.get(junction_key), key)
        if name:
            names.append(name)
    return names


def str_list(value: Any) -> List[str]:
    """Keep a list of non-empty strings; anything that isn't a list becomes []."""
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v]


# ============================================================================
# Per-category transforms
# ============================================================================


def _carrier(r: CarrierRecord) -> SearchDocument:
    return {
        "id": r.id,
        "name": r.name,
        "slug": r.slug,
        "short_description": r.short_description,
        "parent_company": r.parent_company,
        "network_type": r.network_type,
        "mvno_status": r.mvno_status,
        "esim_support": r.esim_support,
        "5g_available": r.five_g_available,
        "prepaid_anonymous": r.prepaid_anonymous,
        "contract_flexibility": r.contract_flexibility,
        "country_of_operation": r.country_of_operation,
        "categories": junction_names(r.categories, "carrier_categories_id"),
        "privacy_score": extract_overall_score(r.privacy_score, r.id),
        "overall_score": extract_overall_score(r.overall_score, r.id),
        "website_url": r.website_url,
        "brand_symbol_light": r.brand_symbol_light,
    }


def _service(r: ServiceRecord) -> SearchDocument:
    return {
        "id": r.id,
        "name": r.name,
        "slug": r.slug,
        "short_description": r.short_description,
        "service_status": r.service_status,
        "primary_business_model": r.primary_business_model,
        "governance_model": r.governance_model,
        "self_hostable": r.self_hostable,
        "federated": r.federated,
        "end_to_end_encryption": r.end_to_end_encryption,
        "default_tracking": r.default_tracking,
        "assessment_tier": r.assessment_tier,
        "categories": junction_names(r.service_categories, "service_categories_id"),
        "score_overall": extract_overall_score(r.scores, r.id),
        "website_url": r.website_url,
        "brand_symbol_light": r.brand_symbol_light,
    }


def _hardware(r: HardwareRecord) -> SearchDocument:
    return {
        "id": r.id,
        "name": r.name,
        "slug": r.slug,
        "short_description": r.short_description,
        "manufacturer": r.manufacturer,
        "hardware_type": r.hardware_type,
        "repairability": r.repairability,
        "bootloader_unlockable": r.bootloader_unlockable,
        "tier": r.tier,
        "overall_score": extract_overall_score(r.scores, r.id),
        "brand_symbol_light": r.brand_symbol_light,
    }


def _operating_system(r: OperatingSystemRecord) -> SearchDocument:
    return {
        "id": r.id,
        "name": r.name,
        "slug": r.slug,
        "tagline": r.tagline,
        "description": r.description,
        "tier": r.tier,
        "is_open_source": r.is_open_source,
        "telemetry_default": r.telemetry_default,
        "bootloader_unlockable": r.bootloader_unlockable,
        "root_access_available": r.root_access_available,
        "date_created": to_epoch_millis(r.date_created, r.id),
    }


def _post(r: PostRecord) -> SearchDocument:
    return {
        "id": r.id,
        "title": r.title,
        "slug": r.slug,
        "summary": r.summary,
        "type": r.type or "blog",
        "category": relation_name(r.category, "title"),
        "author": relation_name(r.author, "name"),
        "date_published": to_epoch_millis(r.date_published, r.id),
        "image": r.image,
    }


def _help_article(r: HelpArticleRecord) -> SearchDocument:
    return {
        "id": r.id,
        "title": r.title,
        "slug": r.slug,
        "summary": r.summary,
        "content": r.content,
        "collection": relation_name(r.help_collection, "title"),
        "date_created": to_epoch_millis(r.date_created, r.id),
    }


def _selfhosted_alternative(r: SelfhostedAlternativeRecord) -> SearchDocument:
    return {
        "id": r.id,
        "name": r.name,
        "slug": r.slug,
        "short_description": r.short_description,
        "category": r.category,
        "tier": r.tier,
        "is_open_source": r.is_open_source,
        "end_to_end_encryption": r.end_to_end_encryption,
        "hosting_modes": str_list(r.hosting_modes),
        "deployment_complexity": r.deployment_complexity,
        "replaces": str_list(r.replaces),
        "date_created": to_epoch_millis(r.date_created, r.id),
    }


TRANSFORMS: Dict[Category, tuple[Type[SourceRecord], Callable[[Any], SearchDocument]]] = {
    Category.CARRIERS: (CarrierRecord, _carrier),
    Category.SERVICES: (ServiceRecord, _service),
    Category.HARDWARE: (HardwareRecord, _hardware),
    Category.OPERATING_SYSTEMS: (OperatingSystemRecord, _operating_system),
    Category.POSTS: (PostRecord, _post),
    Category.HELP_ARTICLES: (HelpArticleRecord, _help_article),
    Category.SELFHOSTED_ALTERNATIVES: (SelfhostedAlternativeRecord, _selfhosted_alternative),
}


def to_source_record(category: Category, raw: Dict[str, Any]) -> SourceRecord:
    """Validate a raw Directus dict into the typed record for its category.

    Raises:
        ValueError: If the record cannot be validated (e.g. it has no id)
    """
    model, _ = TRANSFORMS[category]
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise ValueError(
            f"Invalid {category.value} record id={raw.get('id')!r}: "
            f"{e.error_count()} validation error(s): {e.errors()[0]['msg']}"
        ) from e


def to_search_document(category: Category, raw: Dict[str, Any]) -> SearchDocument:
    """
    Convert one raw Directus record into its flat Typesense document.

    Deterministic and free of I/O: the same record always yields the same
    document. Fields not in the category schema are dropped.

    Raises:
        ValueError: If the record fails validation (see ``to_source_record``)
    """
    _, build = TRANSFORMS[category]
    return build(to_source_record(category, raw))
