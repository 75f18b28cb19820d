"""Data Models Module

Defines Pydantic models for the stages of the sync pipeline:

  - typed source records, one per category, validated at the
    fetch → transform boundary (raw Directus dicts in, defaults applied)
  - per-category sync results and the aggregate run summary

Text fields on source records never end up ``None``: absent or null values
become ``""`` and flags become ``False``. Score and timestamp fields are kept
loosely typed so the transformer can recover from malformed values record
by record.
"""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    # lists / dicts in a text slot are a schema mismatch upstream
    return ""


def _as_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _as_id(value: Any) -> Any:
    # Directus ids are uuids or integers; Typesense requires a string id
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


Text = Annotated[str, BeforeValidator(_as_text)]
Flag = Annotated[bool, BeforeValidator(_as_flag)]
RecordId = Annotated[str, BeforeValidator(_as_id), Field(min_length=1)]


class SourceRecord(BaseModel):
    """Base for a Directus record. Unknown fields are dropped."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: RecordId


class CarrierRecord(SourceRecord):
    name: Text = ""
    slug: Text = ""
    short_description: Text = ""
    parent_company: Text = ""
    network_type: Text = ""
    mvno_status: Text = ""
    esim_support: Flag = False
    five_g_available: Flag = Field(default=False, alias="5g_available")
    prepaid_anonymous: Flag = False
    contract_flexibility: Text = ""
    country_of_operation: Text = ""
    categories: Any = None  # junction rows: [{"carrier_categories_id": {"name": ...}}]
    privacy_score: Any = None
    overall_score: Any = None
    website_url: Text = ""
    brand_symbol_light: Text = ""


class ServiceRecord(SourceRecord):
    name: Text = ""
    slug: Text = ""
    short_description: Text = ""
    service_status: Text = ""
    primary_business_model: Text = ""
    governance_model: Text = ""
    self_hostable: Flag = False
    federated: Flag = False
    end_to_end_encryption: Text = ""
    default_tracking: Text = ""
    assessment_tier: Text = ""
    service_categories: Any = None
    scores: Any = None
    website_url: Text = ""
    brand_symbol_light: Text = ""


class HardwareRecord(SourceRecord):
    name: Text = ""
    slug: Text = ""
    short_description: Text = ""
    manufacturer: Text = ""
    hardware_type: Text = ""
    repairability: Text = ""
    bootloader_unlockable: Text = ""
    tier: Text = ""
    scores: Any = None
    brand_symbol_light: Text = ""


class OperatingSystemRecord(SourceRecord):
    name: Text = ""
    slug: Text = ""
    tagline: Text = ""
    description: Text = ""
    tier: Text = ""
    is_open_source: Flag = False
    telemetry_default: Text = ""
    bootloader_unlockable: Text = ""
    root_access_available: Flag = False
    date_created: Any = None


class PostRecord(SourceRecord):
    title: Text = ""
    slug: Text = ""
    summary: Text = ""
    type: Text = ""
    category: Any = None  # {"title": ...}
    author: Any = None  # {"name": ...}
    date_published: Any = None
    image: Text = ""


class HelpArticleRecord(SourceRecord):
    title: Text = ""
    slug: Text = ""
    summary: Text = ""
    content: Text = ""
    help_collection: Any = None  # {"title": ...}
    date_created: Any = None


class SelfhostedAlternativeRecord(SourceRecord):
    name: Text = ""
    slug: Text = ""
    short_description: Text = ""
    category: Text = ""
    tier: Text = ""
    is_open_source: Flag = False
    end_to_end_encryption: Text = ""
    hosting_modes: Any = None
    deployment_complexity: Text = ""
    replaces: Any = None
    date_created: Any = None


class SyncResult(BaseModel):
    """Outcome of syncing one category. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    collection: str
    success: bool
    fetched: int = 0
    indexed: int = 0
    failed: int = 0
    errors: List[str] = []


class SyncSummary(BaseModel):
    """Aggregate of a multi-category sync run."""

    success: bool
    duration: float
    total_collections: int
    successful_syncs: int
    failed_syncs: int
    total_indexed: int
    total_failed: int
    results: Dict[str, SyncResult]
    output_paths: Optional[Dict[str, str]] = None
