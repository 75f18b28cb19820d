"""
Search Index Sync Pipeline

Runs the Directus → Typesense sync, one category at a time.

Per category:
  1. Fetch visible records from Directus
  2. Transform each record into its flat search document
  3. Publish: delete + recreate the collection, bulk-import the documents

A full run walks every category (or a requested subset) sequentially and
aggregates a summary. One category failing never stops the others.

Features:
- Explicit per-category state (fetching → transforming → publishing → done)
- Per-record recovery: a bad record is counted as failed, the batch continues
- Dry-run mode that writes the transformed documents to JSON instead of
  touching the search engine
"""

import json
import logging
import time
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .directus import DirectusClient
from .loaders import fetch_records
from .models import SyncResult, SyncSummary
from .publisher import publish_index
from .schemas import SCHEMAS, Category, get_schema
from .transformers import to_search_document
from .typesense import TypesenseClient

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    PUBLISHING = "publishing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CategorySync:
    """Fetch → transform → publish for a single category."""

    def __init__(
        self,
        category: Category,
        directus: DirectusClient,
        typesense: Optional[TypesenseClient],
        dry_run: bool = False,
        output_dir: Optional[Path] = None,
        run_timestamp: Optional[str] = None,
    ) -> None:
        if not dry_run and typesense is None:
            raise ValueError("A Typesense client is required unless dry_run=True")
        self.category = category
        self.schema = get_schema(category)
        self.directus = directus
        self.typesense = typesense
        self.dry_run = dry_run
        self.output_dir = Path(output_dir) if output_dir is not None else None
        self.run_timestamp = run_timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.state = SyncState.PENDING
        self.output_path: Optional[Path] = None

    def _enter(self, state: SyncState) -> None:
        logger.debug("%s: %s → %s", self.schema.name, self.state.value, state.value)
        self.state = state

    async def run(self) -> SyncResult:
        name = self.schema.name
        logger.info("🔄 Starting %s sync", name)

        # ========== STEP 1: FETCH ==========
        self._enter(SyncState.FETCHING)
        try:
            raw_records = await fetch_records(self.directus, self.category)
        except Exception as e:
            logger.exception("❌ Failed to fetch %s from Directus", name)
            self._enter(SyncState.FAILED)
            return SyncResult(collection=name, success=False, errors=[str(e) or type(e).__name__])

        # ========== STEP 2: TRANSFORM ==========
        self._enter(SyncState.TRANSFORMING)
        documents: List[Dict[str, Any]] = []
        rejected: List[str] = []
        seen_ids: set[str] = set()

        for raw in raw_records:
            try:
                doc = to_search_document(self.category, raw)
            except Exception as e:
                logger.warning("Skipping %s record: %s", name, e)
                rejected.append(f"Failed to transform record: {e}")
                continue

            if doc["id"] in seen_ids:
                logger.warning("Duplicate %s id %s; keeping first occurrence", name, doc["id"])
                rejected.append(f"Duplicate record id: {doc['id']}")
                continue

            seen_ids.add(doc["id"])
            documents.append(doc)

        logger.info(
            "✓ Transformed %d/%d %s records (rejected=%d)",
            len(documents),
            len(raw_records),
            name,
            len(rejected),
        )

        # ========== STEP 3: PUBLISH ==========
        self._enter(SyncState.PUBLISHING)
        if self.dry_run:
            return self._finish_dry_run(raw_records, documents, rejected)

        try:
            outcome = await publish_index(self.typesense, self.schema, documents)
        except Exception as e:
            logger.exception("❌ Error publishing %s", name)
            self._enter(SyncState.FAILED)
            return SyncResult(
                collection=name,
                success=False,
                fetched=len(raw_records),
                indexed=0,
                failed=len(raw_records),
                errors=rejected + [str(e) or type(e).__name__],
            )

        failed = outcome.failed + len(rejected)
        self._enter(SyncState.SUCCEEDED)
        logger.info("✅ %s sync completed", name)
        return SyncResult(
            collection=name,
            success=failed == 0,
            fetched=len(raw_records),
            indexed=outcome.indexed,
            failed=failed,
            errors=rejected + outcome.errors,
        )

    def _finish_dry_run(
        self,
        raw_records: List[Dict[str, Any]],
        documents: List[Dict[str, Any]],
        rejected: List[str],
    ) -> SyncResult:
        if self.output_dir is not None:
            self.output_path = export_documents(
                documents, self.output_dir, self.schema.name, self.run_timestamp
            )
        else:
            logger.info("DRY RUN: skipping publish of %d %s documents", len(documents), self.schema.name)

        self._enter(SyncState.SUCCEEDED)
        return SyncResult(
            collection=self.schema.name,
            success=not rejected,
            fetched=len(raw_records),
            indexed=0,
            failed=len(rejected),
            errors=rejected,
        )


def export_documents(
    documents: List[Dict[str, Any]],
    output_dir: Path,
    collection: str,
    run_timestamp: str,
) -> Path:
    """Write transformed documents to ``<collection>_documents_<timestamp>.json``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{collection}_documents_{run_timestamp}.json"
    with path.open("w", encoding="utf-8") as f:
        json.dump(documents, f, ensure_ascii=False, indent=2)
    logger.info("✓ Wrote %d %s documents to %s", len(documents), collection, path.name)
    return path


def resolve_categories(names: Optional[Iterable[str]]) -> List[Category]:
    """Turn requested names into categories, in registry order.

    Raises:
        ValueError: If any name is not a known category
    """
    if not names:
        return list(SCHEMAS)
    requested = {Category.parse(n) for n in names}
    return [c for c in SCHEMAS if c in requested]


async def sync_all(
    directus: DirectusClient,
    typesense: Optional[TypesenseClient],
    categories: Optional[Iterable[str]] = None,
    dry_run: bool = False,
    output_dir: Optional[Path] = None,
) -> SyncSummary:
    """
    Sync every category (or the requested subset) sequentially.

    Args:
        directus: Directus client
        typesense: Typesense client (may be None for dry runs)
        categories: Optional category names to limit the run
        dry_run: Transform only; do not touch the search engine
        output_dir: Where dry-run exports go (None = no export)

    Returns:
        SyncSummary with per-category results and totals

    Raises:
        ValueError: If a requested category name is unknown
    """
    to_run = resolve_categories(categories)
    run_timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    job_start = time.time()

    logger.info("🚀 Starting Typesense sync for %d collections", len(to_run))

    results: Dict[str, SyncResult] = {}
    output_paths: Dict[str, str] = {}

    for idx, category in enumerate(to_run, start=1):
        name = get_schema(category).name
        logger.info("STEP %d/%d: %s", idx, len(to_run), name)
        job = CategorySync(
            category,
            directus,
            typesense,
            dry_run=dry_run,
            output_dir=output_dir,
            run_timestamp=run_timestamp,
        )
        try:
            results[name] = await job.run()
        except Exception as e:
            logger.exception("❌ %s sync error", name)
            results[name] = SyncResult(collection=name, success=False, errors=[str(e) or type(e).__name__])
        if job.output_path is not None:
            output_paths[name] = str(job.output_path)

    summary = SyncSummary(
        success=all(r.success for r in results.values()),
        duration=round(time.time() - job_start, 2),
        total_collections=len(to_run),
        successful_syncs=sum(1 for r in results.values() if r.success),
        failed_syncs=sum(1 for r in results.values() if not r.success),
        total_indexed=sum(r.indexed for r in results.values()),
        total_failed=sum(r.failed for r in results.values()),
        results=results,
        output_paths=output_paths or None,
    )
    log_summary(summary)
    return summary


def log_summary(summary: SyncSummary) -> None:
    logger.info("=" * 70)
    logger.info("📊 SYNC SUMMARY")
    logger.info("  Duration:         %.2fs", summary.duration)
    logger.info("  Successful syncs: %d/%d", summary.successful_syncs, summary.total_collections)
    logger.info("  Failed syncs:     %d/%d", summary.failed_syncs, summary.total_collections)
    logger.info("  Total indexed:    %d", summary.total_indexed)
    logger.info("  Total failed:     %d", summary.total_failed)
    logger.info("")
    logger.info("Details by collection:")
    for name, result in summary.results.items():
        status = "✅" if result.success else "❌"
        logger.info("  %s %s: %d/%d indexed", status, name, result.indexed, result.fetched)
        if result.errors:
            logger.error("    Errors: %s", ", ".join(result.errors))
    logger.info("=" * 70)
