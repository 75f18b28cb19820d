"""Index Publisher

Rebuilds a Typesense collection from scratch:

1. delete the existing collection (404 counts as success)
2. create it from the registered schema
3. bulk-import all documents with ``action=create``

The previous generation is discarded before the new one is loaded, so the
collection is briefly missing or empty while a rebuild runs.
"""

import logging
import time
from typing import Any, Dict, List, NamedTuple

from .schemas import CollectionSchema
from .typesense import TypesenseClient, TypesenseError

logger = logging.getLogger(__name__)


class PublishOutcome(NamedTuple):
    indexed: int
    failed: int
    errors: List[str]


async def drop_collection(typesense: TypesenseClient, name: str) -> None:
    """Delete a collection if it exists.

    A missing collection is fine. Any other failure is logged and swallowed
    so the subsequent create still runs (and reports the real problem).
    """
    try:
        await typesense.delete_collection(name)
        logger.info("  ✓ Deleted existing collection %s", name)
    except TypesenseError as e:
        if e.http_status == 404:
            logger.info("  ℹ No existing collection %s to delete", name)
        else:
            logger.warning("  ⚠ Could not delete collection %s: %s", name, e)


async def publish_index(
    typesense: TypesenseClient,
    schema: CollectionSchema,
    documents: List[Dict[str, Any]],
) -> PublishOutcome:
    """
    Replace a collection with the given documents.

    Args:
        typesense: Typesense client
        schema: Schema of the collection to rebuild
        documents: Transformed documents, all conforming to ``schema``

    Returns:
        PublishOutcome with indexed/failed counts and per-document errors

    Raises:
        TypesenseError: If the collection cannot be created or the import
            request itself fails
    """
    t0 = time.time()
    logger.info("📦 Setting up Typesense collection: %s", schema.name)

    await drop_collection(typesense, schema.name)

    await typesense.create_collection(schema.to_typesense())
    logger.info("  ✓ Created collection %s with %d fields", schema.name, len(schema.fields))

    if not documents:
        logger.warning("⚠ No documents to import for %s", schema.name)
        return PublishOutcome(indexed=0, failed=0, errors=[])

    logger.info("📤 Importing %d documents into %s", len(documents), schema.name)
    outcomes = await typesense.import_documents(schema.name, documents, action="create")

    errors: List[str] = []
    for outcome in outcomes:
        if outcome.get("success"):
            continue
        message = f"Failed to index document: {outcome.get('error') or outcome.get('document')}"
        errors.append(message)
        logger.error("  ⚠ %s", message)

    failed = len(errors)
    indexed = len(documents) - failed
    logger.info(
        "  ✓ Indexed %d/%d documents into %s (%.2fs)",
        indexed,
        len(documents),
        schema.name,
        time.time() - t0,
    )
    if failed:
        logger.warning("  ⚠ %d documents failed to index", failed)

    return PublishOutcome(indexed=indexed, failed=failed, errors=errors)
