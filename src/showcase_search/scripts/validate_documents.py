"""Export Validation Script

Validates a dry-run export of transformed documents against the Typesense
schema of its collection:
  - Every schema field present (optional ones included: the transformer
    always fills them)
  - No null values and no fields outside the schema
  - Values match the declared field type (string, bool, int32, int64, string[])
  - Document ids are unique

Usage:
    python -m showcase_search.scripts.validate_documents \\
        --path output/carriers_documents_20250101_000000.json

The collection is inferred from the ``<collection>_documents_`` file name
prefix unless ``--collection`` is given.

Exits with code 0 on success, 1 on validation failure, 2 on argument error.
"""

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from showcase_search.schemas import SCHEMAS, CollectionSchema, get_schema

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1


def load_documents(path: Path) -> List[Dict[str, Any]]:
    """Load a JSON array of documents."""
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Top-level JSON is not a list of documents.")
    return data


def infer_collection(path: Path) -> Optional[str]:
    """``carriers_documents_20250101_000000.json`` → ``carriers``."""
    stem = path.stem
    if "_documents" not in stem:
        return None
    name = stem.split("_documents", 1)[0]
    known = {s.name for s in SCHEMAS.values()}
    return name if name in known else None


def check_type(value: Any, field_type: str) -> bool:
    if field_type == "string":
        return isinstance(value, str)
    if field_type == "bool":
        return isinstance(value, bool)
    if field_type == "int32":
        return isinstance(value, int) and not isinstance(value, bool) and INT32_MIN <= value <= INT32_MAX
    if field_type == "int64":
        return isinstance(value, int) and not isinstance(value, bool) and INT64_MIN <= value <= INT64_MAX
    if field_type == "string[]":
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    return False


def validate_document(
    doc: Any,
    idx: int,
    schema: CollectionSchema,
) -> Tuple[List[str], List[str]]:
    """Validate a single document.

    Returns:
        (errors, warnings)
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(doc, dict):
        errors.append(f"[idx={idx}] document should be an object, got {type(doc).__name__}")
        return errors, warnings

    for field in schema.fields:
        if field.name not in doc:
            errors.append(f"[idx={idx}] missing field '{field.name}'")
            continue
        value = doc[field.name]
        if value is None:
            errors.append(f"[idx={idx}] field '{field.name}' is null")
        elif not check_type(value, field.type):
            errors.append(
                f"[idx={idx}] field '{field.name}' should be {field.type}, "
                f"got {type(value).__name__} ({value!r})"
            )
        elif field.type == "string" and not field.optional and not value.strip():
            # legal for Typesense, but a required text field should carry content
            warnings.append(f"[idx={idx}] required field '{field.name}' is empty")

    extra = sorted(set(doc) - set(schema.field_names))
    if extra:
        errors.append(f"[idx={idx}] unexpected fields: {', '.join(extra)}")

    return errors, warnings


def validate_documents(docs: List[Any], schema: CollectionSchema) -> Tuple[List[str], List[str]]:
    all_errors: List[str] = []
    all_warnings: List[str] = []
    seen_ids: Dict[Any, int] = {}

    for idx, doc in enumerate(docs):
        errors, warnings = validate_document(doc, idx, schema)
        all_errors.extend(errors)
        all_warnings.extend(warnings)

        doc_id = doc.get("id") if isinstance(doc, dict) else None
        if isinstance(doc_id, str):
            if doc_id in seen_ids:
                all_errors.append(f"[idx={idx}] duplicate id '{doc_id}' (first at idx={seen_ids[doc_id]})")
            else:
                seen_ids[doc_id] = idx

    return all_errors, all_warnings


def main(argv: list[str] | None = None) -> None:
    """Validate a transformed documents export.

    Raises:
        SystemExit: With code 0 on success, 1 on validation failure,
            2 on argument errors
    """
    parser = argparse.ArgumentParser(
        description="Validate a transformed documents JSON export."
    )
    parser.add_argument(
        "--path",
        type=str,
        required=True,
        help="Path to <collection>_documents_<timestamp>.json",
    )
    parser.add_argument(
        "--collection",
        type=str,
        default=None,
        help="Collection the documents belong to (default: inferred from file name)",
    )
    args = parser.parse_args(argv)

    path = Path(args.path)
    collection = args.collection or infer_collection(path)
    if not collection:
        print(f"Cannot infer collection from '{path.name}'; pass --collection")
        raise SystemExit(2)
    try:
        schema = get_schema(collection)
    except ValueError:
        print(f"Unknown collection: {collection}")
        raise SystemExit(2)

    try:
        docs = load_documents(path)
    except Exception as e:
        print(f"FAILED TO LOAD FILE: {e}")
        raise SystemExit(1)

    all_errors, all_warnings = validate_documents(docs, schema)

    if all_errors:
        print("VALIDATION FAILED:\n")
        for err in all_errors:
            print(err)
        print(f"\nTotal errors: {len(all_errors)}")
        if all_warnings:
            print(f"Total warnings: {len(all_warnings)}")
        raise SystemExit(1)

    print("VALIDATION PASSED")
    print(f"Collection: {schema.name}")
    print(f"Total documents: {len(docs)}")
    if all_warnings:
        print("\nWarnings (non-fatal):")
        for w in all_warnings:
            print(w)
        print(f"\nTotal warnings: {len(all_warnings)}")

    raise SystemExit(0)


if __name__ == "__main__":
    main()
