#!/usr/bin/env python3
"""Show which records currently block deleting a record. Nothing is deleted.

Usage:
    python scripts/find_references.py customer cust-1
    DATABASE_URL=sqlite:///data/imanage.db python scripts/find_references.py vehicle veh-7

Exit status is 0 when nothing references the record, 1 when the delete would
be blocked, 2 when the record does not exist and 3 on any other error.

Environment Variables:
    DATABASE_URL: sqlite:///path or postgresql:// DSN (defaults to sqlite:///data/imanage.db)
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def find_references(entity: str, entity_id: str) -> dict:
    """Return what blocks deleting ``entity_id`` without attempting the delete."""
    # Import here so environment tweaks in main() apply before settings load
    from imanage.service.deletion import format_reference_error
    from imanage.service.runtime import get_runtime
    from imanage.storage.common import guard_expense_category_delete, record_to_dict
    from imanage.storage.errors import DeleteBlocked
    from imanage.storage.schema import EntityType

    runtime = get_runtime()
    entity_type = EntityType(entity)
    record = runtime.store.get(entity_type, entity_id)
    if record is None:
        return {"status": "not_found", "message": f"{entity_type.label} not found", "references": []}

    if entity_type is EntityType.EXPENSE_CATEGORY:
        category = record_to_dict(record)
        in_use = bool(runtime.store.find_by("vehicle_transactions", "category", category["name"]))
        try:
            guard_expense_category_delete(category, in_use)
        except DeleteBlocked as exc:
            return {"status": "blocked", "message": exc.message, "references": []}

    references = runtime.resolver.references_for(entity_type, entity_id)
    if not references:
        return {"status": "free", "message": f"{entity_type.label} can be deleted", "references": []}
    return {
        "status": "blocked",
        "message": format_reference_error(entity_type.label, references),
        "references": [
            {"type": ref.referencing_type, "label": ref.human_label} for ref in references
        ],
    }


def main(argv=None) -> int:
    from imanage.storage.schema import EntityType

    parser = argparse.ArgumentParser(
        description="List the records that block deleting a back-office record",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("entity", choices=[e.value for e in EntityType], help="Entity type")
    parser.add_argument("entity_id", help="Record id")

    args = parser.parse_args(argv)
    if not args.entity_id.strip():
        parser.error("entity_id must not be empty")

    try:
        result = find_references(args.entity, args.entity_id)
    except Exception as e:
        print(f"Error: {e}")
        return 3

    print(result["message"])
    if result["status"] == "blocked":
        return 1
    if result["status"] == "not_found":
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
