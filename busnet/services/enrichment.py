"""
Foreign key enrichment and ordering of collections.

Enrichment embeds, for every relation of an entity, the referenced record
found in the current collections (or None). Records whose embedded
relations are already up to date are returned as the same objects, so a
second pass over an enriched collection compares equal to the first.
"""

from typing import Any, Dict, List, Mapping, Sequence

from busnet.services.dates import sort_timestamp
from busnet.services.entities import EntitySpec

_MISSING = object()


def index_by_id(records: Sequence[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Map ``str(id)`` to record; ids arrive as both ints and strings."""
    return {str(record["id"]): record for record in records if record.get("id") is not None}


def enrich_record(
    record: Dict[str, Any],
    spec: EntitySpec,
    indexes: Mapping[str, Mapping[str, Dict[str, Any]]]
) -> Dict[str, Any]:
    """Return ``record`` with every relation of ``spec`` resolved."""
    updates = {}
    for rel in spec.relations:
        key = record.get(rel.foreign_key)
        target = None
        if key is not None and key != "":
            target = indexes[rel.target].get(str(key))
        if record.get(rel.name, _MISSING) != target:
            updates[rel.name] = target

    if not updates:
        return record
    return {**record, **updates}


def enrich_records(
    records: List[Dict[str, Any]],
    spec: EntitySpec,
    collections: Mapping[str, Sequence[Dict[str, Any]]]
) -> List[Dict[str, Any]]:
    """Enrich a whole collection against the given collections."""
    if not spec.relations:
        return records
    indexes = {
        rel.target: index_by_id(collections.get(rel.target) or [])
        for rel in spec.relations
    }
    return [enrich_record(record, spec, indexes) for record in records]


def sort_records(records: List[Dict[str, Any]], spec: EntitySpec) -> List[Dict[str, Any]]:
    """
    Order a collection for display.

    Name-like fields sort ascending, case-sensitive. Date fields sort most
    recent first, with undated records last.
    """
    if spec.descending:
        def key(record):
            stamp = sort_timestamp(record.get(spec.sort_field))
            return (1, 0.0) if stamp is None else (0, -stamp)
    else:
        def key(record):
            value = record.get(spec.sort_field)
            return "" if value is None else str(value)

    return sorted(records, key=key)
