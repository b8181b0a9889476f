"""
Entity registry for the client-side data store.

Each entity names its backend table, its sort order, and the foreign keys
that enrichment turns into embedded records. The relation graph between
collections is computed once, at import time:

- FETCH_ORDER: every entity after the entities it references
- DOWNSTREAM: for each entity, the entities that (transitively) embed it,
  in FETCH_ORDER
"""

import re
from dataclasses import dataclass
from graphlib import TopologicalSorter
from typing import Any, Dict, Optional, Tuple

DASHBOARD = "dashboard"


@dataclass(frozen=True)
class Relation:
    """Embed ``target[id == record[foreign_key]]`` as ``record[name]``."""
    name: str
    foreign_key: str
    target: str


@dataclass(frozen=True)
class EntitySpec:
    name: str
    table: str
    label: str
    sort_field: str
    descending: bool = False
    relations: Tuple[Relation, ...] = ()
    id_aliases: Tuple[str, ...] = ()
    feeds_dashboard: bool = False


ENTITIES: Dict[str, EntitySpec] = {
    spec.name: spec
    for spec in (
        EntitySpec("cities", "cities", "City", "name",
                   id_aliases=("id_city",)),
        EntitySpec("stations", "stations", "Station", "name",
                   relations=(Relation("city", "city_id", "cities"),),
                   id_aliases=("id_station",)),
        EntitySpec("bus_lines", "bus_lines", "Bus line", "name",
                   relations=(
                       Relation("origin_station", "origin_station_id", "stations"),
                       Relation("destination_station", "destination_station_id", "stations"),
                   ),
                   id_aliases=("id_line", "id_bus_line")),
        EntitySpec("buses", "buses", "Bus", "plate_number",
                   id_aliases=("id_bus",), feeds_dashboard=True),
        EntitySpec("drivers", "drivers", "Driver", "name",
                   id_aliases=("id_driver",)),
        EntitySpec("trips", "trips", "Trip", "departure_time", descending=True,
                   relations=(
                       Relation("bus_line", "bus_line_id", "bus_lines"),
                       Relation("bus", "bus_id", "buses"),
                       Relation("driver", "driver_id", "drivers"),
                   ),
                   id_aliases=("id_trip",), feeds_dashboard=True),
        EntitySpec("tickets", "tickets", "Ticket", "booking_date", descending=True,
                   relations=(Relation("trip", "trip_id", "trips"),),
                   id_aliases=("id_ticket",), feeds_dashboard=True),
        EntitySpec("subscriptions", "subscriptions", "Subscription", "start_date",
                   descending=True,
                   relations=(Relation("bus_line", "bus_line_id", "bus_lines"),),
                   id_aliases=("id_subscription",)),
        EntitySpec("maintenance", "maintenance", "Maintenance", "scheduled_date",
                   descending=True,
                   relations=(Relation("bus", "bus_id", "buses"),),
                   id_aliases=("id_maintenance",), feeds_dashboard=True),
        EntitySpec("incidents", "incidents", "Incident", "incident_date", descending=True,
                   relations=(
                       Relation("trip", "trip_id", "trips"),
                       Relation("bus", "bus_id", "buses"),
                       Relation("driver", "driver_id", "drivers"),
                   ),
                   id_aliases=("id_incident",), feeds_dashboard=True),
    )
}

ENTITIES_BY_TABLE: Dict[str, EntitySpec] = {spec.table: spec for spec in ENTITIES.values()}

# entity -> entities it references
DEPENDENCIES: Dict[str, frozenset] = {
    name: frozenset(rel.target for rel in spec.relations)
    for name, spec in ENTITIES.items()
}

FETCH_ORDER: Tuple[str, ...] = tuple(TopologicalSorter(DEPENDENCIES).static_order())


def _upstream(name: str) -> set:
    seen = set()
    pending = list(DEPENDENCIES[name])
    while pending:
        current = pending.pop()
        if current not in seen:
            seen.add(current)
            pending.extend(DEPENDENCIES[current])
    return seen


DOWNSTREAM: Dict[str, Tuple[str, ...]] = {
    name: tuple(other for other in FETCH_ORDER if name in _upstream(other))
    for name in ENTITIES
}


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def resolve_entity(name: str) -> Optional[EntitySpec]:
    """Look up an entity by table name or its camelCase key (``busLines``)."""
    return ENTITIES.get(_CAMEL_BOUNDARY.sub("_", name).lower())


def normalize_record(raw: Dict[str, Any], spec: EntitySpec) -> Dict[str, Any]:
    """
    Bring a backend record to the canonical shape.

    Keys are lower-cased (``CITY_ID`` -> ``city_id``) and the first id alias
    found (``id_city``, ``ID_CITY``...) fills ``id`` when it is missing.
    Embedded relations the backend already joined are normalized against
    their own entity.
    """
    record = {str(key).lower(): value for key, value in raw.items()}

    if record.get("id") is None:
        for alias in spec.id_aliases:
            if record.get(alias) is not None:
                record["id"] = record[alias]
                break

    for rel in spec.relations:
        embedded = record.get(rel.name)
        if isinstance(embedded, dict):
            record[rel.name] = normalize_record(embedded, ENTITIES[rel.target])
        elif rel.name in record and embedded is not None:
            record[rel.name] = None

    return record
