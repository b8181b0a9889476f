"""
Client-side data store for the back office.

The store holds the last fetched snapshot of every collection, keeps
foreign keys enriched across collections, and derives the dashboard
aggregates. It works the same over either binding:

- RestClient: flat records, the store embeds relations itself
- DatabaseClient: records arrive with relations already embedded

Fetch ordering: a full refresh reads every collection concurrently, then
commits the results one collection at a time in dependency order (cities
before stations before bus lines, ...). Each enrichment therefore sees the
collections it references as committed for this cycle, never mid-fetch.

After every write, collections that embed the written one are re-enriched
in dependency order. A re-enriched collection is written back only if it
differs from the stored one, so repeated passes settle immediately.
"""

import asyncio
import logging
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from busnet.config import settings
from busnet.schemas import ConnectionStatus, DashboardStats, Envelope
from busnet.services.dashboard import compute_dashboard_stats
from busnet.services.entities import (
    DASHBOARD,
    DOWNSTREAM,
    ENTITIES,
    FETCH_ORDER,
    EntitySpec,
    normalize_record,
    resolve_entity,
)
from busnet.services.enrichment import enrich_records, sort_records

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], None]


class StoreState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    CLOSED = "closed"


def log_notification(message: str, level: str) -> None:
    """Default notifier: user-facing messages go to the log."""
    if level == "error":
        logger.error("Notification: %s", message)
    else:
        logger.info("Notification: %s", message)


class DataStore:
    """
    Snapshot store over a backend binding.

    Usage:
        async with DataStore(RestClient()) as store:
            stations = store["stations"]
            await store.fetch_entity("tickets")
            print(store.dashboard_stats)
    """

    def __init__(
        self,
        backend,
        notifier: Optional[Notifier] = None,
        today: Optional[Callable[[], date]] = None
    ):
        self.backend = backend
        self.notify = notifier or log_notification
        self._today = today or date.today
        self.state = StoreState.UNINITIALIZED
        self.collections: Dict[str, List[Dict[str, Any]]] = {name: [] for name in ENTITIES}
        self.dashboard_stats: Optional[DashboardStats] = None

    def __getitem__(self, name: str) -> List[Dict[str, Any]]:
        return self.collections[name]

    @property
    def loading(self) -> bool:
        return self.state == StoreState.LOADING

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def start(self) -> None:
        """Initial load (the "mount" of the store)."""
        await self.refresh_all()

    async def close(self) -> None:
        """Drop all collections and release the backend."""
        await self.backend.aclose()
        self.collections = {name: [] for name in ENTITIES}
        self.dashboard_stats = None
        self.state = StoreState.CLOSED

    async def test_connection(self) -> ConnectionStatus:
        return await self.backend.test_connection()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def refresh_all(self) -> None:
        """
        Reload every collection and the dashboard.

        Always resolves: a failed collection keeps its previous snapshot and
        the others are committed regardless.
        """
        self.state = StoreState.LOADING
        logger.info("Refreshing all collections")

        results = await asyncio.gather(*(self._load(name) for name in FETCH_ORDER))
        for name, records in zip(FETCH_ORDER, results):
            if records is not None:
                self._commit(name, records)

        self.refresh_dashboard()
        self.state = StoreState.READY

        failed = [name for name, records in zip(FETCH_ORDER, results) if records is None]
        if failed:
            logger.warning("Refresh finished with stale collections: %s", ", ".join(failed))
        else:
            logger.info("Refresh finished")

    async def fetch_entity(self, name: str) -> None:
        """
        Refetch one collection by entity name.

        Accepts table names (``bus_lines``) and camelCase keys (``busLines``).
        ``"dashboard"`` recomputes the aggregates; unknown names are ignored.
        """
        if name == DASHBOARD:
            self.refresh_dashboard()
            return

        spec = resolve_entity(name)
        if spec is None:
            logger.warning("Ignoring fetch of unknown entity '%s'", name)
            return

        records = await self._load(spec.name)
        if records is not None:
            self._commit(spec.name, records)

        if spec.feeds_dashboard:
            self.refresh_dashboard()

    def refresh_dashboard(self) -> DashboardStats:
        """Recompute the dashboard aggregates from the current snapshots."""
        self.dashboard_stats = compute_dashboard_stats(
            buses=self.collections.get("buses"),
            trips=self.collections.get("trips"),
            tickets=self.collections.get("tickets"),
            incidents=self.collections.get("incidents"),
            maintenance=self.collections.get("maintenance"),
            today=self._today(),
        )
        return self.dashboard_stats

    async def _load(self, name: str) -> Optional[List[Dict[str, Any]]]:
        """Read and normalize one collection; None means the read failed."""
        spec = ENTITIES[name]
        try:
            result = await self.backend.select(spec.table)
        except Exception:
            logger.exception("Error fetching %s", name)
            return None

        if result.error is not None:
            logger.error("Error fetching %s: %s", name, result.error)
            return None
        if not isinstance(result.data, list):
            logger.error("Error fetching %s: expected a list, got %s",
                         name, type(result.data).__name__)
            return None

        return [normalize_record(raw, spec) for raw in result.data if isinstance(raw, dict)]

    def _commit(self, name: str, records: List[Dict[str, Any]]) -> None:
        spec = ENTITIES[name]
        if not self.backend.embeds_relations:
            records = enrich_records(records, spec, self.collections)
        self.collections[name] = sort_records(records, spec)
        logger.debug("Committed %d %s", len(records), name)
        self._reenrich_downstream(name)

    def _reenrich_downstream(self, name: str) -> None:
        for dependent in DOWNSTREAM[name]:
            current = self.collections[dependent]
            if not current:
                continue
            enriched = enrich_records(current, ENTITIES[dependent], self.collections)
            if enriched != current:
                self.collections[dependent] = enriched
                logger.debug("Re-enriched %s after %s changed", dependent, name)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, name: str, record: Dict[str, Any]) -> Envelope:
        spec = resolve_entity(name)
        if spec is None:
            return self._unknown_entity(name)
        result = await self.backend.insert(spec.table, record)
        return await self._after_write(spec, result, "created")

    async def update(self, name: str, record_id: Any, changes: Dict[str, Any]) -> Envelope:
        spec = resolve_entity(name)
        if spec is None:
            return self._unknown_entity(name)
        result = await self.backend.update(spec.table, record_id, changes)
        return await self._after_write(spec, result, "updated")

    async def delete(self, name: str, record_id: Any) -> Envelope:
        spec = resolve_entity(name)
        if spec is None:
            return self._unknown_entity(name)
        result = await self.backend.delete(spec.table, record_id)
        return await self._after_write(spec, result, "deleted")

    def _unknown_entity(self, name: str) -> Envelope:
        message = f"Unknown entity '{name}'"
        self.notify(message, "error")
        return Envelope(error=message)

    async def _after_write(self, spec: EntitySpec, result: Envelope, verb: str) -> Envelope:
        if result.error is not None:
            self.notify(result.error, "error")
            return result
        self.notify(f"{spec.label} {verb} successfully", "success")
        await self.fetch_entity(spec.name)
        return result


def create_backend(kind: Optional[str] = None):
    """Build the binding named by ``kind`` (defaults to settings.BACKEND)."""
    kind = (kind or settings.BACKEND).lower()
    if kind == "rest":
        from busnet.services.rest_client import RestClient
        return RestClient()
    if kind == "database":
        from busnet.services.database_client import DatabaseClient
        return DatabaseClient()
    raise ValueError(f"Unknown backend '{kind}' (expected 'rest' or 'database')")
