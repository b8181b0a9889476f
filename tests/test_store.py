"""
Tests for the client-side data store.

The store runs over an in-memory fake binding so each test controls exactly
what every table returns, and which reads fail.
"""

import asyncio
from datetime import date

import httpx
import pytest

from busnet.main import app
from busnet.schemas import ConnectionStatus, Envelope
from busnet.services.rest_client import RestClient
from busnet.services.store import DataStore, StoreState, create_backend

TODAY = date(2024, 3, 15)


class FakeBackend:
    """In-memory binding with per-table failure injection."""

    embeds_relations = False

    def __init__(self, tables=None, raising=(), errors=None):
        self.tables = {name: [dict(row) for row in rows] for name, rows in (tables or {}).items()}
        self.raising = set(raising)
        self.errors = dict(errors or {})
        self.selects = []
        self.closed = False
        self._next_id = 1000

    async def select(self, table, filter=None):
        self.selects.append(table)
        await asyncio.sleep(0)
        if table in self.raising:
            raise ConnectionError(f"{table} unreachable")
        if table in self.errors:
            return Envelope(error=self.errors[table])
        return Envelope(data=[dict(row) for row in self.tables.get(table, [])])

    async def insert(self, table, record):
        if table in self.errors:
            return Envelope(error=self.errors[table])
        self._next_id += 1
        row = {"id": self._next_id, **record}
        self.tables.setdefault(table, []).append(row)
        return Envelope(data=row)

    async def update(self, table, record_id, changes):
        for row in self.tables.get(table, []):
            if row["id"] == record_id:
                row.update(changes)
                return Envelope(data=dict(row))
        return Envelope(error=f"{table} {record_id} not found")

    async def delete(self, table, record_id):
        rows = self.tables.get(table, [])
        self.tables[table] = [row for row in rows if row["id"] != record_id]
        return Envelope()

    async def test_connection(self):
        return ConnectionStatus(success=True)

    async def aclose(self):
        self.closed = True


def network():
    """A small consistent network."""
    return {
        "cities": [{"id": 1, "name": "Acme"}, {"id": 2, "name": "Bolton"}],
        "stations": [
            {"id": 10, "name": "North", "city_id": 1},
            {"id": 11, "name": "South", "city_id": 2},
            {"id": 12, "name": "Ghost", "city_id": 99},
        ],
        "bus_lines": [{"id": 20, "name": "L1", "origin_station_id": 10, "destination_station_id": 11}],
        "buses": [
            {"id": 30, "plate_number": "AB-1", "status": "available"},
            {"id": 31, "plate_number": "AB-2", "status": "retired"},
        ],
        "drivers": [{"id": 40, "name": "Alice"}],
        "trips": [
            {"id": 50, "bus_line_id": 20, "bus_id": 30, "driver_id": 40,
             "departure_time": "2024-03-15T08:00:00"},
            {"id": 51, "bus_line_id": 20, "bus_id": 31, "driver_id": None,
             "departure_time": "2024-03-10T08:00:00"},
        ],
        "tickets": [
            {"id": 60, "trip_id": 50, "price": 10, "booking_date": "2024-03-15T07:00:00"},
            {"id": 61, "trip_id": 51, "price": 5, "booking_date": "14/03/2024"},
        ],
        "subscriptions": [{"id": 70, "bus_line_id": 20, "start_date": "2024-03-01"}],
        "maintenance": [{"id": 80, "bus_id": 31, "status": "scheduled", "scheduled_date": "2024-03-20"}],
        "incidents": [
            {"id": 90, "trip_id": None, "bus_id": 30, "driver_id": None,
             "status": "open", "incident_date": "2024-03-12T10:00:00"},
            {"id": 91, "trip_id": 50, "bus_id": 30, "driver_id": 40,
             "status": "resolved", "incident_date": "2024-03-13T10:00:00"},
        ],
    }


def make_store(backend, notifications=None):
    notifier = None
    if notifications is not None:
        notifier = lambda message, level: notifications.append((level, message))
    return DataStore(backend, notifier=notifier, today=lambda: TODAY)


def by_id(records):
    return {record["id"]: record for record in records}


def test_initial_state():
    """Test a new store is empty and uninitialized."""
    store = make_store(FakeBackend())
    assert store.state == StoreState.UNINITIALIZED
    assert store["stations"] == []
    assert store.dashboard_stats is None


def test_refresh_all_enriches_every_relation():
    """Test every foreign key resolves to the exact referenced record, or None."""
    store = make_store(FakeBackend(network()))
    asyncio.run(store.refresh_all())

    assert store.state == StoreState.READY
    cities = by_id(store["cities"])
    stations = by_id(store["stations"])
    lines = by_id(store["bus_lines"])
    buses = by_id(store["buses"])
    drivers = by_id(store["drivers"])
    trips = by_id(store["trips"])

    assert stations[10]["city"] == cities[1]
    assert stations[12]["city"] is None
    assert lines[20]["origin_station"] == stations[10]
    assert lines[20]["destination_station"] == stations[11]
    assert trips[50]["bus_line"] == lines[20]
    assert trips[51]["driver"] is None
    assert by_id(store["tickets"])[60]["trip"]["bus_line"]["name"] == "L1"
    assert by_id(store["subscriptions"])[70]["bus_line"] == lines[20]
    assert by_id(store["maintenance"])[80]["bus"] == buses[31]

    incidents = by_id(store["incidents"])
    assert incidents[90]["trip"] is None
    assert incidents[90]["driver"] is None
    assert incidents[91]["trip"] == trips[50]
    assert incidents[91]["driver"] == drivers[40]


def test_refresh_all_sorts_collections():
    """Test name ordering and most-recent-first ordering."""
    store = make_store(FakeBackend(network()))
    asyncio.run(store.refresh_all())

    assert [s["name"] for s in store["stations"]] == ["Ghost", "North", "South"]
    assert [t["id"] for t in store["trips"]] == [50, 51]
    assert [i["id"] for i in store["incidents"]] == [91, 90]


def test_refresh_all_computes_dashboard():
    """Test dashboard aggregates after a full refresh."""
    store = make_store(FakeBackend(network()))
    asyncio.run(store.refresh_all())

    stats = store.dashboard_stats
    assert stats.total_buses == 2
    assert stats.active_buses == 1
    assert stats.total_trips == 2
    assert stats.today_trips == 1
    assert stats.total_tickets == 2
    assert stats.today_revenue == 10
    assert stats.open_incidents == 1
    assert stats.maintenance_pending == 1


def test_refresh_all_reads_every_table_once():
    """Test that a refresh issues one read per collection."""
    backend = FakeBackend(network())
    asyncio.run(make_store(backend).refresh_all())

    assert sorted(backend.selects) == sorted(network())


def test_partial_failure_keeps_previous_value():
    """Test a failing drivers read does not stop buses from loading."""
    backend = FakeBackend(network(), raising={"drivers"})
    store = make_store(backend)

    asyncio.run(store.refresh_all())

    assert store.state == StoreState.READY
    assert len(store["buses"]) == 2
    assert store["drivers"] == []
    assert by_id(store["trips"])[50]["driver"] is None


def test_failure_after_success_keeps_stale_snapshot():
    """Test an error envelope leaves the last good collection in place."""
    backend = FakeBackend(network())
    store = make_store(backend)
    asyncio.run(store.refresh_all())
    before = store["drivers"]

    backend.errors["drivers"] = "Service unavailable"
    backend.tables["drivers"] = []
    asyncio.run(store.refresh_all())

    assert store["drivers"] is before


def test_non_list_payload_is_a_failure():
    """Test a malformed payload is ignored."""
    backend = FakeBackend(network())
    store = make_store(backend)

    async def scenario():
        await store.fetch_entity("cities")

        async def broken_select(table, filter=None):
            return Envelope(data={"oops": True})
        backend.select = broken_select
        await store.fetch_entity("cities")

    asyncio.run(scenario())
    assert [c["name"] for c in store["cities"]] == ["Acme", "Bolton"]


def test_late_cities_fix_stations():
    """Test stations loaded before cities pick up their city when cities land."""
    backend = FakeBackend({
        "cities": [{"id": 1, "name": "Acme"}],
        "stations": [{"id": 10, "name": "Central", "city_id": 1}],
    })
    store = make_store(backend)

    async def scenario():
        await store.fetch_entity("stations")
        assert store["stations"][0]["city"] is None
        await store.fetch_entity("cities")

    asyncio.run(scenario())
    assert store["stations"][0]["city"] == {"id": 1, "name": "Acme"}


def test_upstream_change_propagates_transitively():
    """Test a renamed city reaches the tickets through stations, lines and trips."""
    backend = FakeBackend(network())
    store = make_store(backend)
    asyncio.run(store.refresh_all())

    backend.tables["cities"][0]["name"] = "Acme City"
    asyncio.run(store.fetch_entity("cities"))

    ticket = by_id(store["tickets"])[60]
    assert ticket["trip"]["bus_line"]["origin_station"]["city"]["name"] == "Acme City"


def test_unchanged_upstream_does_not_rewrite_dependents():
    """Test re-enrichment with identical data writes nothing back."""
    backend = FakeBackend(network())
    store = make_store(backend)
    asyncio.run(store.refresh_all())
    stations_before = store["stations"]
    tickets_before = store["tickets"]

    asyncio.run(store.fetch_entity("cities"))

    assert store["stations"] is stations_before
    assert store["tickets"] is tickets_before


def test_fetch_unknown_entity_is_a_noop():
    """Test that unknown names are ignored."""
    backend = FakeBackend(network())
    store = make_store(backend)

    asyncio.run(store.fetch_entity("spaceships"))

    assert backend.selects == []
    assert store.state == StoreState.UNINITIALIZED


def test_fetch_accepts_camel_case_keys():
    """Test busLines refetches the bus_lines collection."""
    backend = FakeBackend(network())
    store = make_store(backend)

    async def scenario():
        await store.fetch_entity("stations")
        await store.fetch_entity("busLines")

    asyncio.run(scenario())

    assert backend.selects == ["stations", "bus_lines"]
    assert store["bus_lines"][0]["origin_station"]["name"] == "North"


def test_fetch_tickets_refreshes_dashboard():
    """Test that ticket fetches update revenue."""
    backend = FakeBackend(network())
    store = make_store(backend)

    asyncio.run(store.fetch_entity("tickets"))

    assert backend.selects == ["tickets"]
    assert store.dashboard_stats.today_revenue == 10
    assert store.dashboard_stats.total_tickets == 2


def test_fetch_dashboard_recomputes_without_reading():
    """Test the dashboard pseudo-entity."""
    backend = FakeBackend(network())
    store = make_store(backend)

    asyncio.run(store.fetch_entity("dashboard"))

    assert backend.selects == []
    assert store.dashboard_stats.total_buses == 0


def test_fetch_without_dashboard_input_leaves_stats_alone():
    """Test that a city fetch does not touch the dashboard."""
    store = make_store(FakeBackend(network()))
    asyncio.run(store.fetch_entity("cities"))
    assert store.dashboard_stats is None


def test_normalizes_backend_spellings():
    """Test upper-case keys and id aliases from the backend."""
    backend = FakeBackend({
        "cities": [{"ID_CITY": 1, "NAME": "Acme"}],
        "stations": [{"ID_STATION": 10, "NAME": "Central", "CITY_ID": 1}],
    })
    store = make_store(backend)
    asyncio.run(store.refresh_all())

    station = store["stations"][0]
    assert station["id"] == 10
    assert station["city"]["name"] == "Acme"


def test_create_notifies_and_refetches():
    """Test a successful create notifies and reloads the collection."""
    notifications = []
    backend = FakeBackend(network())
    store = make_store(backend, notifications)

    result = asyncio.run(store.create("cities", {"name": "Camden"}))

    assert result.error is None
    assert notifications == [("success", "City created successfully")]
    assert "Camden" in [c["name"] for c in store["cities"]]


def test_update_and_delete():
    """Test update and delete go through the backend and refetch."""
    notifications = []
    backend = FakeBackend(network())
    store = make_store(backend, notifications)

    async def scenario():
        await store.refresh_all()
        await store.update("buses", 31, {"status": "available"})
        await store.delete("incidents", 90)

    asyncio.run(scenario())

    assert notifications == [
        ("success", "Bus updated successfully"),
        ("success", "Incident deleted successfully"),
    ]
    assert store.dashboard_stats.active_buses == 2
    assert store.dashboard_stats.open_incidents == 0
    assert [i["id"] for i in store["incidents"]] == [91]


def test_failed_write_notifies_error_without_refetch():
    """Test a backend error goes to the notifier and nothing is reloaded."""
    notifications = []
    backend = FakeBackend(network(), errors={"buses": "Bus with plate AB-1 already exists"})
    store = make_store(backend, notifications)

    result = asyncio.run(store.create("buses", {"plate_number": "AB-1"}))

    assert result.error == "Bus with plate AB-1 already exists"
    assert notifications == [("error", "Bus with plate AB-1 already exists")]
    assert backend.selects == []


def test_write_to_unknown_entity():
    """Test writes to unknown entities report an error."""
    notifications = []
    store = make_store(FakeBackend(), notifications)

    result = asyncio.run(store.delete("spaceships", 1))

    assert result.error == "Unknown entity 'spaceships'"
    assert notifications == [("error", "Unknown entity 'spaceships'")]


def test_context_manager_lifecycle():
    """Test start on enter and teardown on exit."""
    backend = FakeBackend(network())
    store = make_store(backend)

    async def scenario():
        async with store:
            assert store.state == StoreState.READY
            assert len(store["cities"]) == 2

    asyncio.run(scenario())

    assert store.state == StoreState.CLOSED
    assert backend.closed
    assert store["cities"] == []


def test_loading_flag_during_refresh():
    """Test the store reports loading while reads are in flight."""
    backend = FakeBackend(network())
    store = make_store(backend)
    observed = []
    original_select = backend.select

    async def spying_select(table, filter=None):
        observed.append(store.loading)
        return await original_select(table, filter)

    backend.select = spying_select
    asyncio.run(store.refresh_all())

    assert observed and all(observed)
    assert not store.loading


def test_store_over_rest_client():
    """Test the store end to end over HTTP against the real API."""
    async def scenario():
        transport = httpx.ASGITransport(app=app)
        api = RestClient(base_url="http://testserver/api", transport=transport)
        async with DataStore(api, today=lambda: TODAY) as store:
            city = await store.create("cities", {"name": "Acme"})
            await store.create("stations", {"name": "Central", "city_id": city.data["id"]})
            bus = await store.create("buses", {"plate_number": "AB-1", "status": "in_service"})
            await store.create("maintenance", {"bus_id": bus.data["id"], "scheduled_date": "2024-03-20"})
            return store["stations"], store["maintenance"], store.dashboard_stats

    stations, maintenance, stats = asyncio.run(scenario())

    assert stations[0]["city"]["name"] == "Acme"
    assert maintenance[0]["bus"]["plate_number"] == "AB-1"
    assert stats.active_buses == 1
    assert stats.maintenance_pending == 1


def test_write_with_structured_error_notifies():
    """Test a write whose backend error is an object still resolves."""
    def handler(request):
        return httpx.Response(500, json={"data": None, "error": {"message": "db down"}})

    notifications = []

    async def scenario():
        api = RestClient(base_url="http://backend.test/api", transport=httpx.MockTransport(handler))
        store = make_store(api, notifications)
        try:
            return await store.create("cities", {"name": "Acme"})
        finally:
            await api.aclose()

    result = asyncio.run(scenario())

    assert result == Envelope(data=None, error="db down")
    assert notifications == [("error", "db down")]


def test_create_backend():
    """Test binding selection by name."""
    rest = create_backend("rest")
    database = create_backend("database")
    try:
        assert isinstance(rest, RestClient)
        assert database.embeds_relations
    finally:
        asyncio.run(rest.aclose())

    with pytest.raises(ValueError):
        create_backend("carrier-pigeon")
