"""
Dashboard aggregates derived from the store's collections.
"""

import math
from datetime import date
from typing import Any, Dict, Iterable, Optional, Sequence

from busnet.schemas import DashboardStats
from busnet.services.dates import is_today

ACTIVE_BUS_STATUSES = frozenset({"available", "in_service"})
OPEN_INCIDENT_STATUSES = frozenset({"open", "investigating"})
PENDING_MAINTENANCE_STATUSES = frozenset({"scheduled"})

Records = Optional[Sequence[Dict[str, Any]]]


def _count_status(records: Iterable[Dict[str, Any]], statuses: frozenset) -> int:
    return sum(1 for record in records if record.get("status") in statuses)


def _to_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def compute_dashboard_stats(
    buses: Records = None,
    trips: Records = None,
    tickets: Records = None,
    incidents: Records = None,
    maintenance: Records = None,
    today: Optional[date] = None
) -> DashboardStats:
    """
    Compute the summary figures.

    A missing collection counts as empty. "Today" is the local calendar
    date unless ``today`` is given.
    """
    buses = buses or []
    trips = trips or []
    tickets = tickets or []
    incidents = incidents or []
    maintenance = maintenance or []
    today = today or date.today()

    tickets_today = [t for t in tickets if is_today(t.get("booking_date"), today)]

    return DashboardStats(
        total_buses=len(buses),
        active_buses=_count_status(buses, ACTIVE_BUS_STATUSES),
        total_trips=len(trips),
        today_trips=sum(1 for t in trips if is_today(t.get("departure_time"), today)),
        total_tickets=len(tickets),
        today_revenue=sum(_to_number(t.get("price")) for t in tickets_today),
        open_incidents=_count_status(incidents, OPEN_INCIDENT_STATUSES),
        maintenance_pending=_count_status(maintenance, PENDING_MAINTENANCE_STATUSES),
    )
