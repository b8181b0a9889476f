"""
Registry of the REST resources: one entry per table, tying together the ORM
model, its pydantic schemas and the foreign keys to check on writes.

Used by the API routers and by the direct database binding.
"""

from dataclasses import dataclass, field
from typing import Dict, Type

from pydantic import BaseModel

from busnet import models, schemas
from busnet.db import Base


@dataclass(frozen=True)
class Resource:
    table: str
    label: str
    model: Type[Base]
    create: Type[BaseModel]
    update: Type[BaseModel]
    response: Type[BaseModel]
    # foreign key column -> referenced model
    references: Dict[str, Type[Base]] = field(default_factory=dict)

    def serialize(self, obj) -> dict:
        """ORM row -> JSON-compatible dict (dates as ISO strings)."""
        return self.response.model_validate(obj).model_dump(mode="json")


RESOURCES: Dict[str, Resource] = {
    resource.table: resource
    for resource in (
        Resource("cities", "City", models.City,
                 schemas.CityCreate, schemas.CityUpdate, schemas.CityResponse),
        Resource("stations", "Station", models.Station,
                 schemas.StationCreate, schemas.StationUpdate, schemas.StationResponse,
                 references={"city_id": models.City}),
        Resource("bus_lines", "Bus line", models.BusLine,
                 schemas.BusLineCreate, schemas.BusLineUpdate, schemas.BusLineResponse,
                 references={"origin_station_id": models.Station,
                             "destination_station_id": models.Station}),
        Resource("buses", "Bus", models.Bus,
                 schemas.BusCreate, schemas.BusUpdate, schemas.BusResponse),
        Resource("drivers", "Driver", models.Driver,
                 schemas.DriverCreate, schemas.DriverUpdate, schemas.DriverResponse),
        Resource("trips", "Trip", models.Trip,
                 schemas.TripCreate, schemas.TripUpdate, schemas.TripResponse,
                 references={"bus_line_id": models.BusLine,
                             "bus_id": models.Bus,
                             "driver_id": models.Driver}),
        Resource("tickets", "Ticket", models.Ticket,
                 schemas.TicketCreate, schemas.TicketUpdate, schemas.TicketResponse,
                 references={"trip_id": models.Trip}),
        Resource("subscriptions", "Subscription", models.Subscription,
                 schemas.SubscriptionCreate, schemas.SubscriptionUpdate,
                 schemas.SubscriptionResponse,
                 references={"bus_line_id": models.BusLine}),
        Resource("maintenance", "Maintenance", models.Maintenance,
                 schemas.MaintenanceCreate, schemas.MaintenanceUpdate,
                 schemas.MaintenanceResponse,
                 references={"bus_id": models.Bus}),
        Resource("incidents", "Incident", models.Incident,
                 schemas.IncidentCreate, schemas.IncidentUpdate, schemas.IncidentResponse,
                 references={"trip_id": models.Trip,
                             "bus_id": models.Bus,
                             "driver_id": models.Driver}),
    )
}
