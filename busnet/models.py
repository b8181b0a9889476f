"""
SQLAlchemy ORM models for the bus network back office.

Domain Model:
- City: Municipality served by the network
- Station: Bus stop located in a city
- BusLine: Route between an origin and a destination station
- Bus: Vehicle of the fleet
- Driver: Staff member allowed to drive buses
- Trip: One scheduled run of a bus on a line, with a driver
- Ticket: Single-trip booking by a passenger
- Subscription: Pass for a bus line over a period
- Maintenance: Planned or completed work on a bus
- Incident: Delay, accident or breakdown reported on a bus (and trip)
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from busnet.db import Base


class City(Base):
    """
    Represents a city of the network.

    Attributes:
        id: Primary key
        name: City name (must be unique)
        country: Country the city belongs to
    """
    __tablename__ = "cities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)
    country = Column(String, nullable=True)

    stations = relationship("Station", back_populates="city")

    def __repr__(self):
        return f"<City(id={self.id}, name='{self.name}')>"


class Station(Base):
    """
    Represents a bus station.

    Attributes:
        id: Primary key
        name: Station name
        address: Street address
        city_id: Foreign key to the city
        latitude, longitude: Optional coordinates
    """
    __tablename__ = "stations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    address = Column(String, nullable=True)
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=True, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    city = relationship("City", back_populates="stations")

    def __repr__(self):
        return f"<Station(id={self.id}, name='{self.name}', city_id={self.city_id})>"


class BusLine(Base):
    """
    Represents a bus line between two stations.

    Attributes:
        id: Primary key
        code: Unique line code (e.g., "L12")
        name: Display name
        origin_station_id: Foreign key to the first station
        destination_station_id: Foreign key to the last station
        distance_km: Line length
        duration_minutes: Expected end-to-end travel time
        status: active, inactive or maintenance
    """
    __tablename__ = "bus_lines"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    origin_station_id = Column(Integer, ForeignKey("stations.id"), nullable=True)
    destination_station_id = Column(Integer, ForeignKey("stations.id"), nullable=True)
    distance_km = Column(Float, nullable=True)
    duration_minutes = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="active", index=True)

    origin_station = relationship("Station", foreign_keys=[origin_station_id])
    destination_station = relationship("Station", foreign_keys=[destination_station_id])

    def __repr__(self):
        return f"<BusLine(id={self.id}, code='{self.code}', {self.origin_station_id}→{self.destination_station_id})>"


class Bus(Base):
    """
    Represents a bus of the fleet.

    Attributes:
        id: Primary key
        plate_number: Unique registration plate
        model: Manufacturer model
        capacity: Number of seats
        year: Year of manufacture
        status: available, in_service, maintenance or retired
        last_maintenance_date: Date of the last completed maintenance
    """
    __tablename__ = "buses"

    id = Column(Integer, primary_key=True, index=True)
    plate_number = Column(String, unique=True, nullable=False, index=True)
    model = Column(String, nullable=True)
    capacity = Column(Integer, nullable=False, default=50)
    year = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="available", index=True)
    last_maintenance_date = Column(Date, nullable=True)

    def __repr__(self):
        return f"<Bus(id={self.id}, plate='{self.plate_number}', status={self.status})>"


class Driver(Base):
    """Represents a bus driver."""
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    license_number = Column(String, unique=True, nullable=False)
    license_expiry = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default="active")

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.name}')>"


class Trip(Base):
    """
    Represents a scheduled run of a bus on a line.

    Attributes:
        id: Primary key
        bus_line_id: Foreign key to the line
        bus_id: Foreign key to the bus
        driver_id: Foreign key to the driver
        departure_time: Scheduled departure
        arrival_time: Scheduled arrival
        price: Ticket price for this trip
        available_seats: Seats left for booking
        status: scheduled, in_progress, completed or cancelled
    """
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    bus_line_id = Column(Integer, ForeignKey("bus_lines.id"), nullable=True, index=True)
    bus_id = Column(Integer, ForeignKey("buses.id"), nullable=True, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True, index=True)
    departure_time = Column(DateTime, nullable=False, index=True)
    arrival_time = Column(DateTime, nullable=True)
    price = Column(Float, nullable=True)
    available_seats = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="scheduled", index=True)

    bus_line = relationship("BusLine")
    bus = relationship("Bus")
    driver = relationship("Driver")

    def __repr__(self):
        return f"<Trip(id={self.id}, line={self.bus_line_id}, bus={self.bus_id}, departs={self.departure_time})>"


class Ticket(Base):
    """Represents a passenger booking on a trip."""
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True, index=True)
    passenger_name = Column(String, nullable=False)
    passenger_email = Column(String, nullable=True)
    passenger_phone = Column(String, nullable=True)
    seat_number = Column(Integer, nullable=True)
    price = Column(Float, nullable=False, default=0)
    booking_date = Column(DateTime, nullable=False, default=datetime.now, index=True)
    status = Column(String(20), nullable=False, default="booked")

    trip = relationship("Trip")

    def __repr__(self):
        return f"<Ticket(id={self.id}, trip={self.trip_id}, passenger='{self.passenger_name}')>"


class Subscription(Base):
    """Represents a pass on a bus line."""
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_name = Column(String, nullable=False)
    user_email = Column(String, nullable=True)
    bus_line_id = Column(Integer, ForeignKey("bus_lines.id"), nullable=True, index=True)
    type = Column(String(20), nullable=False, default="monthly")
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    price = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default="active")

    bus_line = relationship("BusLine")

    def __repr__(self):
        return f"<Subscription(id={self.id}, user='{self.user_name}', line={self.bus_line_id})>"


class Maintenance(Base):
    """Represents a maintenance operation on a bus."""
    __tablename__ = "maintenance"

    id = Column(Integer, primary_key=True, index=True)
    bus_id = Column(Integer, ForeignKey("buses.id"), nullable=True, index=True)
    type = Column(String(20), nullable=False, default="routine")
    description = Column(Text, nullable=True)
    scheduled_date = Column(Date, nullable=False, index=True)
    completed_date = Column(Date, nullable=True)
    cost = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default="scheduled", index=True)

    bus = relationship("Bus")

    def __repr__(self):
        return f"<Maintenance(id={self.id}, bus={self.bus_id}, {self.type}, {self.status})>"


class Incident(Base):
    """
    Represents an incident reported on a bus.

    The trip and driver are optional: a breakdown in the depot has neither.
    """
    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True)
    bus_id = Column(Integer, ForeignKey("buses.id"), nullable=True, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    type = Column(String(20), nullable=False, default="delay")
    severity = Column(String(20), nullable=False, default="low")
    description = Column(Text, nullable=True)
    incident_date = Column(DateTime, nullable=False, index=True)
    resolved_date = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default="open", index=True)

    trip = relationship("Trip")
    bus = relationship("Bus")
    driver = relationship("Driver")

    def __repr__(self):
        return f"<Incident(id={self.id}, bus={self.bus_id}, {self.severity}, {self.status})>"
