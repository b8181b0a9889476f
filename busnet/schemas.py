"""
Pydantic schemas for request/response validation.

Schema Pattern:
- Base: Shared fields
- Create: Fields required for creation
- Update: Fields for updates (optional)
- Response: Complete object with ID (from_attributes=True for ORM)

Every HTTP response body is an ``Envelope``: ``{"data": ..., "error": ...}``.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Any, Optional
from enum import Enum


# ============================================================================
# Enums
# ============================================================================

class BusLineStatusEnum(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class BusStatusEnum(str, Enum):
    AVAILABLE = "available"
    IN_SERVICE = "in_service"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


class DriverStatusEnum(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"


class TripStatusEnum(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TicketStatusEnum(str, Enum):
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    USED = "used"
    CANCELLED = "cancelled"


class SubscriptionTypeEnum(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionStatusEnum(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class MaintenanceTypeEnum(str, Enum):
    ROUTINE = "routine"
    REPAIR = "repair"
    INSPECTION = "inspection"


class MaintenanceStatusEnum(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class IncidentTypeEnum(str, Enum):
    DELAY = "delay"
    ACCIDENT = "accident"
    BREAKDOWN = "breakdown"
    OTHER = "other"


class IncidentSeverityEnum(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class IncidentStatusEnum(str, Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"


# ============================================================================
# City Schemas
# ============================================================================

class CityBase(BaseModel):
    """Base city schema with shared fields."""
    name: str = Field(..., min_length=1, max_length=200, description="City name")
    country: Optional[str] = Field(None, max_length=100)


class CityCreate(CityBase):
    pass


class CityUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    country: Optional[str] = Field(None, max_length=100)


class CityResponse(CityBase):
    id: int

    model_config = {"from_attributes": True}


# ============================================================================
# Station Schemas
# ============================================================================

class StationBase(BaseModel):
    """Base station schema with shared fields."""
    name: str = Field(..., min_length=1, max_length=200, description="Station name")
    address: Optional[str] = Field(None, max_length=500)
    city_id: Optional[int] = Field(None, gt=0, description="ID of the city")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class StationCreate(StationBase):
    pass


class StationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    address: Optional[str] = Field(None, max_length=500)
    city_id: Optional[int] = Field(None, gt=0)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class StationResponse(StationBase):
    id: int

    model_config = {"from_attributes": True}


# ============================================================================
# Bus Line Schemas
# ============================================================================

class BusLineBase(BaseModel):
    """Base bus line schema with shared fields."""
    code: str = Field(..., min_length=1, max_length=20, description="Unique line code (e.g., L12)")
    name: str = Field(..., min_length=1, max_length=200)
    origin_station_id: Optional[int] = Field(None, gt=0, description="ID of the origin station")
    destination_station_id: Optional[int] = Field(None, gt=0, description="ID of the destination station")
    distance_km: Optional[float] = Field(None, gt=0)
    duration_minutes: Optional[int] = Field(None, gt=0, le=1440)
    status: BusLineStatusEnum = BusLineStatusEnum.ACTIVE

    @field_validator('destination_station_id')
    @classmethod
    def stations_must_differ(cls, v, info):
        """Ensure origin and destination are different."""
        if v is not None and info.data.get('origin_station_id') == v:
            raise ValueError('origin_station_id and destination_station_id must be different')
        return v


class BusLineCreate(BusLineBase):
    pass


class BusLineUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    origin_station_id: Optional[int] = Field(None, gt=0)
    destination_station_id: Optional[int] = Field(None, gt=0)
    distance_km: Optional[float] = Field(None, gt=0)
    duration_minutes: Optional[int] = Field(None, gt=0, le=1440)
    status: Optional[BusLineStatusEnum] = None


class BusLineResponse(BusLineBase):
    id: int

    model_config = {"from_attributes": True}


# ============================================================================
# Bus Schemas
# ============================================================================

class BusBase(BaseModel):
    """Base bus schema with shared fields."""
    plate_number: str = Field(..., min_length=1, max_length=20, description="Registration plate")
    model: Optional[str] = Field(None, max_length=100)
    capacity: int = Field(default=50, ge=1, le=300)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    status: BusStatusEnum = BusStatusEnum.AVAILABLE
    last_maintenance_date: Optional[date] = None

    model_config = {"protected_namespaces": ()}


class BusCreate(BusBase):
    pass


class BusUpdate(BaseModel):
    plate_number: Optional[str] = Field(None, min_length=1, max_length=20)
    model: Optional[str] = Field(None, max_length=100)
    capacity: Optional[int] = Field(None, ge=1, le=300)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    status: Optional[BusStatusEnum] = None
    last_maintenance_date: Optional[date] = None

    model_config = {"protected_namespaces": ()}


class BusResponse(BusBase):
    id: int

    model_config = {"from_attributes": True, "protected_namespaces": ()}


# ============================================================================
# Driver Schemas
# ============================================================================

class DriverBase(BaseModel):
    """Base driver schema with shared fields."""
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    license_number: str = Field(..., min_length=1, max_length=50)
    license_expiry: Optional[date] = None
    status: DriverStatusEnum = DriverStatusEnum.ACTIVE


class DriverCreate(DriverBase):
    pass


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    license_number: Optional[str] = Field(None, min_length=1, max_length=50)
    license_expiry: Optional[date] = None
    status: Optional[DriverStatusEnum] = None


class DriverResponse(DriverBase):
    id: int

    model_config = {"from_attributes": True}


# ============================================================================
# Trip Schemas
# ============================================================================

class TripBase(BaseModel):
    """Base trip schema with shared fields."""
    bus_line_id: Optional[int] = Field(None, gt=0, description="ID of the bus line")
    bus_id: Optional[int] = Field(None, gt=0, description="ID of the bus")
    driver_id: Optional[int] = Field(None, gt=0, description="ID of the driver")
    departure_time: datetime = Field(..., description="Scheduled departure")
    arrival_time: Optional[datetime] = Field(None, description="Scheduled arrival")
    price: Optional[float] = Field(None, ge=0)
    available_seats: Optional[int] = Field(None, ge=0)
    status: TripStatusEnum = TripStatusEnum.SCHEDULED

    @field_validator('arrival_time')
    @classmethod
    def arrival_after_departure(cls, v, info):
        """Ensure arrival time is after departure time."""
        if v is not None and 'departure_time' in info.data and v <= info.data['departure_time']:
            raise ValueError('arrival_time must be after departure_time')
        return v


class TripCreate(TripBase):
    pass


class TripUpdate(BaseModel):
    bus_line_id: Optional[int] = Field(None, gt=0)
    bus_id: Optional[int] = Field(None, gt=0)
    driver_id: Optional[int] = Field(None, gt=0)
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    price: Optional[float] = Field(None, ge=0)
    available_seats: Optional[int] = Field(None, ge=0)
    status: Optional[TripStatusEnum] = None


class TripResponse(TripBase):
    id: int

    model_config = {"from_attributes": True}


# ============================================================================
# Ticket Schemas
# ============================================================================

class TicketBase(BaseModel):
    """Base ticket schema with shared fields."""
    trip_id: Optional[int] = Field(None, gt=0, description="ID of the trip")
    passenger_name: str = Field(..., min_length=1, max_length=200)
    passenger_email: Optional[str] = Field(None, max_length=200)
    passenger_phone: Optional[str] = Field(None, max_length=30)
    seat_number: Optional[int] = Field(None, ge=1)
    price: float = Field(default=0, ge=0)
    status: TicketStatusEnum = TicketStatusEnum.BOOKED


class TicketCreate(TicketBase):
    booking_date: Optional[datetime] = Field(None, description="Defaults to now")


class TicketUpdate(BaseModel):
    trip_id: Optional[int] = Field(None, gt=0)
    passenger_name: Optional[str] = Field(None, min_length=1, max_length=200)
    passenger_email: Optional[str] = Field(None, max_length=200)
    passenger_phone: Optional[str] = Field(None, max_length=30)
    seat_number: Optional[int] = Field(None, ge=1)
    price: Optional[float] = Field(None, ge=0)
    status: Optional[TicketStatusEnum] = None


class TicketResponse(TicketBase):
    id: int
    booking_date: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Subscription Schemas
# ============================================================================

class SubscriptionBase(BaseModel):
    """Base subscription schema with shared fields."""
    user_name: str = Field(..., min_length=1, max_length=200)
    user_email: Optional[str] = Field(None, max_length=200)
    bus_line_id: Optional[int] = Field(None, gt=0, description="ID of the bus line")
    type: SubscriptionTypeEnum = SubscriptionTypeEnum.MONTHLY
    start_date: date
    end_date: Optional[date] = None
    price: Optional[float] = Field(None, ge=0)
    status: SubscriptionStatusEnum = SubscriptionStatusEnum.ACTIVE

    @field_validator('end_date')
    @classmethod
    def end_after_start(cls, v, info):
        """Ensure the subscription does not end before it starts."""
        if v is not None and 'start_date' in info.data and v < info.data['start_date']:
            raise ValueError('end_date must not be before start_date')
        return v


class SubscriptionCreate(SubscriptionBase):
    pass


class SubscriptionUpdate(BaseModel):
    user_name: Optional[str] = Field(None, min_length=1, max_length=200)
    user_email: Optional[str] = Field(None, max_length=200)
    bus_line_id: Optional[int] = Field(None, gt=0)
    type: Optional[SubscriptionTypeEnum] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    price: Optional[float] = Field(None, ge=0)
    status: Optional[SubscriptionStatusEnum] = None


class SubscriptionResponse(SubscriptionBase):
    id: int

    model_config = {"from_attributes": True}


# ============================================================================
# Maintenance Schemas
# ============================================================================

class MaintenanceBase(BaseModel):
    """Base maintenance schema with shared fields."""
    bus_id: Optional[int] = Field(None, gt=0, description="ID of the bus")
    type: MaintenanceTypeEnum = MaintenanceTypeEnum.ROUTINE
    description: Optional[str] = Field(None, max_length=2000)
    scheduled_date: date
    completed_date: Optional[date] = None
    cost: Optional[float] = Field(None, ge=0)
    status: MaintenanceStatusEnum = MaintenanceStatusEnum.SCHEDULED


class MaintenanceCreate(MaintenanceBase):
    pass


class MaintenanceUpdate(BaseModel):
    bus_id: Optional[int] = Field(None, gt=0)
    type: Optional[MaintenanceTypeEnum] = None
    description: Optional[str] = Field(None, max_length=2000)
    scheduled_date: Optional[date] = None
    completed_date: Optional[date] = None
    cost: Optional[float] = Field(None, ge=0)
    status: Optional[MaintenanceStatusEnum] = None


class MaintenanceResponse(MaintenanceBase):
    id: int

    model_config = {"from_attributes": True}


# ============================================================================
# Incident Schemas
# ============================================================================

class IncidentBase(BaseModel):
    """Base incident schema with shared fields."""
    trip_id: Optional[int] = Field(None, gt=0, description="Optional ID of the trip")
    bus_id: Optional[int] = Field(None, gt=0, description="ID of the bus")
    driver_id: Optional[int] = Field(None, gt=0, description="Optional ID of the driver")
    type: IncidentTypeEnum = IncidentTypeEnum.DELAY
    severity: IncidentSeverityEnum = IncidentSeverityEnum.LOW
    description: Optional[str] = Field(None, max_length=2000)
    incident_date: datetime
    resolved_date: Optional[datetime] = None
    status: IncidentStatusEnum = IncidentStatusEnum.OPEN


class IncidentCreate(IncidentBase):
    pass


class IncidentUpdate(BaseModel):
    trip_id: Optional[int] = Field(None, gt=0)
    bus_id: Optional[int] = Field(None, gt=0)
    driver_id: Optional[int] = Field(None, gt=0)
    type: Optional[IncidentTypeEnum] = None
    severity: Optional[IncidentSeverityEnum] = None
    description: Optional[str] = Field(None, max_length=2000)
    incident_date: Optional[datetime] = None
    resolved_date: Optional[datetime] = None
    status: Optional[IncidentStatusEnum] = None


class IncidentResponse(IncidentBase):
    id: int

    model_config = {"from_attributes": True}


# ============================================================================
# Envelope and Dashboard Schemas
# ============================================================================

class Envelope(BaseModel):
    """
    Uniform response wrapper.

    Exactly one of ``data`` / ``error`` is meaningful: a successful delete
    carries neither.
    """
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class HealthCheckResponse(BaseModel):
    """Health check payload (carried in ``Envelope.data``)."""
    status: str


class ConnectionStatus(BaseModel):
    """Result of a backend connectivity check."""
    success: bool
    error: Optional[str] = None


class DashboardStats(BaseModel):
    """Aggregates shown on the dashboard summary."""
    total_buses: int = 0
    active_buses: int = 0
    total_trips: int = 0
    today_trips: int = 0
    total_tickets: int = 0
    today_revenue: float = 0
    open_incidents: int = 0
    maintenance_pending: int = 0
