from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.models.tow_request import TowStatus, VehicleSize, WreckerType


class TowRequestCreate(BaseModel):
    customer_id: Optional[str] = None  # defaults to the caller
    pickup_location: str = Field(min_length=1, max_length=500)
    dropoff_location: str = Field(min_length=1, max_length=500)
    vehicle_id: Optional[str] = None
    problem_description: Optional[str] = None

    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_year: Optional[int] = Field(default=None, ge=1900, le=2100)
    vehicle_color: Optional[str] = None
    license_plate: Optional[str] = None
    vehicle_size: VehicleSize = VehicleSize.MEDIUM

    pickup_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    pickup_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    dropoff_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    dropoff_longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    urgency: str = "normal"
    service_type: str = "tow"
    special_instructions: Optional[str] = None
    pricing_zone_id: Optional[str] = None
    estimated_distance: Optional[Decimal] = Field(default=None, ge=0)


class TowRequestAssign(BaseModel):
    driver_id: Optional[str] = None
    truck_id: Optional[str] = None
    third_party_wrecker_id: Optional[str] = None
    wrecker_type: Optional[WreckerType] = None
    estimated_arrival: Optional[datetime] = None


class TowRequestStatusUpdate(BaseModel):
    status: TowStatus
    estimated_arrival: Optional[datetime] = None
    notes: Optional[str] = None


class TowRequestComplete(BaseModel):
    actual_distance: Optional[Decimal] = Field(default=None, ge=0)
    total_price: Optional[Decimal] = Field(default=None, ge=0)
    create_job_card: bool = False


class TowRequestOut(BaseModel):
    id: str
    request_number: str
    customer_id: str
    vehicle_id: Optional[str]
    status: TowStatus
    wrecker_type: Optional[WreckerType]
    assigned_driver_id: Optional[str]
    assigned_truck_id: Optional[str]
    third_party_wrecker_id: Optional[str]
    pickup_location: str
    dropoff_location: str
    problem_description: Optional[str]
    urgency: str
    service_type: str
    vehicle_size: VehicleSize
    notes: Optional[str]
    requested_at: datetime
    dispatched_at: Optional[datetime]
    arrived_at: Optional[datetime]
    completed_at: Optional[datetime]
    estimated_arrival: Optional[datetime]
    estimated_distance: Optional[Decimal]
    actual_distance: Optional[Decimal]
    total_price: Optional[Decimal]
    job_card_id: Optional[str]

    class Config:
        from_attributes = True


class TowRequestEventOut(BaseModel):
    id: str
    tow_request_id: str
    actor_user_id: Optional[str]
    event_type: str
    message: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class LocationPingCreate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    timestamp: Optional[datetime] = None
    speed: Optional[float] = Field(default=None, ge=0)
    heading: Optional[float] = Field(default=None, ge=0, le=360)
    accuracy: Optional[float] = Field(default=None, ge=0)


class LocationPingOut(BaseModel):
    id: str
    tow_request_id: str
    driver_id: str
    latitude: float
    longitude: float
    speed: Optional[float]
    heading: Optional[float]
    accuracy: Optional[float]
    timestamp: datetime

    class Config:
        from_attributes = True
