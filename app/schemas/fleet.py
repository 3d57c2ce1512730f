from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


# -------- Tow trucks --------
class TowTruckCreate(BaseModel):
    truck_number: str = Field(min_length=1, max_length=32)
    license_plate: str = Field(min_length=2, max_length=32)
    make: str
    model: str
    year: int = Field(ge=1950, le=2100)
    vin: Optional[str] = None
    capacity: int = Field(default=5000, gt=0)
    tow_type: str = "flatbed"
    equipment: list[str] = Field(default_factory=list)
    is_available: bool = True
    notes: Optional[str] = None


class TowTruckUpdate(BaseModel):
    truck_number: Optional[str] = Field(default=None, min_length=1, max_length=32)
    license_plate: Optional[str] = Field(default=None, min_length=2, max_length=32)
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1950, le=2100)
    vin: Optional[str] = None
    capacity: Optional[int] = Field(default=None, gt=0)
    tow_type: Optional[str] = None
    equipment: Optional[list[str]] = None
    is_available: Optional[bool] = None
    current_location: Optional[str] = None
    odometer: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class TowTruckOut(BaseModel):
    id: str
    truck_number: str
    license_plate: str
    make: str
    model: str
    year: int
    vin: Optional[str]
    capacity: int
    tow_type: str
    equipment: list[str]
    is_available: bool
    is_active: bool
    current_location: Optional[str]
    odometer: int
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


# -------- Wrecker drivers --------
class WreckerDriverCreate(BaseModel):
    user_id: str
    license_number: str = Field(min_length=1, max_length=64)
    license_expiry: Optional[datetime] = None
    license_verified: bool = False
    assigned_truck_id: Optional[str] = None
    is_available: bool = True
    is_active: bool = True
    phone: str = Field(min_length=6, max_length=32)
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    certifications: list[str] = Field(default_factory=list)
    hire_date: Optional[datetime] = None


class WreckerDriverUpdate(BaseModel):
    license_number: Optional[str] = Field(default=None, min_length=1, max_length=64)
    license_expiry: Optional[datetime] = None
    license_verified: Optional[bool] = None
    assigned_truck_id: Optional[str] = None
    is_available: Optional[bool] = None
    is_active: Optional[bool] = None
    phone: Optional[str] = Field(default=None, min_length=6, max_length=32)
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    certifications: Optional[list[str]] = None


class WreckerDriverOut(BaseModel):
    id: str
    user_id: str
    license_number: str
    license_expiry: Optional[datetime]
    license_verified: bool
    assigned_truck_id: Optional[str]
    is_available: bool
    is_active: bool
    current_location: Optional[str]
    location_updated_at: Optional[datetime]
    phone: str
    certifications: list[str]
    created_at: datetime

    class Config:
        from_attributes = True


# -------- Third-party wreckers --------
class ThirdPartyWreckerCreate(BaseModel):
    company_name: str = Field(min_length=1, max_length=200)
    contact_name: str = Field(min_length=1, max_length=200)
    phone: str = Field(min_length=6, max_length=32)
    email: Optional[str] = None
    address: Optional[str] = None
    service_area: str
    base_rate: Decimal = Field(ge=0)
    per_mile_rate: Decimal = Field(ge=0)
    is_preferred: bool = False
    is_active: bool = True
    notes: Optional[str] = None


class ThirdPartyWreckerUpdate(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    contact_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone: Optional[str] = Field(default=None, min_length=6, max_length=32)
    email: Optional[str] = None
    address: Optional[str] = None
    service_area: Optional[str] = None
    base_rate: Optional[Decimal] = Field(default=None, ge=0)
    per_mile_rate: Optional[Decimal] = Field(default=None, ge=0)
    is_preferred: Optional[bool] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = None


class ThirdPartyWreckerOut(BaseModel):
    id: str
    company_name: str
    contact_name: str
    phone: str
    email: Optional[str]
    service_area: str
    base_rate: Decimal
    per_mile_rate: Decimal
    is_preferred: bool
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
