from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.models.tow_request import VehicleSize


class PricingZoneCreate(BaseModel):
    zone_name: str = Field(min_length=1, max_length=100)
    zone_code: str = Field(min_length=1, max_length=32)
    description: Optional[str] = None
    base_rate: Decimal = Field(ge=0)
    per_mile_rate: Decimal = Field(ge=0)
    after_hours_surcharge: Decimal = Field(default=Decimal("0"), ge=0)
    weekend_surcharge: Decimal = Field(default=Decimal("0"), ge=0)
    vehicle_size_multipliers: Optional[dict[str, float]] = None
    is_active: bool = True


class PricingZoneUpdate(BaseModel):
    zone_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    zone_code: Optional[str] = Field(default=None, min_length=1, max_length=32)
    description: Optional[str] = None
    base_rate: Optional[Decimal] = Field(default=None, ge=0)
    per_mile_rate: Optional[Decimal] = Field(default=None, ge=0)
    after_hours_surcharge: Optional[Decimal] = Field(default=None, ge=0)
    weekend_surcharge: Optional[Decimal] = Field(default=None, ge=0)
    vehicle_size_multipliers: Optional[dict[str, float]] = None
    is_active: Optional[bool] = None


class PricingZoneOut(BaseModel):
    id: str
    zone_name: str
    zone_code: str
    description: Optional[str]
    base_rate: Decimal
    per_mile_rate: Decimal
    after_hours_surcharge: Decimal
    weekend_surcharge: Decimal
    vehicle_size_multipliers: dict[str, float]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class QuoteRequest(BaseModel):
    distance: Decimal = Field(ge=0)
    vehicle_size: VehicleSize = VehicleSize.MEDIUM
    at: Optional[datetime] = None


class QuoteOut(BaseModel):
    zone_id: str
    zone_code: str
    distance: Decimal
    vehicle_size: str
    base_price: Decimal
    distance_charge: Decimal
    size_multiplier: Decimal
    surcharges: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True
