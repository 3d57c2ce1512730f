from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.sql import func

from app.core.db import Base


class TowTruck(Base):
    __tablename__ = "tow_trucks"

    id = Column(String, primary_key=True)  # uuid

    truck_number = Column(String, unique=True, nullable=False)  # e.g. TOW-01
    license_plate = Column(String, unique=True, nullable=False)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    vin = Column(String, unique=True, nullable=True)

    capacity = Column(Integer, default=5000, nullable=False)  # lbs
    tow_type = Column(String, default="flatbed", nullable=False)  # flatbed, wheel_lift, integrated
    equipment = Column(JSON, default=list, nullable=False)  # winch, dolly, straps ...

    is_available = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)  # false once retired
    current_location = Column(String, nullable=True)
    odometer = Column(Integer, default=0, nullable=False)
    notes = Column(Text, nullable=True)

    # bumped by every assignment that takes this truck; see FleetRegistry.claim_for_dispatch
    dispatch_version = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)


class WreckerDriver(Base):
    __tablename__ = "wrecker_drivers"

    id = Column(String, primary_key=True)  # uuid
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True, nullable=False)

    license_number = Column(String, nullable=False)
    license_expiry = Column(DateTime(timezone=True), nullable=True)
    license_verified = Column(Boolean, default=False, nullable=False)

    # the truck this driver normally operates
    assigned_truck_id = Column(String, ForeignKey("tow_trucks.id", ondelete="SET NULL"), nullable=True)

    is_available = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    current_location = Column(String, nullable=True)  # "lat,lon"
    location_updated_at = Column(DateTime(timezone=True), nullable=True)

    phone = Column(String, nullable=False)
    emergency_contact = Column(String, nullable=True)
    emergency_phone = Column(String, nullable=True)
    certifications = Column(JSON, default=list, nullable=False)
    hire_date = Column(DateTime(timezone=True), nullable=True)

    dispatch_version = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)


class ThirdPartyWrecker(Base):
    __tablename__ = "third_party_wreckers"

    id = Column(String, primary_key=True)  # uuid

    company_name = Column(String, nullable=False)
    contact_name = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)
    service_area = Column(String, nullable=False)

    base_rate = Column(Numeric(10, 2), nullable=False)
    per_mile_rate = Column(Numeric(10, 2), nullable=False)

    is_preferred = Column(Boolean, default=False, nullable=False)  # display hint only
    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
