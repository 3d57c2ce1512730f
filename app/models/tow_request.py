import enum
from sqlalchemy import Column, String, DateTime, Enum, Float, Integer, Numeric, Text, ForeignKey
from sqlalchemy.sql import func

from app.core.db import Base


def _enum_values(e):
    return [m.value for m in e]


class TowStatus(str, enum.Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"
    TOWING = "towing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (
    TowStatus.PENDING,
    TowStatus.DISPATCHED,
    TowStatus.EN_ROUTE,
    TowStatus.ARRIVED,
    TowStatus.TOWING,
)


class WreckerType(str, enum.Enum):
    COMPANY_OWNED = "company_owned"
    THIRD_PARTY = "third_party"


class VehicleSize(str, enum.Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    OVERSIZED = "oversized"


class TowRequest(Base):
    __tablename__ = "tow_requests"

    id = Column(String, primary_key=True)  # uuid string
    request_number = Column(String, unique=True, index=True, nullable=False)  # TOW-2025-00001

    customer_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    vehicle_id = Column(String, nullable=True)  # owned by the vehicles module

    # Vehicle details when the car is not in our system
    vehicle_make = Column(String, nullable=True)
    vehicle_model = Column(String, nullable=True)
    vehicle_year = Column(Integer, nullable=True)
    vehicle_color = Column(String, nullable=True)
    license_plate = Column(String, nullable=True)
    vehicle_size = Column(Enum(VehicleSize, values_callable=_enum_values), default=VehicleSize.MEDIUM, nullable=False)

    pickup_location = Column(Text, nullable=False)
    pickup_latitude = Column(Float, nullable=True)
    pickup_longitude = Column(Float, nullable=True)
    dropoff_location = Column(Text, nullable=False)
    dropoff_latitude = Column(Float, nullable=True)
    dropoff_longitude = Column(Float, nullable=True)

    status = Column(Enum(TowStatus, values_callable=_enum_values), default=TowStatus.PENDING, index=True, nullable=False)
    urgency = Column(String, default="normal", nullable=False)  # emergency, normal, scheduled
    service_type = Column(String, default="tow", nullable=False)  # tow, jumpstart, tire_change, lockout, fuel_delivery
    problem_description = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    wrecker_type = Column(Enum(WreckerType, values_callable=_enum_values), nullable=True)
    assigned_driver_id = Column(String, ForeignKey("wrecker_drivers.id", ondelete="RESTRICT"), index=True, nullable=True)
    assigned_truck_id = Column(String, ForeignKey("tow_trucks.id", ondelete="RESTRICT"), index=True, nullable=True)
    third_party_wrecker_id = Column(String, ForeignKey("third_party_wreckers.id", ondelete="RESTRICT"), nullable=True)
    pricing_zone_id = Column(String, ForeignKey("tow_pricing_zones.id", ondelete="SET NULL"), nullable=True)

    requested_at = Column(DateTime(timezone=True), nullable=False)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    arrived_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    estimated_arrival = Column(DateTime(timezone=True), nullable=True)

    estimated_distance = Column(Numeric(10, 2), nullable=True)  # miles
    actual_distance = Column(Numeric(10, 2), nullable=True)
    total_price = Column(Numeric(10, 2), nullable=True)

    job_card_id = Column(String, ForeignKey("job_cards.id", ondelete="SET NULL"), nullable=True)

    # bumped on every UPDATE; writes are conditioned on it
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    __mapper_args__ = {"version_id_col": version}


class RequestSequence(Base):
    __tablename__ = "tow_request_sequence"

    year = Column(Integer, primary_key=True, autoincrement=False)
    last_number = Column(Integer, default=0, nullable=False)
