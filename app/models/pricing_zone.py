from sqlalchemy import Boolean, Column, DateTime, JSON, Numeric, String, Text
from sqlalchemy.sql import func

from app.core.db import Base

DEFAULT_SIZE_MULTIPLIERS = {"small": 1.0, "medium": 1.5, "large": 2.0, "oversized": 3.0}


class TowPricingZone(Base):
    __tablename__ = "tow_pricing_zones"

    id = Column(String, primary_key=True)  # uuid

    zone_name = Column(String, nullable=False)
    zone_code = Column(String, unique=True, index=True, nullable=False)  # e.g. ZONE-A
    description = Column(Text, nullable=True)

    base_rate = Column(Numeric(10, 2), nullable=False)  # flat pickup fee
    per_mile_rate = Column(Numeric(10, 2), nullable=False)
    after_hours_surcharge = Column(Numeric(10, 2), default=0, nullable=False)  # 18:00-06:00
    weekend_surcharge = Column(Numeric(10, 2), default=0, nullable=False)
    vehicle_size_multipliers = Column(JSON, default=lambda: dict(DEFAULT_SIZE_MULTIPLIERS), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
