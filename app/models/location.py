from sqlalchemy import Column, String, DateTime, ForeignKey, Float
from sqlalchemy.sql import func

from app.core.clock import utcnow
from app.core.db import Base


class TowRequestLocation(Base):
    __tablename__ = "tow_request_locations"

    id = Column(String, primary_key=True)  # uuid
    # append-only log: neither parent may be deleted out from under it
    tow_request_id = Column(String, ForeignKey("tow_requests.id", ondelete="RESTRICT"), index=True, nullable=False)
    driver_id = Column(String, ForeignKey("wrecker_drivers.id", ondelete="RESTRICT"), index=True, nullable=False)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    speed = Column(Float, nullable=True)     # mph
    heading = Column(Float, nullable=True)   # degrees
    accuracy = Column(Float, nullable=True)  # meters

    # reported by the device; "latest" is decided on this, not on arrival order
    timestamp = Column(DateTime(timezone=True), index=True, nullable=False)
    # tie-breaker for equal timestamps, so it needs sub-second precision
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
