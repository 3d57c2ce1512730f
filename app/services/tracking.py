from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.orm import Session

from app.core.clock import as_utc, utcnow
from app.core.db import commit_or_raise
from app.core.errors import NotADriverError, NotFoundError
from app.models.location import TowRequestLocation
from app.models.tow_request import TowRequest
from app.services.fleet import FleetRegistry

log = structlog.get_logger(__name__)


def validate_coordinates(latitude: float, longitude: float) -> None:
    if not (-90.0 <= latitude <= 90.0):
        raise ValueError("latitude must be between -90 and 90")
    if not (-180.0 <= longitude <= 180.0):
        raise ValueError("longitude must be between -180 and 180")


class LocationTracker:
    """
    Append-only GPS log per tow request.

    Pings are never checked against the request status; a driver may keep
    reporting after arriving. Devices retry, so pings can land out of order:
    "latest" always means highest reported timestamp.
    """

    def __init__(self, db: Session):
        self.db = db
        self.fleet = FleetRegistry(db)

    def record_ping(
        self,
        request_id: str,
        user_id: str,
        latitude: float,
        longitude: float,
        timestamp: Optional[datetime] = None,
        speed: Optional[float] = None,
        heading: Optional[float] = None,
        accuracy: Optional[float] = None,
    ) -> TowRequestLocation:
        driver = self.fleet.get_driver_by_user_id(user_id)
        if not driver or not driver.is_active:
            raise NotADriverError("Not authorized as a driver", request_id=request_id)

        if not self.db.get(TowRequest, request_id):
            raise NotFoundError(f"Tow request {request_id} not found", request_id=request_id)

        validate_coordinates(latitude, longitude)
        reported_at = as_utc(timestamp) or utcnow()

        ping = TowRequestLocation(
            id=str(uuid.uuid4()),
            tow_request_id=request_id,
            driver_id=driver.id,
            latitude=latitude,
            longitude=longitude,
            speed=speed,
            heading=heading,
            accuracy=accuracy,
            timestamp=reported_at,
        )
        self.db.add(ping)

        # a late retry must not drag the driver back to an older position
        last_seen = as_utc(driver.location_updated_at)
        if last_seen is None or reported_at >= last_seen:
            driver.current_location = f"{latitude},{longitude}"
            driver.location_updated_at = reported_at

        commit_or_raise(self.db, request_id)
        self.db.refresh(ping)
        log.debug("location_ping_recorded", request_id=request_id, driver_id=driver.id)
        return ping

    def latest_location(self, request_id: str) -> Optional[TowRequestLocation]:
        return (
            self.db.query(TowRequestLocation)
            .filter(TowRequestLocation.tow_request_id == request_id)
            .order_by(TowRequestLocation.timestamp.desc(), TowRequestLocation.created_at.desc())
            .first()
        )

    def history(self, request_id: str) -> list[TowRequestLocation]:
        return (
            self.db.query(TowRequestLocation)
            .filter(TowRequestLocation.tow_request_id == request_id)
            .order_by(TowRequestLocation.timestamp.desc(), TowRequestLocation.created_at.desc())
            .all()
        )
