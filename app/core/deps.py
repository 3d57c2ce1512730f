from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.services.dispatch import DispatchCoordinator
from app.services.fleet import FleetRegistry
from app.services.notifications import LogNotificationRelay, NotificationRelay
from app.services.pricing import PricingZoneCatalog
from app.services.tracking import LocationTracker

_default_relay = LogNotificationRelay()


def get_notification_relay() -> NotificationRelay:
    return _default_relay


def get_coordinator(
    db: Session = Depends(get_db),
    relay: NotificationRelay = Depends(get_notification_relay),
) -> DispatchCoordinator:
    return DispatchCoordinator(db, relay=relay)


def get_fleet(db: Session = Depends(get_db)) -> FleetRegistry:
    return FleetRegistry(db)


def get_tracker(db: Session = Depends(get_db)) -> LocationTracker:
    return LocationTracker(db)


def get_pricing(db: Session = Depends(get_db)) -> PricingZoneCatalog:
    return PricingZoneCatalog(db)
