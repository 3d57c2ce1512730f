from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.core.clock import utcnow
from app.core.db import commit_or_raise
from app.core.errors import NotFoundError
from app.models.pricing_zone import DEFAULT_SIZE_MULTIPLIERS, TowPricingZone

CENTS = Decimal("0.01")

# after-hours window is 18:00 to 06:00
AFTER_HOURS_START = 18
AFTER_HOURS_END = 6


@dataclass(frozen=True)
class Quote:
    zone_id: str
    zone_code: str
    distance: Decimal
    vehicle_size: str
    base_price: Decimal
    distance_charge: Decimal
    size_multiplier: Decimal
    surcharges: Decimal
    total_price: Decimal


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS, rounding=ROUND_HALF_UP)


def is_after_hours(at: datetime) -> bool:
    return at.hour >= AFTER_HOURS_START or at.hour < AFTER_HOURS_END


def is_weekend(at: datetime) -> bool:
    return at.weekday() >= 5


class PricingZoneCatalog:
    """Flat, admin-maintained pickup zones and the quote arithmetic over them."""

    def __init__(self, db: Session):
        self.db = db

    def list_zones(self) -> list[TowPricingZone]:
        return self.db.query(TowPricingZone).order_by(TowPricingZone.created_at.desc()).all()

    def list_active_zones(self) -> list[TowPricingZone]:
        return (
            self.db.query(TowPricingZone)
            .filter(TowPricingZone.is_active == True)  # noqa: E712
            .order_by(TowPricingZone.created_at.desc())
            .all()
        )

    def get_zone(self, zone_id: str) -> TowPricingZone:
        zone = self.db.get(TowPricingZone, zone_id)
        if not zone:
            raise NotFoundError(f"Pricing zone {zone_id} not found")
        return zone

    def get_zone_by_code(self, zone_code: str) -> Optional[TowPricingZone]:
        return self.db.query(TowPricingZone).filter(TowPricingZone.zone_code == zone_code.strip().upper()).first()

    def create_zone(self, **fields: Any) -> TowPricingZone:
        fields["zone_code"] = fields["zone_code"].strip().upper()
        if fields.get("vehicle_size_multipliers") is None:
            fields["vehicle_size_multipliers"] = dict(DEFAULT_SIZE_MULTIPLIERS)
        zone = TowPricingZone(id=str(uuid.uuid4()), **fields)
        self.db.add(zone)
        commit_or_raise(self.db)
        self.db.refresh(zone)
        return zone

    def update_zone(self, zone_id: str, **fields: Any) -> TowPricingZone:
        zone = self.get_zone(zone_id)
        if fields.get("zone_code"):
            fields["zone_code"] = fields["zone_code"].strip().upper()
        for key, value in fields.items():
            setattr(zone, key, value)
        commit_or_raise(self.db)
        self.db.refresh(zone)
        return zone

    def quote(
        self,
        zone_id: str,
        distance,
        vehicle_size: str = "medium",
        at: Optional[datetime] = None,
    ) -> Quote:
        zone = self.get_zone(zone_id)
        if not zone.is_active:
            raise NotFoundError(f"Pricing zone {zone.zone_code} is not active")

        distance = Decimal(str(distance))
        if distance < 0:
            raise ValueError("distance must not be negative")

        multipliers = zone.vehicle_size_multipliers or DEFAULT_SIZE_MULTIPLIERS
        if vehicle_size not in multipliers:
            raise ValueError(f"vehicle_size must be one of {sorted(multipliers)}")
        multiplier = Decimal(str(multipliers[vehicle_size]))

        at = at or utcnow()
        surcharges = Decimal("0")
        if is_after_hours(at):
            surcharges += _money(zone.after_hours_surcharge)
        if is_weekend(at):
            surcharges += _money(zone.weekend_surcharge)

        base_price = _money(zone.base_rate)
        distance_charge = _money(Decimal(str(zone.per_mile_rate)) * distance)
        total = _money((base_price + distance_charge) * multiplier + surcharges)

        return Quote(
            zone_id=zone.id,
            zone_code=zone.zone_code,
            distance=distance,
            vehicle_size=vehicle_size,
            base_price=base_price,
            distance_charge=distance_charge,
            size_multiplier=multiplier,
            surcharges=surcharges,
            total_price=total,
        )
