from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.core.errors import NotFoundError
from app.services.pricing import PricingZoneCatalog, is_after_hours, is_weekend

# Friday 2025-03-14
WEEKDAY_NOON = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)
WEEKDAY_NIGHT = datetime(2025, 3, 14, 22, 30, tzinfo=timezone.utc)
SATURDAY_NOON = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def catalog(db):
    return PricingZoneCatalog(db)


@pytest.fixture()
def zone(catalog):
    return catalog.create_zone(
        zone_name="Downtown",
        zone_code=" zone-a ",
        base_rate=Decimal("75.00"),
        per_mile_rate=Decimal("3.50"),
        after_hours_surcharge=Decimal("25.00"),
        weekend_surcharge=Decimal("15.00"),
    )


def test_zone_code_is_normalized(catalog, zone):
    assert zone.zone_code == "ZONE-A"
    assert catalog.get_zone_by_code("zone-a").id == zone.id
    assert zone.vehicle_size_multipliers["large"] == 2.0


def test_weekday_quote(catalog, zone):
    quote = catalog.quote(zone.id, Decimal("10"), vehicle_size="small", at=WEEKDAY_NOON)
    assert quote.base_price == Decimal("75.00")
    assert quote.distance_charge == Decimal("35.00")
    assert quote.surcharges == Decimal("0")
    assert quote.total_price == Decimal("110.00")


def test_size_multiplier_applies_before_surcharges(catalog, zone):
    quote = catalog.quote(zone.id, "10", vehicle_size="large", at=WEEKDAY_NIGHT)
    assert quote.size_multiplier == Decimal("2.0")
    assert quote.surcharges == Decimal("25.00")
    assert quote.total_price == Decimal("245.00")


def test_weekend_night_stacks_surcharges(catalog, zone):
    saturday_night = datetime(2025, 3, 15, 5, 0, tzinfo=timezone.utc)
    quote = catalog.quote(zone.id, 0, vehicle_size="small", at=saturday_night)
    assert quote.surcharges == Decimal("40.00")
    assert quote.total_price == Decimal("115.00")


def test_fractional_distance_rounds_to_cents(catalog, zone):
    quote = catalog.quote(zone.id, "12.4", vehicle_size="medium", at=SATURDAY_NOON)
    # (75.00 + 43.40) * 1.5 + 15.00
    assert quote.total_price == Decimal("192.60")


def test_inactive_zone_cannot_quote(catalog, zone):
    catalog.update_zone(zone.id, is_active=False)
    with pytest.raises(NotFoundError):
        catalog.quote(zone.id, 5)
    assert catalog.list_active_zones() == []


@pytest.mark.parametrize("distance,size", [(-1, "small"), (5, "monster")])
def test_bad_quote_inputs(catalog, zone, distance, size):
    with pytest.raises(ValueError):
        catalog.quote(zone.id, distance, vehicle_size=size)


def test_unknown_zone(catalog):
    with pytest.raises(NotFoundError):
        catalog.quote("missing", 5)


def test_after_hours_window():
    assert is_after_hours(datetime(2025, 3, 14, 18, 0))
    assert is_after_hours(datetime(2025, 3, 14, 5, 59))
    assert not is_after_hours(datetime(2025, 3, 14, 6, 0))
    assert not is_after_hours(datetime(2025, 3, 14, 17, 59))
    assert is_weekend(SATURDAY_NOON)
    assert not is_weekend(WEEKDAY_NOON)
