import pytest

from app.core.errors import AssignmentConflictError, IntegrityConflictError, NotFoundError
from app.models.location import TowRequestLocation
from app.models.tow_request import TowStatus, WreckerType
from app.services.fleet import FleetRegistry
from app.services.tracking import LocationTracker


@pytest.fixture()
def fleet(db):
    return FleetRegistry(db)


def test_available_trucks_excludes_out_of_service(fleet, factory):
    ready = factory.truck()
    factory.truck(is_available=False)
    assert [t.id for t in fleet.list_available_trucks()] == [ready.id]
    assert len(fleet.list_trucks()) == 2


def test_available_drivers_must_be_active_and_available(fleet, factory):
    ready = factory.driver()
    factory.driver(is_available=False)
    factory.driver(is_active=False)
    assert [d.id for d in fleet.list_available_drivers()] == [ready.id]


def test_preferred_wreckers_listed_first(fleet, factory):
    factory.wrecker()
    preferred = factory.wrecker(is_preferred=True)
    factory.wrecker(is_active=False, is_preferred=True)

    active = fleet.list_active_third_party_wreckers()
    assert len(active) == 2
    assert active[0].id == preferred.id


def test_create_and_update_truck(fleet):
    truck = fleet.create_truck(
        truck_number="TRK-99", license_plate="ABC123", make="Peterbilt", model="567", year=2022, equipment=["winch"]
    )
    truck = fleet.update_truck(truck.id, is_available=False, notes="Brake service")
    assert truck.is_available is False
    assert truck.notes == "Brake service"
    assert truck.equipment == ["winch"]


def test_duplicate_truck_number_conflicts(fleet, factory):
    factory.truck(truck_number="TRK-01")
    with pytest.raises(IntegrityConflictError):
        fleet.create_truck(truck_number="TRK-01", license_plate="NEW001", make="Ford", model="F-450", year=2020)


def test_update_rejects_unknown_field(fleet, factory):
    truck = factory.truck()
    with pytest.raises(ValueError):
        fleet.update_truck(truck.id, wings=2)


def test_driver_default_truck_must_exist(fleet, factory):
    user = factory.user()
    with pytest.raises(NotFoundError):
        fleet.create_driver(user_id=user.id, license_number="CDL-1", phone=user.phone, assigned_truck_id="missing")


def test_get_missing_resources(fleet):
    with pytest.raises(NotFoundError):
        fleet.get_truck("missing")
    with pytest.raises(NotFoundError):
        fleet.get_driver("missing")
    with pytest.raises(NotFoundError):
        fleet.get_third_party_wrecker("missing")


def test_retire_refused_while_on_active_request(fleet, factory, coordinator, customer):
    truck = factory.truck()
    wrecker = factory.wrecker()
    first = coordinator.create_request(customer_id=customer.id, pickup_location="a", dropoff_location="b")
    second = coordinator.create_request(customer_id=customer.id, pickup_location="c", dropoff_location="d")
    coordinator.assign(first.id, truck_id=truck.id)
    coordinator.assign(second.id, third_party_wrecker_id=wrecker.id)

    with pytest.raises(AssignmentConflictError):
        fleet.retire_truck(truck.id)
    with pytest.raises(AssignmentConflictError):
        fleet.retire_third_party_wrecker(wrecker.id)


def test_retire_unused_resources_deletes_them(fleet, factory):
    truck = factory.truck()
    driver = factory.driver()
    wrecker = factory.wrecker()

    fleet.retire_truck(truck.id)
    fleet.retire_driver(driver.id)
    fleet.retire_third_party_wrecker(wrecker.id)

    for lookup, resource_id in (
        (fleet.get_truck, truck.id),
        (fleet.get_driver, driver.id),
        (fleet.get_third_party_wrecker, wrecker.id),
    ):
        with pytest.raises(NotFoundError):
            lookup(resource_id)


def test_retire_after_completed_tow_keeps_history(fleet, factory, coordinator, customer, db):
    truck = factory.truck()
    driver = factory.driver()
    req = coordinator.create_request(customer_id=customer.id, pickup_location="a", dropoff_location="b")
    coordinator.assign(req.id, driver_id=driver.id, truck_id=truck.id)
    coordinator.update_status(req.id, TowStatus.EN_ROUTE)
    LocationTracker(db).record_ping(req.id, driver.user_id, 47.6, -122.3)
    coordinator.update_status(req.id, TowStatus.ARRIVED)
    coordinator.update_status(req.id, TowStatus.TOWING)
    coordinator.complete(req.id)

    fleet.retire_driver(driver.id)
    fleet.retire_truck(truck.id)

    db.expire_all()
    req = coordinator.get_request(req.id)
    assert req.wrecker_type == WreckerType.COMPANY_OWNED
    assert req.assigned_truck_id == truck.id
    assert req.assigned_driver_id == driver.id
    assert db.query(TowRequestLocation).filter(TowRequestLocation.tow_request_id == req.id).count() == 1

    assert fleet.get_driver(driver.id).is_active is False
    assert fleet.get_truck(truck.id).is_active is False
    assert fleet.list_available_drivers() == []
    assert fleet.list_available_trucks() == []


def test_driver_with_pings_is_kept_on_retire(fleet, factory, coordinator, customer, db):
    assigned = factory.driver()
    helper = factory.driver()
    req = coordinator.create_request(customer_id=customer.id, pickup_location="a", dropoff_location="b")
    coordinator.assign(req.id, driver_id=assigned.id, truck_id=factory.truck().id)
    LocationTracker(db).record_ping(req.id, helper.user_id, 47.6, -122.3)

    fleet.retire_driver(helper.id)

    assert fleet.get_driver(helper.id).is_active is False
    assert db.query(TowRequestLocation).count() == 1


def test_retired_truck_cannot_be_assigned(fleet, factory, coordinator, customer):
    truck = factory.truck()
    first = coordinator.create_request(customer_id=customer.id, pickup_location="a", dropoff_location="b")
    coordinator.assign(first.id, truck_id=truck.id)
    coordinator.cancel(first.id)
    fleet.retire_truck(truck.id)

    second = coordinator.create_request(customer_id=customer.id, pickup_location="c", dropoff_location="d")
    with pytest.raises(AssignmentConflictError):
        coordinator.assign(second.id, truck_id=truck.id)
