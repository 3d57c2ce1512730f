import re

import pytest

from app.models.user import User, UserRole


@pytest.fixture()
def staff(factory):
    return factory.user(role=UserRole.RECEPTIONIST)


def _open_request(client, headers, **extra):
    body = {"pickup_location": "123 Main St", "dropoff_location": "Shop", **extra}
    r = client.post("/tow-requests", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_login(client, factory):
    user = factory.user(phone="+15550001111")
    r = client.post("/auth/login", json={"phone": "+15550001111", "password": "secret123"})
    assert r.status_code == 200
    body = r.json()
    assert body["access_token"]
    assert body["user_id"] == user.id
    assert body["role"] == "CUSTOMER"

    me = client.get("/tow-requests", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200

    r = client.post("/auth/login", json={"phone": user.phone, "password": "wrong"})
    assert r.status_code == 401


def test_requires_authentication(client):
    assert client.get("/tow-requests").status_code == 401
    assert client.get("/tow-requests", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_full_flow_over_http(client, factory, customer, staff, auth_headers, relay):
    truck = factory.truck()
    driver = factory.driver()
    driver_user_headers = auth_headers(factory.db.get(User, driver.user_id))

    created = _open_request(client, auth_headers(customer), vehicle_id="veh-7", problem_description="Flat tire")
    assert created["status"] == "pending"
    assert re.fullmatch(r"TOW-\d{4}-00001", created["request_number"])
    rid = created["id"]

    r = client.post(
        f"/tow-requests/{rid}/assign",
        json={"driver_id": driver.id, "truck_id": truck.id},
        headers=auth_headers(staff),
    )
    assert r.status_code == 200, r.text
    assert r.json()["wrecker_type"] == "company_owned"

    for step in ("en_route", "arrived", "towing"):
        r = client.post(f"/tow-requests/{rid}/status", json={"status": step}, headers=driver_user_headers)
        assert r.status_code == 200, r.text

    r = client.post(
        f"/tow-requests/{rid}/tracking", json={"latitude": 47.6, "longitude": -122.3}, headers=driver_user_headers
    )
    assert r.status_code == 201, r.text

    r = client.post(
        f"/tow-requests/{rid}/complete",
        json={"actual_distance": "12.4", "total_price": "85.00", "create_job_card": True},
        headers=auth_headers(staff),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "completed"
    assert body["job_card_id"]

    latest = client.get(f"/tow-requests/{rid}/tracking/latest", headers=auth_headers(customer))
    assert latest.status_code == 200
    assert latest.json()["latitude"] == 47.6

    events = client.get(f"/tow-requests/{rid}/events", headers=auth_headers(customer)).json()
    assert events[0]["event_type"] == "CREATED"
    assert events[-1]["event_type"] == "COMPLETED"
    assert relay.statuses == ["assigned", "en_route", "completed"]


def test_invalid_transition_is_409(client, customer, staff, auth_headers):
    rid = _open_request(client, auth_headers(customer))["id"]
    r = client.post(f"/tow-requests/{rid}/status", json={"status": "towing"}, headers=auth_headers(staff))
    assert r.status_code == 409
    body = r.json()
    assert body["code"] == "invalid_transition"
    assert body["current"] == "pending"
    assert body["attempted"] == "towing"
    assert body["request_id"] == rid


def test_complete_twice_is_409(client, factory, customer, staff, auth_headers):
    rid = _open_request(client, auth_headers(customer))["id"]
    headers = auth_headers(staff)
    client.post(f"/tow-requests/{rid}/assign", json={"third_party_wrecker_id": factory.wrecker().id}, headers=headers)
    for step in ("en_route", "arrived", "towing"):
        client.post(f"/tow-requests/{rid}/status", json={"status": step}, headers=headers)

    assert client.post(f"/tow-requests/{rid}/complete", json={}, headers=headers).status_code == 200
    assert client.post(f"/tow-requests/{rid}/complete", json={}, headers=headers).status_code == 409


def test_assignment_conflict_is_409(client, customer, staff, auth_headers):
    rid = _open_request(client, auth_headers(customer))["id"]
    r = client.post(f"/tow-requests/{rid}/assign", json={}, headers=auth_headers(staff))
    assert r.status_code == 409
    assert r.json()["code"] == "assignment_conflict"


def test_non_driver_cannot_post_tracking(client, customer, auth_headers):
    rid = _open_request(client, auth_headers(customer))["id"]
    r = client.post(
        f"/tow-requests/{rid}/tracking", json={"latitude": 47.6, "longitude": -122.3}, headers=auth_headers(customer)
    )
    assert r.status_code == 403
    assert r.json()["code"] == "not_a_driver"


def test_customers_only_see_their_own_requests(client, factory, customer, auth_headers):
    other = factory.user()
    mine = _open_request(client, auth_headers(customer))
    theirs = _open_request(client, auth_headers(other))

    listed = client.get("/tow-requests", headers=auth_headers(customer)).json()
    assert [r["id"] for r in listed] == [mine["id"]]
    assert client.get(f"/tow-requests/{theirs['id']}", headers=auth_headers(customer)).status_code == 403


def test_customer_may_cancel_but_not_advance(client, factory, customer, staff, auth_headers):
    rid = _open_request(client, auth_headers(customer))["id"]
    client.post(f"/tow-requests/{rid}/assign", json={"truck_id": factory.truck().id}, headers=auth_headers(staff))

    r = client.post(f"/tow-requests/{rid}/status", json={"status": "en_route"}, headers=auth_headers(customer))
    assert r.status_code == 403

    r = client.post(
        f"/tow-requests/{rid}/status",
        json={"status": "cancelled", "notes": "Got a jump start"},
        headers=auth_headers(customer),
    )
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"


def test_customers_cannot_dispatch(client, factory, customer, auth_headers):
    rid = _open_request(client, auth_headers(customer))["id"]
    r = client.post(f"/tow-requests/{rid}/assign", json={"truck_id": factory.truck().id}, headers=auth_headers(customer))
    assert r.status_code == 403


def test_unknown_request_is_404(client, staff, auth_headers):
    r = client.get("/tow-requests/missing", headers=auth_headers(staff))
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


def test_fleet_and_pricing_endpoints(client, factory, auth_headers):
    admin = factory.user(role=UserRole.ADMIN)
    headers = auth_headers(admin)

    r = client.post(
        "/tow-trucks",
        json={"truck_number": "TRK-77", "license_plate": "XYZ777", "make": "Ford", "model": "F-550", "year": 2020},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    assert [t["truck_number"] for t in client.get("/tow-trucks/available", headers=headers).json()] == ["TRK-77"]

    r = client.post(
        "/tow-pricing-zones",
        json={"zone_name": "Downtown", "zone_code": "zone-a", "base_rate": "75.00", "per_mile_rate": "3.50"},
        headers=headers,
    )
    assert r.status_code == 201, r.text
    zone_id = r.json()["id"]

    r = client.post(
        f"/tow-pricing-zones/{zone_id}/quote", json={"distance": "10", "vehicle_size": "small"}, headers=headers
    )
    assert r.status_code == 200, r.text
    assert r.json()["zone_code"] == "ZONE-A"

    dup = client.post(
        "/tow-pricing-zones",
        json={"zone_name": "Again", "zone_code": "ZONE-A", "base_rate": "1.00", "per_mile_rate": "1.00"},
        headers=headers,
    )
    assert dup.status_code == 409
