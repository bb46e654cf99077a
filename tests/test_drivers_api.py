from datetime import datetime, timedelta

from models import DriverLocation, OrderStatus, UserRole

ORIGIN = {"lat": 51.5, "lng": -0.12}


def report(client, headers, latitude, longitude, **extra):
    response = client.post("/api/tracking/location", json={"latitude": latitude, "longitude": longitude, **extra},
                           headers=headers)
    assert response.status_code == 200
    return response


def test_driver_updates_availability(client, db, driver, auth_headers):
    response = client.patch("/api/drivers/availability",
                            json={"is_available": True, "vehicle_type": "bike", "license_plate": "AB12 CDE"},
                            headers=auth_headers(driver))
    assert response.status_code == 200
    profile = response.json()["data"]["driver"]
    assert profile["is_available"] is True
    assert profile["vehicle_type"] == "bike"

    # Omitted fields keep their values
    response = client.patch("/api/drivers/availability", json={"is_available": False}, headers=auth_headers(driver))
    profile = response.json()["data"]["driver"]
    assert profile["is_available"] is False
    assert profile["license_plate"] == "AB12 CDE"

    assert client.get("/api/drivers/me", headers=auth_headers(driver)).json()["data"]["driver"]["id"] == driver.id


def test_availability_with_location_keeps_current_order(client, db, make_order, driver, auth_headers):
    order = make_order(status=OrderStatus.OUT_FOR_DELIVERY, driver=driver)
    report(client, auth_headers(driver), 51.5, -0.12, order_id=order.id)

    response = client.patch("/api/drivers/availability", json={"latitude": 51.52, "longitude": -0.1},
                            headers=auth_headers(driver))
    assert response.status_code == 200

    location = db.query(DriverLocation).filter(DriverLocation.driver_id == driver.id).one()
    assert location.latitude == 51.52
    assert location.order_id == order.id
    assert location.is_online is True


def test_availability_validation(client, driver, customer, auth_headers):
    response = client.patch("/api/drivers/availability", json={"latitude": 51.5}, headers=auth_headers(driver))
    assert response.status_code == 422

    response = client.patch("/api/drivers/availability", json={"is_available": True}, headers=auth_headers(customer))
    assert response.status_code == 403


def test_nearby_drivers_are_online_fresh_and_in_radius(client, db, make_user, admin, auth_headers):
    close = make_user(UserRole.DRIVER, name="Close")
    closer = make_user(UserRole.DRIVER, name="Closer")
    far = make_user(UserRole.DRIVER, name="Far")
    offline = make_user(UserRole.DRIVER, name="Offline")
    stale = make_user(UserRole.DRIVER, name="Stale")

    report(client, auth_headers(close), 51.53, -0.12)     # ~3.3 km
    report(client, auth_headers(closer), 51.51, -0.12)    # ~1.1 km
    report(client, auth_headers(far), 51.7, -0.12)        # ~22 km
    report(client, auth_headers(offline), 51.501, -0.12)
    client.post("/api/tracking/offline", headers=auth_headers(offline))
    report(client, auth_headers(stale), 51.502, -0.12)
    location = db.query(DriverLocation).filter(DriverLocation.driver_id == stale.id).one()
    location.last_updated = datetime.utcnow() - timedelta(minutes=10)
    db.commit()

    response = client.get("/api/tracking/nearby", params={**ORIGIN, "radius": 10}, headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert body["results"] == 2
    drivers = body["data"]["drivers"]
    assert [d["driver"]["name"] for d in drivers] == ["Closer", "Close"]
    assert drivers[0]["distance_km"] < drivers[1]["distance_km"] <= 10

    response = client.get("/api/tracking/nearby", params={**ORIGIN, "radius": 2}, headers=auth_headers(admin))
    assert [d["driver"]["name"] for d in response.json()["data"]["drivers"]] == ["Closer"]


def test_nearby_available_only(client, make_user, admin, auth_headers):
    busy = make_user(UserRole.DRIVER, name="Busy")
    free = make_user(UserRole.DRIVER, name="Free")
    report(client, auth_headers(busy), 51.51, -0.12)
    report(client, auth_headers(free), 51.52, -0.12)
    client.patch("/api/drivers/availability", json={"is_available": True}, headers=auth_headers(free))

    response = client.get("/api/tracking/nearby", params={**ORIGIN, "available_only": "true"},
                          headers=auth_headers(admin))
    assert [d["driver"]["name"] for d in response.json()["data"]["drivers"]] == ["Free"]


def test_nearby_is_admin_only_and_needs_a_point(client, owner, admin, auth_headers):
    response = client.get("/api/tracking/nearby", params=ORIGIN, headers=auth_headers(owner))
    assert response.status_code == 403

    response = client.get("/api/tracking/nearby", params={"lat": 51.5}, headers=auth_headers(admin))
    assert response.status_code == 422
