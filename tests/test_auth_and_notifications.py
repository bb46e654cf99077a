from models import DeviceToken, OrderStatus
from services import NotificationService


def test_login_and_me(client, customer, password):
    response = client.post("/api/auth/login", json={"email": customer.email, "password": password})
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["role"] == "customer"


def test_login_with_wrong_password(client, customer):
    response = client.post("/api/auth/login", json={"email": customer.email, "password": "nope"})
    assert response.status_code == 401
    assert response.json()["code"] == "unauthorized"


def test_inactive_user_is_forbidden(client, make_user, auth_headers):
    user = make_user(is_active=False)
    response = client.get("/api/auth/me", headers=auth_headers(user))
    assert response.status_code == 403


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_register_and_unsubscribe_device_token(client, db, customer, auth_headers):
    headers = auth_headers(customer)
    assert client.post("/api/notifications/register", json={"token": "device-1"}, headers=headers).status_code == 200
    # Registering again updates instead of duplicating
    client.post("/api/notifications/register", json={"token": "device-1"}, headers=headers)
    assert db.query(DeviceToken).filter(DeviceToken.fcm_token == "device-1").count() == 1

    response = client.delete("/api/notifications/unsubscribe", params={"token": "device-1"}, headers=headers)
    assert response.json()["success"] is True
    assert db.query(DeviceToken).count() == 0


class FakeMessaging:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    class Notification:
        def __init__(self, title, body):
            self.title = title
            self.body = body

    class Message:
        def __init__(self, notification, data, token):
            self.notification = notification
            self.data = data
            self.token = token

    def send(self, message):
        if message.token in self.fail_for:
            raise ValueError("Requested entity was not found")
        self.sent.append(message)


def test_status_notification_is_pushed_to_devices(db, make_order, customer):
    order = make_order()
    db.add_all([DeviceToken(user_id=customer.id, fcm_token="good"),
                DeviceToken(user_id=customer.id, fcm_token="gone")])
    db.commit()
    order.status = OrderStatus.OUT_FOR_DELIVERY
    messaging = FakeMessaging(fail_for={"gone"})

    notification = NotificationService.notify_status_change(db, order, messaging)

    assert notification.type == "order_out_for_delivery"
    assert notification.pushed_count == 1
    assert [m.token for m in messaging.sent] == ["good"]
    assert messaging.sent[0].data["order_id"] == str(order.id)
    # Tokens the push service no longer knows are removed
    assert [t.fcm_token for t in db.query(DeviceToken).all()] == ["good"]


def test_mark_notification_read(client, make_order, owner, customer, auth_headers):
    order = make_order()
    client.patch(f"/api/orders/{order.id}/status", json={"status": "confirmed"}, headers=auth_headers(owner))
    notification = client.get("/api/notifications", headers=auth_headers(customer)).json()[0]
    assert notification["is_read"] is False

    response = client.patch(f"/api/notifications/{notification['id']}/read", headers=auth_headers(customer))
    assert response.status_code == 200
    assert client.get("/api/notifications", headers=auth_headers(customer)).json()[0]["is_read"] is True

    response = client.patch(f"/api/notifications/{notification['id']}/read", headers=auth_headers(owner))
    assert response.status_code == 404
