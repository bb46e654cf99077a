import os
import tempfile

# Configure the app before anything imports config/database
_db_dir = tempfile.mkdtemp(prefix="orders-test-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_db_dir, "test.db")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
for _key in ("FIREBASE_CREDENTIALS_JSON", "FIREBASE_CREDENTIALS_BASE64", "FIREBASE_CREDENTIALS_PATH"):
    os.environ.pop(_key, None)

import pytest
from fastapi.testclient import TestClient

from app import app
from auth import create_user_token, get_password_hash
from database import Base, SessionLocal, engine
from models import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus, Restaurant, User, UserRole

PASSWORD = "secret-password"


@pytest.fixture(scope="session")
def password_hash():
    return get_password_hash(PASSWORD)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(db, password_hash):
    counter = {"n": 0}

    def _make_user(role=UserRole.CUSTOMER, name=None, is_active=True):
        counter["n"] += 1
        user = User(
            name=name or f"{role} {counter['n']}",
            email=f"{role}{counter['n']}@example.com",
            phone="+1 555 0000",
            hashed_password=password_hash,
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def owner(make_user):
    return make_user(UserRole.RESTAURANT_OWNER)


@pytest.fixture
def driver(make_user):
    return make_user(UserRole.DRIVER)


@pytest.fixture
def customer(make_user):
    return make_user(UserRole.CUSTOMER)


@pytest.fixture
def restaurant(db, owner):
    restaurant = Restaurant(name="Test Kitchen", owner_id=owner.id, address="1 Main St", phone="+1 555 0101",
                            latitude=51.5, longitude=-0.12)
    db.add(restaurant)
    db.commit()
    db.refresh(restaurant)
    return restaurant


@pytest.fixture
def make_order(db, customer, restaurant):
    def _make_order(status=OrderStatus.PENDING, payment_method=PaymentMethod.CARD,
                    payment_status=PaymentStatus.PENDING, driver=None, restaurant_id=None, user=None,
                    delivery_latitude=51.5, delivery_longitude=-0.12):
        order = Order(
            user_id=(user or customer).id,
            restaurant_id=restaurant_id or restaurant.id,
            driver_id=driver.id if driver is not None else None,
            status=status,
            payment_method=payment_method,
            payment_status=payment_status,
            total_amount=20.0,
            delivery_address="10 Downing Street",
            delivery_latitude=delivery_latitude,
            delivery_longitude=delivery_longitude,
        )
        db.add(order)
        db.flush()
        db.add(OrderItem(order_id=order.id, name="Burger", quantity=2, price=10.0))
        db.commit()
        db.refresh(order)
        return order

    return _make_order


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_user_token(user)}"}
    return _headers


@pytest.fixture
def password():
    return PASSWORD
