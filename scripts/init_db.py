import sys
import os

# Add parent directory to path so we can import from root
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, engine, SessionLocal
from models import User, UserRole, Restaurant, Order, OrderItem, OrderStatus, PaymentMethod
from auth import get_password_hash

SEED_PASSWORD = os.getenv("SEED_PASSWORD", "password123")

SEED_USERS = [
    ("Admin User", "admin@example.com", UserRole.ADMIN),
    ("Restaurant Owner", "owner@example.com", UserRole.RESTAURANT_OWNER),
    ("Delivery Driver", "driver@example.com", UserRole.DRIVER),
    ("Test Customer", "customer@example.com", UserRole.CUSTOMER),
]


def get_or_create_user(db, name, email, role):
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        name=name,
        email=email,
        role=role,
        hashed_password=get_password_hash(SEED_PASSWORD),
        is_active=True
    )
    db.add(user)
    db.flush()
    print(f"Created {role} user: {email}")
    return user


def init_database():
    """Create tables and seed one user per role, a restaurant and a sample cash order"""
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        users = {role: get_or_create_user(db, name, email, role) for name, email, role in SEED_USERS}

        restaurant = db.query(Restaurant).filter(Restaurant.owner_id == users[UserRole.RESTAURANT_OWNER].id).first()
        if not restaurant:
            restaurant = Restaurant(
                name="Frank's Kitchen",
                owner_id=users[UserRole.RESTAURANT_OWNER].id,
                address="12 Market Street",
                phone="+1 555 0100",
                latitude=40.7128,
                longitude=-74.0060
            )
            db.add(restaurant)
            db.flush()
            print(f"Created restaurant: {restaurant.name}")

        if db.query(Order).count() == 0:
            order = Order(
                user_id=users[UserRole.CUSTOMER].id,
                restaurant_id=restaurant.id,
                status=OrderStatus.PENDING,
                payment_method=PaymentMethod.CASH,
                total_amount=24.5,
                delivery_address="221B Baker Street",
                delivery_latitude=40.7306,
                delivery_longitude=-73.9352
            )
            db.add(order)
            db.flush()
            db.add_all([
                OrderItem(order_id=order.id, name="Margherita Pizza", quantity=1, price=14.5),
                OrderItem(order_id=order.id, name="Garlic Bread", quantity=2, price=5.0),
            ])
            print(f"Created sample order #{order.id}")

        db.commit()
        print("Database initialized successfully!")

    except Exception as e:
        print(f"Error initializing database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    init_database()
