from sqlalchemy import Column, Integer, String, Boolean, DateTime
from datetime import datetime
from .base import Base


class UserRole:
    CUSTOMER = "customer"
    RESTAURANT_OWNER = "restaurant_owner"
    DRIVER = "driver"
    ADMIN = "admin"

    ALL = (CUSTOMER, RESTAURANT_OWNER, DRIVER, ADMIN)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default=UserRole.CUSTOMER, index=True)
    is_active = Column(Boolean, default=True)
    # Driver profile
    is_available = Column(Boolean, default=False)
    vehicle_type = Column(String(50), nullable=True)
    license_plate = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
