from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from .base import Base


class DriverLocation(Base):
    """Latest known position of a driver. One row per driver, overwritten on every sample."""
    __tablename__ = "driver_locations"

    id = Column(Integer, primary_key=True, index=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    heading = Column(Float, nullable=True)  # degrees
    speed = Column(Float, nullable=True)  # km/h
    accuracy = Column(Float, nullable=True)  # meters
    battery_level = Column(Integer, nullable=True)
    is_online = Column(Boolean, default=True)
    last_updated = Column(DateTime, default=datetime.utcnow, nullable=False)

    driver = relationship("User")
