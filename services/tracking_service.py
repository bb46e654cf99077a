import logging
import math
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from typing import Optional, Tuple

from config import AVERAGE_SPEED_KMH, LOCATION_STALE_SECONDS
from models import DriverLocation, Order, User
import schemas
from . import order_state
from errors import Forbidden, NotFound
from .events import order_snapshot

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_stale(location: DriverLocation, now: Optional[datetime] = None) -> bool:
    now = now or datetime.utcnow()
    return location.last_updated < now - timedelta(seconds=LOCATION_STALE_SECONDS)


class TrackingService:
    @staticmethod
    def update_location(db: Session, driver: User, data: schemas.LocationUpdate) -> Tuple[DriverLocation, Optional[Order]]:
        """Store the driver's newest sample.

        Returns the stored row and, when the sample belongs to an active order
        assigned to this driver, that order (the caller broadcasts to its room).
        """
        order = None
        if data.order_id is not None:
            order = db.query(Order).filter(Order.id == data.order_id).first()
            if not order:
                raise NotFound("Order not found")
            if order.driver_id != driver.id:
                raise Forbidden("Not your order")
            if order_state.is_terminal(order.status):
                # Samples stop being attached once the delivery is over
                order = None

        location = db.query(DriverLocation).filter(DriverLocation.driver_id == driver.id).first()
        if location is None:
            location = DriverLocation(driver_id=driver.id)
            db.add(location)

        location.latitude = data.latitude
        location.longitude = data.longitude
        location.heading = data.heading
        location.speed = data.speed
        location.accuracy = data.accuracy
        location.battery_level = data.battery_level
        location.order_id = order.id if order is not None else None
        location.is_online = True
        location.last_updated = datetime.utcnow()

        db.commit()
        db.refresh(location)
        return location, order

    @staticmethod
    def mark_offline(db: Session, driver: User):
        location = db.query(DriverLocation).filter(DriverLocation.driver_id == driver.id).first()
        if location is None:
            return None
        location.is_online = False
        location.last_updated = datetime.utcnow()
        db.commit()
        return location

    @staticmethod
    def get_driver_location(db: Session, driver_id: int) -> DriverLocation:
        location = db.query(DriverLocation).filter(DriverLocation.driver_id == driver_id).first()
        if location is None:
            raise NotFound("Driver location not found")
        return location

    @staticmethod
    def get_tracking(db: Session, order: Order) -> schemas.TrackingSnapshot:
        location = None
        if order.driver_id is not None and not order_state.is_terminal(order.status):
            location = db.query(DriverLocation).filter(
                DriverLocation.driver_id == order.driver_id,
                DriverLocation.order_id == order.id,
            ).first()

        eta = None
        distance = None
        if location is not None and order.delivery_latitude is not None and order.delivery_longitude is not None:
            distance_km = haversine_km(location.latitude, location.longitude,
                                       order.delivery_latitude, order.delivery_longitude)
            distance = f"{distance_km:.1f} km"
            eta = f"{round(distance_km / AVERAGE_SPEED_KMH * 60)} mins"

        restaurant = None
        if order.restaurant is not None:
            restaurant = {
                "id": order.restaurant.id,
                "name": order.restaurant.name,
                "address": order.restaurant.address,
                "phone": order.restaurant.phone,
            }

        driver = None
        if order.driver is not None:
            driver = schemas.UserSummary.model_validate(order.driver).model_dump()

        return schemas.TrackingSnapshot(
            order=order_snapshot(order),
            restaurant=restaurant,
            driver=driver,
            location=schemas.LocationSample.model_validate(location) if location is not None else None,
            eta=eta,
            distance=distance,
        )
