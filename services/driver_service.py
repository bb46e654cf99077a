import logging
import math
from datetime import datetime, timedelta
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional, Tuple

from config import LOCATION_STALE_SECONDS
from models import DriverLocation, User
import schemas
from .tracking_service import haversine_km

logger = logging.getLogger(__name__)

# 1 degree of latitude, used for the bounding box before the exact haversine check
KM_PER_DEGREE = 111.0


class DriverService:
    @staticmethod
    def update_availability(db: Session, driver: User, data: schemas.DriverAvailabilityUpdate) -> User:
        """Update the driver's profile; fields left out keep their current value."""
        if data.is_available is not None:
            driver.is_available = data.is_available
        if data.vehicle_type is not None:
            driver.vehicle_type = data.vehicle_type
        if data.license_plate is not None:
            driver.license_plate = data.license_plate

        if data.latitude is not None:
            location = db.query(DriverLocation).filter(DriverLocation.driver_id == driver.id).first()
            if location is None:
                location = DriverLocation(driver_id=driver.id)
                db.add(location)
            # The current order (if any) stays attached
            location.latitude = data.latitude
            location.longitude = data.longitude
            location.is_online = True
            location.last_updated = datetime.utcnow()

        db.commit()
        db.refresh(driver)
        logger.info("Driver %s availability: %s", driver.id, driver.is_available)
        return driver

    @staticmethod
    def find_nearby(db: Session, latitude: float, longitude: float, radius_km: float,
                    available_only: bool = False, now: Optional[datetime] = None) -> List[Tuple[DriverLocation, float]]:
        """Online drivers with a fresh sample within ``radius_km``, closest first."""
        now = now or datetime.utcnow()
        lat_range = radius_km / KM_PER_DEGREE
        lng_range = radius_km / (KM_PER_DEGREE * max(math.cos(math.radians(latitude)), 0.01))

        query = (
            db.query(DriverLocation)
            .join(User, User.id == DriverLocation.driver_id)
            .options(joinedload(DriverLocation.driver))
            .filter(
                DriverLocation.is_online.is_(True),
                DriverLocation.last_updated >= now - timedelta(seconds=LOCATION_STALE_SECONDS),
                DriverLocation.latitude.between(latitude - lat_range, latitude + lat_range),
                DriverLocation.longitude.between(longitude - lng_range, longitude + lng_range),
                User.is_active.is_(True),
            )
        )
        if available_only:
            query = query.filter(User.is_available.is_(True))

        nearby = []
        for location in query.all():
            distance = haversine_km(latitude, longitude, location.latitude, location.longitude)
            if distance <= radius_km:
                nearby.append((location, distance))
        nearby.sort(key=lambda item: item[1])
        return nearby
