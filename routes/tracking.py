from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from config import NEARBY_RADIUS_KM
from database import get_db
from models import User, UserRole
import schemas
from auth import get_current_active_user, require_roles
from services import DriverService, TrackingService
from services.events import publish_driver_location
from services.tracking_service import is_stale
from .limiter import limiter
from .orders import get_order_tracking as order_tracking

router = APIRouter(prefix="/api/tracking", tags=["Tracking"])


@router.post("/location")
@limiter.limit("120/minute")
async def update_location(
    request: Request,
    location_in: schemas.LocationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.DRIVER))
):
    """Driver reports its current position (Driver only)"""
    location, order = TrackingService.update_location(db, current_user, location_in)
    sample = schemas.LocationSample.model_validate(location)
    if order is not None:
        await publish_driver_location(order.id, current_user.id, sample)
    return {"status": "success", "data": {"location": sample.model_dump(mode="json"), "order_id": location.order_id}}


@router.post("/offline")
async def mark_offline(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.DRIVER))
):
    """Driver goes offline (Driver only)"""
    TrackingService.mark_offline(db, current_user)
    return {"status": "success", "message": "Driver marked as offline"}


@router.get("/driver/{driver_id}/location")
async def get_driver_location(
    driver_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.RESTAURANT_OWNER, UserRole.DRIVER))
):
    """Latest sample of a driver, flagged when stale"""
    location = TrackingService.get_driver_location(db, driver_id)
    response = schemas.DriverLocationResponse(
        driver_id=location.driver_id,
        order_id=location.order_id,
        location=schemas.LocationSample.model_validate(location),
        is_online=location.is_online,
        is_stale=is_stale(location),
    )
    return {"status": "success", "data": response.model_dump(mode="json")}


@router.get("/order/{order_id}", response_model=schemas.TrackingEnvelope)
async def get_order_tracking(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Alias of /api/orders/{order_id}/tracking"""
    return await order_tracking(order_id, db, current_user)


@router.get("/nearby")
async def get_nearby_drivers(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(NEARBY_RADIUS_KM, gt=0, le=100),
    available_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.ADMIN))
):
    """Online drivers near a point, closest first (Admin only, dispatch)"""
    nearby = DriverService.find_nearby(db, lat, lng, radius, available_only=available_only)
    drivers = [
        schemas.NearbyDriver(
            driver=schemas.DriverProfile.model_validate(location.driver),
            order_id=location.order_id,
            location=schemas.LocationSample.model_validate(location),
            distance_km=round(distance, 2),
        ).model_dump(mode="json")
        for location, distance in nearby
    ]
    return {"status": "success", "results": len(drivers), "data": {"drivers": drivers}}
