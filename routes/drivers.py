from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models import User, UserRole
import schemas
from auth import require_roles
from services import DriverService
from .limiter import limiter

router = APIRouter(prefix="/api/drivers", tags=["Drivers"])


@router.get("/me")
async def get_my_profile(current_user: User = Depends(require_roles(UserRole.DRIVER))):
    profile = schemas.DriverProfile.model_validate(current_user)
    return {"status": "success", "data": {"driver": profile.model_dump()}}


@router.patch("/availability")
@limiter.limit("30/minute")
async def update_availability(
    request: Request,
    availability: schemas.DriverAvailabilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(UserRole.DRIVER))
):
    """Driver goes available/unavailable for new deliveries (Driver only)"""
    driver = DriverService.update_availability(db, current_user, availability)
    profile = schemas.DriverProfile.model_validate(driver)
    return {"status": "success", "data": {"driver": profile.model_dump()}}
