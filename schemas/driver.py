from pydantic import BaseModel, Field, model_validator
from typing import Optional

from .tracking import LocationSample


class DriverAvailabilityUpdate(BaseModel):
    is_available: Optional[bool] = None
    vehicle_type: Optional[str] = Field(default=None, max_length=50)
    license_plate: Optional[str] = Field(default=None, max_length=20)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


class DriverProfile(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None
    is_available: bool = False
    vehicle_type: Optional[str] = None
    license_plate: Optional[str] = None

    class Config:
        from_attributes = True


class NearbyDriver(BaseModel):
    """Dispatch candidate: an online driver with a fresh sample inside the search radius"""
    driver: DriverProfile
    order_id: Optional[int] = None
    location: LocationSample
    distance_km: float
