from pydantic import BaseModel, Field
from typing import Optional, Any, Dict
from datetime import datetime


class LocationUpdate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    heading: Optional[float] = Field(default=None, ge=0, le=360)
    speed: Optional[float] = Field(default=None, ge=0)
    accuracy: Optional[float] = Field(default=None, ge=0)
    battery_level: Optional[int] = Field(default=None, ge=0, le=100)
    order_id: Optional[int] = None


class LocationSample(BaseModel):
    latitude: float
    longitude: float
    heading: Optional[float] = None
    speed: Optional[float] = None
    last_updated: datetime

    class Config:
        from_attributes = True


class DriverLocationResponse(BaseModel):
    driver_id: int
    order_id: Optional[int] = None
    location: LocationSample
    is_online: bool
    is_stale: bool


class TrackingSnapshot(BaseModel):
    order: Dict[str, Any]
    restaurant: Optional[Dict[str, Any]] = None
    driver: Optional[Dict[str, Any]] = None
    location: Optional[LocationSample] = None
    eta: Optional[str] = None
    distance: Optional[str] = None


class TrackingEnvelope(BaseModel):
    status: str = "success"
    data: TrackingSnapshot
