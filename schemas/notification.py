from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class DeviceTokenRegister(BaseModel):
    token: str


class NotificationResponse(BaseModel):
    id: int
    order_id: Optional[int] = None
    type: str
    title: str
    message: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
