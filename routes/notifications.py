from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from models import User
import schemas
from auth import get_current_active_user
from services import NotificationService
from errors import NotFound
from .limiter import limiter

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])


@router.post("/register")
@limiter.limit("10/minute")
async def register_notification_token(
    request: Request,
    token_data: schemas.DeviceTokenRegister,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Register or update the FCM token of the caller's device"""
    return NotificationService.register_token(db, current_user.id, token_data.token)


@router.delete("/unsubscribe")
@limiter.limit("10/minute")
async def unsubscribe_notification_token(
    request: Request,
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Unsubscribe a device from notifications"""
    if NotificationService.unregister_token(db, current_user.id, token):
        return {"success": True, "message": "Successfully unsubscribed"}
    # Already gone is still a success for the client
    return {"success": True, "message": "Token not found or already unsubscribed"}


@router.get("", response_model=List[schemas.NotificationResponse])
async def list_notifications(
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Notifications of the caller, newest first"""
    return NotificationService.get_user_notifications(db, current_user.id, skip, limit)


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    if not NotificationService.mark_read(db, current_user.id, notification_id):
        raise NotFound("Notification not found")
    return {"success": True}
