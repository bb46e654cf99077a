import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional

from models import DeviceToken, Notification, Order, OrderStatus

logger = logging.getLogger(__name__)

STATUS_NOTIFICATIONS = {
    OrderStatus.CONFIRMED: ("order_confirmed", "Order Confirmed", "Your order has been confirmed by the restaurant"),
    OrderStatus.PREPARING: ("order_preparing", "Preparing Your Order", "The restaurant is preparing your order"),
    OrderStatus.READY_FOR_PICKUP: ("order_ready", "Order Ready", "Your order is ready for pickup/delivery"),
    OrderStatus.OUT_FOR_DELIVERY: ("order_out_for_delivery", "Out for Delivery", "Your order is on its way!"),
    OrderStatus.DELIVERED: ("order_delivered", "Order Delivered", "Your order has been delivered. Enjoy your meal!"),
    OrderStatus.CANCELLED: ("order_cancelled", "Order Cancelled", "Your order has been cancelled"),
}


class NotificationService:
    @staticmethod
    def register_token(db: Session, user_id: int, token: str):
        existing_token = db.query(DeviceToken).filter(DeviceToken.fcm_token == token).first()
        if existing_token:
            existing_token.user_id = user_id
            db.commit()
            return {"status": "success", "message": "Token updated"}

        try:
            db.add(DeviceToken(user_id=user_id, fcm_token=token))
            db.commit()
        except IntegrityError:
            # Another request registered the same token first
            db.rollback()
            db.query(DeviceToken).filter(DeviceToken.fcm_token == token).update({DeviceToken.user_id: user_id})
            db.commit()
        return {"status": "success", "message": "Token registered"}

    @staticmethod
    def unregister_token(db: Session, user_id: int, token: str) -> bool:
        existing_token = db.query(DeviceToken).filter(
            DeviceToken.fcm_token == token,
            DeviceToken.user_id == user_id
        ).first()
        if not existing_token:
            return False
        db.delete(existing_token)
        db.commit()
        return True

    @staticmethod
    def notify_status_change(db: Session, order: Order, messaging_instance=None) -> Optional[Notification]:
        """Store a notification for the order's customer and push it to their devices."""
        template = STATUS_NOTIFICATIONS.get(order.status)
        if template is None:
            return None
        notification_type, title, message_text = template

        notification = Notification(
            user_id=order.user_id,
            order_id=order.id,
            type=notification_type,
            title=title,
            message=f"{message_text} (order #{order.id})",
        )
        db.add(notification)
        db.flush()

        if messaging_instance is not None:
            tokens = db.query(DeviceToken).filter(DeviceToken.user_id == order.user_id).all()
            notification.pushed_count = NotificationService._push(db, notification, tokens, messaging_instance)

        db.commit()
        return notification

    @staticmethod
    def _push(db: Session, notification: Notification, tokens: List[DeviceToken], messaging_instance) -> int:
        pushed = 0
        for device_token in tokens:
            message = messaging_instance.Message(
                notification=messaging_instance.Notification(
                    title=notification.title,
                    body=notification.message,
                ),
                data={
                    "notification_id": str(notification.id),
                    "order_id": str(notification.order_id),
                    "type": notification.type,
                },
                token=device_token.fcm_token,
            )
            try:
                messaging_instance.send(message)
                pushed += 1
            except Exception as e:
                logger.warning("Failed to push notification %s to token %s: %s", notification.id, device_token.id, e)
                if "invalid" in str(e).lower() or "not found" in str(e).lower():
                    db.delete(device_token)
        return pushed

    @staticmethod
    def get_user_notifications(db: Session, user_id: int, skip: int = 0, limit: int = 50) -> List[Notification]:
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    @staticmethod
    def mark_read(db: Session, user_id: int, notification_id: int) -> bool:
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()
        if not notification:
            return False
        if not notification.is_read:
            notification.is_read = True
            db.commit()
        return True
