from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime

OrderStatusName = Literal[
    "pending", "confirmed", "preparing", "ready_for_pickup",
    "out_for_delivery", "delivered", "cancelled",
]
PaymentMethodName = Literal["card", "cash"]
PaymentStatusName = Literal["pending", "paid", "failed", "refunded"]


class OrderItemCreate(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class OrderItemResponse(BaseModel):
    id: int
    name: str
    quantity: int
    price: float

    class Config:
        from_attributes = True


class StatusHistoryEntry(BaseModel):
    status: str
    timestamp: datetime
    notes: Optional[str] = None
    updated_by: Optional[int] = None

    class Config:
        from_attributes = True


class OrderCreate(BaseModel):
    restaurant_id: int
    items: List[OrderItemCreate] = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    delivery_latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    delivery_longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    payment_method: PaymentMethodName = "card"


class OrderResponse(BaseModel):
    """Full order snapshot. Also the payload of orderUpdated / newOrder events."""
    id: int
    user_id: int
    restaurant_id: int
    driver_id: Optional[int] = None
    status: str
    payment_method: str
    payment_status: str
    total_amount: float
    delivery_address: str
    delivery_latitude: Optional[float] = None
    delivery_longitude: Optional[float] = None
    estimated_delivery_time: Optional[datetime] = None
    actual_delivery_time: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    version: int
    order_items: List[OrderItemResponse] = []
    status_history: List[StatusHistoryEntry] = []

    class Config:
        from_attributes = True


class OrderEnvelopeData(BaseModel):
    order: OrderResponse


class OrderEnvelope(BaseModel):
    status: str = "success"
    data: OrderEnvelopeData


class OrderPage(BaseModel):
    orders: List[OrderResponse]
    page: int
    limit: int
    total: int


class OrderListEnvelope(BaseModel):
    status: str = "success"
    data: OrderPage
