"""Closed set of order commands accepted by the command facade.

Request bodies of the mutating order routes are the command models minus
``kind``/``order_id``; the client builds full commands and validates them
before anything goes on the wire.
"""
from pydantic import BaseModel, Field, TypeAdapter
from typing import Annotated, Literal, Optional, Union

from .order import OrderStatusName, PaymentStatusName


class StatusUpdate(BaseModel):
    status: OrderStatusName
    notes: Optional[str] = Field(default=None, max_length=500)


class DriverAssignment(BaseModel):
    driver_id: int = Field(..., ge=1)


class PaymentUpdate(BaseModel):
    payment_status: PaymentStatusName


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class UpdateStatusCommand(StatusUpdate):
    kind: Literal["update_status"] = "update_status"
    order_id: int = Field(..., ge=1)


class AssignDriverCommand(DriverAssignment):
    kind: Literal["assign_driver"] = "assign_driver"
    order_id: int = Field(..., ge=1)


class MarkPaymentCommand(PaymentUpdate):
    kind: Literal["mark_payment"] = "mark_payment"
    order_id: int = Field(..., ge=1)


class CancelOrderCommand(CancelRequest):
    kind: Literal["cancel_order"] = "cancel_order"
    order_id: int = Field(..., ge=1)


Command = Annotated[
    Union[UpdateStatusCommand, AssignDriverCommand, MarkPaymentCommand, CancelOrderCommand],
    Field(discriminator="kind"),
]

command_adapter = TypeAdapter(Command)


def parse_command(payload) -> "Command":
    """Validate a raw dict (or an already built command) into a Command."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    return command_adapter.validate_python(payload)
