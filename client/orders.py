import logging
from typing import Any, Dict, Optional

import pydantic
import requests

from errors import (
    ERRORS_BY_CODE,
    Forbidden,
    InvalidTransition,
    NotFound,
    OrderError,
    Unauthorized,
    ValidationError,
)
from schemas.commands import (
    AssignDriverCommand,
    CancelOrderCommand,
    MarkPaymentCommand,
    UpdateStatusCommand,
    parse_command,
)
from .session import Session

logger = logging.getLogger(__name__)

ERRORS_BY_STATUS = {
    400: ValidationError,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    409: InvalidTransition,
    422: ValidationError,
}


def error_from_response(status_code: int, body: Any) -> OrderError:
    body = body if isinstance(body, dict) else {}
    error_cls = ERRORS_BY_CODE.get(body.get("code")) or ERRORS_BY_STATUS.get(status_code, OrderError)
    message = body.get("message") or body.get("detail") or body.get("error") or f"HTTP {status_code}"
    return error_cls(str(message))


class OrdersClient:
    """Command and query functions of the orders API.

    Every call returns the plain ``data`` part of the success envelope, or
    raises one of the error kinds in ``errors``. Nothing is applied locally
    before the server confirms it.
    """

    def __init__(self, session: Session, http=None):
        self.session = session
        self.http = http if http is not None else requests.Session()

    def _request(self, method: str, path: str, params: Optional[dict] = None, json: Optional[dict] = None) -> Dict:
        response = self.http.request(
            method,
            self.session.url(path),
            params=params,
            json=json,
            headers=self.session.headers(),
            timeout=self.session.timeout,
        )
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            error = error_from_response(response.status_code, body)
            logger.debug("%s %s failed: %s", method, path, error)
            raise error
        return body.get("data", body)

    def list_orders(self, status: Optional[str] = None, restaurant_id: Optional[int] = None,
                    page: int = 1, limit: int = 20) -> Dict:
        params = {"page": page, "limit": limit}
        if status:
            params["status"] = status
        if restaurant_id is not None:
            params["restaurant_id"] = restaurant_id
        return self._request("GET", "/api/orders", params=params)

    def get_order(self, order_id: int) -> Dict:
        return self._request("GET", f"/api/orders/{order_id}")["order"]

    def get_tracking(self, order_id: int) -> Dict:
        return self._request("GET", f"/api/orders/{order_id}/tracking")

    def update_status(self, order_id: int, status: str, notes: Optional[str] = None) -> Dict:
        return self.dispatch({"kind": "update_status", "order_id": order_id, "status": status, "notes": notes})

    def assign_driver(self, order_id: int, driver_id: int) -> Dict:
        return self.dispatch({"kind": "assign_driver", "order_id": order_id, "driver_id": driver_id})

    def mark_payment(self, order_id: int, payment_status: str = "paid") -> Dict:
        return self.dispatch({"kind": "mark_payment", "order_id": order_id, "payment_status": payment_status})

    def cancel_order(self, order_id: int, reason: Optional[str] = None) -> Dict:
        return self.dispatch({"kind": "cancel_order", "order_id": order_id, "reason": reason})

    def dispatch(self, command) -> Dict:
        """Validate ``command`` and send it; returns the updated order snapshot."""
        try:
            command = parse_command(command)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid command: {e.errors()[0]['msg']}")

        path = f"/api/orders/{command.order_id}"
        if isinstance(command, UpdateStatusCommand):
            data = self._request("PATCH", f"{path}/status", json={"status": command.status, "notes": command.notes})
        elif isinstance(command, AssignDriverCommand):
            data = self._request("PATCH", f"{path}/driver", json={"driver_id": command.driver_id})
        elif isinstance(command, MarkPaymentCommand):
            data = self._request("PATCH", f"{path}/payment", json={"payment_status": command.payment_status})
        elif isinstance(command, CancelOrderCommand):
            data = self._request("PATCH", f"{path}/cancel", json={"reason": command.reason})
        else:
            raise ValidationError(f"Unsupported command {command!r}")
        return data["order"]
