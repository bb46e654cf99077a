"""Error kinds shared by the server routes and the Python client."""


class OrderError(Exception):
    status_code = 400
    code = "order_error"

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"status": "fail", "code": self.code, "message": self.message}


class InvalidTransition(OrderError):
    """Requested status is not reachable from the current one."""
    status_code = 409
    code = "invalid_transition"


class OrderFinalized(OrderError):
    """Mutation attempted on a delivered or cancelled order."""
    status_code = 409
    code = "order_finalized"


class ValidationError(OrderError):
    status_code = 400
    code = "validation_error"


class Unauthorized(OrderError):
    status_code = 401
    code = "unauthorized"


class Forbidden(OrderError):
    status_code = 403
    code = "forbidden"


class NotFound(OrderError):
    status_code = 404
    code = "not_found"


class ChannelDisconnected(OrderError):
    """Push channel has been down longer than the caller tolerates."""
    status_code = 503
    code = "channel_disconnected"


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (InvalidTransition, OrderFinalized, ValidationError, Unauthorized, Forbidden, NotFound,
                ChannelDisconnected)
}
