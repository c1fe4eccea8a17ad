"""
Error taxonomy shared by every layer.

Each error carries the HTTP status it maps to; `main` installs one handler
that turns any RestaurantError into a JSON body.
"""
from enum import Enum
from typing import Any, Dict, Optional


class DenialReason(str, Enum):
    ROLE = "forbidden_by_role"
    STATUS_WHITELIST = "forbidden_by_status_whitelist"
    EXCLUSIVITY = "forbidden_by_exclusivity"
    OWNERSHIP = "forbidden_by_ownership"


class RestaurantError(Exception):
    status_code = 500
    kind = "Error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.kind

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class Unauthorized(RestaurantError):
    status_code = 401
    kind = "Unauthorized"


class Forbidden(RestaurantError):
    status_code = 403
    kind = "Forbidden"

    def __init__(self, reason: DenialReason, message: str):
        super().__init__(message)
        self.reason = reason


class NotFound(RestaurantError):
    status_code = 404
    kind = "NotFound"


class Conflict(RestaurantError):
    status_code = 409
    kind = "Conflict"

    def __init__(self, message: str, current: Optional[str] = None, requested: Optional[str] = None):
        super().__init__(message)
        self.current = current
        self.requested = requested

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.current is not None:
            body["current"] = self.current
        if self.requested is not None:
            body["requested"] = self.requested
        return body


class InvalidRequest(RestaurantError):
    status_code = 400
    kind = "InvalidRequest"


class DependencyFailure(RestaurantError):
    """A backing store could not be reached. Nothing was persisted; retry is safe."""
    status_code = 503
    kind = "DependencyFailure"
