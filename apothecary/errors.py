"""Service-layer exceptions mapped to HTTP responses by the app error handler."""
from __future__ import annotations

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """A request the service layer refuses to carry out."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details:
            body.update(self.details)
        return body


class AuthenticationError(ServiceError):
    status_code = 401


class ForbiddenError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class PricingError(ServiceError):
    """Raised when a compound cannot be priced."""


class ConflictError(ServiceError):
    status_code = 409
