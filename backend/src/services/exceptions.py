"""
Service-layer errors.

Routers translate these into HTTP responses: NotFoundError becomes 404 and
ValidationError becomes 400. Bad slot data inside stored events is not an
error here; occurrence expansion reports it as an issue and carries on.
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Root of every error a service raises on purpose."""


class NotFoundError(ServiceError):
    """A household, event, member or feed does not exist (or is not visible)."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} {identifier} not found")
        self.resource = resource
        self.identifier = identifier


class ValidationError(ServiceError):
    """A request was well formed but cannot be applied."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
