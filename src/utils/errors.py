"""Custom exception classes for the Currency Insights Dashboard."""
from typing import Optional


class DashboardError(Exception):
    """Base exception for all dashboard errors."""
    pass


class ConfigurationError(DashboardError):
    """Raised when there's a configuration error."""
    pass


class ValidationError(DashboardError):
    """Raised when local input fails validation before any upstream call."""
    pass


class DataAccessError(DashboardError):
    """Base exception for the client data-access layer.

    Carries the resource name and currency pair so callers can log or display
    the failure with context.
    """

    def __init__(self, message: str, resource: str = "", pair: str = ""):
        super().__init__(message)
        self.resource = resource
        self.pair = pair


class FetchError(DataAccessError):
    """Raised when the proxy cannot be reached or answers with an error status."""

    def __init__(self, message: str, resource: str = "", pair: str = "", status_code: Optional[int] = None):
        super().__init__(message, resource=resource, pair=pair)
        self.status_code = status_code


class PayloadDecodeError(DataAccessError):
    """Raised when a response body is not valid JSON."""
    pass


class ShapeValidationError(DataAccessError):
    """Raised when a payload does not have the expected structure."""
    pass
