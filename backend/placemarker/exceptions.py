"""
PlaceMarker Core: Exception Hierarchy
=====================================

What:  Application-specific exceptions for every failure the core can meet.
How:   Each exception carries a user-facing message and a context dict.
       Adapters wrap them in an Outcome instead of raising; the HTTP layer
       raises them (Outcome.unwrap) and the global handlers in main.py map
       them to status codes.

Exception Hierarchy:
    PlaceMarkerError (base)
    ├── ValidationError           → 400 Bad Request
    ├── NotFoundError             → 404 Not Found
    ├── PermissionDeniedError     → 403 Forbidden
    ├── LocationUnavailableError  → 503 Service Unavailable
    ├── StorageError              → 500 Internal Server Error
    ├── IdentityUnavailableError  → 503 Service Unavailable
    ├── NoteSyncError             → 502 Bad Gateway
    └── DiscoveryError            → 502 Bad Gateway

None of these is fatal: the system degrades to a narrower or empty view.
"""

from typing import Any, Dict, Optional


class PlaceMarkerError(Exception):
    """
    Base exception for all PlaceMarker errors.

    Attributes:
        message:  User-facing error description (safe to return in a response)
        context:  Extra debug info (logged, returned only where harmless)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PlaceMarkerError):
    """
    Raised when caller input breaks a business rule.

    Examples: a non-positive search radius, a blank note, a blank place id.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(PlaceMarkerError):
    """Raised when a requested resource does not exist."""

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class PermissionDeniedError(PlaceMarkerError):
    """
    The user declined location access.

    SpatialStore treats this as a silent no-op: refresh_user_location()
    returns False and user_location stays as it was.
    """

    def __init__(
        self,
        message: str = "Location permission denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LocationUnavailableError(PlaceMarkerError):
    """
    A device fix could not be obtained (timeout, hardware error, no report).

    No automatic retry; the caller retries explicitly.
    """

    def __init__(
        self,
        message: str = "Current location is unavailable",
        timeout_s: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if timeout_s is not None:
            ctx["timeout_s"] = timeout_s
        super().__init__(message=message, context=ctx)
        self.timeout_s = timeout_s


class StorageError(PlaceMarkerError):
    """
    A local durable-store transaction failed.

    The message stays generic; SQL details go to the log only.
    """

    def __init__(
        self,
        message: str = "A local storage error occurred. Please try again later.",
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if operation:
            ctx["operation"] = operation
        super().__init__(message=message, context=ctx)
        self.operation = operation


class IdentityUnavailableError(PlaceMarkerError):
    """
    The anonymous identity could not be resolved.

    Note operations abort; callers fall back to the placeholder note.
    """

    def __init__(
        self,
        message: str = "Unable to resolve the device identity for notes",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NoteSyncError(PlaceMarkerError):
    """
    The remote note store rejected or failed a request.

    status_code is the upstream HTTP status when there was one; 401 means the
    identity token was refused and should be refreshed.
    """

    def __init__(
        self,
        message: str = "The notes service is temporarily unavailable",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class DiscoveryError(PlaceMarkerError):
    """
    The place-discovery provider request failed.

    Caught by the discovery client, which substitutes an empty result.
    """

    def __init__(
        self,
        message: str = "Place search is temporarily unavailable",
        provider_status: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if provider_status:
            ctx["provider_status"] = provider_status
        super().__init__(message=message, context=ctx)
        self.provider_status = provider_status
