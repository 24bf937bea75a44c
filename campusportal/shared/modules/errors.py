"""
Error types shared by the cache layer, the repositories and the API.

Everything raised on purpose derives from PortalError so controllers can map
errors to HTTP responses without catching bare Exception.
"""


class PortalError(Exception):
    """Base class for all application errors."""


class NotFound(PortalError):
    """Cache miss or absent document. A control-flow signal, not a failure."""


class StoreError(PortalError):
    """Network or connection failure in either the cache or the document store."""


class DeadlineExceeded(StoreError):
    """The caller's deadline (or the driver's timeout) fired before the store answered."""


class OperationCancelled(PortalError):
    """The caller cancelled the operation while it was waiting on I/O."""


class SerializationError(PortalError):
    """A value could not be encoded for the cache."""


class DeserializationError(PortalError):
    """A cached blob could not populate the requested shape."""


class AlreadyExists(PortalError):
    """Write conflict on a unique key."""


class InvalidCredentials(PortalError):
    """Authentication failed. Intentionally does not say why."""

    def __init__(self, message: str = "invalid credentials"):
        super().__init__(message)


class ValidationError(PortalError):
    """Input rejected before any store was touched."""


class CacheInitializationError(StoreError):
    """The cache could not be reached or failed its health check at startup."""
