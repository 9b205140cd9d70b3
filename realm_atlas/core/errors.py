"""Domain errors raised by the region graph service.

Each error carries the HTTP status the API layer answers with, so routers
never have to translate them one by one.
"""


class RegionGraphError(Exception):
    """Base class for region graph errors."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RegionGraphError):
    """Malformed input: missing required field, unknown enum value, bad position."""
    status_code = 400


class NotFoundError(RegionGraphError):
    """A region or place id that does not exist."""
    status_code = 404


class ConflictError(RegionGraphError):
    """An explicit id that is already taken."""
    status_code = 409


class StorageError(RegionGraphError):
    """The backing store failed to read or write."""
    status_code = 500
