"""Exception hierarchy for the client resilience layer."""


class MovieFlixError(Exception):
    """Base class for all client errors."""


class StorageError(MovieFlixError):
    """The backing key-value store could not complete an operation."""


class StorageUnavailableError(StorageError):
    """The backing store is disabled or unreachable."""


class StorageQuotaExceededError(StorageError):
    """A write would exceed the backing store's capacity."""


class ApiError(MovieFlixError):
    """The remote service answered with a non-2xx status."""

    def __init__(self, message: str, status: int | None = None, endpoint: str | None = None):
        super().__init__(message)
        self.status = status
        self.endpoint = endpoint


class StorageCorruptError(StorageError):
    """A stored payload could not be decoded."""
