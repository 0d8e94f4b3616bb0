"""Exceptions raised by the counter services."""


class GACounterError(Exception):
    """Base exception for all counter operations."""
    pass


class AuthenticationError(GACounterError):
    """No usable Google credential: not authenticated, or the token refresh failed."""
    pass


class ConfigurationError(GACounterError):
    """A required setting is missing or invalid. Raised before any network call."""
    pass


class UpstreamRequestError(GACounterError):
    """Transport failure or an error reported by the analytics API."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status
