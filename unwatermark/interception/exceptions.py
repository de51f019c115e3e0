class InterceptionError(Exception):
    """Base exception for interception-related errors."""


class FetchError(InterceptionError):
    """Raised when an image cannot be fetched through the privileged channel."""
