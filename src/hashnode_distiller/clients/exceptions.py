"""Custom exceptions for network clients."""


class ClientError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class ConnectionError(ClientError):
    """Raised when a request fails at the transport level (timeout, reset, redirects)."""

    pass


class APIError(ClientError):
    """Raised when the server returns a non-2xx response."""

    def __init__(self, message: str, status_code: int, *args, **kwargs):
        self.status_code = status_code
        super().__init__(message, *args, **kwargs)


class ForbiddenError(APIError):
    """Raised when the server returns a 403 forbidden response.

    Access-denied responses do not change on retry.
    """

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=403)


class NotFoundError(APIError):
    """Raised when the server returns a 404 not found response."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class RateLimitError(APIError):
    """Raised when the server returns a 429 rate limit response."""

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, status_code=429)


class RetriesExhaustedError(ClientError):
    """Raised when a transient failure persists through every attempt.

    Attributes:
        attempts: Number of attempts made
        last_error: The error from the final attempt
    """

    def __init__(self, message: str, attempts: int, last_error: Exception | None = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(message)
