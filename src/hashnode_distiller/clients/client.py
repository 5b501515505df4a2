"""Base client for network requests."""

import logging
from abc import ABC, abstractmethod
from time import sleep
from typing import Any

import httpx

from .exceptions import (
    APIError,
    ConnectionError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    RetriesExhaustedError,
)

logger = logging.getLogger(__name__)


class Client(ABC):
    """Base class for network clients.

    Provides lazy-initialized httpx.Client with context manager support,
    configurable timeout, retries, redirects, and headers via dict config.

    Config keys:
        base_url: Base URL for relative request paths (default: none)
        timeout: Request timeout in seconds (default: 30)
        max_retries: Additional attempts after the first for transient failures (default: 3)
        retry_delay: Delay between attempts in seconds (default: 1)
        max_redirects: Maximum redirects followed per request (default: 5)
        headers: Additional headers to include in requests
    """

    def __init__(self, config: dict | None = None, http_client: httpx.Client | None = None):
        self._config = dict(config or {})
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def base_url(self) -> str:
        return str(self._config.get("base_url", ""))

    @property
    def timeout(self) -> float:
        return float(self._config.get("timeout", 30))

    @property
    def max_retries(self) -> int:
        return max(0, int(self._config.get("max_retries", 3)))

    @property
    def retry_delay(self) -> float:
        return float(self._config.get("retry_delay", 1))

    @property
    def max_redirects(self) -> int:
        return int(self._config.get("max_redirects", 5))

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._config.get("headers", {}))

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialized httpx client."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
                max_redirects=self.max_redirects,
            )
        return self._client

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        """Close the underlying HTTP client if this client created it."""
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Map HTTP errors to exceptions.

        Args:
            response: The HTTP response to check

        Returns:
            The response if successful

        Raises:
            ForbiddenError: For 403 responses
            NotFoundError: For 404 responses
            RateLimitError: For 429 responses
            APIError: For other non-2xx responses
        """
        if response.is_success:
            return response

        status_code = response.status_code
        message = f"HTTP {status_code}: {response.url}"

        if status_code == 403:
            raise ForbiddenError(message)
        elif status_code == 404:
            raise NotFoundError(message)
        elif status_code == 429:
            raise RateLimitError(message)
        else:
            raise APIError(message, status_code=status_code)

    def _request(
        self,
        method: str,
        path: str,
        **kwargs,
    ) -> httpx.Response:
        """Make a request with retry logic for transient failures.

        Forbidden and not-found responses are raised on the first attempt.
        Every other failure is retried up to max_retries times.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: URL or path (appended to base_url)
            **kwargs: Additional arguments passed to httpx.request

        Returns:
            The HTTP response

        Raises:
            ForbiddenError: If the server returns 403
            NotFoundError: If the server returns 404
            RetriesExhaustedError: If every attempt fails transiently
        """
        attempts = self.max_retries + 1
        last_exception: Exception | None = None

        for attempt in range(1, attempts + 1):
            try:
                response = self.client.request(method, path, **kwargs)
                return self._handle_response(response)
            except (ForbiddenError, NotFoundError):
                raise
            except APIError as e:
                last_exception = e
                logger.warning(f"{e} (attempt {attempt}/{attempts})")
            except httpx.TooManyRedirects as e:
                last_exception = ConnectionError(f"Too many redirects: {path}")
                logger.warning(f"{last_exception} (attempt {attempt}/{attempts}): {e}")
            except httpx.TimeoutException as e:
                last_exception = ConnectionError(f"Timeout: {path}")
                logger.warning(f"{last_exception} (attempt {attempt}/{attempts}): {e}")
            except httpx.RequestError as e:
                last_exception = ConnectionError(f"Connection error: {e}")
                logger.warning(f"{last_exception} (attempt {attempt}/{attempts})")

            if attempt < attempts:
                sleep(self.retry_delay)

        msg = f"{last_exception} (after {attempts} attempts)"
        raise RetriesExhaustedError(msg, attempts, last_exception) from last_exception

    def get(self, path: str, **kwargs) -> httpx.Response:
        """Convenience method for GET requests.

        Args:
            path: URL or path (appended to base_url)
            **kwargs: Additional arguments passed to httpx.request

        Returns:
            The HTTP response
        """
        return self._request("GET", path, **kwargs)

    @abstractmethod
    def fetch(self, *args, **kwargs) -> Any:
        """Fetch a resource. Must be implemented by subclasses."""
        pass
