"""
Exception hierarchy for the Cloudflare metrics collector.

Errors raised while talking to the remote analytics API are converted into
the classes below so that the two callers that care (zone discovery and the
poll loop) can treat them uniformly: discovery aborts the process, the poll
loop logs and moves on to the next zone.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Union

import aiohttp


class CFMetricsError(Exception):
    """
    Base exception for all collector errors.

    Attributes:
        message: Human-readable error message
        url: URL that caused the error (if applicable)
        details: Additional error details as keyword arguments
    """

    def __init__(self, message: str, url: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.details = kwargs


class ConfigurationError(CFMetricsError):
    """Raised when configuration cannot be read or fails validation."""

    pass


class TransportError(CFMetricsError):
    """
    Raised for connection-level failures.

    Covers DNS resolution failures, refused connections and dropped
    connections: anything that prevents a response from being read.
    """

    pass


class TimeoutError(TransportError):
    """
    Raised when a request exceeds the configured timeout.

    Attributes:
        timeout_value: The timeout value that was exceeded (in seconds)
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout_value: Optional[float] = None,
    ) -> None:
        super().__init__(message, url)
        self.timeout_value = timeout_value


class APIError(CFMetricsError):
    """Raised when the remote API answers with an error status or envelope."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        response_text: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code
        self.response_text = response_text


class AuthenticationError(APIError):
    """Raised for rejected credentials (401, 403)."""

    pass


class RateLimitError(APIError):
    """Raised when the remote API throttles the collector (429)."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        retry_after: Optional[Union[int, float]] = None,
        response_text: Optional[str] = None,
    ) -> None:
        super().__init__(message, 429, url, response_text)
        self.retry_after = retry_after


class ServerError(APIError):
    """Raised for remote server errors (5xx)."""

    pass


class ResponseParseError(CFMetricsError):
    """Raised when a response body is not JSON or has an unexpected shape."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        response_text: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.response_text = response_text


class DiscoveryError(CFMetricsError):
    """
    Raised when the zone listing cannot produce a usable registry.

    This is fatal: the collector never starts polling without zones.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, url)
        self.cause = cause


class FetchError(CFMetricsError):
    """
    Raised when the stats for a single zone cannot be fetched or parsed.

    Recoverable: the zone is skipped for the current pass only.

    Attributes:
        zone_tag: Human-readable name of the zone that failed
        cause: Underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        zone_tag: str,
        url: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, url)
        self.zone_tag = zone_tag
        self.cause = cause


class ServeError(CFMetricsError):
    """Raised when the metrics listener cannot bind its address."""

    def __init__(self, message: str, host: str, port: int) -> None:
        super().__init__(message)
        self.host = host
        self.port = port


class ErrorHandler:
    """
    Converts aiohttp exceptions and HTTP status codes into collector errors.
    """

    @staticmethod
    def from_aiohttp_error(
        error: BaseException, url: Optional[str] = None, timeout: Optional[float] = None
    ) -> CFMetricsError:
        """
        Convert an aiohttp/asyncio exception to a CFMetricsError subclass.

        Args:
            error: The original exception
            url: The URL that caused the error
            timeout: The configured timeout, attached to timeout errors

        Returns:
            Appropriate CFMetricsError subclass
        """
        if isinstance(error, asyncio.TimeoutError):
            return TimeoutError(
                f"Request timed out after {timeout}s", url=url, timeout_value=timeout
            )

        elif isinstance(error, aiohttp.ClientPayloadError):
            return ResponseParseError(f"Payload error: {error}", url=url)

        elif isinstance(error, aiohttp.ClientConnectionError):
            return TransportError(f"Connection error: {error}", url=url)

        else:
            return TransportError(f"Unexpected network error: {error}", url=url)

    @staticmethod
    def from_status(
        status_code: int,
        message: str,
        url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        response_text: Optional[str] = None,
    ) -> APIError:
        """
        Create the APIError subclass matching an HTTP status code.

        Args:
            status_code: HTTP status code
            message: Error message
            url: The URL that caused the error
            headers: Response headers
            response_text: Response body text

        Returns:
            Appropriate APIError subclass
        """
        if status_code in (401, 403):
            return AuthenticationError(
                f"Authentication rejected ({status_code}): {message}",
                status_code,
                url,
                response_text,
            )

        elif status_code == 429:
            retry_after = None
            if headers:
                retry_after_header = headers.get("Retry-After") or headers.get(
                    "retry-after"
                )
                if retry_after_header:
                    try:
                        retry_after = float(retry_after_header)
                    except ValueError:
                        pass

            return RateLimitError(
                f"Rate limit exceeded: {message}", url, retry_after, response_text
            )

        elif 500 <= status_code < 600:
            return ServerError(
                f"Server error ({status_code}): {message}",
                status_code,
                url,
                response_text,
            )

        else:
            return APIError(
                f"HTTP {status_code}: {message}", status_code, url, response_text
            )
