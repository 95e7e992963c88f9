"""Exceptions raised by webclient-filters."""

import httpx


class WebClientError(Exception):
    """Base class for all webclient-filters errors."""

    pass


class BodyConsumedError(WebClientError):
    """Raised when a response body is read a second time."""

    pass


class AuthenticationError(WebClientError):
    """Raised when credentials cannot be obtained."""

    pass


class TokenRefreshError(AuthenticationError):
    """Raised when the token endpoint does not hand out a new access token."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseStatusError(WebClientError):
    """Raised by ``retrieve()`` when the final response is a 4xx or 5xx."""

    def __init__(self, status_code: int, headers: httpx.Headers, body: bytes):
        self.status_code = status_code
        self.headers = headers
        self.body = body
        super().__init__(f"HTTP {status_code}: {body[:200].decode(errors='replace')}")
