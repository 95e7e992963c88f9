"""Shared pytest fixtures for webclient-filters tests."""

import pytest

from webclient_filters.config import AuthConfig, AuthType
from webclient_filters.models import Request, Response


class RecordingExchange:
    """Terminal exchange that replays canned responses (or raises canned errors)."""

    def __init__(self, *responses: Response | Exception):
        self.responses = list(responses)
        self.requests: list[Request] = []

    def _next(self, request: Request) -> Response:
        self.requests.append(request)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def __call__(self, request: Request) -> Response:
        return self._next(request)

    def authorization_headers(self) -> list[str | None]:
        return [r.headers.get("Authorization") for r in self.requests]


class AsyncRecordingExchange(RecordingExchange):
    async def __call__(self, request: Request) -> Response:
        return self._next(request)


@pytest.fixture
def recording_exchange():
    """Factory fixture for blocking terminal exchanges."""
    return RecordingExchange


@pytest.fixture
def async_recording_exchange():
    """Factory fixture for async terminal exchanges."""
    return AsyncRecordingExchange


@pytest.fixture
def get_request() -> Request:
    return Request.create("GET", "/messages/1")


@pytest.fixture
def auth_config():
    """Factory fixture for creating AuthConfig objects with various configurations."""

    def _create_auth_config(
        auth_type: AuthType = AuthType.NONE,
        username: str | None = None,
        password: str | None = None,
        bearer_token: str | None = None,
        token_url: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        scope: str = "",
    ) -> AuthConfig:
        """Create an AuthConfig with the specified parameters."""
        return AuthConfig(
            auth_type=auth_type,
            username=username,
            password=password,
            bearer_token=bearer_token,
            token_url=token_url,
            client_id=client_id,
            client_secret=client_secret,
            scope=scope,
        )

    return _create_auth_config


@pytest.fixture
def basic_auth(auth_config) -> AuthConfig:
    """Pre-configured HTTP basic auth."""
    return auth_config(auth_type=AuthType.HTTP_BASIC, username="rob", password="rob")


@pytest.fixture
def basic_if_needed_auth(auth_config) -> AuthConfig:
    """Pre-configured conditional HTTP basic auth."""
    return auth_config(auth_type=AuthType.HTTP_BASIC_IF_NEEDED, username="rob", password="rob")


@pytest.fixture
def bearer_auth(auth_config) -> AuthConfig:
    """Pre-configured bearer token auth."""
    return auth_config(auth_type=AuthType.HTTP_BEARER, bearer_token="test-bearer-token-xyz")


@pytest.fixture
def oauth2_refresh_auth(auth_config) -> AuthConfig:
    """Pre-configured OAuth2 bearer refresh using client credentials."""
    return auth_config(
        auth_type=AuthType.OAUTH2_BEARER_REFRESH,
        client_id="client-id-123",
        client_secret="client-secret-456",
        token_url="https://auth.example.com/oauth/token",
        scope="api.read",
    )
