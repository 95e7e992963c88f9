"""Token acquisition: OAuth2 token endpoint client and single-flight token stores."""

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

import httpx

from .errors import AuthenticationError, TokenRefreshError

logger = logging.getLogger(__name__)


class GrantType(Enum):
    """OAuth2 grants that can mint an access token without user interaction."""

    PASSWORD = "password"
    CLIENT_CREDENTIALS = "client_credentials"
    REFRESH_TOKEN = "refresh_token"


def extract_error(response: httpx.Response) -> str:
    """Extract error message from a token endpoint response."""
    try:
        data = response.json()
        return data.get("error_description") or data.get("error") or data.get("detail") or str(data)
    except Exception:
        return response.text[:200]


@dataclass
class OAuth2TokenEndpoint:
    """Fetches access tokens from an OAuth2 token endpoint.

    ``fetch`` and ``afetch`` are plain zero-argument callables, so they can be
    handed straight to ``refresh_token_if_needed`` or a token store. The
    endpoint is called with its own httpx client, never through a filter chain.
    """

    token_url: str
    grant_type: GrantType = GrantType.CLIENT_CREDENTIALS
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    client_id: str | None = None
    client_secret: str | None = field(default=None, repr=False)
    refresh_token: str | None = field(default=None, repr=False)
    scope: str = ""
    timeout: float = 30.0
    client: httpx.Client | None = field(default=None, repr=False)
    async_client: httpx.AsyncClient | None = field(default=None, repr=False)

    def form(self) -> dict[str, str]:
        """Build the form body for the configured grant."""
        data = {"grant_type": self.grant_type.value}

        match self.grant_type:
            case GrantType.PASSWORD:
                if not (self.username and self.password):
                    raise AuthenticationError(
                        "OAuth2 password grant requires username and password"
                    )
                data["username"] = self.username
                data["password"] = self.password

            case GrantType.CLIENT_CREDENTIALS:
                if not (self.client_id and self.client_secret):
                    raise AuthenticationError(
                        "OAuth2 client credentials grant requires client_id and client_secret"
                    )

            case GrantType.REFRESH_TOKEN:
                if not self.refresh_token:
                    raise AuthenticationError("OAuth2 refresh_token grant requires a refresh token")
                data["refresh_token"] = self.refresh_token

        # Client credentials travel in the body for every grant that has them
        if self.client_id:
            data["client_id"] = self.client_id
        if self.client_secret:
            data["client_secret"] = self.client_secret
        if self.scope:
            data["scope"] = self.scope
        return data

    def _parse(self, response: httpx.Response) -> str:
        if response.status_code != 200:
            raise TokenRefreshError(
                f"Token request failed ({response.status_code}): {extract_error(response)}",
                status_code=response.status_code,
            )

        try:
            token_data = response.json()
        except ValueError:
            raise TokenRefreshError(
                "Token request failed (200): response is not JSON", status_code=200
            ) from None
        if not isinstance(token_data, dict):
            raise TokenRefreshError(
                "Token request failed (200): response is not a JSON object", status_code=200
            )

        access_token = token_data.get("access_token")
        if not access_token or not isinstance(access_token, str):
            raise TokenRefreshError(
                "Token request failed (200): response has no access_token", status_code=200
            )

        token_type = token_data.get("token_type")
        if not isinstance(token_type, str) or not token_type:
            token_type = "Bearer"
        if token_type.lower() != "bearer":
            logger.warning(
                "Token endpoint returned token_type %r; sending it as Bearer", token_type
            )
        logger.debug("Got %s token from %s", token_type, self.token_url)
        return access_token

    def fetch(self) -> str:
        data = self.form()
        logger.debug("Requesting %s token from %s", self.grant_type.value, self.token_url)
        if self.client is not None:
            return self._parse(self.client.post(self.token_url, data=data))
        with httpx.Client(timeout=self.timeout) as client:
            return self._parse(client.post(self.token_url, data=data))

    async def afetch(self) -> str:
        data = self.form()
        logger.debug("Requesting %s token from %s", self.grant_type.value, self.token_url)
        if self.async_client is not None:
            return self._parse(await self.async_client.post(self.token_url, data=data))
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return self._parse(await client.post(self.token_url, data=data))


class TokenStore:
    """Caches the current access token and refreshes it single-flight.

    Threads that ask for a refresh while another refresh is in flight wait
    for it and reuse its token instead of hitting the token endpoint again.
    """

    def __init__(self, fetch: Callable[[], str], token: str | None = None):
        self._fetch = fetch
        self._token = token
        self._generation = 0
        self._lock = threading.Lock()

    def current(self) -> str | None:
        """The cached token, or None before the first refresh."""
        return self._token

    def refresh(self) -> str:
        seen = self._generation
        with self._lock:
            if self._generation != seen and self._token is not None:
                return self._token
            token = self._fetch()
            self._token = token
            self._generation += 1
            return token


class AsyncTokenStore:
    """asyncio counterpart of ``TokenStore``."""

    def __init__(self, fetch: Callable[[], Awaitable[str]], token: str | None = None):
        self._fetch = fetch
        self._token = token
        self._generation = 0
        self._lock = asyncio.Lock()

    def current(self) -> str | None:
        return self._token

    async def refresh(self) -> str:
        seen = self._generation
        async with self._lock:
            if self._generation != seen and self._token is not None:
                return self._token
            token = await self._fetch()
            self._token = token
            self._generation += 1
            return token
