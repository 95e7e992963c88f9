"""Client and authentication configuration."""

from dataclasses import dataclass, field
from enum import Enum

import httpx

from .auth import BearerTokenFilter, basic_authentication, basic_if_needed, refresh_token_if_needed
from .filters import ExchangeFilter
from .tokens import AsyncTokenStore, GrantType, OAuth2TokenEndpoint, TokenStore


class AuthType(Enum):
    """How a client authenticates its requests."""

    NONE = "none"
    HTTP_BASIC = "http_basic"  # Basic on every request
    HTTP_BASIC_IF_NEEDED = "http_basic_if_needed"  # Basic only after a 401
    HTTP_BEARER = "http_bearer"  # Fixed bearer token
    OAUTH2_BEARER_REFRESH = "oauth2_bearer_refresh"  # Bearer token, refreshed after a 401


@dataclass
class AuthConfig:
    """Authentication settings that ``build_filters`` turns into a filter list."""

    auth_type: AuthType = AuthType.NONE

    # HTTP Basic / OAuth2 password grant
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    # HTTP Bearer, or the initial token for OAuth2 refresh
    bearer_token: str | None = field(default=None, repr=False)

    # OAuth2 token endpoint
    token_url: str | None = None
    client_id: str | None = None
    client_secret: str | None = field(default=None, repr=False)
    scope: str = ""


@dataclass
class ClientConfig:
    """Settings for ``WebClient.from_config`` / ``AsyncWebClient.from_config``."""

    base_url: str = ""
    timeout: float = 30.0
    # A dict, or a list of (name, value) pairs to repeat a header
    headers: dict[str, str] | list[tuple[str, str]] = field(default_factory=dict)
    auth: AuthConfig = field(default_factory=AuthConfig)


def token_endpoint(
    auth: AuthConfig,
    client: httpx.Client | None = None,
    async_client: httpx.AsyncClient | None = None,
) -> OAuth2TokenEndpoint:
    """Token endpoint for an OAUTH2_BEARER_REFRESH config.

    Uses the password grant when a username is configured, client credentials otherwise.
    """
    if not auth.token_url:
        raise ValueError("OAuth2 bearer refresh requires token_url")
    grant = GrantType.PASSWORD if auth.username else GrantType.CLIENT_CREDENTIALS
    return OAuth2TokenEndpoint(
        token_url=auth.token_url,
        grant_type=grant,
        username=auth.username,
        password=auth.password,
        client_id=auth.client_id,
        client_secret=auth.client_secret,
        scope=auth.scope,
        client=client,
        async_client=async_client,
    )


def _static_filters(auth: AuthConfig) -> list[ExchangeFilter] | None:
    match auth.auth_type:
        case AuthType.NONE:
            return []

        case AuthType.HTTP_BASIC | AuthType.HTTP_BASIC_IF_NEEDED:
            if not auth.username or auth.password is None:
                raise ValueError(f"{auth.auth_type.value} requires username and password")
            if auth.auth_type == AuthType.HTTP_BASIC:
                return [basic_authentication(auth.username, auth.password)]
            return [basic_if_needed(auth.username, auth.password)]

        case AuthType.HTTP_BEARER:
            if not auth.bearer_token:
                raise ValueError("http_bearer requires bearer_token")
            return [BearerTokenFilter(auth.bearer_token)]

    return None


def build_filters(auth: AuthConfig, client: httpx.Client | None = None) -> list[ExchangeFilter]:
    """Filters for a blocking client, outermost first."""
    filters = _static_filters(auth)
    if filters is not None:
        return filters

    store = TokenStore(token_endpoint(auth, client=client).fetch, token=auth.bearer_token)
    # The bearer filter must sit outside the refresh filter so the retry keeps the new token
    return [BearerTokenFilter(store.current), refresh_token_if_needed(store.refresh)]


def build_async_filters(
    auth: AuthConfig, async_client: httpx.AsyncClient | None = None
) -> list[ExchangeFilter]:
    """Filters for an async client, outermost first."""
    filters = _static_filters(auth)
    if filters is not None:
        return filters

    store = AsyncTokenStore(
        token_endpoint(auth, async_client=async_client).afetch, token=auth.bearer_token
    )
    return [BearerTokenFilter(store.current), refresh_token_if_needed(store.refresh)]
