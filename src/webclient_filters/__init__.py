"""HTTP client with authentication implemented as composable exchange filters."""

from .auth import (
    AttemptState,
    AuthorizationFilter,
    BasicCredentials,
    BasicIfNeededFilter,
    BearerCredentials,
    BearerTokenFilter,
    TokenRefreshFilter,
    UnauthorizedRetryFilter,
    basic_authentication,
    basic_if_needed,
    bearer_token,
    encode_basic,
    refresh_token_if_needed,
)
from .client import AsyncWebClient, ResponseEntity, WebClient
from .config import AuthConfig, AuthType, ClientConfig, build_async_filters, build_filters
from .errors import (
    AuthenticationError,
    BodyConsumedError,
    ResponseStatusError,
    TokenRefreshError,
    WebClientError,
)
from .exchange import AsyncHttpxExchange, HttpxExchange
from .filters import (
    ExchangeFilter,
    LoggingFilter,
    RequestProcessorFilter,
    ResponseProcessorFilter,
    compose,
    compose_async,
    request_processor,
    response_processor,
)
from .models import Request, RequestBuilder, Response, StatusCategory
from .tokens import AsyncTokenStore, GrantType, OAuth2TokenEndpoint, TokenStore

__all__ = [
    "AsyncHttpxExchange",
    "AsyncTokenStore",
    "AsyncWebClient",
    "AttemptState",
    "AuthConfig",
    "AuthType",
    "AuthenticationError",
    "AuthorizationFilter",
    "BasicCredentials",
    "BasicIfNeededFilter",
    "BearerCredentials",
    "BearerTokenFilter",
    "BodyConsumedError",
    "ClientConfig",
    "ExchangeFilter",
    "GrantType",
    "HttpxExchange",
    "LoggingFilter",
    "OAuth2TokenEndpoint",
    "Request",
    "RequestBuilder",
    "RequestProcessorFilter",
    "Response",
    "ResponseEntity",
    "ResponseProcessorFilter",
    "ResponseStatusError",
    "StatusCategory",
    "TokenRefreshError",
    "TokenRefreshFilter",
    "TokenStore",
    "UnauthorizedRetryFilter",
    "WebClient",
    "WebClientError",
    "basic_authentication",
    "basic_if_needed",
    "bearer_token",
    "build_async_filters",
    "build_filters",
    "compose",
    "compose_async",
    "encode_basic",
    "refresh_token_if_needed",
    "request_processor",
    "response_processor",
]
