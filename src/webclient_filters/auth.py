"""Credential strategies and the filters that attach them.

Two families of filters live here:

* attachment filters (``basic_authentication``, ``bearer_token``) that always
  set the ``Authorization`` header before forwarding, and
* retry-on-401 filters (``basic_if_needed``, ``refresh_token_if_needed``) that
  send the request as-is first and only upgrade the credentials when the
  server answers 401 Unauthorized. They retry at most once per call.
"""

import base64
import inspect
import logging
from abc import abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Union

from .exchange import AsyncExchangeFunction, ExchangeFunction
from .filters import ExchangeFilter
from .models import Request, Response

logger = logging.getLogger(__name__)

AUTHORIZATION = "Authorization"

TokenSource = Union[str, Callable[[], str | None]]
TokenRefresher = Callable[[], Union[str, Awaitable[str]]]


class Credentials(Protocol):
    """Something that can render an ``Authorization`` header value."""

    def header_value(self) -> str | None: ...


def encode_basic(username: str, password: str) -> str:
    """Render an RFC 7617 Basic credential, e.g. ``Basic cm9iOnJvYg==``."""
    credentials = f"{username}:{password}"
    encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


@dataclass(frozen=True)
class BasicCredentials:
    """HTTP Basic username/password pair."""

    username: str
    password: str = field(repr=False)

    def header_value(self) -> str:
        return encode_basic(self.username, self.password)


@dataclass(frozen=True)
class BearerCredentials:
    """A bearer token, fixed or read from a supplier on every request."""

    token: TokenSource = field(repr=False)

    def header_value(self) -> str | None:
        token = self.token() if callable(self.token) else self.token
        if token is None:
            return None
        return f"Bearer {token}"


class AuthorizationFilter(ExchangeFilter):
    """Sets ``Authorization`` from ``credentials``, replacing any prior value.

    When the credentials have nothing to offer yet (a token store before its
    first refresh) the request is forwarded untouched.
    """

    def __init__(self, credentials: Credentials):
        self.credentials = credentials

    def apply(self, request: Request) -> Request:
        value = self.credentials.header_value()
        if value is None:
            return request
        return request.mutate().header(AUTHORIZATION, value).build()

    def filter(self, request: Request, next: ExchangeFunction) -> Response:
        return next(self.apply(request))

    async def afilter(self, request: Request, next: AsyncExchangeFunction) -> Response:
        return await next(self.apply(request))


class BearerTokenFilter(AuthorizationFilter):
    """Attaches ``Authorization: Bearer <token>``.

    ``token`` may be a string or a zero-argument callable returning the
    current token (for example ``TokenStore.current``).
    """

    def __init__(self, token: TokenSource):
        super().__init__(BearerCredentials(token))


def basic_authentication(username: str, password: str) -> AuthorizationFilter:
    return AuthorizationFilter(BasicCredentials(username, password))


def bearer_token(token: TokenSource) -> BearerTokenFilter:
    return BearerTokenFilter(token)


class AttemptState(Enum):
    """Progress of a single call through a retry-on-401 filter."""

    INITIAL = "initial"
    FIRST_ATTEMPT_SENT = "first_attempt_sent"
    PASSED_THROUGH = "passed_through"  # terminal: first response returned
    UNAUTHORIZED = "unauthorized"
    CREDENTIAL_UPGRADE = "credential_upgrade"
    RETRY_ATTEMPT_SENT = "retry_attempt_sent"  # terminal: second response returned


class UnauthorizedRetryFilter(ExchangeFilter):
    """Send once; on 401, upgrade the credentials and send the original request once more.

    The second response is returned whatever its status, so a server that keeps
    answering 401 costs exactly two exchanges. Subclasses provide the filter
    that attaches the upgraded credentials.
    """

    @abstractmethod
    def credential_filter(self) -> ExchangeFilter:
        """The filter that attaches the upgraded credentials for the retry."""

    async def acredential_filter(self) -> ExchangeFilter:
        return self.credential_filter()

    def _enter(self, state: AttemptState, request: Request):
        logger.debug("%s %s %s: %s", type(self).__name__, request.method, request.url, state.name)

    def filter(self, request: Request, next: ExchangeFunction) -> Response:
        self._enter(AttemptState.INITIAL, request)
        response = next(request)
        self._enter(AttemptState.FIRST_ATTEMPT_SENT, request)
        if not response.is_unauthorized:
            self._enter(AttemptState.PASSED_THROUGH, request)
            return response

        self._enter(AttemptState.UNAUTHORIZED, request)
        response.close()
        self._enter(AttemptState.CREDENTIAL_UPGRADE, request)
        upgraded = self.credential_filter()
        response = upgraded.filter(request, next)
        self._enter(AttemptState.RETRY_ATTEMPT_SENT, request)
        return response

    async def afilter(self, request: Request, next: AsyncExchangeFunction) -> Response:
        self._enter(AttemptState.INITIAL, request)
        response = await next(request)
        self._enter(AttemptState.FIRST_ATTEMPT_SENT, request)
        if not response.is_unauthorized:
            self._enter(AttemptState.PASSED_THROUGH, request)
            return response

        self._enter(AttemptState.UNAUTHORIZED, request)
        await response.aclose()
        self._enter(AttemptState.CREDENTIAL_UPGRADE, request)
        upgraded = await self.acredential_filter()
        response = await upgraded.afilter(request, next)
        self._enter(AttemptState.RETRY_ATTEMPT_SENT, request)
        return response


class BasicIfNeededFilter(UnauthorizedRetryFilter):
    """Sends without credentials first; retries with HTTP Basic after a 401."""

    def __init__(self, username: str, password: str):
        self._basic = basic_authentication(username, password)

    def credential_filter(self) -> ExchangeFilter:
        return self._basic


class TokenRefreshFilter(UnauthorizedRetryFilter):
    """Fetches a new bearer token after a 401 and retries with it.

    ``refresh`` is called once per 401 and must return the new token. Under an
    async chain it may also return an awaitable. Errors raised by ``refresh``
    propagate; the refresh itself is never retried here.
    """

    def __init__(self, refresh: TokenRefresher):
        self.refresh = refresh

    def credential_filter(self) -> ExchangeFilter:
        token = self.refresh()
        if inspect.isawaitable(token):
            if inspect.iscoroutine(token):
                token.close()
            raise TypeError("Token refresher returned an awaitable; use it with an async client")
        logger.debug("Retrying with refreshed bearer token")
        return BearerTokenFilter(token)

    async def acredential_filter(self) -> ExchangeFilter:
        token = self.refresh()
        if inspect.isawaitable(token):
            token = await token
        logger.debug("Retrying with refreshed bearer token")
        return BearerTokenFilter(token)


def basic_if_needed(username: str, password: str) -> BasicIfNeededFilter:
    return BasicIfNeededFilter(username, password)


def refresh_token_if_needed(refresh: TokenRefresher) -> TokenRefreshFilter:
    return TokenRefreshFilter(refresh)
