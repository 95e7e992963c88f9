"""
Web clients: a filter chain around an httpx transport.

Example:
    ```python
    from webclient_filters import WebClient, basic_if_needed

    with WebClient("https://api.example.com").filter(basic_if_needed("rob", "rob")) as client:
        entity = client.retrieve("GET", "/messages/1", into=Message)
        print(entity.body.message)
    ```
"""

from __future__ import annotations

import json as jsonlib
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import httpx
from pydantic import TypeAdapter

from .config import AuthConfig, AuthType, ClientConfig, build_async_filters, build_filters
from .errors import ResponseStatusError
from .exchange import AsyncHttpxExchange, HttpxExchange
from .filters import AsyncFilter, Filter, compose, compose_async
from .models import Request, Response

T = TypeVar("T")


@dataclass(frozen=True)
class ResponseEntity(Generic[T]):
    """A fully read, successful response."""

    status_code: int
    headers: httpx.Headers
    body: T


def build_request(
    method: str,
    url: str,
    headers: Any = None,
    content: bytes | str | None = None,
    json: Any = None,
) -> Request:
    builder = Request.create(method, url, headers=headers).mutate()
    if json is not None:
        builder.body(jsonlib.dumps(json).encode("utf-8"))
        if "Content-Type" not in builder.headers:
            builder.header("Content-Type", "application/json")
    elif content is not None:
        builder.body(content.encode("utf-8") if isinstance(content, str) else content)
    return builder.build()


def decode_body(body: bytes, response: Response, into: type[T] | None = None) -> Any:
    """Bind into ``into`` when given, else JSON for JSON content types, else text."""
    if into is not None:
        return TypeAdapter(into).validate_json(body)
    content_type = response.headers.get("Content-Type", "")
    if "json" in content_type:
        return jsonlib.loads(body) if body else None
    return body.decode(response.charset)


def _needs_token_client(auth: AuthConfig) -> bool:
    # Without token_url, build_filters raises before the client would be used
    return auth.auth_type == AuthType.OAUTH2_BEARER_REFRESH and bool(auth.token_url)


def _entity(response: Response, body: bytes, into: type[T] | None) -> ResponseEntity:
    if response.is_error:
        raise ResponseStatusError(response.status_code, response.headers, body)
    return ResponseEntity(response.status_code, response.headers, decode_body(body, response, into))


class WebClient:
    """Blocking client. Every call runs through ``filters``, outermost first.

    ``filter()`` derives a new client that shares the underlying
    ``httpx.Client``; closing any of them closes it.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        filters: Sequence[Filter] = (),
        timeout: float = 30.0,
        headers: Any = None,
        transport: httpx.BaseTransport | None = None,
        http_client: httpx.Client | None = None,
    ):
        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.Client(
                base_url=base_url, timeout=timeout, headers=headers, transport=transport
            )
        self.base_url = base_url
        self.filters = tuple(filters)
        self.http_client = http_client
        self._token_client: httpx.Client | None = None
        self._exchange = compose(self.filters, HttpxExchange(http_client))

    @classmethod
    def from_config(
        cls, config: ClientConfig, transport: httpx.BaseTransport | None = None
    ) -> WebClient:
        # Token requests get their own client so the API's default headers stay off them
        token_client = None
        if _needs_token_client(config.auth):
            token_client = httpx.Client(
                base_url=config.base_url, timeout=config.timeout, transport=transport
            )
        filters = build_filters(config.auth, token_client)

        http_client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            headers=config.headers,
            transport=transport,
        )
        client = cls(config.base_url, filters=filters, http_client=http_client)
        client._owns_client = True
        client._token_client = token_client
        return client

    def __enter__(self) -> WebClient:
        return self

    def __exit__(self, *args):
        self.close()

    def close(self):
        if self._owns_client:
            self.http_client.close()
            if self._token_client is not None:
                self._token_client.close()

    def filter(self, *filters: Filter) -> WebClient:
        """Return a copy of this client with ``filters`` appended innermost."""
        client = WebClient(
            self.base_url, filters=(*self.filters, *filters), http_client=self.http_client
        )
        client._owns_client = self._owns_client
        client._token_client = self._token_client
        return client

    def exchange(
        self,
        method: str,
        url: str,
        *,
        headers: Any = None,
        content: bytes | str | None = None,
        json: Any = None,
    ) -> Response:
        """Run the filter chain and return the final response with its body unread."""
        return self._exchange(build_request(method, url, headers, content, json))

    def retrieve(
        self, method: str, url: str, into: type[T] | None = None, **kwargs
    ) -> ResponseEntity:
        """Exchange, read the body, and raise ``ResponseStatusError`` on 4xx/5xx."""
        response = self.exchange(method, url, **kwargs)
        return _entity(response, response.read(), into)

    def get(self, url: str, **kwargs) -> Response:
        return self.exchange("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> Response:
        return self.exchange("POST", url, **kwargs)

    def put(self, url: str, **kwargs) -> Response:
        return self.exchange("PUT", url, **kwargs)

    def patch(self, url: str, **kwargs) -> Response:
        return self.exchange("PATCH", url, **kwargs)

    def delete(self, url: str, **kwargs) -> Response:
        return self.exchange("DELETE", url, **kwargs)


class AsyncWebClient:
    """asyncio counterpart of ``WebClient``."""

    def __init__(
        self,
        base_url: str = "",
        *,
        filters: Sequence[AsyncFilter] = (),
        timeout: float = 30.0,
        headers: Any = None,
        transport: httpx.AsyncBaseTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._owns_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(
                base_url=base_url, timeout=timeout, headers=headers, transport=transport
            )
        self.base_url = base_url
        self.filters = tuple(filters)
        self.http_client = http_client
        self._token_client: httpx.AsyncClient | None = None
        self._exchange = compose_async(self.filters, AsyncHttpxExchange(http_client))

    @classmethod
    def from_config(
        cls, config: ClientConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> AsyncWebClient:
        token_client = None
        if _needs_token_client(config.auth):
            token_client = httpx.AsyncClient(
                base_url=config.base_url, timeout=config.timeout, transport=transport
            )
        filters = build_async_filters(config.auth, token_client)

        http_client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
            headers=config.headers,
            transport=transport,
        )
        client = cls(config.base_url, filters=filters, http_client=http_client)
        client._owns_client = True
        client._token_client = token_client
        return client

    async def __aenter__(self) -> AsyncWebClient:
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self.http_client.aclose()
            if self._token_client is not None:
                await self._token_client.aclose()

    def filter(self, *filters: AsyncFilter) -> AsyncWebClient:
        client = AsyncWebClient(
            self.base_url, filters=(*self.filters, *filters), http_client=self.http_client
        )
        client._owns_client = self._owns_client
        client._token_client = self._token_client
        return client

    async def exchange(
        self,
        method: str,
        url: str,
        *,
        headers: Any = None,
        content: bytes | str | None = None,
        json: Any = None,
    ) -> Response:
        return await self._exchange(build_request(method, url, headers, content, json))

    async def retrieve(
        self, method: str, url: str, into: type[T] | None = None, **kwargs
    ) -> ResponseEntity:
        response = await self.exchange(method, url, **kwargs)
        return _entity(response, await response.aread(), into)

    async def get(self, url: str, **kwargs) -> Response:
        return await self.exchange("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> Response:
        return await self.exchange("POST", url, **kwargs)

    async def put(self, url: str, **kwargs) -> Response:
        return await self.exchange("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs) -> Response:
        return await self.exchange("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs) -> Response:
        return await self.exchange("DELETE", url, **kwargs)
