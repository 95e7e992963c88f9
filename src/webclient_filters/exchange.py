"""Terminal exchange functions: send one request over httpx, return one response."""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeAlias

import httpx

from .models import Request, Response

logger = logging.getLogger(__name__)

ExchangeFunction: TypeAlias = Callable[[Request], Response]
AsyncExchangeFunction: TypeAlias = Callable[[Request], Awaitable[Response]]


def to_httpx_request(client: httpx.Client | httpx.AsyncClient, request: Request) -> httpx.Request:
    # build_request merges the client's base_url and default headers
    return client.build_request(
        request.method,
        request.url,
        headers=list(request.header_items),
        content=request.content,
    )


class HttpxExchange:
    """Blocking transport over an ``httpx.Client``. No retries, no auth."""

    def __init__(self, client: httpx.Client):
        self.client = client

    def __call__(self, request: Request) -> Response:
        raw_request = to_httpx_request(self.client, request)
        logger.debug("Sending %s %s", raw_request.method, raw_request.url)
        raw = self.client.send(raw_request, stream=True)
        return Response.from_httpx(raw, request)


class AsyncHttpxExchange:
    """Async transport over an ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def __call__(self, request: Request) -> Response:
        raw_request = to_httpx_request(self.client, request)
        logger.debug("Sending %s %s", raw_request.method, raw_request.url)
        raw = await self.client.send(raw_request, stream=True)
        return Response.from_httpx(raw, request)
