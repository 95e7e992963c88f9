"""
Exchange filters and their composition.

A filter sees the outgoing request together with ``next``, the remainder of
the chain, and decides how (and whether) to call it. Filters compose
left-to-right on the way out and right-to-left on the way back.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol, TypeAlias, Union

from .exchange import AsyncExchangeFunction, ExchangeFunction
from .models import Request, Response

logger = logging.getLogger(__name__)


class FilterFunction(Protocol):
    def __call__(self, request: Request, next: ExchangeFunction) -> Response: ...


class AsyncFilterFunction(Protocol):
    def __call__(self, request: Request, next: AsyncExchangeFunction) -> Awaitable[Response]: ...


class ExchangeFilter(ABC):
    """Base class for filters usable in both blocking and async chains."""

    @abstractmethod
    def filter(self, request: Request, next: ExchangeFunction) -> Response:
        ...

    @abstractmethod
    async def afilter(self, request: Request, next: AsyncExchangeFunction) -> Response:
        ...


Filter: TypeAlias = Union[ExchangeFilter, FilterFunction]
AsyncFilter: TypeAlias = Union[ExchangeFilter, AsyncFilterFunction]


def compose(filters: Sequence[Filter], terminal: ExchangeFunction) -> ExchangeFunction:
    """Wrap ``terminal`` so that ``filters[0]`` is the outermost filter."""
    exchange = terminal
    for item in reversed(filters):
        fn = item.filter if isinstance(item, ExchangeFilter) else item
        next_exchange = exchange

        def _wrapped(
            request: Request, *, _fn: FilterFunction = fn, _n: ExchangeFunction = next_exchange
        ) -> Response:
            return _fn(request, _n)

        exchange = _wrapped
    return exchange


def compose_async(
    filters: Sequence[AsyncFilter], terminal: AsyncExchangeFunction
) -> AsyncExchangeFunction:
    exchange = terminal
    for item in reversed(filters):
        fn = item.afilter if isinstance(item, ExchangeFilter) else item
        next_exchange = exchange

        async def _wrapped(
            request: Request,
            *,
            _fn: AsyncFilterFunction = fn,
            _n: AsyncExchangeFunction = next_exchange,
        ) -> Response:
            return await _fn(request, _n)

        exchange = _wrapped
    return exchange


class RequestProcessorFilter(ExchangeFilter):
    """Rewrites the request, then forwards it."""

    def __init__(self, processor: Callable[[Request], Request]):
        self.processor = processor

    def filter(self, request: Request, next: ExchangeFunction) -> Response:
        return next(self.processor(request))

    async def afilter(self, request: Request, next: AsyncExchangeFunction) -> Response:
        return await next(self.processor(request))


class ResponseProcessorFilter(ExchangeFilter):
    """Forwards the request, then transforms the response."""

    def __init__(self, processor: Callable[[Response], Response]):
        self.processor = processor

    def filter(self, request: Request, next: ExchangeFunction) -> Response:
        return self.processor(next(request))

    async def afilter(self, request: Request, next: AsyncExchangeFunction) -> Response:
        return self.processor(await next(request))


def request_processor(processor: Callable[[Request], Request]) -> RequestProcessorFilter:
    return RequestProcessorFilter(processor)


def response_processor(processor: Callable[[Response], Response]) -> ResponseProcessorFilter:
    return ResponseProcessorFilter(processor)


class LoggingFilter(ExchangeFilter):
    """Logs every exchange that passes through it at DEBUG."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def filter(self, request: Request, next: ExchangeFunction) -> Response:
        response = next(request)
        self.log.debug("%s %s -> %d", request.method, request.url, response.status_code)
        return response

    async def afilter(self, request: Request, next: AsyncExchangeFunction) -> Response:
        response = await next(request)
        self.log.debug("%s %s -> %d", request.method, request.url, response.status_code)
        return response
