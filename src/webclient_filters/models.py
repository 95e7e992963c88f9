"""Request and response value types passed through the filter chain."""

import codecs
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter

from .errors import BodyConsumedError

T = TypeVar("T")

HeaderItems = tuple[tuple[str, str], ...]


class StatusCategory(Enum):
    """Class of an HTTP status code (its first digit)."""

    INFORMATIONAL = 1
    SUCCESS = 2
    REDIRECTION = 3
    CLIENT_ERROR = 4
    SERVER_ERROR = 5

    @classmethod
    def of(cls, status_code: int) -> "StatusCategory":
        try:
            return cls(status_code // 100)
        except ValueError:
            raise ValueError(f"Invalid HTTP status code: {status_code}") from None


def _header_items(headers: Any) -> list[tuple[str, str]]:
    """Flatten any httpx-compatible header input into ordered (name, value) pairs."""
    if headers is None:
        return []
    return [
        (key.decode("latin-1"), value.decode("latin-1"))
        for key, value in httpx.Headers(headers).raw
    ]


@dataclass(frozen=True)
class Request:
    """An outgoing request. Frozen: use ``mutate()`` to derive a changed copy."""

    method: str
    url: str
    header_items: HeaderItems = ()
    content: bytes | None = None

    @classmethod
    def create(
        cls,
        method: str,
        url: str,
        headers: Any = None,
        content: bytes | None = None,
    ) -> "Request":
        return RequestBuilder(method, url, headers=headers, content=content).build()

    @property
    def headers(self) -> httpx.Headers:
        """Case-insensitive view of the headers. A fresh copy on every access."""
        return httpx.Headers(list(self.header_items))

    def mutate(self) -> "RequestBuilder":
        return RequestBuilder(
            self.method, self.url, headers=self.header_items, content=self.content
        )


class RequestBuilder:
    """Mutable staging area for a ``Request``."""

    def __init__(
        self,
        method: str,
        url: str,
        headers: Any = None,
        content: bytes | None = None,
    ):
        self.method = method.upper()
        self.url = str(url)
        self.content = content
        self._items = _header_items(headers)

    @property
    def headers(self) -> httpx.Headers:
        return httpx.Headers(self._items)

    def header(self, name: str, *values: str) -> "RequestBuilder":
        """Replace every value of ``name`` with ``values``."""
        self.remove_header(name)
        self._items.extend((name, value) for value in values)
        return self

    def add_header(self, name: str, value: str) -> "RequestBuilder":
        self._items.append((name, value))
        return self

    def remove_header(self, name: str) -> "RequestBuilder":
        lowered = name.lower()
        self._items = [(k, v) for k, v in self._items if k.lower() != lowered]
        return self

    def body(self, content: bytes | None) -> "RequestBuilder":
        self.content = content
        return self

    def build(self) -> Request:
        return Request(
            method=self.method,
            url=self.url,
            header_items=tuple(self._items),
            content=self.content,
        )


class Response:
    """An incoming response whose body can be consumed exactly once.

    The body is either given up front (``content``) or pulled lazily from a
    streamed ``httpx.Response``. Reading it a second time, or reading it after
    ``close()``, raises ``BodyConsumedError``.
    """

    def __init__(
        self,
        status_code: int,
        headers: Any = None,
        content: bytes = b"",
        *,
        request: Request | None = None,
        stream: httpx.Response | None = None,
    ):
        self.status_code = status_code
        self.headers = httpx.Headers(headers)
        self.request = request
        self._content = content
        self._stream = stream
        self._consumed = False
        self._released = False

    @classmethod
    def from_httpx(cls, raw: httpx.Response, request: Request | None = None) -> "Response":
        return cls(raw.status_code, raw.headers, request=request, stream=raw)

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"

    @property
    def status_category(self) -> StatusCategory:
        return StatusCategory.of(self.status_code)

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_error(self) -> bool:
        return self.status_category in (StatusCategory.CLIENT_ERROR, StatusCategory.SERVER_ERROR)

    @property
    def is_consumed(self) -> bool:
        return self._consumed or self._released

    @property
    def charset(self) -> str:
        """Declared charset from Content-Type; utf-8 when absent or unknown."""
        content_type = self.headers.get("Content-Type", "")
        for param in content_type.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                charset = value.strip('"')
                try:
                    codecs.lookup(charset)
                except LookupError:
                    return "utf-8"
                return charset
        return "utf-8"

    def _claim_body(self):
        if self._released:
            raise BodyConsumedError("Response body was released without being read")
        if self._consumed:
            raise BodyConsumedError("Response body has already been read")
        self._consumed = True

    def read(self) -> bytes:
        self._claim_body()
        if self._stream is None:
            return self._content
        try:
            return self._stream.read()
        finally:
            self._stream.close()

    async def aread(self) -> bytes:
        self._claim_body()
        if self._stream is None:
            return self._content
        try:
            return await self._stream.aread()
        finally:
            await self._stream.aclose()

    def text(self) -> str:
        return self.read().decode(self.charset)

    async def atext(self) -> str:
        return (await self.aread()).decode(self.charset)

    def json(self) -> Any:
        return json.loads(self.read())

    async def ajson(self) -> Any:
        return json.loads(await self.aread())

    def to_entity(self, model: type[T]) -> T:
        """Read the body and bind it into ``model`` (dataclass, pydantic model, ...)."""
        return TypeAdapter(model).validate_json(self.read())

    async def ato_entity(self, model: type[T]) -> T:
        return TypeAdapter(model).validate_json(await self.aread())

    def close(self):
        """Release an unread body without reading it."""
        if self.is_consumed:
            return
        self._released = True
        if self._stream is not None:
            self._stream.close()

    async def aclose(self):
        if self.is_consumed:
            return
        self._released = True
        if self._stream is not None:
            await self._stream.aclose()
