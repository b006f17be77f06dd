from __future__ import annotations

import abc
import time
from dataclasses import dataclass, field

from pahest._core._headers import Headers


@dataclass
class Request:
    method: str
    path: str
    """Path and query string of the request, as the client sent them."""
    headers: Headers = field(default_factory=Headers)


@dataclass
class Response:
    status_code: int
    headers: Headers = field(default_factory=Headers)


@dataclass
class CachedEntry:
    status_code: int
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    created_at: float = field(default_factory=time.time)


class ResponseWriter(abc.ABC):
    """
    The response-writing capability of the host framework.

    A response is written as one ``start`` call, any number of ``write``
    calls and a single terminal ``finish`` call.
    """

    @abc.abstractmethod
    async def start(self, status_code: int, headers: Headers) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    async def write(self, chunk: bytes) -> None:
        raise NotImplementedError()

    @abc.abstractmethod
    async def finish(self) -> None:
        raise NotImplementedError()
