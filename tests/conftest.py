from __future__ import annotations

import typing as tp

import pytest

from pahest import AsyncInMemoryStorage, CachedEntry, Headers, ResponseWriter


class RecordingWriter(ResponseWriter):
    """A response writer that keeps everything written to it."""

    def __init__(self) -> None:
        self.status_code: tp.Optional[int] = None
        self.headers: tp.Optional[Headers] = None
        self.chunks: list[bytes] = []
        self.finish_calls = 0
        self.events: list[str] = []

    async def start(self, status_code: int, headers: Headers) -> None:
        self.events.append("start")
        self.status_code = status_code
        self.headers = headers.copy()

    async def write(self, chunk: bytes) -> None:
        self.events.append("write")
        self.chunks.append(chunk)

    async def finish(self) -> None:
        self.events.append("finish")
        self.finish_calls += 1

    @property
    def body(self) -> bytes:
        return b"".join(self.chunks)

    @property
    def started(self) -> bool:
        return self.status_code is not None


class SpyStorage(AsyncInMemoryStorage):
    """In-memory storage that records how it was used."""

    def __init__(self, max_size: int = 1024 * 1024) -> None:
        super().__init__(max_size=max_size)
        self.get_calls: list[str] = []
        self.set_calls: list[tuple[str, CachedEntry, int, int]] = []

    async def get(self, key: str) -> tp.Optional[CachedEntry]:
        self.get_calls.append(key)
        return await super().get(key)

    async def set(self, key: str, entry: CachedEntry, *, size_hint: int, ttl: int) -> None:
        self.set_calls.append((key, entry, size_hint, ttl))
        await super().set(key, entry, size_hint=size_hint, ttl=ttl)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_writer() -> tp.Callable[[], RecordingWriter]:
    return RecordingWriter


@pytest.fixture
def storage() -> SpyStorage:
    return SpyStorage()
