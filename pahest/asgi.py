from __future__ import annotations

import logging
import typing as t

from pahest._async_cache import AsyncCacheProxy
from pahest._core._headers import Headers
from pahest._core.models import Request, ResponseWriter
from pahest._exceptions import CacheError
from pahest._policies import CachePolicy
from pahest._storages import AsyncBaseStorage
from pahest._utils import HEADERS_ENCODING

logger = logging.getLogger(__name__)


class _ASGIScope(t.TypedDict, total=False):
    """ASGI HTTP scope type."""

    type: str
    asgi: dict[str, str]
    http_version: str
    method: str
    scheme: str
    path: str
    query_string: bytes
    root_path: str
    headers: list[tuple[bytes, bytes]]
    server: tuple[str, int | None] | None
    client: tuple[str, int] | None
    state: dict[str, t.Any]
    extensions: dict[str, t.Any]


_Scope = _ASGIScope
_Receive = t.Callable[[], t.Awaitable[dict[str, t.Any]]]
_Send = t.Callable[[dict[str, t.Any]], t.Awaitable[None]]
_ASGIApp = t.Callable[[_Scope, _Receive, _Send], t.Awaitable[None]]


def _decode_headers(raw_headers: t.Iterable[tuple[bytes, bytes]]) -> Headers:
    headers = Headers()
    for key, value in raw_headers:
        headers.add(key.decode(HEADERS_ENCODING), value.decode(HEADERS_ENCODING))
    return headers


def _encode_headers(headers: Headers) -> list[tuple[bytes, bytes]]:
    return [(key.encode(HEADERS_ENCODING), value.encode(HEADERS_ENCODING)) for key, value in headers.multi_items()]


class _ASGIResponseWriter(ResponseWriter):
    """Writes a response as ASGI ``http.response.*`` messages."""

    def __init__(self, send: _Send) -> None:
        self._send = send
        self.started = False

    async def start(self, status_code: int, headers: Headers) -> None:
        self.started = True
        await self._send(
            {
                "type": "http.response.start",
                "status": status_code,
                "headers": _encode_headers(headers),
            }
        )

    async def write(self, chunk: bytes) -> None:
        await self._send({"type": "http.response.body", "body": chunk, "more_body": True})

    async def finish(self) -> None:
        await self._send({"type": "http.response.body", "body": b"", "more_body": False})


def _send_to_writer(writer: ResponseWriter) -> _Send:
    """Translate the ASGI messages an application sends into writer calls."""

    async def send(message: dict[str, t.Any]) -> None:
        if message["type"] == "http.response.start":
            await writer.start(message["status"], _decode_headers(message.get("headers", [])))
        elif message["type"] == "http.response.body":
            body = message.get("body", b"")
            if body:
                await writer.write(body)
            if not message.get("more_body", False):
                await writer.finish()
        else:
            logger.debug("Ignoring unsupported ASGI message: type=%s", message["type"])

    return send


class ASGICacheMiddleware:
    """
    ASGI middleware that provides HTTP response caching.

    Every HTTP request runs through an ``AsyncCacheProxy``: a usable stored
    response is replayed (or answered with 304 when the client already holds
    it), otherwise the wrapped application runs and its response is captured
    for later requests while it streams to the client.

    Caching is a best-effort overlay: when a caching hook fails, the error is
    logged and the request is handled by the application without caching.

    Args:
        app: The ASGI application to wrap.
        storage: The storage backend to use for caching. Defaults to AsyncInMemoryStorage.
        policy: Caching hooks and switches. Defaults to CachePolicy().

    Example:
        ```python
        from pahest import AsyncInMemoryStorage, CachePolicy
        from pahest.asgi import ASGICacheMiddleware

        app = ASGICacheMiddleware(
            app=my_asgi_app,
            storage=AsyncInMemoryStorage(max_size=50 * 1024 * 1024),
            policy=CachePolicy(estimated_interval=30_000),
        )
        ```
    """

    def __init__(
        self,
        app: _ASGIApp,
        storage: AsyncBaseStorage | None = None,
        policy: CachePolicy | None = None,
    ) -> None:
        self.app = app
        self._proxy = AsyncCacheProxy(storage=storage, policy=policy)

        logger.info(
            "Initialized ASGICacheMiddleware with storage=%s, policy=%s",
            type(self._proxy.storage).__name__,
            type(self._proxy.policy).__name__,
        )

    @property
    def storage(self) -> AsyncBaseStorage:
        return self._proxy.storage

    async def __call__(self, scope: _Scope, receive: _Receive, send: _Send) -> None:
        """
        Handle an ASGI request.

        Args:
            scope: The ASGI scope dictionary.
            receive: The ASGI receive callable.
            send: The ASGI send callable.
        """
        if scope["type"] != "http":
            logger.debug("Skipping non-HTTP request: type=%s", scope["type"])
            await self.app(scope, receive, send)
            return

        request = self._asgi_to_internal_request(scope)
        logger.debug("Incoming HTTP request: method=%s path=%s", request.method, request.path)

        async def handler(writer: ResponseWriter) -> None:
            await self.app(scope, receive, _send_to_writer(writer))

        writer = _ASGIResponseWriter(send)
        try:
            state = await self._proxy.handle_request(request, writer, handler)
        except CacheError:
            if writer.started:
                raise
            logger.error(
                "Error processing request, falling back to the application: method=%s path=%s",
                request.method,
                request.path,
                exc_info=True,
            )
            await self.app(scope, receive, send)
            return

        logger.info(
            "Request processed: method=%s path=%s state=%s",
            request.method,
            request.path,
            state.__class__.__name__,
        )

    def _asgi_to_internal_request(self, scope: _Scope) -> Request:
        """
        Convert an ASGI HTTP scope to an internal Request object.

        Args:
            scope: The ASGI scope dictionary.

        Returns:
            The internal Request object.
        """
        path = scope.get("path", "/")
        query_string = scope.get("query_string", b"")
        if query_string:
            path = f"{path}?{query_string.decode(HEADERS_ENCODING)}"

        return Request(
            method=scope.get("method", "GET"),
            path=path,
            headers=_decode_headers(scope.get("headers", [])),
        )

    async def aclose(self) -> None:
        """Close the storage backend and release resources."""
        logger.info("Closing ASGICacheMiddleware and storage backend")
        await self._proxy.aclose()
