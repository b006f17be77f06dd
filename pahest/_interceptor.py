from __future__ import annotations

import logging
import typing as t

from pahest._core._headers import Headers
from pahest._core.models import Response, ResponseWriter

logger = logging.getLogger(__name__)

TransformCallback = t.Callable[[Response], t.Awaitable[None]]
FinishCallback = t.Callable[[Response, bytes], t.Awaitable[None]]


class CapturingResponseWriter(ResponseWriter):
    """
    A writer that records a response while passing it through unchanged.

    Wraps the host's writer before the handler runs. Headers are normalized
    once, right before they are forwarded. Each body chunk is forwarded first
    and recorded after, so delivery to the client is never held back. Once the
    terminal ``finish`` has been forwarded, ``on_finish`` is called exactly
    once with the final status, headers and the assembled body.

    If forwarding fails (for example because the client went away) or the
    handler never finishes the response, ``on_finish`` is not called, so a
    partial body is never handed over for caching.

    Args:
        inner: The writer that actually delivers the response.
        transform: Normalizes the headers of the response in place.
        on_finish: Completion callback receiving the response and its body.
    """

    def __init__(
        self,
        inner: ResponseWriter,
        transform: TransformCallback,
        on_finish: FinishCallback,
    ) -> None:
        self.inner = inner
        self._transform = transform
        self._on_finish = on_finish

        self.response: t.Optional[Response] = None
        self.transform_failed = False
        self.finished = False
        self._chunks: list[bytes] = []

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    async def start(self, status_code: int, headers: Headers) -> None:
        if self.response is not None:
            raise RuntimeError("The response has already been started")

        response = Response(status_code=status_code, headers=headers.copy())
        self.response = response

        try:
            await self._transform(response)
        except Exception:
            # Send the headers as the handler left them, but never store them
            logger.error("Failed to normalize response headers: status=%d", status_code, exc_info=True)
            self.transform_failed = True
            response.headers = headers.copy()

        logger.debug("Intercepted response start: status=%d", status_code)
        await self.inner.start(response.status_code, response.headers)

    async def write(self, chunk: bytes) -> None:
        if self.response is None:
            raise RuntimeError("The response body was written before the response was started")
        if self.finished:
            raise RuntimeError("The response body was written after the response was finished")
        if not chunk:
            return

        await self.inner.write(chunk)
        self._chunks.append(chunk)
        logger.debug("Intercepted response body chunk: size=%d bytes", len(chunk))

    async def finish(self) -> None:
        if self.response is None:
            raise RuntimeError("The response was finished before it was started")
        if self.finished:
            logger.debug("Ignoring repeated finish of an intercepted response")
            return

        await self.inner.finish()
        self.finished = True

        body = self.body
        logger.debug(
            "Intercepted response complete: status=%d total_bytes=%d chunks=%d",
            self.response.status_code,
            len(body),
            len(self._chunks),
        )
        await self._on_finish(self.response, body)
