from __future__ import annotations

import logging
import math
from typing import Any, Awaitable, Callable, Optional

from typing_extensions import assert_never

from pahest._core._spec import (
    AnyState,
    Applicable,
    ComparingFreshness,
    EvaluatingShouldCache,
    ExactMatch,
    Hit,
    InterceptAndForward,
    KeyLookup,
    Miss,
    OnFinish,
    Passthrough,
    ServeCached,
    Skip,
    Stale,
    Start,
    TerminalState,
)
from pahest._core.models import CachedEntry, Request, Response, ResponseWriter
from pahest._exceptions import CacheError, ConfigHookError
from pahest._interceptor import CapturingResponseWriter
from pahest._policies import CachePolicy
from pahest._storages import AsyncBaseStorage, AsyncInMemoryStorage
from pahest._utils import maybe_await

logger = logging.getLogger("pahest.proxy")

Handler = Callable[[ResponseWriter], Awaitable[None]]

# Hop-by-hop headers describe one connection and are never stored
# https://www.rfc-editor.org/rfc/rfc9111.html#section-3.1
UNSTORABLE_HEADERS = ("connection", "keep-alive", "proxy-connection", "transfer-encoding", "upgrade")


class AsyncCacheProxy:
    """
    Decides, per request, whether a stored response can answer it, and
    captures fresh responses so that later requests can be answered from the
    storage.

    This class is independent of any web framework and works only with
    internal models. The framework supplies the response writer and the
    handler that produces a fresh response; caching behaviour is determined
    by the policy object.

    Args:
        storage: Storage backend for cache entries. Defaults to AsyncInMemoryStorage.
        policy: Hooks driving the caching decisions. Defaults to CachePolicy().
    """

    def __init__(
        self,
        storage: AsyncBaseStorage | None = None,
        policy: CachePolicy | None = None,
    ) -> None:
        self.storage = storage if storage is not None else AsyncInMemoryStorage()
        self.policy = policy if policy is not None else CachePolicy()

    async def handle_request(self, request: Request, writer: ResponseWriter, handler: Handler) -> TerminalState:
        """
        Answers the request either from the cache or through the handler.

        Raises:
            ConfigHookError: A decision hook failed or returned a malformed value.
                Nothing has been written to ``writer`` at that point.
            HeaderParseError: Raised by a custom hook that parses headers.
        """
        state: AnyState = Start(request=request)

        while True:
            logger.debug("Handling state: %s", state.__class__.__name__)
            if isinstance(state, Start):
                state = state.next(self.policy.enabled)
            elif isinstance(state, EvaluatingShouldCache):
                state = state.next(await self._should_cache(state.request))
            elif isinstance(state, KeyLookup):
                state = await self._handle_key_lookup(state)
            elif isinstance(state, Hit):
                logger.debug("Cache hit for: %s", state.key)
                state = state.next()
            elif isinstance(state, Miss):
                logger.debug("Cache miss for: %s", state.key)
                state = state.next()
            elif isinstance(state, ComparingFreshness):
                state = state.next(await self._compare_cache(state.request, state.entry))
            elif isinstance(state, Applicable):
                state = state.next(await self._client_match(state.request, state.entry))
            elif isinstance(state, Stale):
                logger.debug("Cached response did not pass compare_cache, re-running: %s", state.key)
                state = state.next()
            elif isinstance(state, InterceptAndForward):
                state = await self._handle_intercept_and_forward(state, writer, handler)
            elif isinstance(state, (Passthrough, Skip)):
                await handler(writer)
                return state
            elif isinstance(state, ExactMatch):
                await self._send_not_modified(state, writer)
                return state
            elif isinstance(state, ServeCached):
                await self._send_cached(state.entry, writer)
                return state
            elif isinstance(state, OnFinish):
                return state
            else:
                assert_never(state)

    async def _call_hook(self, name: str, hook: Callable[..., Any], *args: Any) -> Any:
        try:
            return await maybe_await(hook(*args))
        except CacheError:
            raise
        except Exception as exc:
            raise ConfigHookError(f"Provided {name} hook returned an error.") from exc

    async def _should_cache(self, request: Request) -> bool:
        should_cache = await self._call_hook("should_cache", self.policy.should_cache, request)
        if not isinstance(should_cache, bool):
            raise ConfigHookError("Provided should_cache hook should return a boolean.")
        return should_cache

    async def _get_key(self, request: Request) -> str:
        key = await self._call_hook("get_key", self.policy.get_key, request)
        if not isinstance(key, str) or not key:
            raise ConfigHookError("Provided get_key hook should return a non-empty string.")
        return key

    async def _compare_cache(self, request: Request, entry: CachedEntry) -> bool:
        applicable = await self._call_hook("compare_cache", self.policy.compare_cache, request, entry)
        if not isinstance(applicable, bool):
            raise ConfigHookError("Provided compare_cache hook should return a boolean.")
        return applicable

    async def _client_match(self, request: Request, entry: CachedEntry) -> bool:
        client_match = await self._call_hook("cache_client_match", self.policy.cache_client_match, request, entry)
        if not isinstance(client_match, bool):
            raise ConfigHookError("Provided cache_client_match hook should return a boolean.")
        return client_match

    async def _get_ttl(self, response: Response) -> int:
        ttl = await self._call_hook("get_ttl", self.policy.get_ttl, response)
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)) or not math.isfinite(ttl):
            raise ConfigHookError("Provided get_ttl hook should return a number of milliseconds.")
        return int(ttl)

    async def _transform_headers(self, response: Response) -> None:
        await maybe_await(self.policy.transform_headers(response, self.policy.estimated_interval))

    async def _handle_key_lookup(self, state: KeyLookup) -> AnyState:
        key = await self._get_key(state.request)
        try:
            entry = await self.storage.get(key)
        except Exception:
            logger.error("Failed to read cache: key=%s", key, exc_info=True)
            entry = None
        return state.next(key, entry)

    async def _handle_intercept_and_forward(
        self, state: InterceptAndForward, writer: ResponseWriter, handler: Handler
    ) -> AnyState:
        finished: Optional[OnFinish] = None

        async def on_finish(response: Response, body: bytes) -> None:
            nonlocal finished
            finished = state.next(response, body)
            await self._store(finished, response, capturing_writer.transform_failed)

        capturing_writer = CapturingResponseWriter(
            writer,
            transform=self._transform_headers,
            on_finish=on_finish,
        )
        await handler(capturing_writer)

        if finished is None:
            logger.debug("Handler returned without finishing the response: key=%s", state.key)
            return state.next(None)
        return finished

    async def _store(self, state: OnFinish, response: Response, transform_failed: bool) -> None:
        if not state.cacheable:
            logger.debug("Non 2XX status code, not saving: status=%d", response.status_code)
            return
        if transform_failed:
            logger.debug("Headers were not normalized, not saving: key=%s", state.key)
            return

        try:
            ttl = await self._get_ttl(response)
        except CacheError as exc:
            logger.warning("Response will not be cached: key=%s error=%s", state.key, exc)
            return

        headers = response.headers.copy()
        for name in UNSTORABLE_HEADERS:
            headers.pop(name, None)

        entry = CachedEntry(status_code=response.status_code, headers=headers, body=state.body)

        logger.debug("Setting cache: key=%s ttl=%d", state.key, ttl)
        try:
            await self.storage.set(state.key, entry, size_hint=len(state.body), ttl=max(ttl, 0))
        except Exception:
            logger.error("Failed to store response: key=%s", state.key, exc_info=True)
            return
        state.stored = True

    async def _send_not_modified(self, state: ExactMatch, writer: ResponseWriter) -> None:
        logger.debug("Client already holds the cached response: %s", state.key)
        await writer.start(304, state.not_modified_headers())
        await writer.finish()

    async def _send_cached(self, entry: CachedEntry, writer: ResponseWriter) -> None:
        await writer.start(entry.status_code, entry.headers.copy())
        if entry.body:
            await writer.write(entry.body)
        await writer.finish()

    async def aclose(self) -> None:
        await self.storage.close()
