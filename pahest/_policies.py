from __future__ import annotations

import typing as t
from dataclasses import dataclass

from pahest._core._spec import (
    compare_cache_with_headers,
    get_key_from_request,
    get_ttl_from_headers,
    is_exact_client_match,
    should_cache_always,
    transform_headers,
)
from pahest._core.models import CachedEntry, Request, Response

T = t.TypeVar("T")
MaybeAwaitable = t.Union[T, t.Awaitable[T]]

ShouldCacheHook = t.Callable[[Request], MaybeAwaitable[bool]]
GetKeyHook = t.Callable[[Request], MaybeAwaitable[str]]
GetTtlHook = t.Callable[[Response], MaybeAwaitable[int]]
CompareCacheHook = t.Callable[[Request, CachedEntry], MaybeAwaitable[bool]]
ClientMatchHook = t.Callable[[Request, CachedEntry], MaybeAwaitable[bool]]
TransformHeadersHook = t.Callable[[Response, t.Optional[float]], MaybeAwaitable[None]]


@dataclass
class CachePolicy:
    """
    Strategies that drive every caching decision.

    Each hook may be a plain function or a coroutine function, and each one
    can be replaced independently; the defaults implement standard
    Cache-Control / Expires / content negotiation behaviour.

    Example:
        ```python
        from pahest import CachePolicy

        policy = CachePolicy(
            should_cache=lambda request: request.method == "GET",
            estimated_interval=60_000,
        )
        ```
    """

    enabled: bool = True
    """Master switch; when False every request goes straight to the handler."""

    should_cache: ShouldCacheHook = should_cache_always
    """Decides whether a request takes part in caching at all."""

    get_key: GetKeyHook = get_key_from_request
    """Derives the cache key; must return a non-empty string."""

    get_ttl: GetTtlHook = get_ttl_from_headers
    """Computes the lifetime of a fresh response in milliseconds."""

    compare_cache: CompareCacheHook = compare_cache_with_headers
    """Decides whether a stored response is acceptable for the request."""

    cache_client_match: ClientMatchHook = is_exact_client_match
    """Decides whether the client already holds the stored response (304)."""

    transform_headers: TransformHeadersHook = transform_headers
    """Normalizes the caching headers of a fresh response before it is sent."""

    estimated_interval: t.Optional[float] = None
    """
    Lifetime in milliseconds given to responses without an Expires header.
    Passed to ``transform_headers``.
    """
