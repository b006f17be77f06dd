from pahest._core._headers import Headers as Headers
from pahest._core._spec import (
    AnyState as AnyState,
    Applicable as Applicable,
    ComparingFreshness as ComparingFreshness,
    EvaluatingShouldCache as EvaluatingShouldCache,
    ExactMatch as ExactMatch,
    Hit as Hit,
    InterceptAndForward as InterceptAndForward,
    KeyLookup as KeyLookup,
    Miss as Miss,
    OnFinish as OnFinish,
    Passthrough as Passthrough,
    ServeCached as ServeCached,
    Skip as Skip,
    Stale as Stale,
    Start as Start,
    State as State,
    TerminalState as TerminalState,
    compare_cache_with_headers as compare_cache_with_headers,
    get_key_from_request as get_key_from_request,
    get_ttl_from_headers as get_ttl_from_headers,
    is_exact_client_match as is_exact_client_match,
    should_cache_always as should_cache_always,
    transform_headers as transform_headers,
)
from pahest._core.models import (
    CachedEntry as CachedEntry,
    Request as Request,
    Response as Response,
    ResponseWriter as ResponseWriter,
)
from pahest._exceptions import (
    CacheError as CacheError,
    ConfigHookError as ConfigHookError,
    HeaderParseError as HeaderParseError,
    TtlUndeterminedError as TtlUndeterminedError,
)
from pahest._interceptor import CapturingResponseWriter as CapturingResponseWriter
from pahest._lfu_cache import LFUCache as LFUCache
from pahest._storages import AsyncBaseStorage as AsyncBaseStorage, AsyncInMemoryStorage as AsyncInMemoryStorage
from pahest._policies import CachePolicy as CachePolicy
from pahest._async_cache import AsyncCacheProxy as AsyncCacheProxy

__all__ = (
    ## States
    "AnyState",
    "TerminalState",
    "State",
    "Start",
    "Passthrough",
    "EvaluatingShouldCache",
    "Skip",
    "KeyLookup",
    "Hit",
    "Miss",
    "ComparingFreshness",
    "Applicable",
    "Stale",
    "ExactMatch",
    "ServeCached",
    "InterceptAndForward",
    "OnFinish",
    ## Default hooks
    "should_cache_always",
    "get_key_from_request",
    "get_ttl_from_headers",
    "compare_cache_with_headers",
    "is_exact_client_match",
    "transform_headers",
    ## Models
    "Request",
    "Response",
    "CachedEntry",
    "ResponseWriter",
    "CapturingResponseWriter",
    ## Headers
    "Headers",
    ## Errors
    "CacheError",
    "ConfigHookError",
    "HeaderParseError",
    "TtlUndeterminedError",
    ## Storages
    "AsyncBaseStorage",
    "AsyncInMemoryStorage",
    "LFUCache",
    # Proxy
    "AsyncCacheProxy",
    # Policies
    "CachePolicy",
)
