from __future__ import annotations

import calendar
import inspect
import time
import typing as tp
from email.utils import formatdate, parsedate_tz

T = tp.TypeVar("T")

HEADERS_ENCODING = "iso-8859-1"


def parse_date(date: str) -> tp.Optional[int]:
    expires = parsedate_tz(date)
    if expires is None:
        return None
    timestamp = calendar.timegm(expires[:6])
    return timestamp


def now_ms() -> float:
    """Current wall-clock time as milliseconds since the epoch."""
    return time.time() * 1000


def format_http_date(timestamp_ms: float) -> str:
    """
    Format a millisecond timestamp as an HTTP date (RFC 1123 format).

    Sub-second precision is truncated, the same way HTTP dates are.

    Example:
        ```
        format_http_date(1000)
        # 'Thu, 01 Jan 1970 00:00:01 GMT'
        ```
    """
    return formatdate(timeval=timestamp_ms / 1000, localtime=False, usegmt=True)


async def maybe_await(value: tp.Union[T, tp.Awaitable[T]]) -> T:
    """Resolve the result of a hook that may be either sync or async."""
    if inspect.isawaitable(value):
        return await value
    return value
