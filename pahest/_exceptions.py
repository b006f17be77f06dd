__all__ = ("CacheError", "ConfigHookError", "HeaderParseError", "TtlUndeterminedError")


class CacheError(Exception): ...


class ConfigHookError(CacheError):
    """A pluggable hook raised an error or returned a malformed value."""


class HeaderParseError(CacheError):
    """A caching header could not be parsed."""


class TtlUndeterminedError(CacheError):
    """Neither Cache-Control nor Expires gave a lifetime for the response."""
