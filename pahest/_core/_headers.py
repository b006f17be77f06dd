from __future__ import annotations

from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Union,
)

from pahest._exceptions import HeaderParseError

"""
HTTP token and quoted-string parsing utilities.

These functions implement RFC 7230 parsing rules for HTTP/1.1 tokens
and quoted strings.
"""


def is_char(c: str) -> bool:
    """
    Check if character is a valid ASCII character (0-127).

    Per RFC 7230: CHAR = any US-ASCII character (octets 0 - 127)
    """
    if not c:
        return False
    return ord(c) <= 127


def is_ctl(c: str) -> bool:
    """
    Check if character is a control character.

    Per RFC 7230: CTL = control characters (0-31 and 127)
    """
    if not c:
        return False
    b = ord(c)
    return b <= 31 or b == 127


def is_separator(c: str) -> bool:
    """
    Check if character is an HTTP separator.

    Per RFC 2616 Section 2.2:
    separators = "(" | ")" | "<" | ">" | "@"
               | "," | ";" | ":" | "\" | <">
               | "/" | "[" | "]" | "?" | "="
               | "{" | "}" | SP | HT
    """
    if not c:
        return False
    return c in '()<>@,;:\\"/[]?={} \t'


def is_token(c: str) -> bool:
    """
    Check if character is valid in an HTTP token.

    Per RFC 7230 Section 3.2.6:
    token = 1*tchar
    tchar = "!" / "#" / "$" / "%" / "&" / "'" / "*"
          / "+" / "-" / "." / "0"-"9" / "A"-"Z"
          / "^" / "_" / "`" / "a"-"z" / "|" / "~"

    Examples:
        >>> is_token('a')
        True
        >>> is_token('-')
        True
        >>> is_token(' ')
        False
        >>> is_token('=')
        False
    """
    return is_char(c) and not is_ctl(c) and not is_separator(c)


def is_qd_text(c: str) -> bool:
    r"""
    Check if character is valid in quoted-text.

    Per RFC 7230 Section 3.2.6:
    qdtext = HTAB / SP / %x21 / %x23-5B / %x5D-7E / obs-text
    """
    if not c:
        return False

    b = ord(c)
    return (
        b == 0x09  # HTAB
        or b == 0x20  # SP
        or b == 0x21  # !
        or (0x23 <= b <= 0x5B)
        or (0x5D <= b <= 0x7E)
        or b >= 0x80
    )  # obs-text


def http_unquote_pair(c: str) -> str:
    """
    Unquote a single escaped character from a quoted-pair.

    Invalid characters are replaced with '?'
    """
    if not c:
        return "?"

    b = ord(c)
    if b == 0x09 or b == 0x20 or (0x21 <= b <= 0x7E) or b >= 0x80:
        return c
    return "?"


def http_unquote(raw: str) -> tuple[int, str]:
    """
    Unquote an HTTP quoted-string.

    The raw string must begin with a double quote ("). Only the first
    quoted string is parsed.

    Returns:
        Tuple of (eaten, result) where eaten is the number of characters
        consumed, or -1 on failure.

    Examples:
        >>> http_unquote('"hello"')
        (7, 'hello')
        >>> http_unquote('"hello\\"world"')
        (14, 'hello"world')
        >>> http_unquote('"test')
        (-1, '')
    """
    if not raw or raw[0] != '"':
        return -1, ""

    buf: list[str] = []
    i = 1

    while i < len(raw):
        b = raw[i]

        if b == '"':
            return i + 1, "".join(buf)

        elif b == "\\":
            if i + 1 >= len(raw):
                return -1, ""
            buf.append(http_unquote_pair(raw[i + 1]))
            i += 2

        else:
            buf.append(b if is_qd_text(b) else "?")
            i += 1

    return -1, ""


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive, multi-valued header mapping.

    Names are stored lowercased. Reading a name joins its values with ", ",
    assigning a name replaces every value it had, and ``add`` appends one.
    """

    def __init__(self, headers: Optional[Mapping[str, Union[str, List[str]]]] = None) -> None:
        self._headers: Dict[str, List[str]] = {}
        for key, value in (headers or {}).items():
            values = [value] if isinstance(value, str) else list(value)
            self._headers.setdefault(key.lower(), []).extend(values)

    def get_list(self, key: str) -> Optional[List[str]]:
        return self._headers.get(key.lower(), None)

    def add(self, key: str, value: str) -> None:
        self._headers.setdefault(key.lower(), []).append(value)

    def copy(self) -> "Headers":
        return Headers(self._headers)

    def multi_items(self) -> List[tuple[str, str]]:
        return [(key, value) for key, values in self._headers.items() for value in values]

    def __getitem__(self, key: str) -> str:
        return ", ".join(self._headers[key.lower()])

    def __setitem__(self, key: str, value: str) -> None:
        self._headers[key.lower()] = [value]

    def __delitem__(self, key: str) -> None:
        del self._headers[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._headers

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return repr(self._headers)

    def __str__(self) -> str:
        return str(self._headers)

    def __eq__(self, other_headers: Any) -> bool:
        return isinstance(other_headers, Headers) and self._headers == other_headers._headers


class CacheControl:
    """
    Cache-Control directives of a response.

    Uses None for unset values.

    Supported Directives:
    - max-age [RFC9111, Section 5.2.2.1]
    - max-stale [RFC9111, Section 5.2.1.2]
    - min-fresh [RFC9111, Section 5.2.1.3]
    - must-revalidate [RFC9111, Section 5.2.2.2]
    - no-cache [RFC9111, Section 5.2.2.4]
    - no-store [RFC9111, Section 5.2.2.5]
    - no-transform [RFC9111, Section 5.2.2.6]
    - private [RFC9111, Section 5.2.2.7]
    - proxy-revalidate [RFC9111, Section 5.2.2.8]
    - public [RFC9111, Section 5.2.2.9]
    - s-maxage [RFC9111, Section 5.2.2.10]
    - stale-if-error [RFC5861, Section 4]
    - stale-while-revalidate [RFC5861, Section 3]

    no_cache and private can be:
        - False: directive not present
        - True: directive present without field names
        - List[str]: directive present with specific field names
    """

    def __init__(self) -> None:
        self.max_age: Optional[int] = None
        self.s_maxage: Optional[int] = None
        self.max_stale: Optional[int] = None
        self.min_fresh: Optional[int] = None
        self.stale_if_error: Optional[int] = None
        self.stale_while_revalidate: Optional[int] = None

        self.no_store: bool = False
        self.no_transform: bool = False
        self.must_revalidate: bool = False
        self.public: bool = False
        self.proxy_revalidate: bool = False
        self.immutable: bool = False

        self.no_cache: Union[bool, List[str]] = False
        self.private: Union[bool, List[str]] = False

        # Unrecognized directives
        self.extensions: List[str] = []


NUMERIC_DIRECTIVES = frozenset(
    ["max-age", "s-maxage", "max-stale", "min-fresh", "stale-if-error", "stale-while-revalidate"]
)


def parse_int_value(value: str) -> Optional[int]:
    """Parse a delta-seconds value, return None if invalid."""
    if not (value.isascii() and value.isdigit()):
        return None
    # Cap at max int32 for compatibility
    return min(int(value), 2147483647)


def parse_field_names(value: str) -> List[str]:
    """Parse comma-separated field names and canonicalize them."""
    fields = []
    for field in value.split(","):
        field = field.strip()
        if field:
            canonical = "-".join(word.capitalize() for word in field.split("-"))
            fields.append(canonical)
    return fields


def has_field_names(token: str) -> bool:
    return token in ("no-cache", "private")


def parse(value: str, strict: bool = False) -> CacheControl:
    """
    Parse a Cache-Control header value character by character.

    This parser handles quoted values and field names correctly,
    allowing commas within field name lists.

    Args:
        value: The Cache-Control header value string
        strict: When True, a numeric directive with a missing or invalid
            value raises HeaderParseError instead of being ignored.

    Returns:
        CacheControl object with parsed directives
    """
    cc = CacheControl()

    if not value:
        return cc

    i = 0
    length = len(value)

    while i < length:
        while i < length and (value[i] in (" ", "\t", ",")):
            i += 1

        if i >= length:
            break

        j = i
        while j < length and is_token(value[j]):
            j += 1

        if j == i:
            if strict:
                raise HeaderParseError(f"The character {value[i]!r} is not permitted in the directive name.")
            i += 1
            continue

        token = value[i:j].lower()
        token_has_fields = has_field_names(token)

        while j < length and value[j] in (" ", "\t"):
            j += 1

        if j < length and value[j] == "=":
            k = j + 1

            while k < length and value[k] in (" ", "\t"):
                k += 1

            if k >= length:
                # Directive ends with '=' but no value
                handle_directive_with_value(cc, token, "", strict)
                i = k
                continue

            if value[k] == '"':
                eaten, result = http_unquote(value[k:])
                if eaten == -1:
                    if strict:
                        raise HeaderParseError("Invalid quotes around the value.")
                    i = k + 1
                    continue

                i = k + eaten
                handle_directive_with_value(cc, token, result, strict)
            else:
                z = k
                while z < length:
                    if token_has_fields:
                        if value[z] in (" ", "\t"):
                            break
                    else:
                        if value[z] in (" ", "\t", ","):
                            break
                    z += 1

                result = value[k:z]

                if result and result[-1] == ",":
                    result = result[:-1]

                i = z
                handle_directive_with_value(cc, token, result, strict)
        else:
            handle_directive_without_value(cc, token, strict)
            i = j

    return cc


def handle_directive_with_value(cc: CacheControl, token: str, value: str, strict: bool = False) -> None:
    """Handle a directive that has a value."""
    if token in NUMERIC_DIRECTIVES:
        seconds = parse_int_value(value)
        if seconds is None and strict:
            raise HeaderParseError(f"Invalid value for the {token} directive: {value!r}")
        setattr(cc, token.replace("-", "_"), seconds)

    elif token == "no-cache":
        cc.no_cache = parse_field_names(value) or True

    elif token == "private":
        cc.private = parse_field_names(value) or True

    else:
        cc.extensions.append(f"{token}={value}")


def handle_directive_without_value(cc: CacheControl, token: str, strict: bool = False) -> None:
    """Handle a directive that doesn't have a value."""
    if token == "max-stale":
        # max-stale without value means accept any stale response
        cc.max_stale = 2147483647

    elif token in NUMERIC_DIRECTIVES:
        if strict:
            raise HeaderParseError(f"The {token} directive requires a value.")

    elif token == "no-cache":
        cc.no_cache = True

    elif token == "private":
        cc.private = True

    elif token == "no-store":
        cc.no_store = True

    elif token == "no-transform":
        cc.no_transform = True

    elif token == "must-revalidate":
        cc.must_revalidate = True

    elif token == "public":
        cc.public = True

    elif token == "proxy-revalidate":
        cc.proxy_revalidate = True

    elif token == "immutable":
        cc.immutable = True

    else:
        cc.extensions.append(token)


def parse_cache_control(value: str | None, strict: bool = False) -> CacheControl:
    """
    Parse a Cache-Control header value.

    This is the main entry point for parsing.

    Examples:
        >>> cc = parse_cache_control("public, max-age=3000, s-maxage=600")
        >>> cc.public
        True
        >>> cc.s_maxage
        600

        >>> cc = parse_cache_control('no-cache="Set-Cookie, Authorization"')
        >>> cc.no_cache
        ['Set-Cookie', 'Authorization']

        >>> parse_cache_control("no-cache, max-age=b3000", strict=True)
        Traceback (most recent call last):
        ...
        pahest._exceptions.HeaderParseError: Invalid value for the max-age directive: 'b3000'
    """
    if value is None:
        return CacheControl()
    return parse(value, strict=strict)
