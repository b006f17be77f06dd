"""
Proactive content negotiation (RFC 9110 Section 12.5).

Each ``accepts_*`` function answers one question: would a client sending
the given ``Accept*`` header value take a representation with the given
media type, charset, encoding or language?

The rules follow the usual negotiation algorithm: every comma-separated
member of the header is a preference with an optional ``q`` weight. For the
offered value, the most specific matching preference wins (ties go to the
higher weight, then to the earlier member), and the value is acceptable only
if that preference has a weight above zero.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

__all__ = (
    "accepts_charset",
    "accepts_encoding",
    "accepts_language",
    "accepts_media_type",
    "parse_content_type",
)

_QUALITY_RE = re.compile(r"^(?:0(?:\.\d{0,3})?|1(?:\.0{0,3})?)$")


@dataclass
class Preference:
    value: str
    q: float = 1.0
    index: int = 0
    params: Dict[str, str] = field(default_factory=dict)


def _split_params(member: str) -> Tuple[str, Dict[str, str]]:
    value, *raw_params = member.split(";")
    params: Dict[str, str] = {}
    for raw in raw_params:
        if "=" not in raw:
            continue
        name, _, param_value = raw.partition("=")
        params[name.strip().lower()] = param_value.strip().strip('"')
    return value.strip(), params


def parse_preferences(header: str) -> List[Preference]:
    preferences = []
    for index, member in enumerate(header.split(",")):
        value, params = _split_params(member)
        if not value:
            continue
        q = 1.0
        if "q" in params:
            raw_q = params.pop("q")
            if not _QUALITY_RE.match(raw_q):
                # A malformed weight disqualifies the member
                q = 0.0
            else:
                q = float(raw_q)
        preferences.append(Preference(value=value, q=q, index=index, params=params))
    return preferences


def parse_content_type(content_type: str) -> Tuple[str, Dict[str, str]]:
    """
    Split a Content-Type value into its lowercased media type and parameters.

    Example:
        ```
        parse_content_type("text/html; charset=UTF-8")
        # ('text/html', {'charset': 'UTF-8'})
        ```
    """
    media_type, params = _split_params(content_type)
    return media_type.lower(), params


def _negotiate(
    preferences: List[Preference],
    specificity: Callable[[Preference], Optional[int]],
) -> bool:
    best: Optional[Tuple[int, float, int]] = None
    for preference in preferences:
        s = specificity(preference)
        if s is None:
            continue
        candidate = (s, preference.q, -preference.index)
        if best is None or candidate > best:
            best = candidate
    return best is not None and best[1] > 0


def accepts_media_type(accept: str, content_type: str) -> bool:
    """
    Check a Content-Type against an Accept header.

    Examples:
        >>> accepts_media_type("text/html,*/*;q=0.8", "image/png")
        True
        >>> accepts_media_type("image/png", "application/json")
        False
        >>> accepts_media_type("text/*;q=0, */*", "text/plain")
        False
    """
    media_type, offered_params = parse_content_type(content_type)
    offered_type, _, offered_subtype = media_type.partition("/")
    if not offered_type or not offered_subtype:
        return False
    offered_params = {k: v.lower() for k, v in offered_params.items()}

    def specificity(preference: Preference) -> Optional[int]:
        accepted_type, _, accepted_subtype = preference.value.lower().partition("/")
        accepted_subtype = accepted_subtype or "*"
        s = 0

        if accepted_type == offered_type:
            s |= 4
        elif accepted_type != "*":
            return None

        if accepted_subtype == offered_subtype:
            s |= 2
        elif accepted_subtype != "*":
            return None

        if preference.params:
            for name, value in preference.params.items():
                if value != "*" and value.lower() != offered_params.get(name):
                    return None
            s |= 1

        return s

    return _negotiate(parse_preferences(accept), specificity)


def accepts_charset(accept_charset: str, charset: str) -> bool:
    """
    Examples:
        >>> accepts_charset("utf-8, iso-8859-1;q=0.2", "UTF-8")
        True
        >>> accepts_charset("utf-8, iso-8859-1;q=0.2", "utf-7")
        False
    """
    offered = charset.lower()

    def specificity(preference: Preference) -> Optional[int]:
        accepted = preference.value.lower()
        if accepted == offered:
            return 1
        if accepted == "*":
            return 0
        return None

    return _negotiate(parse_preferences(accept_charset), specificity)


def accepts_encoding(accept_encoding: str, encoding: str) -> bool:
    """
    Examples:
        >>> accepts_encoding("gzip, deflate, sdch", "gzip")
        True
        >>> accepts_encoding("gzip, deflate, sdch", "hippos")
        False
        >>> accepts_encoding("gzip", "identity")
        True
    """
    offered = encoding.lower()
    preferences = parse_preferences(accept_encoding)

    # identity is always acceptable unless refused explicitly
    if not any(p.value.lower() in ("identity", "*") for p in preferences):
        lowest = min((p.q for p in preferences if p.q > 0), default=1.0)
        preferences.append(Preference(value="identity", q=lowest, index=len(preferences)))

    def specificity(preference: Preference) -> Optional[int]:
        accepted = preference.value.lower()
        if accepted == offered:
            return 1
        if accepted == "*":
            return 0
        return None

    return _negotiate(preferences, specificity)


def accepts_language(accept_language: str, language: str) -> bool:
    """
    Examples:
        >>> accepts_language("en-US,en;q=0.8", "en")
        True
        >>> accepts_language("en", "en-GB")
        True
        >>> accepts_language("en-US,en;q=0.8", "sp")
        False
    """
    offered_full = language.strip().lower()
    offered_prefix = offered_full.split("-", 1)[0]

    def specificity(preference: Preference) -> Optional[int]:
        accepted_full = preference.value.lower()
        accepted_prefix = accepted_full.split("-", 1)[0]
        if accepted_full == offered_full:
            return 4
        if accepted_prefix == offered_full:
            return 2
        if accepted_full == offered_prefix:
            return 1
        if accepted_full == "*":
            return 0
        return None

    return _negotiate(parse_preferences(accept_language), specificity)
