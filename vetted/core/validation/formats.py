"""String Format Matching

Built-in string formats (email, URL, UUID, IPv4, IPv6, ISO8601 date-time)
and user patterns are matched through a pluggable FormatMatcher. The
String rule only knows a format identifier; the matcher owns the regex.

A matcher built with a restricted ``enabled`` set reports the missing
formats as unsupported, and the schema front-end refuses to compile any
rule that needs them.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Iterable
import re


class StringFormat(str, Enum):
    """Built-in string formats."""
    EMAIL = "email"
    URL = "url"
    UUID = "uuid"
    IPV4 = "ipv4"
    IPV6 = "ipv6"
    DATETIME = "datetime"

    @property
    def label(self) -> str:
        return {
            StringFormat.EMAIL: "Email",
            StringFormat.URL: "Url",
            StringFormat.UUID: "Uuid",
            StringFormat.IPV4: "Ipv4",
            StringFormat.IPV6: "Ipv6",
            StringFormat.DATETIME: "DateTime",
        }[self]


@dataclass(frozen=True, slots=True)
class Pattern:
    """User-supplied regex format. Matches anywhere unless anchored."""
    regex: str
    flags: int = 0
    description: str | None = None

    @property
    def label(self) -> str:
        return self.description or f"pattern {self.regex!r}"


FormatSpec = StringFormat | Pattern

PATTERN_FORMAT = "pattern"


# ============================================================================
# Built-in regexes
# ============================================================================

EMAIL_REGEX = r'''(?:[a-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[a-z0-9!#$%&'*+/=?^_`{|}~-]+)*|"(?:[\x01-\x08\x0b\x0c\x0e-\x1f\x21\x23-\x5b\x5d-\x7f]|\\[\x01-\x09\x0b\x0c\x0e-\x7f])*")@(?:(?:[a-z0-9](?:[a-z0-9-]*[a-z0-9])?\.)+[a-z0-9](?:[a-z0-9-]*[a-z0-9])?|\[(?:(?:(2(5[0-5]|[0-4][0-9])|1[0-9][0-9]|[1-9]?[0-9]))\.){3}(?:(2(5[0-5]|[0-4][0-9])|1[0-9][0-9]|[1-9]?[0-9])|[a-z0-9-]*[a-z0-9]:(?:[\x01-\x08\x0b\x0c\x0e-\x1f\x21-\x5a\x53-\x7f]|\\[\x01-\x09\x0b\x0c\x0e-\x7f])+)\])'''
URL_REGEX = r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*://)?[-a-zA-Z0-9@:%._\+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b(?:[-a-zA-Z0-9()@:%_\+.~#?&/=]*)$"
UUID_REGEX = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-5][0-9a-f]{3}-[089ab][0-9a-f]{3}-[0-9a-f]{12}$"
IPV4_REGEX = r"^(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
IPV6_REGEX = r"^(([0-9a-fA-F]{1,4}:){7,7}[0-9a-fA-F]{1,4}|([0-9a-fA-F]{1,4}:){1,7}:|([0-9a-fA-F]{1,4}:){1,6}:[0-9a-fA-F]{1,4}|([0-9a-fA-F]{1,4}:){1,5}(:[0-9a-fA-F]{1,4}){1,2}|([0-9a-fA-F]{1,4}:){1,4}(:[0-9a-fA-F]{1,4}){1,3}|([0-9a-fA-F]{1,4}:){1,3}(:[0-9a-fA-F]{1,4}){1,4}|([0-9a-fA-F]{1,4}:){1,2}(:[0-9a-fA-F]{1,4}){1,5}|[0-9a-fA-F]{1,4}:((:[0-9a-fA-F]{1,4}){1,6})|:((:[0-9a-fA-F]{1,4}){1,7}|:)|fe80:(:[0-9a-fA-F]{0,4}){0,4}%[0-9a-zA-Z]{1,}|::(ffff(:0{1,4}){0,1}:){0,1}((25[0-5]|(2[0-4]|1{0,1}[0-9]){0,1}[0-9])\.){3,3}(25[0-5]|(2[0-4]|1{0,1}[0-9]){0,1}[0-9])|([0-9a-fA-F]{1,4}:){1,4}:((25[0-5]|(2[0-4]|1{0,1}[0-9]){0,1}[0-9])\.){3,3}(25[0-5]|(2[0-4]|1{0,1}[0-9]){0,1}[0-9]))$"
DATETIME_REGEX = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d*)?(?:[+-]\d{2}:\d{2}|Z)?$"

BUILTIN_PATTERNS: dict[StringFormat, tuple[str, int]] = {
    StringFormat.EMAIL: (EMAIL_REGEX, re.IGNORECASE),
    StringFormat.URL: (URL_REGEX, 0),
    StringFormat.UUID: (UUID_REGEX, re.IGNORECASE),
    StringFormat.IPV4: (IPV4_REGEX, 0),
    StringFormat.IPV6: (IPV6_REGEX, 0),
    StringFormat.DATETIME: (DATETIME_REGEX, 0),
}


@lru_cache(maxsize=256)
def _compile(regex: str, flags: int) -> re.Pattern:
    return re.compile(regex, flags)


def format_name(fmt: FormatSpec) -> str:
    """Capability name used for enabling/disabling a format."""
    return PATTERN_FORMAT if isinstance(fmt, Pattern) else fmt.value


class FormatMatcher(ABC):
    """Capability: ``matches(format, string) -> bool``."""

    @abstractmethod
    def supports(self, fmt: FormatSpec) -> bool:
        """Whether this matcher can evaluate the given format."""

    @abstractmethod
    def matches(self, fmt: FormatSpec, value: str) -> bool:
        """Match a string against a format."""

    def prepare(self, fmt: FormatSpec) -> None:
        """Compile a format ahead of evaluation. Raises re.error on a bad pattern."""


class RegexFormatMatcher(FormatMatcher):
    """Regex-backed matcher for built-in formats and user patterns.

    Built-in formats must match the whole string; user patterns follow
    ``re.search`` semantics and only match the whole string when anchored.
    """

    __slots__ = ("enabled",)

    def __init__(self, enabled: Iterable[str] | None = None):
        names = {f.value for f in StringFormat} | {PATTERN_FORMAT} if enabled is None else enabled
        self.enabled = frozenset(n.lower() for n in names)

    def supports(self, fmt: FormatSpec) -> bool:
        return format_name(fmt) in self.enabled

    def prepare(self, fmt: FormatSpec) -> None:
        if isinstance(fmt, Pattern): _compile(fmt.regex, fmt.flags)

    def matches(self, fmt: FormatSpec, value: str) -> bool:
        if isinstance(fmt, Pattern):
            return _compile(fmt.regex, fmt.flags).search(value) is not None
        regex, flags = BUILTIN_PATTERNS[fmt]
        return _compile(regex, flags).fullmatch(value) is not None

    def __repr__(self) -> str:
        return f"RegexFormatMatcher(enabled={sorted(self.enabled)})"


DEFAULT_MATCHER = RegexFormatMatcher()
