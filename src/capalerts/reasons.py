"""Diagnostics collected while parsing and validating alerts."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum, IntEnum
from typing import Any


class Level(IntEnum):
    """Severity of a finding, ordered from least to most severe."""

    INFO = 0
    RECOMMENDATION = 1
    WARNING = 2
    ERROR = 3

    def higher_levels(self) -> list["Level"]:
        return [level for level in Level if level > self]


class ReasonType(Enum):
    """Kinds of finding, each with a fixed level and message template."""

    # Errors
    ADDRESSES_SCOPE_MISMATCH = (
        Level.ERROR,
        "<addresses> should be used only when <scope> is \"Private\".",
    )
    CERTAINTY_VERY_LIKELY_DEPRECATED = (
        Level.ERROR,
        "<certainty> \"Very Likely\" is deprecated; use \"Likely\" instead.",
    )
    CIRCULAR_REFERENCE = (
        Level.ERROR,
        "Invalid <references>: \"{0}\". Alert cannot reference itself.",
    )
    DUPLICATE_ELEMENT = (Level.ERROR, "Invalid duplicate <{0}>, ignoring \"{1}\".")
    INVALID_ALTITUDE_CEILING_RANGE = (
        Level.ERROR,
        "Invalid <ceiling>: {1}. Must be greater than or equal to <altitude>: {0}.",
    )
    INVALID_AREA = (Level.ERROR, "<ceiling> may be used only when <altitude> is set.")
    INVALID_CIRCLE = (
        Level.ERROR,
        "Invalid <circle>: \"{0}\". Must be formatted like \"40.0,-120.0 5.0\".",
    )
    INVALID_CIRCLE_RADIUS = (
        Level.ERROR,
        "Invalid <circle> radius: {0}. Must not be negative.",
    )
    INVALID_DATE = (
        Level.ERROR,
        "Invalid <{0}>: \"{1}\". Must be formatted like \"2002-05-24T16:49:00-07:00\".",
    )
    INVALID_DEREF_URI = (
        Level.ERROR,
        "Invalid <derefUri>: \"{0}\". Must be base64 encoded.",
    )
    INVALID_ENUM_VALUE = (
        Level.ERROR,
        "Invalid enum value <{0}> = \"{1}\". Must be one of {2}.",
    )
    INVALID_IDENTIFIER = (
        Level.ERROR,
        "Invalid <identifier>: \"{0}\". Must not contain whitespace, \",\", \"&\" or \"<\".",
    )
    INVALID_LANGUAGE = (
        Level.ERROR,
        "Invalid <language>: \"{0}\". Must be a valid RFC 3066 language code.",
    )
    INVALID_LATITUDE = (
        Level.ERROR,
        "Invalid latitude: {0}. Must be between -90 and 90.",
    )
    INVALID_LONGITUDE = (
        Level.ERROR,
        "Invalid longitude: {0}. Must be between -180 and 180.",
    )
    INVALID_MIME_TYPE = (
        Level.ERROR,
        "Invalid <mimeType>: \"{0}\". Must be a valid RFC 2046 MIME type.",
    )
    INVALID_POLYGON = (
        Level.ERROR,
        "Invalid <polygon>: \"{0}\". Must be space-separated \"lat,lng\" points.",
    )
    INVALID_POLYGON_POINT_COUNT = (
        Level.ERROR,
        "Invalid <polygon>: {0} points. Must have at least 4 points.",
    )
    INVALID_REFERENCES = (
        Level.ERROR,
        "Invalid <references>: \"{0}\". Must be formatted like \"sender,identifier,sent\".",
    )
    INVALID_RESOURCE_SIZE = (
        Level.ERROR,
        "Invalid <size>: {0}. Must not be negative.",
    )
    INVALID_SENDER = (
        Level.ERROR,
        "Invalid <sender>: \"{0}\". Must not contain whitespace, \",\", \"&\" or \"<\".",
    )
    INVALID_URI = (Level.ERROR, "Invalid <uri>: \"{0}\".")
    INVALID_VALUE = (Level.ERROR, "Unsupported value <{0}> = \"{1}\".")
    INVALID_WEB = (
        Level.ERROR,
        "Invalid <web>: \"{0}\". Must be a full absolute URI.",
    )
    MISSING_REQUIRED_ELEMENT = (
        Level.ERROR,
        "The content of <{0}> is not complete. {1} is required.",
    )
    OTHER = (Level.ERROR, "{0}")
    PASSWORD_DEPRECATED = (Level.ERROR, "<password> is deprecated.")
    RELATIVE_URI_MISSING_DEREF_URI = (
        Level.ERROR,
        "Relative <uri>: \"{0}\" requires <derefUri>.",
    )
    RESTRICTION_SCOPE_MISMATCH = (
        Level.ERROR,
        "<restriction> should be used only when <scope> is \"Restricted\".",
    )
    UNCLOSED_POLYGON = (
        Level.ERROR,
        "Invalid <polygon>: first and last points must be the same.",
    )
    UNSUPPORTED_ELEMENT = (Level.ERROR, "Unsupported element <{0}>.")

    # Warnings
    POSTDATED_REFERENCE = (
        Level.WARNING,
        "<references> \"{0}\" is sent after the alert itself.",
    )
    SAME_TEXT_DIFFERENT_LANGUAGE = (
        Level.WARNING,
        "<{0}> \"{1}\" is repeated in more than one <language>.",
    )
    TEXT_CONTAINS_HTML_ENTITIES = (
        Level.WARNING,
        "<{0}> should not contain HTML entities.",
    )
    TEXT_CONTAINS_HTML_TAGS = (Level.WARNING, "<{0}> should not contain HTML tags.")

    # Recommendations
    INCONSISTENT_CATEGORIES = (
        Level.RECOMMENDATION,
        "<info> blocks should share the same <category> values.",
    )
    INCONSISTENT_EVENT_CODES = (
        Level.RECOMMENDATION,
        "<info> blocks should share the same <eventCode> values.",
    )

    def __init__(self, level: Level, message: str) -> None:
        self.level = level
        self.message = message

    @property
    def source(self) -> str:
        return "CAP"


class Reason:
    """One finding: a position, a kind and the parameters of its message."""

    __slots__ = ("xpath", "type", "params")

    def __init__(self, xpath: str, type: ReasonType, *params: Any) -> None:
        self.xpath = xpath
        self.type = type
        self.params = tuple(params)

    @property
    def level(self) -> Level:
        return self.type.level

    @property
    def source(self) -> str:
        return self.type.source

    @property
    def message(self) -> str:
        if not self.params:
            return self.type.message
        return self.type.message.format(*self.params)

    def prefix_with_xpath(self, prefix: str) -> "Reason":
        return Reason(prefix + self.xpath, self.type, *self.params)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Reason):
            return NotImplemented
        return (self.xpath, self.type, self.params) == (other.xpath, other.type, other.params)

    def __hash__(self) -> int:
        return hash((self.xpath, self.type, self.params))

    def __repr__(self) -> str:
        params = "".join(f", {param!r}" for param in self.params)
        return f"Reason({self.xpath!r}, ReasonType.{self.type.name}{params})"

    def __str__(self) -> str:
        return f"{self.xpath}: {self.message}"


class Reasons:
    """Findings grouped by level; insertion order is kept within a level."""

    def __init__(self, reasons: Iterable[Reason] = ()) -> None:
        self._by_level: dict[Level, list[Reason]] = {}
        self.extend(reasons)

    def add(self, xpath: str, type: ReasonType, *params: Any) -> Reason:
        reason = Reason(xpath, type, *params)
        self.append(reason)
        return reason

    def append(self, reason: Reason) -> None:
        self._by_level.setdefault(reason.level, []).append(reason)

    def extend(self, reasons: Iterable[Reason]) -> None:
        for reason in reasons:
            self.append(reason)

    def get_with_level(self, level: Level) -> list[Reason]:
        return list(self._by_level.get(level, ()))

    def get_with_level_or_higher(self, level: Level) -> list[Reason]:
        found = self.get_with_level(level)
        for higher in level.higher_levels():
            found.extend(self._by_level.get(higher, ()))
        return found

    def contains_with_level(self, level: Level) -> bool:
        return bool(self._by_level.get(level))

    def contains_with_level_or_higher(self, level: Level) -> bool:
        return bool(self.get_with_level_or_higher(level))

    def prefix_with_xpath(self, prefix: str) -> "Reasons":
        return Reasons(reason.prefix_with_xpath(prefix) for reason in self)

    def raise_for_level(self, level: Level = Level.ERROR) -> None:
        """Raise CapValidationError when any finding is at ``level`` or above."""
        found = self.get_with_level_or_higher(level)
        if found:
            raise CapValidationError(Reasons(found))

    def __iter__(self) -> Iterator[Reason]:
        for reasons in self._by_level.values():
            yield from reasons

    def __len__(self) -> int:
        return sum(len(reasons) for reasons in self._by_level.values())

    def __bool__(self) -> bool:
        return len(self) > 0

    def __contains__(self, reason: object) -> bool:
        return any(reason == existing for existing in self)

    def __repr__(self) -> str:
        return f"Reasons({list(self)!r})"


class CapError(Exception):
    """Base class for errors raised by capalerts."""


class NotCapError(CapError):
    """The document is well-formed XML but not a CAP alert."""


class CapSyntaxError(CapError):
    """The document is not well-formed XML."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        super().__init__(message)
        self.line = line
        self.column = column


class CapValidationError(CapError):
    """The alert has findings at or above the failing level."""

    def __init__(self, reasons: Reasons) -> None:
        self.reasons = reasons
        super().__init__("; ".join(str(reason) for reason in reasons))
