"""Typed CAP alert model.

Entities are immutable pydantic models. Each entity type also carries an
explicit field table (``fields_of``) listing its elements in schema order
with their scalar kind, cardinality and nested type. The parser, the
validator's generic sweep and the serializers all walk these tables instead
of hard-coding per-entity logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CAP10_XMLNS = "http://www.incident.com/cap/1.0"
CAP11_XMLNS = "urn:oasis:names:tc:emergency:cap:1.1"
CAP12_XMLNS = "urn:oasis:names:tc:emergency:cap:1.2"
CAP_LATEST_XMLNS = CAP12_XMLNS

CAP_XML_NAMESPACES: dict[str, int] = {
    CAP10_XMLNS: 10,
    CAP11_XMLNS: 11,
    CAP12_XMLNS: 12,
}


def get_version(xmlns: str | None) -> int:
    """Map a namespace URI to 10, 11 or 12; unknown namespaces validate as 12."""
    return CAP_XML_NAMESPACES.get(xmlns or "", 12)


# Enum member names follow the upper-underscore convention. Names that would
# collide between enums of the same entity carry the enum name as a suffix
# (UNKNOWN_URGENCY, UNKNOWN_SEVERITY, ...); see find_enum_value().


class Status(Enum):
    ACTUAL = "Actual"
    EXERCISE = "Exercise"
    SYSTEM = "System"
    TEST = "Test"
    DRAFT = "Draft"


class MsgType(Enum):
    ALERT = "Alert"
    UPDATE = "Update"
    CANCEL = "Cancel"
    ACK = "Ack"
    ERROR = "Error"


class Scope(Enum):
    PUBLIC = "Public"
    RESTRICTED = "Restricted"
    PRIVATE = "Private"


class Category(Enum):
    GEO = "Geo"
    MET = "Met"
    SAFETY = "Safety"
    SECURITY = "Security"
    RESCUE = "Rescue"
    FIRE = "Fire"
    HEALTH = "Health"
    ENV = "Env"
    TRANSPORT = "Transport"
    INFRA = "Infra"
    CBRNE = "CBRNE"
    OTHER = "Other"


class ResponseType(Enum):
    SHELTER = "Shelter"
    EVACUATE = "Evacuate"
    PREPARE = "Prepare"
    EXECUTE = "Execute"
    AVOID = "Avoid"
    MONITOR = "Monitor"
    ASSESS = "Assess"
    ALL_CLEAR = "AllClear"
    NONE = "None"


class Urgency(Enum):
    IMMEDIATE = "Immediate"
    EXPECTED = "Expected"
    FUTURE = "Future"
    PAST = "Past"
    UNKNOWN_URGENCY = "Unknown"


class Severity(Enum):
    EXTREME = "Extreme"
    SEVERE = "Severe"
    MODERATE = "Moderate"
    MINOR = "Minor"
    UNKNOWN_SEVERITY = "Unknown"


class Certainty(Enum):
    OBSERVED = "Observed"
    VERY_LIKELY = "Very Likely"
    LIKELY = "Likely"
    POSSIBLE = "Possible"
    UNLIKELY = "Unlikely"
    UNKNOWN_CERTAINTY = "Unknown"


ENUM_CASING_EXCEPTIONS: dict[str, str] = {
    "VERY_LIKELY": "Very Likely",
    "CBRNE": "CBRNE",
    "UNKNOWN_URGENCY": "Unknown",
    "UNKNOWN_SEVERITY": "Unknown",
    "UNKNOWN_CERTAINTY": "Unknown",
}


def _to_case(value: str, camel: bool) -> str:
    parts = [part for part in value.split("_") if part]
    joined = "".join(part[:1].upper() + part[1:].lower() for part in parts)
    if not camel and joined:
        joined = joined[0].lower() + joined[1:]
    return joined


def camel_case(value: str) -> str:
    """``ALL_CLEAR`` -> ``AllClear``."""
    return _to_case(value, camel=True)


def java_case(value: str) -> str:
    """``deref_uri`` -> ``derefUri``."""
    return _to_case(value, camel=False)


def underscore_case(value: str) -> str:
    """``derefUri`` -> ``deref_Uri``; an underscore goes before every
    upper-case character that follows a lower-case one."""
    if not value:
        return value
    chars = [value[0]]
    for previous, current in zip(value, value[1:]):
        if current.isupper() and previous.islower():
            chars.append("_")
        chars.append(current)
    return "".join(chars)


def enum_text(member: Enum) -> str:
    """Wire text for an enum member."""
    return ENUM_CASING_EXCEPTIONS.get(member.name) or camel_case(member.name)


def find_enum_value(enum_type: type[Enum], text: str | None) -> Enum | None:
    """Resolve wire text to an enum member, or None when it matches nothing."""
    if text is None:
        return None
    text = text.strip()
    # the only valid enum value with a space in it
    if text == "Very Likely":
        name = "VERY_LIKELY"
    else:
        name = underscore_case(text).upper()
    members = enum_type.__members__
    member = members.get(name)
    if member is None:
        member = members.get(f"{name}_{enum_type.__name__.upper()}")
    return member


# No CAP 1.x field is declared BOOL or BYTES; both still coerce per their kind.
class FieldKind(Enum):
    STRING = "string"
    INT64 = "int64"
    DOUBLE = "double"
    FLOAT = "float"
    BOOL = "bool"
    BYTES = "bytes"
    ENUM = "enum"
    MESSAGE = "message"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One element of an entity type, in schema order."""

    name: str
    kind: FieldKind = FieldKind.STRING
    repeated: bool = False
    type: Any = None
    required_since: int | None = None

    @property
    def element(self) -> str:
        return java_case(self.name)


class CapMessage(BaseModel):
    model_config = ConfigDict(frozen=True)


class Point(CapMessage):
    latitude: float = 0.0
    longitude: float = 0.0


# Composite types travel as element text, which cannot carry an empty value
# list or a missing centre point.
class Circle(CapMessage):
    point: Point
    radius: float = 0.0


class Polygon(CapMessage):
    point: tuple[Point, ...] = Field(min_length=1)


class Group(CapMessage):
    value: tuple[str, ...] = Field(min_length=1)


class ValuePair(CapMessage):
    value_name: str | None = None
    value: str | None = None


class Resource(CapMessage):
    resource_desc: str | None = None
    mime_type: str | None = None
    size: int | None = None
    uri: str | None = None
    deref_uri: str | None = None
    digest: str | None = None


class Area(CapMessage):
    area_desc: str | None = None
    polygon: tuple[Polygon, ...] = ()
    circle: tuple[Circle, ...] = ()
    geocode: tuple[ValuePair, ...] = ()
    altitude: float | None = None
    ceiling: float | None = None


class Info(CapMessage):
    language: str | None = None
    category: tuple[Category, ...] = ()
    event: str | None = None
    response_type: tuple[ResponseType, ...] = ()
    urgency: Urgency | None = None
    severity: Severity | None = None
    certainty: Certainty | None = None
    audience: str | None = None
    event_code: tuple[ValuePair, ...] = ()
    effective: str | None = None
    onset: str | None = None
    expires: str | None = None
    sender_name: str | None = None
    headline: str | None = None
    description: str | None = None
    instruction: str | None = None
    web: str | None = None
    contact: str | None = None
    parameter: tuple[ValuePair, ...] = ()
    resource: tuple[Resource, ...] = ()
    area: tuple[Area, ...] = ()


class Alert(CapMessage):
    xmlns: str = CAP_LATEST_XMLNS
    identifier: str | None = None
    sender: str | None = None
    password: str | None = None
    sent: str | None = None
    status: Status | None = None
    msg_type: MsgType | None = None
    source: str | None = None
    scope: Scope | None = None
    restriction: str | None = None
    addresses: Group | None = None
    code: tuple[str, ...] = ()
    note: str | None = None
    references: Group | None = None
    incidents: Group | None = None
    info: tuple[Info, ...] = ()

    @property
    def version(self) -> int:
        return get_version(self.xmlns)


_S = FieldKind.STRING
_M = FieldKind.MESSAGE
_E = FieldKind.ENUM

FIELD_TABLES: dict[type[CapMessage], tuple[FieldSpec, ...]] = {
    Alert: (
        FieldSpec("identifier", required_since=10),
        FieldSpec("sender", required_since=10),
        FieldSpec("password"),
        FieldSpec("sent", required_since=10),
        FieldSpec("status", _E, type=Status, required_since=10),
        FieldSpec("msg_type", _E, type=MsgType, required_since=10),
        FieldSpec("source"),
        FieldSpec("scope", _E, type=Scope, required_since=11),
        FieldSpec("restriction"),
        FieldSpec("addresses", _M, type=Group),
        FieldSpec("code", repeated=True),
        FieldSpec("note"),
        FieldSpec("references", _M, type=Group),
        FieldSpec("incidents", _M, type=Group),
        FieldSpec("info", _M, repeated=True, type=Info),
    ),
    Info: (
        FieldSpec("language"),
        FieldSpec("category", _E, repeated=True, type=Category, required_since=11),
        FieldSpec("event", required_since=10),
        FieldSpec("response_type", _E, repeated=True, type=ResponseType),
        FieldSpec("urgency", _E, type=Urgency, required_since=10),
        FieldSpec("severity", _E, type=Severity, required_since=10),
        FieldSpec("certainty", _E, type=Certainty, required_since=10),
        FieldSpec("audience"),
        FieldSpec("event_code", _M, repeated=True, type=ValuePair),
        FieldSpec("effective"),
        FieldSpec("onset"),
        FieldSpec("expires"),
        FieldSpec("sender_name"),
        FieldSpec("headline"),
        FieldSpec("description"),
        FieldSpec("instruction"),
        FieldSpec("web"),
        FieldSpec("contact"),
        FieldSpec("parameter", _M, repeated=True, type=ValuePair),
        FieldSpec("resource", _M, repeated=True, type=Resource),
        FieldSpec("area", _M, repeated=True, type=Area),
    ),
    Area: (
        FieldSpec("area_desc", required_since=10),
        FieldSpec("polygon", _M, repeated=True, type=Polygon),
        FieldSpec("circle", _M, repeated=True, type=Circle),
        FieldSpec("geocode", _M, repeated=True, type=ValuePair),
        FieldSpec("altitude", FieldKind.DOUBLE),
        FieldSpec("ceiling", FieldKind.DOUBLE),
    ),
    Resource: (
        FieldSpec("resource_desc", required_since=10),
        FieldSpec("mime_type", required_since=12),
        FieldSpec("size", FieldKind.INT64),
        FieldSpec("uri"),
        FieldSpec("deref_uri"),
        FieldSpec("digest"),
    ),
    Circle: (
        FieldSpec("point", _M, type=Point),
        FieldSpec("radius", FieldKind.FLOAT),
    ),
    Polygon: (FieldSpec("point", _M, repeated=True, type=Point),),
    Point: (
        FieldSpec("latitude", FieldKind.DOUBLE),
        FieldSpec("longitude", FieldKind.DOUBLE),
    ),
    Group: (FieldSpec("value", repeated=True),),
    ValuePair: (FieldSpec("value_name"), FieldSpec("value")),
}

_FIELDS_BY_NAME: dict[type[CapMessage], dict[str, FieldSpec]] = {
    message_type: {spec.name: spec for spec in specs}
    for message_type, specs in FIELD_TABLES.items()
}

# Carried as delimiter-encoded text rather than child elements. ValuePair
# joins this set only in CAP 1.0.
COMPOSITE_TEXT_TYPES: frozenset[type[CapMessage]] = frozenset({Polygon, Circle, Group})


def is_composite_text(message_type: type[CapMessage], version: int) -> bool:
    if message_type in COMPOSITE_TEXT_TYPES:
        return True
    return message_type is ValuePair and version == 10


def fields_of(message_type: type[CapMessage]) -> tuple[FieldSpec, ...]:
    return FIELD_TABLES[message_type]


def find_field(message_type: type[CapMessage], element: str) -> FieldSpec | None:
    """Find the field for a (mixed-case) element name, or None."""
    fields = _FIELDS_BY_NAME.get(message_type)
    if fields is None:
        return None
    return fields.get(underscore_case(element).lower())


def type_element(message_type: type[CapMessage]) -> str:
    name = message_type.__name__
    return name[0].lower() + name[1:]


def field_values(message: CapMessage, spec: FieldSpec) -> list[Any]:
    """Values of a field as a list: empty when unset, one item when singular."""
    value = getattr(message, spec.name)
    if spec.repeated:
        return list(value)
    return [] if value is None else [value]


def has_field(message: CapMessage, spec: FieldSpec) -> bool:
    return bool(field_values(message, spec))


@lru_cache(maxsize=1)
def repeated_field_names() -> dict[str, frozenset[str]]:
    """Element names that may repeat, keyed by the element name of the parent type.

    Derived once from the field tables, so every document gets the same
    array-versus-scalar decisions regardless of how many values it holds.
    """
    result: dict[str, frozenset[str]] = {}

    def visit(message_type: type[CapMessage]) -> None:
        key = type_element(message_type)
        if key in result:
            return
        repeated = frozenset(
            spec.element for spec in fields_of(message_type) if spec.repeated
        )
        if repeated:
            result[key] = repeated
        for spec in fields_of(message_type):
            if spec.kind is FieldKind.MESSAGE:
                visit(spec.type)

    visit(Alert)
    return result
