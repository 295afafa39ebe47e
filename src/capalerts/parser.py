"""Streaming CAP XML parser.

Turns CAP 1.0, 1.1 and 1.2 documents into :class:`~capalerts.model.Alert`
values. Per-field problems are collected as :class:`~capalerts.reasons.Reasons`
instead of aborting the parse; only malformed XML and non-CAP documents
raise.
"""

from __future__ import annotations

import logging
from typing import Any

from lxml import etree

from .model import (
    CAP_XML_NAMESPACES,
    Alert,
    CapMessage,
    Circle,
    FieldKind,
    FieldSpec,
    Group,
    Point,
    Polygon,
    ValuePair,
    enum_text,
    find_enum_value,
    find_field,
    get_version,
)
from .reasons import CapSyntaxError, Level, NotCapError, Reasons, ReasonType
from .schema import SchemaValidator, XsdSchemaValidator
from .settings import Settings, get_settings
from .sources import CachedSource, Source, load_source
from .utils import parse_integer, parse_number, truncate
from .validator import CapValidator
from .xpath import XPath

LOGGER = logging.getLogger(__name__)

SIGNATURE_ELEMENT = "Signature"


def to_point(text: str) -> Point | None:
    """``"lat,lng"`` -> Point."""
    parts = text.split(",")
    if len(parts) != 2:
        return None
    try:
        return Point(latitude=parse_number(parts[0]), longitude=parse_number(parts[1]))
    except ValueError:
        return None


def to_circle(text: str) -> Circle | None:
    """``"lat,lng radius"`` -> Circle."""
    parts = text.split()
    if len(parts) != 2:
        return None
    point = to_point(parts[0])
    if point is None:
        return None
    try:
        return Circle(point=point, radius=parse_number(parts[1]))
    except ValueError:
        return None


def to_polygon(text: str) -> Polygon | None:
    """Whitespace-separated ``"lat,lng"`` points -> Polygon."""
    points = []
    for token in text.split():
        point = to_point(token)
        if point is None:
            return None
        points.append(point)
    if not points:
        return None
    return Polygon(point=tuple(points))


def to_group(text: str) -> Group | None:
    """Whitespace-separated values, where double quotes group values with spaces.

    A backslash makes the next double quote or backslash literal.
    """
    values: list[str] = []
    current: list[str] = []
    in_quotes = False
    quoted = False
    escaped = False
    for char in text:
        if escaped:
            if char not in '"\\':
                current.append("\\")
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            in_quotes = not in_quotes
            quoted = True
        elif char.isspace() and not in_quotes:
            if current or quoted:
                values.append("".join(current))
                current = []
                quoted = False
        else:
            current.append(char)
    if escaped:
        current.append("\\")
    if current or quoted:
        values.append("".join(current))
    if not values:
        return None
    return Group(value=tuple(values))


def to_value_pair(text: str) -> ValuePair | None:
    """CAP 1.0 ``"name=value"`` -> ValuePair."""
    parts = text.split("=")
    if len(parts) != 2:
        return None
    return ValuePair(value_name=parts[0].strip(), value=parts[1].strip())


class _Builder:
    """Field values of an entity that is still being parsed."""

    __slots__ = ("message_type", "values")

    def __init__(self, message_type: type[CapMessage]) -> None:
        self.message_type = message_type
        self.values: dict[str, Any] = {}

    def set_or_add(self, spec: FieldSpec, value: Any) -> bool:
        """Store ``value``; False when a singular field is already set."""
        if spec.repeated:
            self.values.setdefault(spec.name, []).append(value)
            return True
        if spec.name in self.values:
            return False
        self.values[spec.name] = value
        return True

    def build(self, **extra: Any) -> CapMessage:
        values = {
            name: tuple(value) if isinstance(value, list) else value
            for name, value in self.values.items()
        }
        return self.message_type(**values, **extra)


class CapXmlHandler:
    """lxml parser target that maps CAP elements onto the alert model.

    With ``schema_checked`` set, unknown elements and bad enum values are
    left to the schema validator and not reported again.
    """

    def __init__(self, schema_checked: bool = False) -> None:
        self.schema_checked = schema_checked
        self.reasons = Reasons()
        self.xpath = XPath()
        self.alert: Alert | None = None
        self.xmlns: str | None = None
        self._builders: list[_Builder] = []
        self._open: list[FieldSpec | None] = []
        self._characters: list[str] = []
        self._skip_depth = 0

    @property
    def version(self) -> int:
        return get_version(self.xmlns)

    def start(self, tag: str, attrib: Any, nsmap: Any = None) -> None:
        self._characters.clear()
        if self._skip_depth:
            self._skip_depth += 1
            return
        namespace, name = _split_tag(tag)
        if not self._builders:
            if name != "alert" or namespace not in CAP_XML_NAMESPACES:
                raise NotCapError(f"Not a CAP alert: <{name}> in namespace {namespace!r}")
            self.xmlns = namespace
            self._builders.append(_Builder(Alert))
            self._open.append(None)
            self.xpath.push(name)
            return
        if name == SIGNATURE_ELEMENT:
            self._skip_depth = 1
            return
        spec = find_field(self._builders[-1].message_type, name)
        if spec is None:
            self._skip_depth = 1
            if not self.schema_checked:
                with self.xpath.element(name) as position:
                    self.reasons.add(position, ReasonType.UNSUPPORTED_ELEMENT, name)
            return
        if spec.kind is FieldKind.MESSAGE:
            self._builders.append(_Builder(spec.type))
        self._open.append(spec)
        self.xpath.push(name)

    def data(self, data: str) -> None:
        if not self._skip_depth:
            self._characters.append(data)

    def end(self, tag: str) -> None:
        if self._skip_depth:
            self._skip_depth -= 1
            return
        text = "".join(self._characters)
        self._characters.clear()
        spec = self._open.pop()
        if spec is None:
            self.alert = self._builders.pop().build(xmlns=self.xmlns)
        else:
            if spec.kind is FieldKind.MESSAGE:
                value = self._message_value(spec, self._builders.pop(), text)
            else:
                value = self._scalar_value(spec, text)
            if value is not None and not self._builders[-1].set_or_add(spec, value):
                self.reasons.add(
                    str(self.xpath), ReasonType.DUPLICATE_ELEMENT, spec.element, truncate(text)
                )
        self.xpath.pop()

    def close(self) -> Alert | None:
        return self.alert

    def _scalar_value(self, spec: FieldSpec, text: str) -> Any:
        kind = spec.kind
        if kind is FieldKind.STRING:
            return text
        if kind is FieldKind.BYTES:
            return text.encode("utf-8")
        if kind is FieldKind.BOOL:
            return text.lower() == "true"
        if kind is FieldKind.ENUM:
            value = find_enum_value(spec.type, text)
            if value is None and not self.schema_checked:
                allowed = ", ".join(f'"{enum_text(member)}"' for member in spec.type)
                self.reasons.add(
                    str(self.xpath),
                    ReasonType.INVALID_ENUM_VALUE,
                    spec.element,
                    truncate(text),
                    f"[{allowed}]",
                )
            return value
        try:
            if kind is FieldKind.INT64:
                return parse_integer(text)
            return parse_number(text)
        except ValueError:
            self.reasons.add(str(self.xpath), ReasonType.INVALID_VALUE, spec.element, truncate(text))
            return None

    def _message_value(self, spec: FieldSpec, builder: _Builder, text: str) -> CapMessage | None:
        message_type = builder.message_type
        position = str(self.xpath)
        if message_type is Polygon:
            polygon = to_polygon(text)
            if polygon is None:
                self.reasons.add(position, ReasonType.INVALID_POLYGON, truncate(text.strip()))
            return polygon
        if message_type is Circle:
            circle = to_circle(text)
            if circle is None:
                self.reasons.add(position, ReasonType.INVALID_CIRCLE, truncate(text.strip()))
            return circle
        if message_type is Group:
            return to_group(text)
        if message_type is ValuePair and self.version == 10:
            pair = to_value_pair(text)
            if pair is None:
                self.reasons.add(
                    position, ReasonType.INVALID_VALUE, spec.element, truncate(text)
                )
            return pair
        return builder.build()


def _split_tag(tag: str) -> tuple[str | None, str]:
    if tag.startswith("{"):
        namespace, _, name = tag[1:].partition("}")
        return namespace, name
    return None, tag


def sniff_namespace(source: CachedSource) -> str:
    """Namespace of the root element; raises unless it is a CAP alert."""
    events = etree.iterparse(
        source.open(), events=("start",), resolve_entities=False, no_network=True
    )
    try:
        for _, element in events:
            qname = etree.QName(element)
            if qname.localname != "alert" or qname.namespace not in CAP_XML_NAMESPACES:
                raise NotCapError(
                    f"Not a CAP alert: <{qname.localname}> in namespace {qname.namespace!r}"
                )
            return qname.namespace
    except etree.XMLSyntaxError as exc:
        raise _syntax_error(exc) from exc
    raise NotCapError("Document has no root element")


def _syntax_error(exc: etree.XMLSyntaxError) -> CapSyntaxError:
    line, column = exc.position if exc.position else (None, None)
    return CapSyntaxError(str(exc), line=line, column=column)


class CapXmlParser:
    """Parse CAP XML into alerts.

    ``validate`` makes :meth:`parse` raise on ERROR findings. ``strict_schema``
    skips the semantic validator, leaving only parse and schema findings.
    ``schema_validator`` runs before the parse over the same buffered input.
    """

    def __init__(
        self,
        validate: bool = False,
        strict_schema: bool = False,
        schema_validator: SchemaValidator | None = None,
    ) -> None:
        self.validate = validate
        self.strict_schema = strict_schema
        self.schema_validator = schema_validator
        self.validator = CapValidator()

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **overrides: Any) -> "CapXmlParser":
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "validate": settings.validate_alerts,
            "strict_schema": settings.strict_schema,
        }
        options.update(overrides)
        if "schema_validator" not in options and settings.schema_dir is not None:
            options["schema_validator"] = XsdSchemaValidator(
                settings.schema_dir, strict=options["strict_schema"]
            )
        return cls(**options)

    def parse(self, source: Source) -> Alert:
        """Parse an alert; raises CapValidationError on errors when validating."""
        alert, reasons = self.parse_with_reasons(source)
        if self.validate:
            reasons.raise_for_level(Level.ERROR)
        return alert

    def parse_with_reasons(self, source: Source) -> tuple[Alert, Reasons]:
        """Parse an alert and return it with every finding; never raises on findings."""
        cached = load_source(source)
        xmlns = sniff_namespace(cached)
        reasons = Reasons()
        if self.schema_validator is not None:
            reasons.extend(self.schema_validator.validate(cached, xmlns))

        handler = CapXmlHandler(schema_checked=self.schema_validator is not None)
        parser = etree.XMLParser(target=handler, resolve_entities=False, no_network=True)
        try:
            for chunk in cached.chunks():
                parser.feed(chunk)
            alert = parser.close()
        except etree.XMLSyntaxError as exc:
            raise _syntax_error(exc) from exc
        if alert is None:
            raise NotCapError("Document has no CAP alert element")
        reasons.extend(handler.reasons)

        if not self.strict_schema:
            reasons.extend(self.validator.validate_alert(alert))
        LOGGER.debug(
            "Parsed alert %s (CAP %s) with %s finding(s)",
            alert.identifier,
            alert.version,
            len(reasons),
        )
        return alert, reasons


def parse_alert(source: Source, validate: bool = False) -> Alert:
    return CapXmlParser(validate=validate).parse(source)
