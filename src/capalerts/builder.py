"""Serialize alerts to CAP XML and to JSON."""

from __future__ import annotations

import json
from collections.abc import Iterator
from typing import Any, Union

from lxml import etree

from .model import (
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
    field_values,
    fields_of,
    repeated_field_names,
    type_element,
)
from .utils import format_number

DEFAULT_INDENT = 2

Payload = Union[str, CapMessage]


def point_text(point: Point) -> str:
    return f"{format_number(point.latitude)},{format_number(point.longitude)}"


def polygon_text(polygon: Polygon) -> str:
    return " ".join(point_text(point) for point in polygon.point)


def circle_text(circle: Circle) -> str:
    return f"{point_text(circle.point)} {format_number(circle.radius)}"


def group_text(group: Group) -> str:
    return " ".join(_quote(value) for value in group.value)


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    if not value or any(char.isspace() for char in value):
        return f'"{escaped}"'
    return escaped


def composite_text(message: CapMessage, version: int) -> str | None:
    """Delimited text for entities carried as element text, else None."""
    if isinstance(message, Polygon):
        return polygon_text(message)
    if isinstance(message, Circle):
        return circle_text(message)
    if isinstance(message, Group):
        return group_text(message)
    if isinstance(message, ValuePair) and version == 10:
        return f"{message.value_name or ''}={message.value or ''}"
    return None


def _scalar_text(spec: FieldSpec, value: Any) -> str:
    kind = spec.kind
    if kind is FieldKind.ENUM:
        return enum_text(value)
    if kind in (FieldKind.DOUBLE, FieldKind.FLOAT):
        return format_number(value)
    if kind is FieldKind.INT64:
        return str(int(value))
    if kind is FieldKind.BOOL:
        return "true" if value else "false"
    if kind is FieldKind.BYTES:
        return value.decode("utf-8")
    return value


def iter_elements(message: CapMessage, version: int) -> Iterator[tuple[FieldSpec, Payload]]:
    """Child elements of ``message`` in schema order.

    Each payload is element text, or a nested entity that has child elements
    of its own.
    """
    for spec in fields_of(type(message)):
        for value in field_values(message, spec):
            if spec.kind is FieldKind.MESSAGE:
                text = composite_text(value, version)
                yield spec, value if text is None else text
            else:
                yield spec, _scalar_text(spec, value)


class CapXmlBuilder:
    """Write alerts as namespaced CAP XML with an XML declaration."""

    def __init__(self, indent: int | None = DEFAULT_INDENT) -> None:
        self.indent = indent

    def to_element(self, alert: Alert) -> etree._Element:
        namespace = alert.xmlns
        root = etree.Element(f"{{{namespace}}}{type_element(Alert)}", nsmap={None: namespace})
        self._append(root, alert, namespace, alert.version)
        return root

    def _append(self, parent: etree._Element, message: CapMessage, namespace: str, version: int) -> None:
        for spec, payload in iter_elements(message, version):
            child = etree.SubElement(parent, f"{{{namespace}}}{spec.element}")
            if isinstance(payload, str):
                child.text = payload
            else:
                self._append(child, payload, namespace, version)

    def to_bytes(self, alert: Alert) -> bytes:
        root = self.to_element(alert)
        if self.indent:
            etree.indent(root, space=" " * self.indent)
        return etree.tostring(root, xml_declaration=True, encoding="UTF-8")

    def to_xml(self, alert: Alert) -> str:
        return self.to_bytes(alert).decode("utf-8")


class CapJsonBuilder:
    """Write alerts as JSON objects keyed by element name.

    Repeatable elements always become arrays, so the output shape does not
    depend on how many values a particular alert carries.
    """

    def __init__(self, indent: int | None = DEFAULT_INDENT) -> None:
        self.indent = indent

    def to_dict(self, alert: Alert) -> dict[str, Any]:
        return self._object(alert, alert.version)

    def _object(self, message: CapMessage, version: int) -> dict[str, Any]:
        repeated = repeated_field_names().get(type_element(type(message)), frozenset())
        result: dict[str, Any] = {}
        for spec, payload in iter_elements(message, version):
            value = payload if isinstance(payload, str) else self._object(payload, version)
            if not value:
                continue
            if spec.element in repeated:
                result.setdefault(spec.element, []).append(value)
            else:
                result[spec.element] = value
        return result

    def to_json(self, alert: Alert) -> str:
        return json.dumps(self.to_dict(alert), indent=self.indent or None, ensure_ascii=False)


def to_xml(alert: Alert, indent: int | None = DEFAULT_INDENT) -> str:
    return CapXmlBuilder(indent).to_xml(alert)


def to_json(alert: Alert, indent: int | None = DEFAULT_INDENT) -> str:
    return CapJsonBuilder(indent).to_json(alert)
