"""Semantic CAP validation.

Covers the rules an XML schema cannot express: cross-field consistency,
formats of free-text fields, geometry sanity and deprecated constructs.
Checks are version-aware; every finding carries the XPath of the element
it concerns. Validation never raises on findings.
"""

from __future__ import annotations

import re

from .dates import to_datetime
from .model import (
    Alert,
    Area,
    CapMessage,
    Certainty,
    Circle,
    FieldKind,
    Group,
    Info,
    Point,
    Polygon,
    Resource,
    Scope,
    ValuePair,
    field_values,
    fields_of,
    has_field,
    type_element,
)
from .reasons import Level, Reasons, ReasonType
from .utils import (
    contains_html_entities,
    contains_html_tags,
    is_absolute_uri,
    is_base64,
    is_blank,
    parse_reference_identifier,
    parse_reference_parts,
    parse_uri,
    truncate,
)
from .xpath import XPath

LANGUAGE_PATTERN = re.compile(r"[a-zA-Z]{1,8}(-[a-zA-Z0-9]{1,8})*")
FORBIDDEN_ID_CHARS = re.compile(r"[\s,&<]")
MIME_TYPES = frozenset(
    {"application", "audio", "image", "message", "model", "multipart", "text", "video"}
)
DEFAULT_LANGUAGE = "en-US"
MULTILINGUAL_FIELDS = ("event", "headline", "description", "instruction")
MIN_POLYGON_POINTS = 4


class CapValidator:
    """Collect semantic findings for an alert."""

    def validate_alert(self, alert: Alert) -> Reasons:
        reasons = Reasons()
        xpath = XPath()
        with xpath.element("alert"):
            self._check_alert(alert, xpath, reasons)
        sweep = XPath()
        with sweep.element("alert"):
            self._sweep_fields(alert, sweep, alert.version, reasons)
        return reasons

    def ensure_valid(self, alert: Alert, level: Level = Level.ERROR) -> None:
        """Raise CapValidationError when there are findings at ``level`` or above."""
        self.validate_alert(alert).raise_for_level(level)

    def _check_required(
        self, message: CapMessage, version: int, position: str, reasons: Reasons
    ) -> None:
        for spec in fields_of(type(message)):
            if spec.required_since is None or version < spec.required_since:
                continue
            if not has_field(message, spec):
                reasons.add(
                    position,
                    ReasonType.MISSING_REQUIRED_ELEMENT,
                    type_element(type(message)),
                    f"<{spec.element}>",
                )

    def _check_alert(self, alert: Alert, xpath: XPath, reasons: Reasons) -> None:
        version = alert.version
        self._check_required(alert, version, str(xpath), reasons)

        if alert.identifier is not None and FORBIDDEN_ID_CHARS.search(alert.identifier):
            with xpath.element("identifier") as position:
                reasons.add(position, ReasonType.INVALID_IDENTIFIER, truncate(alert.identifier))
        if alert.sender is not None and FORBIDDEN_ID_CHARS.search(alert.sender):
            with xpath.element("sender") as position:
                reasons.add(position, ReasonType.INVALID_SENDER, truncate(alert.sender))
        if alert.password is not None and version > 10:
            with xpath.element("password") as position:
                reasons.add(position, ReasonType.PASSWORD_DEPRECATED)
        if alert.sent is not None and to_datetime(alert.sent) is None:
            with xpath.element("sent") as position:
                reasons.add(position, ReasonType.INVALID_DATE, "sent", truncate(alert.sent))
        if not is_blank(alert.restriction) and alert.scope is not Scope.RESTRICTED:
            with xpath.element("restriction") as position:
                reasons.add(position, ReasonType.RESTRICTION_SCOPE_MISMATCH)
        if alert.addresses is not None and alert.addresses.value and alert.scope is not Scope.PRIVATE:
            with xpath.element("addresses") as position:
                reasons.add(position, ReasonType.ADDRESSES_SCOPE_MISMATCH)
        if alert.references is not None:
            with xpath.element("references") as position:
                self._check_references(alert, alert.references, position, reasons)

        for info in alert.info:
            with xpath.element("info"):
                self._check_info(info, version, xpath, reasons)
        self._check_multilingual(alert, xpath, reasons)
        self._check_consistency(alert, xpath, reasons)

    def _check_references(
        self, alert: Alert, references: Group, position: str, reasons: Reasons
    ) -> None:
        version = alert.version
        sent = to_datetime(alert.sent)
        for reference in references.value:
            referenced_sent = None
            if version > 10:
                parts = parse_reference_parts(reference)
                referenced_sent = to_datetime(parts[2]) if parts else None
                if referenced_sent is None:
                    reasons.add(position, ReasonType.INVALID_REFERENCES, truncate(reference))
                    continue
            identifier = parse_reference_identifier(reference, version)
            if identifier is None:
                continue
            if identifier == alert.identifier:
                reasons.add(position, ReasonType.CIRCULAR_REFERENCE, truncate(reference))
            if referenced_sent is not None and sent is not None and referenced_sent > sent:
                reasons.add(position, ReasonType.POSTDATED_REFERENCE, truncate(reference))

    def _check_info(self, info: Info, version: int, xpath: XPath, reasons: Reasons) -> None:
        self._check_required(info, version, str(xpath), reasons)

        if info.language is not None and not is_blank(info.language):
            if not LANGUAGE_PATTERN.fullmatch(info.language.strip()):
                with xpath.element("language") as position:
                    reasons.add(position, ReasonType.INVALID_LANGUAGE, truncate(info.language))
        if info.certainty is Certainty.VERY_LIKELY and version > 10:
            with xpath.element("certainty") as position:
                reasons.add(position, ReasonType.CERTAINTY_VERY_LIKELY_DEPRECATED)
        for name in ("effective", "onset", "expires"):
            value = getattr(info, name)
            if value is not None and to_datetime(value) is None:
                with xpath.element(name) as position:
                    reasons.add(position, ReasonType.INVALID_DATE, name, truncate(value))
        if info.web is not None and not is_absolute_uri(info.web):
            with xpath.element("web") as position:
                reasons.add(position, ReasonType.INVALID_WEB, truncate(info.web))

        for resource in info.resource:
            with xpath.element("resource"):
                self._check_resource(resource, version, xpath, reasons)
        for area in info.area:
            with xpath.element("area"):
                self._check_area(area, version, xpath, reasons)

    def _check_resource(
        self, resource: Resource, version: int, xpath: XPath, reasons: Reasons
    ) -> None:
        self._check_required(resource, version, str(xpath), reasons)

        if resource.mime_type is not None and not _is_mime_type(resource.mime_type):
            with xpath.element("mimeType") as position:
                reasons.add(position, ReasonType.INVALID_MIME_TYPE, truncate(resource.mime_type))
        if resource.size is not None and resource.size < 0:
            with xpath.element("size") as position:
                reasons.add(position, ReasonType.INVALID_RESOURCE_SIZE, resource.size)
        if resource.uri is not None:
            with xpath.element("uri") as position:
                parsed = parse_uri(resource.uri)
                if parsed is None:
                    reasons.add(position, ReasonType.INVALID_URI, truncate(resource.uri))
                elif not parsed.scheme and resource.deref_uri is None:
                    reasons.add(
                        position, ReasonType.RELATIVE_URI_MISSING_DEREF_URI, truncate(resource.uri)
                    )
        if resource.deref_uri is not None and not is_base64(resource.deref_uri):
            with xpath.element("derefUri") as position:
                reasons.add(position, ReasonType.INVALID_DEREF_URI, truncate(resource.deref_uri))

    def _check_area(self, area: Area, version: int, xpath: XPath, reasons: Reasons) -> None:
        self._check_required(area, version, str(xpath), reasons)

        for polygon in area.polygon:
            with xpath.element("polygon") as position:
                self._check_polygon(polygon, position, reasons)
        for circle in area.circle:
            with xpath.element("circle") as position:
                self._check_circle(circle, position, reasons)

        if area.ceiling is not None:
            if area.altitude is None:
                reasons.add(str(xpath), ReasonType.INVALID_AREA)
            elif area.altitude > area.ceiling:
                with xpath.element("ceiling") as position:
                    reasons.add(
                        position,
                        ReasonType.INVALID_ALTITUDE_CEILING_RANGE,
                        area.altitude,
                        area.ceiling,
                    )

    def _check_polygon(self, polygon: Polygon, position: str, reasons: Reasons) -> None:
        points = polygon.point
        if len(points) < MIN_POLYGON_POINTS:
            reasons.add(position, ReasonType.INVALID_POLYGON_POINT_COUNT, len(points))
        if points and points[0] != points[-1]:
            reasons.add(position, ReasonType.UNCLOSED_POLYGON)
        for point in points:
            self._check_point(point, position, reasons)

    def _check_circle(self, circle: Circle, position: str, reasons: Reasons) -> None:
        self._check_point(circle.point, position, reasons)
        if circle.radius < 0:
            reasons.add(position, ReasonType.INVALID_CIRCLE_RADIUS, circle.radius)

    def _check_point(self, point: Point, position: str, reasons: Reasons) -> None:
        if not -90 <= point.latitude <= 90:
            reasons.add(position, ReasonType.INVALID_LATITUDE, point.latitude)
        if not -180 <= point.longitude <= 180:
            reasons.add(position, ReasonType.INVALID_LONGITUDE, point.longitude)

    def _check_multilingual(self, alert: Alert, xpath: XPath, reasons: Reasons) -> None:
        """Flag text repeated verbatim in info blocks of different languages."""
        seen: dict[tuple[str, str], set[str]] = {}
        positions = _ChildPositions(xpath)
        for info in alert.info:
            language = (info.language or DEFAULT_LANGUAGE).strip().lower()
            info_position = positions.next("info")
            for name in MULTILINGUAL_FIELDS:
                text = getattr(info, name)
                if is_blank(text):
                    continue
                languages = seen.setdefault((name, text), set())
                if languages - {language}:
                    reasons.add(
                        f"{info_position}/{name}[1]",
                        ReasonType.SAME_TEXT_DIFFERENT_LANGUAGE,
                        name,
                        truncate(text),
                    )
                languages.add(language)

    def _check_consistency(self, alert: Alert, xpath: XPath, reasons: Reasons) -> None:
        if len(alert.info) < 2:
            return
        first = alert.info[0]
        categories = frozenset(first.category)
        event_codes = frozenset(first.event_code)
        positions = _ChildPositions(xpath)
        positions.next("info")
        for info in alert.info[1:]:
            info_position = positions.next("info")
            if frozenset(info.category) != categories:
                reasons.add(info_position, ReasonType.INCONSISTENT_CATEGORIES)
            if frozenset(info.event_code) != event_codes:
                reasons.add(info_position, ReasonType.INCONSISTENT_EVENT_CODES)

    def _sweep_fields(
        self, message: CapMessage, xpath: XPath, version: int, reasons: Reasons
    ) -> None:
        """Check every text field of every entity for HTML markup."""
        for spec in fields_of(type(message)):
            if spec.kind not in (FieldKind.STRING, FieldKind.MESSAGE):
                continue
            for value in field_values(message, spec):
                with xpath.element(spec.element) as position:
                    if spec.kind is FieldKind.STRING:
                        _check_text(value, spec.element, position, reasons)
                    elif spec.type is Group:
                        for item in value.value:
                            _check_text(item, spec.element, position, reasons)
                    elif spec.type is ValuePair and version == 10:
                        for item in (value.value_name, value.value):
                            if item is not None:
                                _check_text(item, spec.element, position, reasons)
                    elif spec.type not in (Polygon, Circle, Point):
                        self._sweep_fields(value, xpath, version, reasons)


class _ChildPositions:
    """Positions of repeated children under a fixed parent path."""

    def __init__(self, parent: XPath) -> None:
        self._parent = str(parent)
        self._counts: dict[str, int] = {}

    def next(self, name: str) -> str:
        index = self._counts.get(name, 0) + 1
        self._counts[name] = index
        return f"{self._parent}/{name}[{index}]"


def _check_text(text: str, element: str, position: str, reasons: Reasons) -> None:
    if contains_html_entities(text):
        reasons.add(position, ReasonType.TEXT_CONTAINS_HTML_ENTITIES, element)
    if contains_html_tags(text):
        reasons.add(position, ReasonType.TEXT_CONTAINS_HTML_TAGS, element)


def _is_mime_type(value: str) -> bool:
    media_type, slash, subtype = value.strip().partition("/")
    return bool(slash) and bool(subtype) and media_type in MIME_TYPES


def validate_alert(alert: Alert) -> Reasons:
    return CapValidator().validate_alert(alert)
